from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ecommerce_store.models import (
    AddressType,
    Coupon,
    DiscountType,
    Inventory,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
)
from ecommerce_store.services.checkout import OrderLine, compute_discount, place_order, record_payment
from ecommerce_store.utils.database import session_scope
from ecommerce_store.utils.errors import CheckoutError, CouponError, NotFoundError, OutOfStockError
from factories import address_of, make_category, make_coupon, make_customer, make_product


def build_store(session_factory):
    """Committed catalog: phone (50 in stock), headphones (25), t-shirt (100) and one customer"""
    with session_scope(session_factory) as db:
        electronics = make_category(db, "Electronics")
        clothing = make_category(db, "Clothing")
        phone = make_product(db, electronics, "Smartphone X", "SMX-001", "699.99", quantity=50)
        headphones = make_product(db, electronics, "Wireless Headphones", "WH-002", "199.99", quantity=25)
        shirt = make_product(db, clothing, "Cotton T-Shirt", "CTS-101", "29.99", quantity=100)
        customer = make_customer(db)
        ids = {
            "phone": phone.product_id,
            "headphones": headphones.product_id,
            "shirt": shirt.product_id,
            "customer": customer.customer_id,
            "shipping": address_of(customer, AddressType.SHIPPING).address_id,
            "billing": address_of(customer, AddressType.BILLING).address_id,
        }
    return ids


@pytest.fixture
def store(session_factory):
    return build_store(session_factory)


def checkout(db, store, lines, **kwargs):
    kwargs.setdefault("payment_method", PaymentMethod.CREDIT_CARD)
    return place_order(
        db,
        customer_id=store["customer"],
        shipping_address_id=store["shipping"],
        billing_address_id=store["billing"],
        lines=lines,
        **kwargs,
    )


def stock(db, product_id):
    return db.scalar(select(Inventory.quantity).where(Inventory.product_id == product_id))


def test_place_order_creates_items_and_reserves_stock(session_factory, store):
    with session_scope(session_factory) as db:
        order = checkout(db, store, [OrderLine(store["phone"], 1), OrderLine(store["shirt"], 3)],
                         shipping_cost="4.99", tax_amount="10.00")
        order_id = order.order_id

    with session_scope(session_factory) as db:
        order = db.get(Order, order_id)
        assert order.status is OrderStatus.PENDING
        assert order.payment_status is PaymentStatus.PENDING
        assert order.total_amount == Decimal("804.95")
        assert sorted((item.product_id, item.quantity, item.subtotal) for item in order.items) == sorted([
            (store["phone"], 1, Decimal("699.99")),
            (store["shirt"], 3, Decimal("89.97")),
        ])
        assert stock(db, store["phone"]) == 49
        assert stock(db, store["shirt"]) == 97


def test_duplicate_lines_are_merged(session_factory, store):
    with session_scope(session_factory) as db:
        order = checkout(db, store, [OrderLine(store["shirt"], 1), OrderLine(store["shirt"], 2)])
        assert len(order.items) == 1
        assert order.items[0].quantity == 3


def test_checkout_is_all_or_nothing(session_factory, store):
    with pytest.raises(OutOfStockError) as caught:
        with session_scope(session_factory) as db:
            checkout(db, store, [OrderLine(store["phone"], 2), OrderLine(store["headphones"], 26)])

    assert caught.value.available == 25
    with session_scope(session_factory) as db:
        assert db.scalar(select(func.count()).select_from(Order)) == 0
        assert stock(db, store["phone"]) == 50
        assert stock(db, store["headphones"]) == 25


def test_exact_stock_can_be_sold(session_factory, store):
    with session_scope(session_factory) as db:
        checkout(db, store, [OrderLine(store["headphones"], 25)])
    with session_scope(session_factory) as db:
        assert stock(db, store["headphones"]) == 0


@pytest.mark.parametrize("lines", [[], [OrderLine(1, 0)], [OrderLine(1, -2)]])
def test_invalid_lines_rejected(db, store, lines):
    with pytest.raises(CheckoutError):
        checkout(db, store, lines)


def test_unknown_product_rejected(db, store):
    with pytest.raises(NotFoundError):
        checkout(db, store, [OrderLine(9999, 1)])


def test_inactive_product_rejected(db, store):
    db.get(Product, store["shirt"]).is_active = False
    with pytest.raises(CheckoutError):
        checkout(db, store, [OrderLine(store["shirt"], 1)])


def test_foreign_address_rejected(db, store):
    stranger = make_customer(db, email="someone.else@example.com")
    with pytest.raises(CheckoutError):
        place_order(
            db, store["customer"], address_of(stranger, AddressType.SHIPPING).address_id, store["billing"],
            PaymentMethod.PAYPAL, [OrderLine(store["shirt"], 1)],
        )


def test_unknown_customer_rejected(db, store):
    with pytest.raises(NotFoundError):
        place_order(db, 9999, store["shipping"], store["billing"], PaymentMethod.PAYPAL, [OrderLine(store["shirt"], 1)])


def test_percentage_coupon_with_cap(session_factory, store):
    with session_scope(session_factory) as db:
        make_coupon(db, code="TENOFF", value="10", maximum="50.00", usage_limit=5)

    with session_scope(session_factory) as db:
        order = checkout(db, store, [OrderLine(store["phone"], 1), OrderLine(store["shirt"], 1)],
                         coupon_codes=["TENOFF"])
        assert order.total_amount == Decimal("679.98")
        assert order.coupons[0].discount_applied == Decimal("50.00")

    with session_scope(session_factory) as db:
        assert db.scalar(select(Coupon.used_count).where(Coupon.code == "TENOFF")) == 1


def test_stacked_coupons_never_go_below_zero(session_factory, store):
    with session_scope(session_factory) as db:
        make_coupon(db, code="FIVE", discount_type=DiscountType.FIXED_AMOUNT, value="20.00")
        make_coupon(db, code="HALF", value="50")

    with session_scope(session_factory) as db:
        order = checkout(db, store, [OrderLine(store["shirt"], 1)], coupon_codes=["FIVE", "HALF"],
                         shipping_cost="5.00")
        discounts = [application.discount_applied for application in order.coupons]
        assert discounts == [Decimal("20.00"), Decimal("9.99")]
        assert order.total_amount == Decimal("5.00")


def test_rejected_coupon_leaves_no_trace(session_factory, store):
    with session_scope(session_factory) as db:
        make_coupon(db, code="BIGSPEND", minimum="1000.00")

    with pytest.raises(CouponError):
        with session_scope(session_factory) as db:
            checkout(db, store, [OrderLine(store["shirt"], 2)], coupon_codes=["BIGSPEND"])

    with session_scope(session_factory) as db:
        assert db.scalar(select(func.count()).select_from(Order)) == 0
        assert stock(db, store["shirt"]) == 100


def test_coupon_cannot_be_applied_twice(db, store):
    make_coupon(db, code="ONCE")
    with pytest.raises(CouponError):
        checkout(db, store, [OrderLine(store["shirt"], 1)], coupon_codes=["ONCE", "ONCE"])


def test_unknown_coupon(db, store):
    with pytest.raises(CouponError):
        checkout(db, store, [OrderLine(store["shirt"], 1)], coupon_codes=["NOPE"])


NOW = datetime(2030, 6, 15, 12, 0)


def _coupon(**overrides):
    values = dict(
        code="TEST", discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("10"),
        minimum_order_amount=Decimal("0"), maximum_discount_amount=None,
        start_date=NOW - timedelta(days=1), end_date=NOW + timedelta(days=1),
        usage_limit=None, used_count=0, is_active=True,
    )
    values.update(overrides)
    return Coupon(**values)


@pytest.mark.parametrize("overrides, reason", [
    ({"is_active": False}, "inactive"),
    ({"start_date": NOW + timedelta(hours=1)}, "not yet valid"),
    ({"end_date": NOW - timedelta(hours=1)}, "expired"),
    ({"usage_limit": 3, "used_count": 3}, "usage limit reached"),
    ({"minimum_order_amount": Decimal("100.00")}, "below minimum"),
])
def test_compute_discount_rejections(overrides, reason):
    with pytest.raises(CouponError) as caught:
        compute_discount(_coupon(**overrides), Decimal("50.00"), at=NOW)
    assert reason in caught.value.reason


def test_compute_discount_amounts():
    assert compute_discount(_coupon(), Decimal("59.99"), at=NOW) == Decimal("6.00")
    fixed = _coupon(discount_type=DiscountType.FIXED_AMOUNT, discount_value=Decimal("80"))
    assert compute_discount(fixed, Decimal("50.00"), at=NOW) == Decimal("50.00")
    aware = NOW.replace(tzinfo=timezone.utc)
    assert compute_discount(_coupon(), Decimal("10.00"), at=aware) == Decimal("1.00")


def test_record_payment_updates_order(session_factory, store):
    with session_scope(session_factory) as db:
        order = checkout(db, store, [OrderLine(store["shirt"], 1)], payment_method=PaymentMethod.PAYPAL)
        payment = record_payment(db, order, transaction_id="TXN-100")
        assert payment.amount == Decimal("29.99")
        assert payment.payment_method is PaymentMethod.PAYPAL
        order_id = order.order_id

    with session_scope(session_factory) as db:
        order = db.get(Order, order_id)
        assert order.payment_status is PaymentStatus.COMPLETED
        assert order.payment.transaction_id == "TXN-100"
        with pytest.raises(CheckoutError):
            record_payment(db, order)


def test_checkout_rereads_stock_held_by_the_session(file_session_factory):
    ids = build_store(file_session_factory)
    holder = file_session_factory()
    try:
        inventory = holder.scalars(select(Inventory).where(Inventory.product_id == ids["phone"])).one()
        assert inventory.quantity == 50

        with session_scope(file_session_factory) as other:
            checkout(other, ids, [OrderLine(ids["phone"], 10)])

        checkout(holder, ids, [OrderLine(ids["phone"], 1)])
        holder.commit()
        assert inventory.quantity == 39
    finally:
        holder.close()

    with session_scope(file_session_factory) as db:
        assert stock(db, ids["phone"]) == 39


def test_stock_sold_by_another_session_is_not_sold_again(file_session_factory):
    ids = build_store(file_session_factory)
    holder = file_session_factory()
    try:
        holder.scalars(select(Inventory).where(Inventory.product_id == ids["headphones"])).one()

        with session_scope(file_session_factory) as other:
            checkout(other, ids, [OrderLine(ids["headphones"], 20)])

        with pytest.raises(OutOfStockError) as caught:
            checkout(holder, ids, [OrderLine(ids["headphones"], 10)])
        assert caught.value.available == 5
    finally:
        holder.close()


def test_coupon_limit_holds_when_coupon_already_loaded(file_session_factory):
    ids = build_store(file_session_factory)
    with session_scope(file_session_factory) as db:
        make_coupon(db, code="ONLYONE", usage_limit=1)

    holder = file_session_factory()
    try:
        coupon = holder.scalars(select(Coupon).where(Coupon.code == "ONLYONE")).one()
        assert not coupon.is_exhausted

        with session_scope(file_session_factory) as other:
            checkout(other, ids, [OrderLine(ids["shirt"], 1)], coupon_codes=["ONLYONE"])

        with pytest.raises(CouponError) as caught:
            checkout(holder, ids, [OrderLine(ids["shirt"], 1)], coupon_codes=["ONLYONE"])
        assert caught.value.reason == "usage limit reached"
    finally:
        holder.close()

    with session_scope(file_session_factory) as db:
        assert db.scalar(select(Coupon.used_count).where(Coupon.code == "ONLYONE")) == 1
