from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select, text, update
from sqlalchemy.exc import DBAPIError

from ecommerce_store.models import Customer, OrderItem, Review
from factories import make_category, make_customer, make_order, make_product


@pytest.fixture
def item(db):
    product = make_product(db, make_category(db), price="19.99")
    order = make_order(db, make_customer(db), lines=[(product, 2)])
    db.commit()
    return order.items[0]


def test_subtotal_is_quantity_times_unit_price(db, item):
    db.refresh(item)
    assert item.subtotal == Decimal("39.98")


def test_subtotal_follows_quantity_changes(db, item):
    item.quantity = 5
    db.commit()
    db.refresh(item)
    assert item.subtotal == Decimal("99.95")


def test_subtotal_follows_unit_price_changes(db, item):
    db.execute(update(OrderItem).where(OrderItem.order_item_id == item.order_item_id).values(unit_price=Decimal("10.50")))
    db.commit()
    db.refresh(item)
    assert item.subtotal == Decimal("21.00")


def test_subtotal_cannot_be_written_directly(db, item):
    with pytest.raises(DBAPIError):
        db.execute(text("UPDATE order_items SET subtotal = 1 WHERE order_item_id = :id"), {"id": item.order_item_id})
    db.rollback()


def test_every_item_subtotal_matches_its_factors(db):
    category = make_category(db)
    lines = [
        (make_product(db, category, name=f"Item {n}", sku=f"ITM-{n}", price=price), quantity)
        for n, (price, quantity) in enumerate([("0.00", 3), ("33.33", 3), ("699.99", 1), ("1.05", 7)])
    ]
    make_order(db, make_customer(db), lines=lines)
    db.commit()

    for quantity, unit_price, subtotal in db.execute(select(OrderItem.quantity, OrderItem.unit_price, OrderItem.subtotal)):
        assert subtotal == (unit_price * quantity).quantize(Decimal("0.01"))


OLD = datetime(2000, 1, 1)


def _backdate(db, obj):
    obj.updated_at = OLD
    db.commit()
    db.refresh(obj)
    assert obj.updated_at == OLD


@pytest.mark.parametrize("build, change", [
    (lambda db: make_customer(db), lambda obj: setattr(obj, "first_name", "Janet")),
    (lambda db: make_product(db, make_category(db)), lambda obj: setattr(obj, "price", Decimal("649.99"))),
    (lambda db: make_product(db, make_category(db), quantity=5).inventory, lambda obj: setattr(obj, "quantity", 4)),
])
def test_updated_at_refreshes_on_modification(db, build, change):
    obj = build(db)
    _backdate(db, obj)

    change(obj)
    db.commit()
    db.refresh(obj)
    assert obj.updated_at > OLD


def test_review_updated_at_refreshes_but_created_at_stays(db):
    product = make_product(db, make_category(db))
    review = Review(customer=make_customer(db), product=product, rating=3)
    db.add(review)
    db.commit()
    created_at = review.created_at
    _backdate(db, review)

    review.rating = 4
    db.commit()
    db.refresh(review)
    assert review.updated_at > OLD
    assert review.created_at == created_at


def test_timestamps_set_on_insert(db):
    customer = make_customer(db)
    db.commit()
    db.refresh(customer)
    assert isinstance(customer.created_at, datetime)
    assert isinstance(customer.updated_at, datetime)
    assert db.scalar(select(Customer.email)) == customer.email


@pytest.mark.parametrize("table, statement", [
    ("product", "UPDATE products SET price = 1 WHERE product_id = :id"),
    ("inventory", "UPDATE inventory SET quantity = quantity + 1 WHERE product_id = :id"),
    ("review", "UPDATE reviews SET is_approved = 1 WHERE product_id = :id"),
])
def test_updated_at_refreshed_by_plain_sql(db, table, statement):
    product = make_product(db, make_category(db), quantity=3)
    review = Review(customer=make_customer(db), product=product, rating=5)
    db.add(review)
    db.flush()
    obj = {"product": product, "inventory": product.inventory, "review": review}[table]
    _backdate(db, obj)

    db.execute(text(statement), {"id": product.product_id})
    db.commit()
    db.refresh(obj)
    assert obj.updated_at > OLD


def test_explicit_updated_at_is_kept(db):
    customer = make_customer(db)
    db.execute(text("UPDATE customers SET first_name = 'Janet', updated_at = '2001-02-03 04:05:06' "
                    "WHERE customer_id = :id"), {"id": customer.customer_id})
    db.commit()
    db.refresh(customer)
    assert customer.updated_at == datetime(2001, 2, 3, 4, 5, 6)
