"""
Checkout: turn a basket into an order in a single transaction

``place_order`` validates every line and coupon before it writes anything,
then inserts the order with its items and coupon applications and takes
the ordered quantities out of inventory. It only flushes; committing or
rolling back is left to the caller's ``session_scope`` so the whole
checkout is one unit of work.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import (
    Address,
    Coupon,
    Customer,
    DiscountType,
    Inventory,
    Order,
    OrderCoupon,
    OrderItem,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
)
from ..utils.errors import CheckoutError, CouponError, NotFoundError, OutOfStockError

CENT = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _utc_naive(value: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compute_discount(coupon: Coupon, order_amount: Decimal, at: Optional[datetime] = None) -> Decimal:
    """
    Discount a coupon grants on ``order_amount`` at time ``at``.

    Raises:
        CouponError: if the coupon is inactive, outside its validity window,
            used up, or the order does not reach its minimum amount
    """
    at = _utc_naive(at or datetime.now(timezone.utc))
    order_amount = to_money(order_amount)

    if not coupon.is_active:
        raise CouponError(coupon.code, "inactive")
    if at < _utc_naive(coupon.start_date):
        raise CouponError(coupon.code, "not yet valid")
    if at > _utc_naive(coupon.end_date):
        raise CouponError(coupon.code, "expired")
    if coupon.is_exhausted:
        raise CouponError(coupon.code, "usage limit reached")
    minimum = to_money(coupon.minimum_order_amount or 0)
    if order_amount < minimum:
        raise CouponError(coupon.code, f"order amount {order_amount} is below minimum {minimum}")

    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = order_amount * to_money(coupon.discount_value) / Decimal(100)
    else:
        discount = to_money(coupon.discount_value)

    if coupon.maximum_discount_amount is not None:
        discount = min(discount, to_money(coupon.maximum_discount_amount))
    return to_money(min(discount, order_amount))


def _merge_lines(lines: Iterable[OrderLine]) -> "OrderedDict[int, int]":
    merged: "OrderedDict[int, int]" = OrderedDict()
    for line in lines:
        if line.quantity <= 0:
            raise CheckoutError(f"Quantity for product {line.product_id} must be positive")
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    if not merged:
        raise CheckoutError("An order needs at least one line")
    return merged


def _customer_address(db: Session, customer_id: int, address_id: int) -> Address:
    address = db.get(Address, address_id)
    if address is None:
        raise NotFoundError("Address", address_id)
    if address.customer_id != customer_id:
        raise CheckoutError(f"Address {address_id} does not belong to customer {customer_id}")
    return address


def place_order(
    db: Session,
    customer_id: int,
    shipping_address_id: int,
    billing_address_id: int,
    payment_method: PaymentMethod,
    lines: Sequence[OrderLine],
    coupon_codes: Sequence[str] = (),
    shipping_cost=ZERO,
    tax_amount=ZERO,
    notes: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Order:
    """Create a pending order, its items and coupon applications and reserve stock"""
    if db.get(Customer, customer_id) is None:
        raise NotFoundError("Customer", customer_id)
    shipping_address = _customer_address(db, customer_id, shipping_address_id)
    billing_address = _customer_address(db, customer_id, billing_address_id)

    shipping_cost = to_money(shipping_cost)
    tax_amount = to_money(tax_amount)
    if shipping_cost < ZERO or tax_amount < ZERO:
        raise CheckoutError("Shipping cost and tax must not be negative")

    quantities = _merge_lines(lines)
    product_ids = list(quantities)

    products: Dict[int, Product] = {
        product.product_id: product
        for product in db.scalars(select(Product).where(Product.product_id.in_(product_ids)))
    }
    # Locked and re-read even when the rows are already in the session (locks are a no-op on SQLite)
    stock: Dict[int, Inventory] = {
        inventory.product_id: inventory
        for inventory in db.scalars(
            select(Inventory)
            .where(Inventory.product_id.in_(product_ids))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    }

    merchandise_total = ZERO
    for product_id, quantity in quantities.items():
        product = products.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if not product.is_active:
            raise CheckoutError(f"Product {product_id} is not available for sale")
        inventory = stock.get(product_id)
        available = inventory.quantity if inventory is not None else 0
        if available < quantity:
            raise OutOfStockError(product_id, quantity, available)
        merchandise_total += to_money(product.price) * quantity

    applied: List[tuple] = []
    remaining = merchandise_total
    for code in coupon_codes:
        if any(coupon.code == code for coupon, _ in applied):
            raise CouponError(code, "already applied to this order")
        coupon = db.scalars(
            select(Coupon)
            .where(Coupon.code == code)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if coupon is None:
            raise CouponError(code, "unknown code")
        # Thresholds are checked against the full basket, the cap against what is left
        discount = min(compute_discount(coupon, merchandise_total, at), remaining)
        remaining -= discount
        applied.append((coupon, discount))

    order = Order(
        customer_id=customer_id,
        shipping_address=shipping_address,
        billing_address=billing_address,
        payment_method=payment_method,
        total_amount=to_money(remaining + shipping_cost + tax_amount),
        shipping_cost=shipping_cost,
        tax_amount=tax_amount,
        notes=notes,
    )
    for product_id, quantity in quantities.items():
        order.items.append(OrderItem(
            product_id=product_id,
            quantity=quantity,
            unit_price=to_money(products[product_id].price),
        ))
        # Decrement in SQL so the quantity check still rejects an oversell
        stock[product_id].quantity = Inventory.quantity - quantity
    for coupon, discount in applied:
        order.coupons.append(OrderCoupon(coupon=coupon, discount_applied=discount))
        coupon.used_count = Coupon.used_count + 1

    db.add(order)
    db.flush()
    logger.info(
        f"Order {order.order_id} placed for customer {customer_id}: "
        f"{len(quantities)} line(s), total {order.total_amount}"
    )
    return order


def record_payment(
    db: Session,
    order: Order,
    amount=None,
    payment_method: Optional[PaymentMethod] = None,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    transaction_id: Optional[str] = None,
    card_last_four: Optional[str] = None,
    card_brand: Optional[str] = None,
) -> Payment:
    """Attach the order's single payment and mirror its status on the order"""
    status = PaymentStatus(status)
    if order.payment is not None:
        raise CheckoutError(f"Order {order.order_id} already has a payment")

    payment = Payment(
        amount=to_money(order.total_amount if amount is None else amount),
        payment_method=payment_method or order.payment_method,
        status=status,
        transaction_id=transaction_id,
        card_last_four=card_last_four,
        card_brand=card_brand,
    )
    order.payment = payment
    order.payment_status = status
    db.flush()
    logger.info(f"Payment {payment.payment_id} recorded for order {order.order_id}: {payment.amount} ({status.value})")
    return payment
