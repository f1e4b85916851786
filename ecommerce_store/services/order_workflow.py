"""
Order status lifecycle

The schema accepts any status value; this module is where the allowed
moves between statuses are enforced:

    pending -> processing | cancelled
    processing -> shipped | cancelled
    shipped -> delivered
    delivered -> refunded

Cancelled and refunded orders are final.
"""
from typing import Dict, FrozenSet, Union

from loguru import logger
from sqlalchemy import case, select
from sqlalchemy.orm import Session

from ..models import Coupon, Inventory, Order, OrderStatus, PaymentStatus
from ..utils.errors import InvalidTransitionError

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


def can_transition(current: Union[OrderStatus, str], target: Union[OrderStatus, str]) -> bool:
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]


def _restock(db: Session, order: Order) -> None:
    product_ids = [item.product_id for item in order.items]
    stock = {
        inventory.product_id: inventory
        for inventory in db.scalars(
            select(Inventory)
            .where(Inventory.product_id.in_(product_ids))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    }
    for item in order.items:
        inventory = stock.get(item.product_id)
        if inventory is None:
            logger.warning(f"Order {order.order_id}: no inventory row for product {item.product_id}, not restocked")
            continue
        inventory.quantity = Inventory.quantity + item.quantity


def _release_coupons(db: Session, order: Order) -> None:
    coupon_ids = [application.coupon_id for application in order.coupons]
    if not coupon_ids:
        return
    coupons = db.scalars(
        select(Coupon)
        .where(Coupon.coupon_id.in_(coupon_ids))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    for coupon in coupons:
        coupon.used_count = case((Coupon.used_count > 0, Coupon.used_count - 1), else_=0)


def _mark_refunded(order: Order) -> None:
    order.payment_status = PaymentStatus.REFUNDED
    if order.payment is not None:
        order.payment.status = PaymentStatus.REFUNDED


def transition_order(db: Session, order: Order, target: Union[OrderStatus, str]) -> Order:
    """
    Move ``order`` to ``target`` status.

    Cancelling puts the reserved stock back and frees the coupon uses; a paid
    order that is cancelled or refunded has its payment marked refunded.

    Raises:
        InvalidTransitionError: if the move is not in ``ORDER_TRANSITIONS``
    """
    current = OrderStatus(order.status)
    target = OrderStatus(target)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)

    if target is OrderStatus.CANCELLED:
        _restock(db, order)
        _release_coupons(db, order)
        if order.payment_status == PaymentStatus.COMPLETED:
            _mark_refunded(order)
    elif target is OrderStatus.REFUNDED:
        _mark_refunded(order)

    order.status = target
    db.flush()
    logger.info(f"Order {order.order_id}: {current.value} -> {target.value}")
    return order
