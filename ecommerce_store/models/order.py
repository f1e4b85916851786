"""
Order, OrderItem and OrderCoupon models
"""
from sqlalchemy import (
    DECIMAL,
    CheckConstraint,
    Column,
    Computed,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..utils.database import Base
from .enums import ORDER_STATUS, PAYMENT_METHOD, PAYMENT_STATUS, OrderStatus, PaymentStatus


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="total_amount_non_negative"),
        CheckConstraint("shipping_cost >= 0", name="shipping_cost_non_negative"),
        CheckConstraint("tax_amount >= 0", name="tax_amount_non_negative"),
        Index("ix_orders_order_date", "order_date"),
        Index("ix_orders_customer_date", "customer_id", "order_date"),
        Index("ix_orders_status", "status"),
    )

    order_id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.customer_id", ondelete="RESTRICT"), nullable=False)
    order_date = Column(DateTime(timezone=True), server_default=func.now())
    status = Column(ORDER_STATUS, nullable=False, default=OrderStatus.PENDING,
                    server_default=OrderStatus.PENDING.value)
    total_amount = Column(DECIMAL(10, 2), nullable=False)
    shipping_address_id = Column(Integer, ForeignKey("addresses.address_id", ondelete="RESTRICT"), nullable=False)
    billing_address_id = Column(Integer, ForeignKey("addresses.address_id", ondelete="RESTRICT"), nullable=False)
    payment_method = Column(PAYMENT_METHOD, nullable=False)
    payment_status = Column(PAYMENT_STATUS, nullable=False, default=PaymentStatus.PENDING,
                            server_default=PaymentStatus.PENDING.value)
    shipping_cost = Column(DECIMAL(10, 2), nullable=False, default=0, server_default="0")
    tax_amount = Column(DECIMAL(10, 2), nullable=False, default=0, server_default="0")
    notes = Column(Text)

    customer = relationship("Customer", back_populates="orders")
    shipping_address = relationship("Address", foreign_keys=[shipping_address_id])
    billing_address = relationship("Address", foreign_keys=[billing_address_id])
    items = relationship("OrderItem", back_populates="order",
                         cascade="all, delete-orphan", passive_deletes=True)
    payment = relationship("Payment", back_populates="order", uselist=False,
                           cascade="all, delete-orphan", passive_deletes=True)
    coupons = relationship("OrderCoupon", back_populates="order",
                           cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Order(id={self.order_id}, total={self.total_amount}, status={self.status})>"


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
        UniqueConstraint("order_id", "product_id"),
        Index("ix_order_items_order_id", "order_id"),
    )

    order_item_id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(DECIMAL(10, 2), nullable=False)
    # Maintained by the engine, never written by the application
    subtotal = Column(DECIMAL(10, 2), Computed("quantity * unit_price", persisted=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")

    def __repr__(self):
        return f"<OrderItem(id={self.order_item_id}, quantity={self.quantity}, unit_price={self.unit_price})>"


class OrderCoupon(Base):
    __tablename__ = "order_coupons"
    __table_args__ = (
        CheckConstraint("discount_applied >= 0", name="discount_applied_non_negative"),
        UniqueConstraint("order_id", "coupon_id"),
        Index("ix_order_coupons_order_id", "order_id"),
    )

    order_coupon_id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False)
    coupon_id = Column(Integer, ForeignKey("coupons.coupon_id", ondelete="RESTRICT"), nullable=False)
    discount_applied = Column(DECIMAL(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="coupons")
    coupon = relationship("Coupon", back_populates="order_coupons")

    def __repr__(self):
        return f"<OrderCoupon(order_id={self.order_id}, coupon_id={self.coupon_id}, discount={self.discount_applied})>"
