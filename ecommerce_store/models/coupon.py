"""
Coupon model
"""
from sqlalchemy import DECIMAL, Boolean, CheckConstraint, Column, DateTime, Index, Integer, String, Text, true
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..utils.database import Base
from .enums import DISCOUNT_TYPE


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("discount_value >= 0", name="discount_value_non_negative"),
        CheckConstraint("used_count >= 0", name="used_count_non_negative"),
        CheckConstraint("usage_limit IS NULL OR used_count <= usage_limit", name="usage_within_limit"),
        CheckConstraint("end_date >= start_date", name="validity_window"),
        Index("ix_coupons_dates", "start_date", "end_date"),
    )

    coupon_id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False)
    description = Column(Text)
    discount_type = Column(DISCOUNT_TYPE, nullable=False)
    discount_value = Column(DECIMAL(10, 2), nullable=False)
    minimum_order_amount = Column(DECIMAL(10, 2), default=0, server_default="0")
    maximum_discount_amount = Column(DECIMAL(10, 2))
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer)
    used_count = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order_coupons = relationship("OrderCoupon", back_populates="coupon", passive_deletes="all")

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def __repr__(self):
        return f"<Coupon(id={self.coupon_id}, code={self.code}, type={self.discount_type})>"
