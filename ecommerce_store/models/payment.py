"""
Payment model
"""
from sqlalchemy import DECIMAL, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..utils.database import Base
from .enums import PAYMENT_METHOD, PAYMENT_STATUS


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        Index("ix_payments_payment_date", "payment_date"),
    )

    payment_id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, unique=True)
    payment_date = Column(DateTime(timezone=True), server_default=func.now())
    amount = Column(DECIMAL(10, 2), nullable=False)
    payment_method = Column(PAYMENT_METHOD, nullable=False)
    # NULLs never collide, so only reported transactions must be distinct
    transaction_id = Column(String(255), unique=True)
    status = Column(PAYMENT_STATUS, nullable=False)
    card_last_four = Column(String(4))
    card_brand = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="payment")

    def __repr__(self):
        return f"<Payment(id={self.payment_id}, amount={self.amount}, method={self.payment_method}, status={self.status})>"
