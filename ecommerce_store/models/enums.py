"""
Closed value sets used by the store tables
"""
import enum

from sqlalchemy import Enum


class AddressType(str, enum.Enum):
    BILLING = "billing"
    SHIPPING = "shipping"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


def enum_type(enum_class, name: str) -> Enum:
    """
    Column type storing the lowercase member values. On engines without a
    native enum type the allowed values become a named CHECK constraint.
    """
    return Enum(
        enum_class,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        create_constraint=True,
        validate_strings=True,
    )


ADDRESS_TYPE = enum_type(AddressType, "address_type")
ORDER_STATUS = enum_type(OrderStatus, "order_status")
PAYMENT_METHOD = enum_type(PaymentMethod, "payment_method")
PAYMENT_STATUS = enum_type(PaymentStatus, "payment_status")
DISCOUNT_TYPE = enum_type(DiscountType, "discount_type")
