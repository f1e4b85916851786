"""
SQLAlchemy models for the e-commerce store schema
"""

# Import all models to make them available when importing from models
from .enums import AddressType, DiscountType, OrderStatus, PaymentMethod, PaymentStatus
from .customer import Customer, Address
from .product import Category, Product, ProductImage, Inventory
from .order import Order, OrderItem, OrderCoupon
from .payment import Payment
from .review import Review, Wishlist
from .coupon import Coupon
from .timestamps import install_update_triggers
from ..utils.database import Base

install_update_triggers(Base.metadata)

__all__ = [
    "AddressType",
    "DiscountType",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Customer",
    "Address",
    "Category",
    "Product",
    "ProductImage",
    "Inventory",
    "Order",
    "OrderItem",
    "OrderCoupon",
    "Payment",
    "Review",
    "Wishlist",
    "Coupon",
]
