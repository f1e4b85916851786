"""
Customer and Address models
"""
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..utils.database import Base
from .enums import ADDRESS_TYPE
from .timestamps import updated_at_column


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        Index("ix_customers_name", "first_name", "last_name"),
    )

    customer_id = Column(Integer, primary_key=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(20))
    date_of_birth = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = updated_at_column()

    # Owned rows go with the customer; orders block the delete
    addresses = relationship("Address", back_populates="customer",
                             cascade="all, delete-orphan", passive_deletes=True)
    reviews = relationship("Review", back_populates="customer",
                           cascade="all, delete-orphan", passive_deletes=True)
    wishlist_items = relationship("Wishlist", back_populates="customer",
                                  cascade="all, delete-orphan", passive_deletes=True)
    orders = relationship("Order", back_populates="customer", passive_deletes="all")

    def __repr__(self):
        return f"<Customer(id={self.customer_id}, email={self.email})>"


class Address(Base):
    __tablename__ = "addresses"
    __table_args__ = (
        Index("ix_addresses_customer_type", "customer_id", "address_type"),
    )

    address_id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.customer_id", ondelete="CASCADE"), nullable=False)
    address_type = Column(ADDRESS_TYPE, nullable=False)
    street_address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100))
    postal_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("Customer", back_populates="addresses")

    def __repr__(self):
        return f"<Address(id={self.address_id}, customer_id={self.customer_id}, type={self.address_type})>"
