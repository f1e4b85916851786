"""
Catalog models: Category, Product, ProductImage and Inventory
"""
from sqlalchemy import (
    DECIMAL,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    false,
    true,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..utils.database import Base
from .timestamps import updated_at_column


class Category(Base):
    __tablename__ = "categories"

    category_id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    parent_category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Removing a parent detaches the subtree instead of deleting it
    parent = relationship("Category", remote_side=[category_id], back_populates="children")
    children = relationship("Category", back_populates="parent", passive_deletes=True)
    products = relationship("Product", back_populates="category", passive_deletes="all")

    def __repr__(self):
        return f"<Category(id={self.category_id}, name={self.name})>"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
        Index("ix_products_name", "name"),
        Index("ix_products_category_id", "category_id"),
    )

    product_id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(DECIMAL(10, 2), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="RESTRICT"), nullable=False)
    sku = Column(String(100), unique=True, nullable=False)
    weight = Column(DECIMAL(8, 2))
    dimensions = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = updated_at_column()

    category = relationship("Category", back_populates="products")
    images = relationship("ProductImage", back_populates="product", order_by="ProductImage.display_order",
                          cascade="all, delete-orphan", passive_deletes=True)
    inventory = relationship("Inventory", back_populates="product", uselist=False,
                             cascade="all, delete-orphan", passive_deletes=True)
    reviews = relationship("Review", back_populates="product",
                           cascade="all, delete-orphan", passive_deletes=True)
    wishlist_items = relationship("Wishlist", back_populates="product",
                                  cascade="all, delete-orphan", passive_deletes=True)
    order_items = relationship("OrderItem", back_populates="product", passive_deletes="all")

    @property
    def primary_image(self):
        return next((image for image in self.images if image.is_primary), None)

    def __repr__(self):
        return f"<Product(id={self.product_id}, name={self.name}, price={self.price})>"


class ProductImage(Base):
    __tablename__ = "product_images"
    __table_args__ = (
        Index("ix_product_images_product_primary", "product_id", "is_primary"),
    )

    image_id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False)
    image_url = Column(String(255), nullable=False)
    alt_text = Column(String(255))
    is_primary = Column(Boolean, nullable=False, default=False, server_default=false())
    display_order = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="images")

    def __repr__(self):
        return f"<ProductImage(id={self.image_id}, product_id={self.product_id}, primary={self.is_primary})>"


# At most one primary image per product. MySQL has no partial indexes, so
# there the rule is left to the composite index above and the application.
Index(
    "uq_product_images_one_primary",
    ProductImage.__table__.c.product_id,
    unique=True,
    sqlite_where=ProductImage.__table__.c.is_primary,
    postgresql_where=ProductImage.__table__.c.is_primary,
).ddl_if(dialect=("sqlite", "postgresql"))


class Inventory(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        Index("ix_inventory_low_stock", "quantity", "low_stock_threshold"),
    )

    inventory_id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False, unique=True)
    quantity = Column(Integer, nullable=False, default=0, server_default="0")
    low_stock_threshold = Column(Integer, default=10, server_default="10")
    last_restocked = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = updated_at_column()

    product = relationship("Product", back_populates="inventory")

    @property
    def is_low_stock(self) -> bool:
        return self.low_stock_threshold is not None and self.quantity <= self.low_stock_threshold

    def __repr__(self):
        return f"<Inventory(product_id={self.product_id}, quantity={self.quantity})>"
