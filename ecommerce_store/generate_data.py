"""
Seed and demo data for the store

- Sample rows (the fixed bootstrap catalog: three categories, three
  products and their inventory), loaded idempotently
- Demo data generated with Faker: customers with addresses, extra products
  with images and stock, reviews, wishlist entries and coupons

For order traffic on top of this data, use simulate_user_order.py
"""
import argparse
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import bcrypt
from faker import Faker
from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from .models import (
    Address,
    AddressType,
    Category,
    Coupon,
    Customer,
    DiscountType,
    Inventory,
    Order,
    OrderCoupon,
    OrderItem,
    Payment,
    Product,
    ProductImage,
    Review,
    Wishlist,
)
from .utils.database import SessionLocal, create_tables
from .utils.logger import configure_logging

SAMPLE_CATEGORIES = [
    ("Electronics", "Electronic devices and accessories"),
    ("Clothing", "Fashion and apparel"),
    ("Books", "Books and publications"),
]

# (name, description, price, category, sku, quantity, low stock threshold)
SAMPLE_PRODUCTS = [
    ("Smartphone X", "Latest smartphone with advanced features", "699.99", "Electronics", "SMX-001", 50, 5),
    ("Wireless Headphones", "Noise-cancelling wireless headphones", "199.99", "Electronics", "WH-002", 25, 3),
    ("Cotton T-Shirt", "100% cotton comfortable t-shirt", "29.99", "Clothing", "CTS-101", 100, 10),
]

# Product templates by category: (base name, description, min price, max price)
PRODUCT_TEMPLATES = {
    "Electronics": [
        ("Gaming Laptop", "High performance gaming laptop", 900, 2500),
        ("Bluetooth Speaker", "Portable wireless speaker", 30, 250),
        ("Tablet", "Multi-purpose tablet", 150, 900),
        ("Smartwatch", "Fitness and notification smartwatch", 90, 450),
    ],
    "Clothing": [
        ("Denim Jeans", "Classic fit denim jeans", 25, 120),
        ("Running Sneakers", "Lightweight running sneakers", 45, 180),
        ("Wool Sweater", "Warm knitted wool sweater", 35, 150),
        ("Leather Handbag", "Genuine leather handbag", 60, 400),
    ],
    "Books": [
        ("Programming Guide", "From the basics to advanced topics", 20, 70),
        ("Mystery Novel", "A page-turning mystery", 8, 25),
        ("Business Handbook", "Practical business and startup advice", 15, 45),
        ("Cookbook", "Recipes for every day", 12, 40),
    ],
}

BRANDS = ["Sony", "Samsung", "Apple", "LG", "Xiaomi", "Adidas", "Nike", "Zara", "Penguin"]

DEFAULT_PASSWORD = "password123"


class DataGenerator:
    def __init__(self, db: Optional[Session] = None, seed: Optional[int] = None, password_rounds: int = 12):
        self._owns_session = db is None
        self.db = db or SessionLocal()
        self.fake = Faker("en_US")
        self.random = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)
        self.password_rounds = password_rounds

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session:
            self.db.close()

    def hash_password(self, password: str) -> str:
        """Hash password using bcrypt"""
        salt = bcrypt.gensalt(rounds=self.password_rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def _commit(self, what: str, count: int) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating {what}: {e}")
            raise
        logger.info(f"Created {count} {what}")

    def seed_sample_data(self) -> Dict[str, int]:
        """Load the bootstrap catalog; rows that already exist are left untouched"""
        logger.info("Loading sample catalog...")
        created = {"categories": 0, "products": 0, "inventory": 0}

        categories = {}
        for name, description in SAMPLE_CATEGORIES:
            category = self.db.scalars(select(Category).where(Category.name == name)).first()
            if category is None:
                category = Category(name=name, description=description)
                self.db.add(category)
                created["categories"] += 1
            categories[name] = category

        for name, description, price, category_name, sku, quantity, threshold in SAMPLE_PRODUCTS:
            product = self.db.scalars(select(Product).where(Product.sku == sku)).first()
            if product is None:
                product = Product(
                    name=name,
                    description=description,
                    price=Decimal(price),
                    category=categories[category_name],
                    sku=sku,
                )
                self.db.add(product)
                created["products"] += 1
            if product.inventory is None:
                product.inventory = Inventory(quantity=quantity, low_stock_threshold=threshold)
                created["inventory"] += 1

        self._commit("sample rows", sum(created.values()))
        return created

    def generate_customers(self, count: int = 20) -> List[Customer]:
        """Generate customers, each with a default billing and shipping address"""
        logger.info(f"Generating {count} customers...")
        password_hash = self.hash_password(DEFAULT_PASSWORD)

        customers = []
        for _ in range(count):
            customer = Customer(
                first_name=self.fake.first_name(),
                last_name=self.fake.last_name(),
                email=self.fake.unique.email(),
                password_hash=password_hash,
                phone=self.fake.numerify("###-###-####"),
                date_of_birth=self.fake.date_of_birth(minimum_age=18, maximum_age=80),
            )
            for address_type in (AddressType.BILLING, AddressType.SHIPPING):
                customer.addresses.append(Address(
                    address_type=address_type,
                    street_address=self.fake.street_address(),
                    city=self.fake.city(),
                    state=self.fake.state_abbr(),
                    postal_code=self.fake.postcode(),
                    country="United States",
                    is_default=True,
                ))
            customers.append(customer)
            self.db.add(customer)

        self._commit("customers", len(customers))
        return customers

    def generate_products(self, count: int = 30) -> List[Product]:
        """Generate products with stock and images for the existing categories"""
        logger.info(f"Generating {count} products...")

        categories = self.db.scalars(select(Category)).all()
        if not categories:
            logger.warning("No categories found. Please seed the sample data first.")
            return []

        products = []
        for _ in range(count):
            category = self.random.choice(categories)
            templates = PRODUCT_TEMPLATES.get(category.name)
            if templates:
                base_name, description, min_price, max_price = self.random.choice(templates)
                name = f"{self.random.choice(BRANDS)} {base_name}"
                price = Decimal(self.random.randint(min_price * 100, max_price * 100)) / 100
            else:
                name = f"{self.fake.word().title()} {category.name}"
                description = f"Quality {category.name.lower()} product"
                price = Decimal(self.random.randint(500, 50000)) / 100

            product = Product(
                name=name,
                description=description,
                price=price,
                category=category,
                sku=f"{category.name[:3].upper()}-{self.fake.unique.random_number(digits=6, fix_len=True)}",
                weight=Decimal(self.random.randint(10, 5000)) / 100,
                is_active=self.random.choice([True, True, True, False]),  # 75% active
            )
            product.inventory = Inventory(
                quantity=self.random.randint(10, 100),
                low_stock_threshold=self.random.choice([5, 10, 15]),
                last_restocked=datetime.now(timezone.utc) - timedelta(days=self.random.randint(0, 60)),
            )
            for position in range(self.random.randint(1, 3)):
                product.images.append(ProductImage(
                    image_url=self.fake.image_url(),
                    alt_text=name,
                    is_primary=position == 0,
                    display_order=position,
                ))
            products.append(product)
            self.db.add(product)

        self._commit("products", len(products))
        return products

    def _customer_product_pairs(self, count: int) -> List[tuple]:
        customer_ids = self.db.scalars(select(Customer.customer_id)).all()
        product_ids = self.db.scalars(select(Product.product_id)).all()
        pairs = [(c, p) for c in customer_ids for p in product_ids]
        return self.random.sample(pairs, min(count, len(pairs)))

    def generate_reviews(self, count: int = 40) -> List[Review]:
        """Generate reviews, at most one per customer and product"""
        logger.info(f"Generating {count} reviews...")
        taken = {tuple(row) for row in self.db.execute(select(Review.customer_id, Review.product_id))}

        reviews = []
        for customer_id, product_id in self._customer_product_pairs(count):
            if (customer_id, product_id) in taken:
                continue
            review = Review(
                customer_id=customer_id,
                product_id=product_id,
                rating=self.random.randint(1, 5),
                title=self.fake.sentence(nb_words=5).rstrip("."),
                comment=self.fake.paragraph(nb_sentences=3),
                is_approved=self.random.random() < 0.8,
            )
            reviews.append(review)
            self.db.add(review)

        self._commit("reviews", len(reviews))
        return reviews

    def generate_wishlists(self, count: int = 40) -> List[Wishlist]:
        """Generate wishlist entries, at most one per customer and product"""
        logger.info(f"Generating {count} wishlist entries...")
        taken = {tuple(row) for row in self.db.execute(select(Wishlist.customer_id, Wishlist.product_id))}

        entries = []
        for customer_id, product_id in self._customer_product_pairs(count):
            if (customer_id, product_id) in taken:
                continue
            entry = Wishlist(customer_id=customer_id, product_id=product_id)
            entries.append(entry)
            self.db.add(entry)

        self._commit("wishlist entries", len(entries))
        return entries

    def generate_coupons(self, count: int = 5) -> List[Coupon]:
        """Generate coupons valid from a few days ago for the next month or two"""
        logger.info(f"Generating {count} coupons...")
        now = datetime.now(timezone.utc)

        coupons = []
        for _ in range(count):
            if self.random.random() < 0.5:
                discount_type = DiscountType.PERCENTAGE
                discount_value = Decimal(self.random.choice([5, 10, 15, 20, 25]))
                maximum = Decimal(self.random.choice([20, 50, 100]))
            else:
                discount_type = DiscountType.FIXED_AMOUNT
                discount_value = Decimal(self.random.choice([5, 10, 20]))
                maximum = None
            coupon = Coupon(
                code=self.fake.unique.bothify(text="????-####").upper(),
                description=self.fake.sentence(nb_words=6),
                discount_type=discount_type,
                discount_value=discount_value,
                minimum_order_amount=Decimal(self.random.choice([0, 25, 50])),
                maximum_discount_amount=maximum,
                start_date=now - timedelta(days=self.random.randint(0, 7)),
                end_date=now + timedelta(days=self.random.randint(30, 60)),
                usage_limit=self.random.choice([None, 50, 100]),
            )
            coupons.append(coupon)
            self.db.add(coupon)

        self._commit("coupons", len(coupons))
        return coupons

    def clear_all_data(self):
        """Clear all data from database"""
        logger.info("Clearing all data...")
        # Children before parents so RESTRICT references never block a delete
        for model in (OrderCoupon, Payment, OrderItem, Order, Coupon, Review, Wishlist,
                      ProductImage, Inventory, Product, Category, Address, Customer):
            self.db.execute(delete(model))
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error clearing data: {e}")
            raise
        logger.info("All data cleared")

    def count_rows(self) -> Dict[str, int]:
        return {
            model.__tablename__: self.db.scalar(select(func.count()).select_from(model))
            for model in (Category, Product, Inventory, Customer, Address, Review, Wishlist, Coupon, Order)
        }

    def generate_all_demo_data(self, customers=20, products=30, reviews=40, wishlists=40, coupons=5):
        """Reset the tables, then load the sample catalog and the demo data"""
        logger.info("=== Generating Demo Data ===")
        self.clear_all_data()
        self.seed_sample_data()
        self.generate_customers(customers)
        self.generate_products(products)
        self.generate_reviews(reviews)
        self.generate_wishlists(wishlists)
        self.generate_coupons(coupons)

        logger.info("=== Demo Data Generation Complete ===")
        for table, rows in self.count_rows().items():
            logger.info(f"{table}: {rows}")


def main(argv=None):
    """Main function to run data generation"""
    parser = argparse.ArgumentParser(description="Generate demo data for the e-commerce store")
    parser.add_argument("--customers", type=int, default=20, help="Number of customers to generate")
    parser.add_argument("--products", type=int, default=30, help="Number of extra products to generate")
    parser.add_argument("--reviews", type=int, default=40, help="Number of reviews to generate")
    parser.add_argument("--wishlists", type=int, default=40, help="Number of wishlist entries to generate")
    parser.add_argument("--coupons", type=int, default=5, help="Number of coupons to generate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument("--sample-only", action="store_true", help="Only load the sample catalog")
    parser.add_argument("--clear", action="store_true", help="Clear all existing data")

    args = parser.parse_args(argv)
    configure_logging(name="generate_data")
    create_tables()

    with DataGenerator(seed=args.seed) as generator:
        if args.clear:
            generator.clear_all_data()
        elif args.sample_only:
            generator.seed_sample_data()
        else:
            generator.generate_all_demo_data(
                customers=args.customers,
                products=args.products,
                reviews=args.reviews,
                wishlists=args.wishlists,
                coupons=args.coupons,
            )


if __name__ == "__main__":
    main()
