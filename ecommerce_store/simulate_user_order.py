"""
Order traffic simulator

Picks random customers and in-stock products and runs them through the
checkout service, one transaction per order, then pays most orders and
moves some of them along the order lifecycle.
"""
import argparse
import random
import time
from typing import Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Address, AddressType, Coupon, Customer, Inventory, OrderStatus, PaymentMethod, PaymentStatus, Product
from .services.checkout import OrderLine, place_order, record_payment
from .services.order_workflow import transition_order
from .utils.database import SessionLocal, session_scope
from .utils.errors import StoreError
from .utils.logger import configure_logging


class OrderSimulator:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None, seed: Optional[int] = None):
        self.session_factory = session_factory or SessionLocal
        self.random = random.Random(seed)
        self.customers: List[Dict[str, int]] = []
        self.product_ids: List[int] = []
        self.coupon_codes: List[str] = []
        self.load_customers()
        self.load_products()
        self.load_coupons()

    def load_customers(self):
        """Load customers that have both a billing and a shipping address"""
        with session_scope(self.session_factory) as db:
            for customer in db.scalars(select(Customer).limit(50)):
                by_type = {}
                for address in customer.addresses:
                    by_type.setdefault(AddressType(address.address_type), address.address_id)
                if AddressType.BILLING in by_type and AddressType.SHIPPING in by_type:
                    self.customers.append({
                        "customer_id": customer.customer_id,
                        "billing_address_id": by_type[AddressType.BILLING],
                        "shipping_address_id": by_type[AddressType.SHIPPING],
                    })
        logger.info(f"Loaded {len(self.customers)} customers")

    def load_products(self):
        """Load active products that currently have stock"""
        with session_scope(self.session_factory) as db:
            self.product_ids = list(db.scalars(
                select(Product.product_id)
                .join(Inventory)
                .where(Product.is_active.is_(True), Inventory.quantity > 0)
                .limit(50)
            ))
        logger.info(f"Loaded {len(self.product_ids)} products")

    def load_coupons(self):
        with session_scope(self.session_factory) as db:
            self.coupon_codes = list(db.scalars(select(Coupon.code).where(Coupon.is_active.is_(True))))
        logger.info(f"Loaded {len(self.coupon_codes)} coupons")

    def create_random_order(self) -> Optional[Dict]:
        """Place, pay and possibly advance one random order"""
        if not self.customers or not self.product_ids:
            logger.warning("No customers or products to build an order from")
            return None
        customer = self.random.choice(self.customers)
        product_ids = self.random.sample(self.product_ids, self.random.randint(1, min(5, len(self.product_ids))))
        lines = [OrderLine(product_id, self.random.randint(1, 3)) for product_id in product_ids]
        coupon_codes = [self.random.choice(self.coupon_codes)] if self.coupon_codes and self.random.random() < 0.3 else []

        try:
            with session_scope(self.session_factory) as db:
                order = place_order(
                    db,
                    customer_id=customer["customer_id"],
                    shipping_address_id=customer["shipping_address_id"],
                    billing_address_id=customer["billing_address_id"],
                    payment_method=self.random.choice(list(PaymentMethod)),
                    lines=lines,
                    coupon_codes=coupon_codes,
                    shipping_cost=self.random.choice(["0", "4.99", "9.99"]),
                )
                if order.payment_method != PaymentMethod.CASH_ON_DELIVERY:
                    status = PaymentStatus.COMPLETED if self.random.random() < 0.9 else PaymentStatus.FAILED
                    record_payment(db, order, status=status,
                                   transaction_id=f"TXN_{order.order_id}_{self.random.randint(100000, 999999)}")
                    if status is PaymentStatus.COMPLETED and self.random.random() < 0.5:
                        transition_order(db, order, OrderStatus.PROCESSING)
                order_info = {
                    "order_id": order.order_id,
                    "customer_id": customer["customer_id"],
                    "total_amount": str(order.total_amount),
                    "items_count": len(order.items),
                    "payment_method": PaymentMethod(order.payment_method).value,
                    "status": OrderStatus(order.status).value,
                    "coupons": coupon_codes,
                }
        except StoreError as e:
            logger.warning(f"Order rejected: {e}")
            return None

        logger.info(f"Order created: {order_info}")
        return order_info

    def run_simulation(self, duration_minutes: float = 10, max_orders: Optional[int] = None,
                       min_wait: float = 3, max_wait: float = 5) -> int:
        """Run order simulation for specified duration"""
        if not self.customers or not self.product_ids:
            logger.error("Nothing to simulate: load customers and stocked products first")
            return 0
        logger.info(f"Starting order simulation for {duration_minutes} minutes...")

        end_time = time.time() + duration_minutes * 60
        order_count = 0
        try:
            while time.time() < end_time and (max_orders is None or order_count < max_orders):
                if self.create_random_order():
                    order_count += 1
                    logger.info(f"Total orders created: {order_count}")

                sleep_time = self.random.uniform(min_wait, max_wait)
                if sleep_time > 0:
                    logger.debug(f"Waiting {sleep_time:.2f} seconds before next order...")
                    time.sleep(sleep_time)
        except KeyboardInterrupt:
            logger.info("Simulation interrupted by user")

        logger.info(f"Simulation completed. Total orders created: {order_count}")
        return order_count


def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulate customer orders against the store database")
    parser.add_argument("-t", "--duration", default=10, type=float, help="Duration of the simulation in minutes")
    parser.add_argument("-n", "--max-orders", default=None, type=int, help="Stop after this many orders")
    parser.add_argument("--seed", default=None, type=int, help="Random seed")
    args = parser.parse_args(argv)
    configure_logging(name="simulate_user_order")

    simulator = OrderSimulator(seed=args.seed)
    if not simulator.customers:
        logger.error("No customers with addresses found. Please run ecommerce-generate first.")
        return 1
    if not simulator.product_ids:
        logger.error("No products in stock. Please run ecommerce-generate first.")
        return 1

    simulator.run_simulation(duration_minutes=args.duration, max_orders=args.max_orders)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
