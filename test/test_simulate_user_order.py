from sqlalchemy import func, select

from ecommerce_store.generate_data import DataGenerator
from ecommerce_store.models import Inventory, Order, OrderItem
from ecommerce_store.simulate_user_order import OrderSimulator
from ecommerce_store.utils.database import session_scope


def _seed(session_factory):
    with session_scope(session_factory) as db:
        generator = DataGenerator(db=db, seed=3, password_rounds=4)
        generator.seed_sample_data()
        generator.generate_customers(2)


def test_simulator_loads_only_usable_rows(session_factory):
    _seed(session_factory)
    simulator = OrderSimulator(session_factory=session_factory, seed=1)
    assert len(simulator.customers) == 2
    assert len(simulator.product_ids) == 3
    assert simulator.coupon_codes == []


def test_simulation_places_orders_and_reserves_stock(session_factory):
    _seed(session_factory)
    simulator = OrderSimulator(session_factory=session_factory, seed=1)

    assert simulator.run_simulation(duration_minutes=1, max_orders=3, min_wait=0, max_wait=0) == 3

    with session_scope(session_factory) as db:
        assert db.scalar(select(func.count()).select_from(Order)) == 3
        sold = db.scalar(select(func.sum(OrderItem.quantity)))
        assert db.scalar(select(func.sum(Inventory.quantity))) == 175 - sold


def test_empty_database_gives_empty_simulator(session_factory):
    simulator = OrderSimulator(session_factory=session_factory)
    assert simulator.customers == []
    assert simulator.product_ids == []


def test_empty_simulator_places_nothing(session_factory):
    simulator = OrderSimulator(session_factory=session_factory)
    assert simulator.create_random_order() is None
    assert simulator.run_simulation(duration_minutes=1, min_wait=0, max_wait=0) == 0
