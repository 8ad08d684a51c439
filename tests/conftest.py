import threading
from dataclasses import replace
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_service.app.database import Base as InventoryBase, get_db as inventory_get_db
from inventory_service.app.main import app as inventory_app
from order_service.app.clients import InventoryClient
from order_service.app.coordinator import FailurePolicy, OrderCoordinator
from order_service.app.errors import InsufficientStock, ItemNotFound
from order_service.app.models import Base as OrderBase
from order_service.app.records import ItemSnapshot
from order_service.app.store import OrderStore
from order_service.app.views import OrderViewAssembler


def memory_session_factory(base):
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, routing_key, event_data):
        self.events.append((routing_key, event_data))


class InMemoryInventory:
    """Inventory double with an atomic, self-validating decrement."""

    def __init__(self, items=()):
        self._items = {item.id: item for item in items}
        self._lock = threading.Lock()
        self.calls = []

    def get_item(self, item_id):
        self.calls.append(("get", item_id))
        with self._lock:
            if item_id not in self._items:
                raise ItemNotFound(item_id)
            return self._items[item_id]

    def list_items(self):
        with self._lock:
            return list(self._items.values())

    def decrease_stock(self, item_id, quantity):
        self.calls.append(("decrease", item_id, quantity))
        with self._lock:
            if item_id not in self._items:
                raise ItemNotFound(item_id)
            item = self._items[item_id]
            if item.quantity < quantity:
                raise InsufficientStock(item_id, item.quantity, quantity)
            self._items[item_id] = replace(item, quantity=item.quantity - quantity)
            return self._items[item_id]

    def increase_stock(self, item_id, quantity):
        self.calls.append(("increase", item_id, quantity))
        with self._lock:
            if item_id not in self._items:
                raise ItemNotFound(item_id)
            item = self._items[item_id]
            self._items[item_id] = replace(item, quantity=item.quantity + quantity)
            return self._items[item_id]

    # Catalog changes made behind the order service's back.
    def set_price(self, item_id, price):
        with self._lock:
            self._items[item_id] = replace(self._items[item_id], price=Decimal(price))

    def remove(self, item_id):
        with self._lock:
            del self._items[item_id]


def make_item(item_id, price, quantity, name=None):
    return ItemSnapshot(id=item_id, name=name or f"Item {item_id}", price=Decimal(price), quantity=quantity)


@pytest.fixture
def inventory_api():
    """The real inventory service on an in-memory database."""
    session_factory = memory_session_factory(InventoryBase)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    inventory_app.dependency_overrides[inventory_get_db] = override_get_db
    yield TestClient(inventory_app)
    inventory_app.dependency_overrides.clear()


@pytest.fixture
def seed_item(inventory_api):
    def _seed(item_id, price, quantity, name=None):
        resp = inventory_api.post(
            "/api/v1/items",
            json={"id": item_id, "name": name or f"Item {item_id}", "price": price, "quantity": quantity},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _seed


@pytest.fixture
def inventory_client(inventory_api):
    # TestClient speaks the same request() interface as requests.Session.
    return InventoryClient(base_url="http://testserver", session=inventory_api)


@pytest.fixture
def order_store():
    return OrderStore(memory_session_factory(OrderBase))


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def make_coordinator(order_store, publisher):
    def _make(inventory, failure_policy=FailurePolicy.COMPENSATE, store=None):
        store = store or order_store
        return OrderCoordinator(
            inventory, store, OrderViewAssembler(inventory, store), failure_policy, publisher
        )
    return _make
