"""
Test configuration and fixtures.
"""
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient

# Memory storage and no background ticker before importing the app
os.environ["REDIS_URL"] = ""
os.environ["TICKER_ENABLED"] = "false"

from storefront.api import create_app
from storefront.api.deps import (
    get_backend_client,
    get_cart_repo,
    get_session_repo,
    get_ticker,
)
from storefront.domain.schemas import (
    Category,
    ChangeReason,
    CoefficientLog,
    LoginResponse,
    MenuItem,
    Order,
    OrderSimple,
    OrderStatus,
)
from storefront.repos.cart_repo import MemoryCartRepo
from storefront.repos.session_repo import MemorySessionRepo
from storefront.services.backend_client import NotFound
from storefront.services.price_history import PriceHistoryService
from storefront.services.ticker import PriceTicker

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
DRINKS = Category(id="cat-1", name="Drinks")


def _make_item(item_id="item-a", name="Cola", base_price="10", coefficient="1.0", final_price=None, is_active=True):
    data = {
        "id": item_id,
        "name": name,
        "category": DRINKS,
        "base_price": base_price,
        "coefficient": coefficient,
        "is_active": is_active,
    }
    if final_price is not None:
        data["final_price"] = final_price
    return MenuItem.model_validate(data)


def _make_log(item, new_coefficient, previous_coefficient="1.0", minutes=0, reason=ChangeReason.ORDERED, log_id=None):
    return CoefficientLog(
        id=log_id or f"log-{item.id}-{minutes}",
        item_id=item.id,
        timestamp=T0 + timedelta(minutes=minutes),
        previous_coefficient=Decimal(str(previous_coefficient)),
        new_coefficient=Decimal(str(new_coefficient)),
        change_reason=reason,
        menu_item=item,
    )


class FakeBackend:
    """In-memory stand-in for BackendClient used by services and routers."""

    def __init__(self):
        self.menu: dict[str, MenuItem] = {}
        self.histories: dict[str, list | Exception] = {}
        self.orders: dict[str, Order] = {}
        self.created: list = []
        self.create_order_error: Exception | None = None
        self.login_error: Exception | None = None
        self.login_is_admin = False
        self.forgotten = 0

    def add(self, item: MenuItem, history=None) -> MenuItem:
        self.menu[item.id] = item
        if history is not None:
            self.histories[item.id] = history
        return item

    def list_menu(self):
        return list(self.menu.values())

    def get_menu_item(self, item_id):
        if item_id not in self.menu:
            raise NotFound(status_code=404)
        return self.menu[item_id]

    def get_coefficient_history(self, item_id, public=True):
        history = self.histories.get(item_id, [])
        if isinstance(history, Exception):
            raise history
        return list(history)

    def create_order(self, payload):
        if self.create_order_error is not None:
            raise self.create_order_error
        self.created.append(payload)
        total = sum(
            (self.menu[i.menu_item_id].final_price * i.quantity for i in payload.items),
            Decimal("0.00"),
        )
        order_id = f"order-{len(self.created)}"
        self.orders[order_id] = Order(id=order_id, total_price=total, status=OrderStatus.RECEIVED, items=[])
        return OrderSimple(id=order_id, total_price=total, status=OrderStatus.RECEIVED)

    def get_order(self, order_id):
        if order_id not in self.orders:
            raise NotFound(status_code=404)
        return self.orders[order_id]

    def list_orders(self):
        return list(self.orders.values())

    def update_order_status(self, order_id, status):
        order = self.get_order(order_id)
        order.status = status
        return order

    def login(self, data):
        if self.login_error is not None:
            raise self.login_error
        return LoginResponse(message="ok", user_id="user-1", is_admin=self.login_is_admin)

    def forget_session(self):
        self.forgotten += 1


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def make_log():
    return _make_log


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def cart_repo() -> MemoryCartRepo:
    return MemoryCartRepo()


@pytest.fixture
def session_repo() -> MemorySessionRepo:
    return MemorySessionRepo()


@pytest.fixture
def client(backend, cart_repo, session_repo) -> Generator[TestClient, None, None]:
    """Create test client with storage and backend overrides."""
    app = create_app()
    ticker = PriceTicker(PriceHistoryService(backend).stock_changes, interval=3600)

    app.dependency_overrides[get_backend_client] = lambda: backend
    app.dependency_overrides[get_cart_repo] = lambda: cart_repo
    app.dependency_overrides[get_session_repo] = lambda: session_repo
    app.dependency_overrides[get_ticker] = lambda: ticker

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
