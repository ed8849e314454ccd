"""Shared fixtures — app with in-memory stores + async HTTP client.

Invariants:
    - No test touches a real database: repository functions are replaced by
      the fakes below, which mimic the SQL semantics the services rely on
    - Every test gets a fresh app, so limiter state never leaks between tests

Design Decisions:
    - bcrypt cost lowered to 4 in the test settings to keep the suite fast;
      the default cost is asserted separately in test_security.py
    - ASGITransport does not run the lifespan, so the pool is never created
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from auth import repository as auth_repository
from core.config import Settings
from main import create_app
from products import repository as products_repository


class FakeAccounts:
    """Stands in for the `customer` table (username is UNIQUE)."""

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.error: Exception | None = None

    def add(self, username: str, password_hash: str, *, is_active: bool = True) -> dict:
        row = {
            "customer_id": len(self.rows) + 1,
            "username": username,
            "password_hash": password_hash,
            "is_active": is_active,
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        self.rows[username] = row
        return row

    async def create_user(self, *, username: str, password_hash: str) -> None:
        if self.error is not None:
            raise self.error
        if username in self.rows:
            raise RuntimeError('duplicate key value violates unique constraint "customer_username_key"')
        self.add(username, password_hash)

    async def get_active_user_by_username(self, username: str) -> dict | None:
        if self.error is not None:
            raise self.error
        row = self.rows.get(username)
        if row is None or not row["is_active"]:
            return None
        return dict(row)


class FakeProducts:
    """Stands in for the `product` table."""

    def __init__(self):
        self.rows: dict[int, dict] = {}
        self.error: Exception | None = None

    async def create_product(
        self,
        *,
        product_name: str,
        product_detail: str,
        price: Decimal,
        cost: Decimal,
        quantity: int,
    ) -> int:
        if self.error is not None:
            raise self.error
        product_id = len(self.rows) + 1
        self.rows[product_id] = {
            "product_id": product_id,
            "product_name": product_name,
            "product_detail": product_detail,
            "price": price,
            "cost": cost,
            "quantity": quantity,
        }
        return product_id

    async def get_products_by_id(self, product_id: int) -> list[dict]:
        if self.error is not None:
            raise self.error
        row = self.rows.get(product_id)
        return [dict(row)] if row is not None else []


@pytest.fixture
def accounts(monkeypatch):
    fake = FakeAccounts()
    monkeypatch.setattr(auth_repository, "create_user", fake.create_user)
    monkeypatch.setattr(auth_repository, "get_active_user_by_username", fake.get_active_user_by_username)
    return fake


@pytest.fixture
def products(monkeypatch):
    fake = FakeProducts()
    monkeypatch.setattr(products_repository, "create_product", fake.create_product)
    monkeypatch.setattr(products_repository, "get_products_by_id", fake.get_products_by_id)
    return fake


@pytest.fixture
def settings():
    return Settings(database_url="postgresql://test@localhost/test", bcrypt_rounds=4)


@pytest.fixture
def app(settings, accounts, products):
    return create_app(settings)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
