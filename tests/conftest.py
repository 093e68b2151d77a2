"""
Shared fixtures: in-memory SQLite database, users, and a fake HTTP layer
patched over labelsync.services.http_client (no real network in tests).
"""
import os

# Set test environment before labelsync.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key-0123456789abc")
os.environ.setdefault("SHIPPING_INFO_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable, Generator, Optional, Union

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from labelsync.database import Base
from labelsync.models import ShipperProfile, User
from labelsync.services import http_client


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def user(db_session) -> User:
    user = User(
        id="user-1",
        email="seller@example.com",
        name="Seller One",
        apps_script_id="script-abc",
        google_sheet_id="sheet-xyz",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_user(db_session) -> User:
    user = User(id="user-2", email="other@example.com", name="Seller Two")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def shipper_profile(db_session, user) -> ShipperProfile:
    profile = ShipperProfile(
        user_id=user.id,
        shipper_name="Acme Goods",
        shipper_person_name="Ann Shipper",
        shipper_phone_number="4155550100",
        shipper_street1="1 Market St",
        shipper_city="San Francisco",
        shipper_state_code="CA",
        shipper_postal_code="94105",
        shipper_country_code="US",
        default_currency_code="USD",
        duties_payment_type="RECIPIENT",
    )
    db_session.add(profile)
    db_session.commit()
    return profile


Handler = Union[httpx.Response, Callable[..., httpx.Response]]


def make_response(status_code: int = 200, json: Any = None, text: Optional[str] = None) -> httpx.Response:
    if text is not None:
        return httpx.Response(status_code, text=text)
    return httpx.Response(status_code, json=json if json is not None else {})


class FakeHttp:
    """Routes requests by URL substring and records every call."""

    def __init__(self):
        self.calls: list[dict] = []
        self.routes: list[tuple[str, str, Handler]] = []

    def add(self, method: str, url_part: str, handler: Handler) -> None:
        self.routes.append((method, url_part, handler))

    def _dispatch(self, method: str, url: str, **call) -> httpx.Response:
        self.calls.append({"method": method, "url": url, **call})
        for route_method, url_part, handler in self.routes:
            if route_method == method and url_part in url:
                return handler(url=url, **call) if callable(handler) else handler
        raise AssertionError(f"Unexpected {method} {url}")

    async def get(self, url, *, params=None, headers=None, timeout=None, max_retries=None):
        return self._dispatch("GET", url, params=params, headers=headers)

    async def post(self, url, *, json=None, headers=None, timeout=None):
        return self._dispatch("POST", url, json=json, headers=headers)


@pytest.fixture
def fake_http(monkeypatch) -> FakeHttp:
    fake = FakeHttp()
    monkeypatch.setattr(http_client, "get_with_retry", fake.get)
    monkeypatch.setattr(http_client, "post_no_retry", fake.post)
    return fake


@pytest.fixture
def veeqo_order() -> dict:
    """A representative Veeqo order payload."""
    return {
        "id": 1001,
        "number": "V-1001",
        "created_at": "2024-03-01T10:15:00Z",
        "channel": {"name": "amazon"},
        "status": {"name": "awaiting fulfillment"},
        "currency_code": "GBP",
        "total_including_tax": "59.97",
        "ship_by_date": "2024-03-03T17:00:00Z",
        "notes": "Leave at door",
        "deliver_to": {
            "first_name": "Jane",
            "last_name": "Doe",
            "company": "Doe Ltd",
            "address1": "10 High St",
            "address2": "Flat 2",
            "city": "London",
            "state": "Greater London",
            "zip": "N1 9GU",
            "country": "GB",
            "phone": "+44 20 7946 0000",
        },
        "customer": {"first_name": "Janet", "last_name": "Buyer"},
        "line_items": [
            {
                "id": 9001,
                "sku": "MUG-1",
                "title": "Coffee Mug",
                "quantity": 2,
                "price_before_discount_including_tax": "12.50",
                "additional_options": " Gift wrap ",
                "sellable": {"variant_options_string": "Blue", "image_url": "https://img/mug.png"},
            },
            {
                "id": 9002,
                "sku": "TEE-M",
                "quantity": "1",
                "price_before_discount_including_tax": 34.97,
                "sellable": {"name": "T-Shirt", "images": [{"url": "https://img/tee.png"}]},
            },
        ],
    }
