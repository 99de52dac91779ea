"""Pytest configuration and fixtures."""

import os
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the app lifespan off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from app.core.security import create_profile_token, get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.services.cart import Cart, cart_registry

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

OPENED_AT = datetime(2026, 3, 14, 9, 0, 0)


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = OPENED_AT):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiter during tests to avoid flaky failures
    from app.core.rate_limit import limiter
    limiter.enabled = False
    cart_registry.reset()
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    cart_registry.reset()
    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def hotel(db_session: Session) -> Hotel:
    """An open hotel with tables 1..5."""
    hotel = Hotel(name="Spice Garden", slug="spice-garden", is_open=True, last_opened_at=OPENED_AT)
    db_session.add(hotel)
    db_session.flush()
    for seat_id in range(1, 6):
        db_session.add(Seat(hotel_id=hotel.id, id=seat_id, status=SeatStatus.AVAILABLE.value))
    db_session.commit()
    db_session.refresh(hotel)
    return hotel


def _profile(db_session: Session, hotel: Hotel, username: str, role: ProfileRole, full_name: str) -> Profile:
    profile = Profile(
        hotel_id=hotel.id,
        role=role.value,
        full_name=full_name,
        username=username,
        password_hash=get_password_hash("secret123"),
    )
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile


@pytest.fixture
def admin(db_session: Session, hotel: Hotel) -> Profile:
    return _profile(db_session, hotel, "owner", ProfileRole.ADMIN, "Asha Owner")


@pytest.fixture
def waiter(db_session: Session, hotel: Hotel) -> Profile:
    return _profile(db_session, hotel, "ravi", ProfileRole.WAITER, "Ravi Kumar")


@pytest.fixture
def other_waiter(db_session: Session, hotel: Hotel) -> Profile:
    return _profile(db_session, hotel, "meena", ProfileRole.WAITER, "Meena Das")


@pytest.fixture
def kitchen(db_session: Session, hotel: Hotel) -> Profile:
    return _profile(db_session, hotel, "chef", ProfileRole.KITCHEN, "Head Chef")


def auth_headers_for(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {create_profile_token(profile)}"}


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def admin_headers(admin: Profile) -> dict:
    return auth_headers_for(admin)


@pytest.fixture
def waiter_headers(waiter: Profile) -> dict:
    return auth_headers_for(waiter)


@pytest.fixture
def kitchen_headers(kitchen: Profile) -> dict:
    return auth_headers_for(kitchen)


@pytest.fixture
def menu(db_session: Session, hotel: Hotel) -> dict:
    """A small menu: a stock-tracked dish with portions and untracked drinks."""
    mains = Category(hotel_id=hotel.id, name="Mains", slug="mains")
    drinks = Category(hotel_id=hotel.id, name="Drinks", slug="drinks")
    db_session.add_all([mains, drinks])
    db_session.flush()

    biryani = MenuItem(
        hotel_id=hotel.id,
        category_id=mains.id,
        name="Chicken Biryani",
        price=Decimal("240.00"),
        is_veg=False,
        variants=[{"name": "Full", "price": 240.0}, {"name": "Half", "price": 140.0}],
        track_inventory=True,
        stock_count=Decimal("3"),
    )
    paneer = MenuItem(
        hotel_id=hotel.id,
        category_id=mains.id,
        name="Paneer Tikka",
        price=Decimal("180.00"),
        track_inventory=True,
        stock_count=Decimal("10"),
    )
    chai = MenuItem(
        hotel_id=hotel.id,
        category_id=drinks.id,
        name="Masala Chai",
        price=Decimal("20.00"),
        track_inventory=False,
        stock_count=Decimal("0"),
    )
    db_session.add_all([biryani, paneer, chai])
    db_session.commit()

    return {"mains": mains, "drinks": drinks, "biryani": biryani, "paneer": paneer, "chai": chai}


@pytest.fixture
def make_cart():
    """Build a cart from ``(menu_item, quantity[, variant])`` tuples."""
    def _make(seat_id: int, *lines) -> Cart:
        cart = Cart(seat_id)
        for line in lines:
            item, quantity = line[0], line[1]
            variant = line[2] if len(line) > 2 else None
            cart.update_quantity(item, quantity, variant)
        return cart
    return _make
