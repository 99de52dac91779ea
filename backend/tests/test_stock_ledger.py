"""Tests for stock reservation, release and the portion-weight model."""

import threading
import pytest
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import InsufficientStockError, NotFoundError
from app.db.base import Base
from app.models import Hotel, MenuItem
from app.services.stock_ledger import StockLedger, ensure_fits, portion_weight, weighted_units


class TestPortionWeight:
    @pytest.mark.parametrize("variant, weight", [
        (None, Decimal("1")),
        ("", Decimal("1")),
        ("Full", Decimal("1")),
        ("Half", Decimal("0.5")),
        ("half plate", Decimal("0.5")),
        ("Quarter", Decimal("0.25")),
        ("Family Pack", Decimal("1")),
    ])
    def test_weights(self, variant, weight):
        assert portion_weight(variant) == weight

    def test_weighted_units(self):
        assert weighted_units(2, "Half") == Decimal("1.0")
        assert weighted_units(5, "Half") == Decimal("2.5")
        assert weighted_units(3, "Quarter") == Decimal("0.75")


class TestStockLedger:
    def test_reserve_decrements_stock(self, db_session, menu):
        paneer = menu["paneer"]
        remaining = StockLedger(db_session).reserve(paneer.id, 4)
        assert remaining == Decimal("6")
        db_session.refresh(paneer)
        assert paneer.stock_count == Decimal("6")
        assert paneer.available is True

    def test_reserve_half_portions(self, db_session, menu):
        biryani = menu["biryani"]
        StockLedger(db_session).reserve_portions(biryani.id, 2, "Half")
        db_session.refresh(biryani)
        assert biryani.stock_count == Decimal("2")

    def test_overdraw_raises_and_leaves_stock(self, db_session, menu):
        biryani = menu["biryani"]
        ledger = StockLedger(db_session)
        ledger.reserve_portions(biryani.id, 2, "Half")

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.reserve_portions(biryani.id, 5, "Half")

        assert exc_info.value.menu_item_id == biryani.id
        assert exc_info.value.needed == Decimal("2.5")
        db_session.refresh(biryani)
        assert biryani.stock_count == Decimal("2")

    def test_reserve_exact_remaining_sells_out(self, db_session, menu):
        biryani = menu["biryani"]
        StockLedger(db_session).reserve(biryani.id, 3)
        db_session.refresh(biryani)
        assert biryani.stock_count == Decimal("0")
        assert biryani.available is False

    def test_reserve_then_release_round_trip(self, db_session, menu):
        paneer = menu["paneer"]
        ledger = StockLedger(db_session)
        ledger.reserve_portions(paneer.id, 3, "Quarter")
        ledger.release_portions(paneer.id, 3, "Quarter")
        db_session.refresh(paneer)
        assert paneer.stock_count == Decimal("10")

    def test_release_restores_availability(self, db_session, menu):
        biryani = menu["biryani"]
        ledger = StockLedger(db_session)
        ledger.reserve(biryani.id, 3)
        ledger.release(biryani.id, Decimal("0.5"))
        db_session.refresh(biryani)
        assert biryani.available is True

    def test_release_is_capped(self, db_session, menu):
        paneer = menu["paneer"]
        StockLedger(db_session, max_stock=Decimal("12")).release(paneer.id, 50)
        db_session.refresh(paneer)
        assert paneer.stock_count == Decimal("12")

    def test_untracked_items_are_ignored(self, db_session, menu):
        chai = menu["chai"]
        ledger = StockLedger(db_session)
        assert ledger.reserve(chai.id, 100) is None
        assert ledger.release(chai.id, 100) is None
        db_session.refresh(chai)
        assert chai.stock_count == Decimal("0")
        assert chai.available is True

    def test_non_positive_quantity_rejected(self, db_session, menu):
        with pytest.raises(ValueError):
            StockLedger(db_session).reserve(menu["paneer"].id, 0)

    def test_reserve_unknown_item(self, db_session, menu):
        with pytest.raises(NotFoundError):
            StockLedger(db_session).reserve(9999, 1)

    def test_release_unknown_item_is_skipped(self, db_session, menu):
        assert StockLedger(db_session).release(9999, 1) is None


class TestEnsureFits:
    def test_within_stock(self, menu):
        ensure_fits(menu["biryani"], Decimal("3"))

    def test_beyond_stock(self, menu):
        with pytest.raises(InsufficientStockError):
            ensure_fits(menu["biryani"], Decimal("3.5"))

    def test_untracked_always_fits(self, menu):
        ensure_fits(menu["chai"], 1000)


@pytest.fixture
def shared_engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'stock.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def last_portion(shared_engine) -> int:
    """A tracked item with exactly one unit left."""
    Session = sessionmaker(bind=shared_engine)
    with Session() as db:
        hotel = Hotel(name="Race Cafe", slug="race-cafe", is_open=True)
        db.add(hotel)
        db.flush()
        item = MenuItem(
            hotel_id=hotel.id, name="Mutton Biryani", price=Decimal("300"),
            track_inventory=True, stock_count=Decimal("1"),
        )
        db.add(item)
        db.commit()
        return item.id


class TestConcurrentReservations:
    def test_stale_read_cannot_overdraw(self, shared_engine, last_portion):
        Session = sessionmaker(bind=shared_engine)
        with Session() as first, Session() as second:
            # Both waiters saw one unit left when they built their carts
            for db in (first, second):
                ensure_fits(db.get(MenuItem, last_portion), 1)

            assert StockLedger(first).reserve(last_portion, 1) == Decimal("0")
            with pytest.raises(InsufficientStockError):
                StockLedger(second).reserve(last_portion, 1)

        with Session() as db:
            assert db.get(MenuItem, last_portion).stock_count == Decimal("0")

    def test_two_threads_racing_for_last_unit(self, shared_engine, last_portion):
        Session = sessionmaker(bind=shared_engine)
        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def order_last_portion():
            with Session() as db:
                barrier.wait()
                try:
                    StockLedger(db).reserve(last_portion, 1)
                    result = "reserved"
                except InsufficientStockError:
                    result = "refused"
                with lock:
                    outcomes.append(result)

        threads = [threading.Thread(target=order_last_portion) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert sorted(outcomes) == ["refused", "reserved"]
        with Session() as db:
            assert db.get(MenuItem, last_portion).stock_count == Decimal("0")
