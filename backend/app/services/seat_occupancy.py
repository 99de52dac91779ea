"""Seat Occupancy Sync - keeps ``Seat.status`` a cache of "has an active order".

Seat writes are issued after the order write they follow and are not part of
its transaction. A failed seat write is logged and left for the next
reconciliation pass to correct.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.errors import TransientStoreError
from app.db.base import utcnow
from app.db.session import store_call
from app.models.hotel import PARCEL_SEAT_ID, Seat, SeatStatus
from app.models.order import ACTIVE_STATUSES, Order

logger = logging.getLogger(__name__)

AVAILABLE = SeatStatus.AVAILABLE.value
OCCUPIED = SeatStatus.OCCUPIED.value


def reconcile_seat_statuses(
    seats: Mapping[int, str],
    orders: Iterable[Tuple[int, str]],
) -> Dict[int, str]:
    """Compute seat status corrections from order state.

    ``seats`` maps seat id to its cached status, ``orders`` yields
    ``(seat_id, order_status)`` pairs. Returns ``{seat_id: status}`` for
    every seat whose cached status disagrees with the presence of an active
    order. The parcel sentinel is never corrected.
    """
    busy = {seat_id for seat_id, status in orders if status in ACTIVE_STATUSES}
    corrections = {}
    for seat_id, cached in seats.items():
        if seat_id == PARCEL_SEAT_ID:
            continue
        expected = OCCUPIED if seat_id in busy else AVAILABLE
        if cached != expected:
            corrections[seat_id] = expected
    return corrections


def parcel_seat(hotel_id: str) -> Seat:
    """Transient sentinel seat for takeaway orders. Never added to a session."""
    return Seat(hotel_id=hotel_id, id=PARCEL_SEAT_ID, status=AVAILABLE)


class SeatOccupancy:
    """Seat status writes and the reconciliation pass for one session."""

    def __init__(self, db: Session):
        self.db = db

    def list_seats(self, hotel_id: str, include_parcel: bool = True) -> List[Seat]:
        seats = list(
            self.db.scalars(select(Seat).where(Seat.hotel_id == hotel_id).order_by(Seat.id))
        )
        # The sentinel is logically always present, stored or not
        if include_parcel and not any(seat.id == PARCEL_SEAT_ID for seat in seats):
            seats.insert(0, parcel_seat(hotel_id))
        return seats

    def get_seat(self, hotel_id: str, seat_id: int) -> Optional[Seat]:
        return self.db.get(Seat, (hotel_id, seat_id))

    def set_status(self, hotel_id: str, seat_id: int, status: str) -> bool:
        """Write a seat's status. Returns False if there was nothing to write."""
        if seat_id == PARCEL_SEAT_ID:
            return False
        with store_call(self.db, "update table status"):
            result = self.db.execute(
                update(Seat)
                .where(Seat.hotel_id == hotel_id, Seat.id == seat_id)
                .values(status=status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        if result.rowcount == 0:
            logger.warning(f"Seat {seat_id} of hotel {hotel_id} not found while marking {status}")
            return False
        return True

    def sync(self, hotel_id: str, seat_id: int, status: str) -> bool:
        """Best-effort ``set_status`` that follows an order write."""
        try:
            return self.set_status(hotel_id, seat_id, status)
        except TransientStoreError:
            logger.warning(
                f"Seat {seat_id} left out of sync (wanted {status}); reconciliation will correct it"
            )
            return False

    def occupy(self, hotel_id: str, seat_id: int) -> bool:
        return self.sync(hotel_id, seat_id, OCCUPIED)

    def free(self, hotel_id: str, seat_id: int) -> bool:
        return self.sync(hotel_id, seat_id, AVAILABLE)

    def reconcile(self, hotel_id: str) -> Dict[int, str]:
        """Recompute every seat's status from active orders and persist corrections."""
        with store_call(self.db, "reconcile tables"):
            seats = {
                seat.id: seat.status
                for seat in self.db.scalars(select(Seat).where(Seat.hotel_id == hotel_id))
            }
            orders = self.db.execute(
                select(Order.seat_id, Order.status).where(
                    Order.hotel_id == hotel_id,
                    Order.status.in_(ACTIVE_STATUSES),
                )
            ).all()
            corrections = reconcile_seat_statuses(seats, orders)
            for seat_id, status in corrections.items():
                self.db.execute(
                    update(Seat)
                    .where(Seat.hotel_id == hotel_id, Seat.id == seat_id)
                    .values(status=status, updated_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
            if corrections:
                self.db.commit()
                logger.info(f"Reconciled {len(corrections)} seat(s) for hotel {hotel_id}: {corrections}")
        return corrections

    def set_table_count(self, hotel_id: str, count: int) -> Dict[str, List[int]]:
        """Resize the floor to seats 1..count.

        Seats above ``count`` are removed unless they still hold an active
        order, in which case they are kept and reported.
        """
        if count < 0:
            raise ValueError("Table count cannot be negative")

        with store_call(self.db, "update table count"):
            existing = {
                seat.id: seat
                for seat in self.db.scalars(select(Seat).where(Seat.hotel_id == hotel_id))
            }
            busy = set(
                self.db.scalars(
                    select(Order.seat_id).where(
                        Order.hotel_id == hotel_id,
                        Order.status.in_(ACTIVE_STATUSES),
                    )
                )
            )

            created = []
            for seat_id in range(1, count + 1):
                if seat_id not in existing:
                    self.db.add(Seat(hotel_id=hotel_id, id=seat_id, status=AVAILABLE))
                    created.append(seat_id)

            removed, kept = [], []
            for seat_id, seat in sorted(existing.items()):
                if seat_id == PARCEL_SEAT_ID or seat_id <= count:
                    continue
                if seat_id in busy:
                    kept.append(seat_id)
                else:
                    self.db.delete(seat)
                    removed.append(seat_id)

            self.db.commit()

        if kept:
            logger.info(f"Hotel {hotel_id}: kept occupied seats {kept} above new table count {count}")
        return {"created": created, "removed": removed, "kept_occupied": kept}
