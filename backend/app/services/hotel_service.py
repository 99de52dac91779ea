"""Tenant housekeeping: registration, shop toggle, tables and staff accounts."""

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, GuardViolationError, NotFoundError
from app.core.security import get_password_hash, verify_password
from app.db.base import utcnow
from app.db.session import store_call
from app.models.hotel import Hotel, Profile, ProfileRole
from app.services.seat_occupancy import SeatOccupancy

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "hotel"


class HotelService:
    """Privileged operations an admin performs on their own hotel."""

    def __init__(self, db: Session, clock: Callable = utcnow):
        self.db = db
        self.clock = clock
        self.seats = SeatOccupancy(db)

    def get_hotel(self, hotel_id: str) -> Hotel:
        hotel = self.db.get(Hotel, hotel_id)
        if hotel is None:
            raise NotFoundError("Hotel", hotel_id)
        return hotel

    # ===== REGISTRATION & LOGIN =====

    def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, n = base, 1
        while self.db.scalar(select(Hotel.id).where(Hotel.slug == slug)) is not None:
            n += 1
            slug = f"{base}-{n}"
        return slug

    def _ensure_username_free(self, username: str) -> None:
        if self.db.scalar(select(Profile.id).where(Profile.username == username)) is not None:
            raise ConflictError(f"Username '{username}' is already taken", username=username)

    def register_tenant_and_admin(
        self,
        hotel_name: str,
        username: str,
        password: str,
        full_name: str = "",
        table_count: Optional[int] = None,
    ) -> Tuple[Hotel, Profile]:
        """Create a hotel, its first admin and its tables. The shop starts open."""
        self._ensure_username_free(username)
        count = settings.default_table_count if table_count is None else table_count

        with store_call(self.db, "register hotel"):
            hotel = Hotel(
                name=hotel_name,
                slug=self._unique_slug(hotel_name),
                is_open=True,
                last_opened_at=self.clock(),
            )
            self.db.add(hotel)
            self.db.flush()
            admin = Profile(
                hotel_id=hotel.id,
                role=ProfileRole.ADMIN.value,
                full_name=full_name,
                username=username,
                password_hash=get_password_hash(password),
            )
            self.db.add(admin)
            self.db.commit()

        self.seats.set_table_count(hotel.id, count)
        logger.info(f"Registered hotel '{hotel.name}' ({hotel.id}) with admin {username} and {count} tables")
        return hotel, admin

    def authenticate(self, username: str, password: str) -> Optional[Profile]:
        profile = self.db.scalars(select(Profile).where(Profile.username == username)).first()
        if profile is None or not profile.password_hash:
            return None
        if not verify_password(password, profile.password_hash):
            return None
        return profile

    # ===== SHOP & TABLES =====

    def toggle_shop(self, hotel_id: str, is_open: Optional[bool] = None) -> Hotel:
        """Open or close ordering. Opening stamps ``last_opened_at``.

        ``is_open=None`` flips the current state.
        """
        hotel = self.get_hotel(hotel_id)
        target = (not hotel.is_open) if is_open is None else is_open

        with store_call(self.db, "update shop status"):
            if target and not hotel.is_open:
                hotel.last_opened_at = self.clock()
            hotel.is_open = target
            self.db.commit()

        logger.info(f"Hotel {hotel.id} is now {'open' if hotel.is_open else 'closed'}")
        return hotel

    def set_table_count(self, hotel_id: str, count: int) -> Dict[str, List[int]]:
        self.get_hotel(hotel_id)
        return self.seats.set_table_count(hotel_id, count)

    # ===== STAFF =====

    def list_staff(self, hotel_id: str) -> List[Profile]:
        return list(
            self.db.scalars(select(Profile).where(Profile.hotel_id == hotel_id).order_by(Profile.username))
        )

    def create_staff_profile(
        self,
        hotel_id: str,
        username: str,
        password: str,
        full_name: str = "",
        role: str = ProfileRole.WAITER.value,
    ) -> Profile:
        self.get_hotel(hotel_id)
        self._ensure_username_free(username)

        with store_call(self.db, "create staff account"):
            profile = Profile(
                hotel_id=hotel_id,
                role=role,
                full_name=full_name,
                username=username,
                password_hash=get_password_hash(password),
            )
            self.db.add(profile)
            self.db.commit()

        logger.info(f"Created {role} account {username} for hotel {hotel_id}")
        return profile

    def repair_staff_profile(
        self,
        hotel_id: str,
        username: str,
        full_name: Optional[str] = None,
        role: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Profile:
        """Bring an existing login back in line with this hotel's staff list.

        Creates the profile when the username is unknown and a password is
        given. A username owned by another hotel is never taken over.
        """
        profile = self.db.scalars(select(Profile).where(Profile.username == username)).first()
        if profile is None:
            if not password:
                raise NotFoundError("Staff account", username)
            return self.create_staff_profile(
                hotel_id, username, password, full_name or "", role or ProfileRole.WAITER.value
            )
        if profile.hotel_id != hotel_id:
            raise ConflictError(f"Username '{username}' belongs to another hotel", username=username)

        with store_call(self.db, "repair staff account"):
            if full_name is not None:
                profile.full_name = full_name
            if role is not None:
                profile.role = role
            if password:
                profile.password_hash = get_password_hash(password)
            self.db.commit()

        logger.info(f"Repaired staff account {username} for hotel {hotel_id}")
        return profile

    def delete_staff_account(self, hotel_id: str, profile_id: str, acting: Profile) -> None:
        """Delete a staff login. Orders keep the waiter name they were placed with."""
        if profile_id == acting.id:
            raise GuardViolationError("You cannot delete your own account")
        profile = self.db.get(Profile, profile_id)
        if profile is None or profile.hotel_id != hotel_id:
            raise NotFoundError("Staff account", profile_id)

        username = profile.username
        with store_call(self.db, "delete staff account"):
            self.db.delete(profile)
            self.db.commit()

        logger.info(f"Deleted staff account {username} from hotel {hotel_id}")
