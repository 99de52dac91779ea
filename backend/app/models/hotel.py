"""Tenant models - hotels, staff profiles and the seats on their floor."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, new_uuid, utcnow
from app.models.validators import one_of

# Seat id reserved for takeaway orders; never a physical table.
PARCEL_SEAT_ID = 0


class ProfileRole(str, Enum):
    ADMIN = "admin"
    WAITER = "waiter"
    KITCHEN = "kitchen"


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class Hotel(Base):
    """Tenant root. ``is_open`` gates order placement for every device."""
    __tablename__ = "hotels"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)
    is_open = Column(Boolean, default=True, nullable=False)
    # Stamped whenever the shop reopens; parcel numbering counts from here
    last_opened_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    seats = relationship("Seat", back_populates="hotel", cascade="all, delete-orphan")
    profiles = relationship("Profile", back_populates="hotel", cascade="all, delete-orphan")


class Profile(Base):
    """Staff identity. Orders copy id and name, so deleting a profile leaves history intact."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_uuid)
    hotel_id = Column(String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=ProfileRole.WAITER.value)
    full_name = Column(String(200), nullable=False, default="")
    username = Column(String(200), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    hotel = relationship("Hotel", back_populates="profiles")

    @validates("role")
    def _validate_role(self, key, value):
        return one_of(key, value, {r.value for r in ProfileRole})

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN.value


class Seat(Base):
    """A physical table. ``status`` caches whether the seat has an active order."""
    __tablename__ = "seats"

    hotel_id = Column(String(36), ForeignKey("hotels.id", ondelete="CASCADE"), primary_key=True)
    id = Column(Integer, primary_key=True, autoincrement=False)
    status = Column(String(20), default=SeatStatus.AVAILABLE.value, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    hotel = relationship("Hotel", back_populates="seats")

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, {s.value for s in SeatStatus})

    @property
    def is_parcel(self) -> bool:
        return self.id == PARCEL_SEAT_ID
