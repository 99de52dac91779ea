"""SQLAlchemy declarative base and common utilities."""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in every DateTime column.

    Assigned client-side so rows written within the same second still order
    correctly against ``Hotel.last_opened_at``.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass
