"""Menu models - categories and orderable items with variants and inventory."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, utcnow
from app.models.validators import non_negative, validate_variants


class Category(Base):
    """Menu category for organizing items."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False)
    icon = Column(String(10), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    items = relationship("MenuItem", back_populates="category")


class MenuItem(Base):
    """Menu item for ordering.

    ``variants`` is an ordered list of ``{"name", "price"}`` portions
    (Full/Half/Quarter...). When present the charged price is the variant's;
    ``price`` only serves as the default. ``stock_count`` is fractional
    because half and quarter portions consume part of a unit.
    """
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_veg = Column(Boolean, default=True, nullable=False)
    image_url = Column(String(500), nullable=True)
    variants = Column(JSON, nullable=True)

    track_inventory = Column(Boolean, default=False, nullable=False)
    stock_count = Column(Numeric(12, 3), default=Decimal("0"), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    category = relationship("Category", back_populates="items")

    @validates("price", "stock_count")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)

    @validates("variants")
    def _validate_variants(self, key, value):
        return validate_variants(key, value) or None

    @property
    def available(self) -> bool:
        """Orderable unless inventory-tracked and sold out."""
        if not self.track_inventory:
            return True
        return Decimal(str(self.stock_count or 0)) > 0

    def resolved_price(self, variant_name: Optional[str] = None) -> Decimal:
        """Price charged for one unit, falling back to ``price`` for unknown variants."""
        if variant_name and self.variants:
            for variant in self.variants:
                if variant.get("name") == variant_name:
                    return Decimal(str(variant.get("price", 0)))
        return Decimal(str(self.price))
