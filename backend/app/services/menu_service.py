"""Menu administration: categories, items, variants and restocking."""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.session import store_call
from app.models.menu import Category, MenuItem
from app.services.hotel_service import slugify
from app.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("name", "price", "category_id", "is_veg", "image_url", "variants", "track_inventory", "stock_count")
NULLABLE_FIELDS = ("category_id", "image_url", "variants")


def default_price(price: Optional[Decimal], variants: Optional[List[Dict[str, Any]]]) -> Decimal:
    """An item with variants is priced by its first variant."""
    if variants:
        return Decimal(str(variants[0].get("price", 0)))
    return Decimal(str(price or 0))


def variants_json(variants: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    """JSON-safe copy of variants; prices are stored as floats."""
    if not variants:
        return None
    return [{"name": v["name"], "price": float(v.get("price", 0))} for v in variants]


class MenuService:
    def __init__(self, db: Session, ledger: Optional[StockLedger] = None):
        self.db = db
        self.ledger = ledger or StockLedger(db)

    def get_item(self, hotel_id: str, item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, item_id)
        if item is None or item.hotel_id != hotel_id:
            raise NotFoundError("Menu item", item_id)
        return item

    def _check_category(self, hotel_id: str, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        category = self.db.get(Category, category_id)
        if category is None or category.hotel_id != hotel_id:
            raise NotFoundError("Category", category_id)

    def create_category(self, hotel_id: str, name: str, icon: Optional[str] = None) -> Category:
        with store_call(self.db, "create category"):
            category = Category(hotel_id=hotel_id, name=name, slug=slugify(name), icon=icon)
            self.db.add(category)
            self.db.commit()
        return category

    def delete_category(self, hotel_id: str, category_id: int) -> None:
        """Remove a category. Its items stay on the menu, uncategorised."""
        category = self.db.get(Category, category_id)
        if category is None or category.hotel_id != hotel_id:
            raise NotFoundError("Category", category_id)
        with store_call(self.db, "delete category"):
            for item in list(category.items):
                item.category_id = None
            self.db.delete(category)
            self.db.commit()

    def create_item(self, hotel_id: str, data: Dict[str, Any]) -> MenuItem:
        self._check_category(hotel_id, data.get("category_id"))
        values = {key: data[key] for key in ITEM_FIELDS if data.get(key) is not None}
        values["variants"] = variants_json(data.get("variants"))
        values["price"] = default_price(data.get("price"), data.get("variants"))

        with store_call(self.db, "create menu item"):
            item = MenuItem(hotel_id=hotel_id, **values)
            self.db.add(item)
            self.db.commit()

        logger.info(f"Created menu item '{item.name}' ({item.id}) for hotel {hotel_id}")
        return item

    def update_item(self, hotel_id: str, item_id: int, data: Dict[str, Any]) -> MenuItem:
        """Apply a partial update. Changing variants re-derives the default price."""
        item = self.get_item(hotel_id, item_id)
        if "category_id" in data:
            self._check_category(hotel_id, data["category_id"])

        with store_call(self.db, "update menu item"):
            for key in ITEM_FIELDS:
                if key in data and (data[key] is not None or key in NULLABLE_FIELDS):
                    setattr(item, key, variants_json(data[key]) if key == "variants" else data[key])
            if data.get("variants"):
                item.price = default_price(item.price, item.variants)
            self.db.commit()

        return item

    def delete_item(self, hotel_id: str, item_id: int) -> None:
        """Delete an item. Past order lines keep their price and variant."""
        item = self.get_item(hotel_id, item_id)
        with store_call(self.db, "delete menu item"):
            self.db.delete(item)
            self.db.commit()
        logger.info(f"Deleted menu item {item_id} from hotel {hotel_id}")

    def restock(self, hotel_id: str, item_id: int, units: Decimal) -> MenuItem:
        """Add stock to an inventory-tracked item through the ledger."""
        item = self.get_item(hotel_id, item_id)
        self.ledger.release(item.id, units)
        self.db.refresh(item)
        return item

    def list_items(self, hotel_id: str, available_only: bool = False) -> List[MenuItem]:
        items = list(
            self.db.scalars(select(MenuItem).where(MenuItem.hotel_id == hotel_id).order_by(MenuItem.name))
        )
        if available_only:
            items = [item for item in items if item.available]
        return items
