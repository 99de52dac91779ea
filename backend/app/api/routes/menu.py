"""Menu routes. Everyone reads the menu; only admins edit it."""

from fastapi import APIRouter, BackgroundTasks, status

from app.core.rbac import CurrentProfile, RequireAdmin
from app.db.session import DbSession
from app.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuResponse,
    RestockRequest,
)
from app.services.change_feed import notify
from app.services.menu_service import MenuService
from app.services.read_model import ReadModel

router = APIRouter()


@router.get("", response_model=MenuResponse)
def get_menu(db: DbSession, current_profile: CurrentProfile, available_only: bool = False):
    """Categories and items. Sold-out items are listed unless ``available_only``."""
    read_model = ReadModel(db)
    items = read_model.menu_items(current_profile.hotel_id)
    if available_only:
        items = [item for item in items if item.available]
    return MenuResponse(
        categories=read_model.categories(current_profile.hotel_id),
        items=items,
    )


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(body: CategoryCreate, db: DbSession, admin: RequireAdmin):
    return MenuService(db).create_category(admin.hotel_id, body.name, body.icon)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    MenuService(db).delete_category(admin.hotel_id, category_id)
    notify(background_tasks, admin.hotel_id, ["menu_items"])


@router.post("/items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(body: MenuItemCreate, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    item = MenuService(db).create_item(admin.hotel_id, body.model_dump())
    notify(background_tasks, admin.hotel_id, ["menu_items"], "insert")
    return item


@router.put("/items/{item_id}", response_model=MenuItemResponse)
def update_item(item_id: int, body: MenuItemUpdate, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    item = MenuService(db).update_item(admin.hotel_id, item_id, body.model_dump(exclude_unset=True))
    notify(background_tasks, admin.hotel_id, ["menu_items"])
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(item_id: int, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    MenuService(db).delete_item(admin.hotel_id, item_id)
    notify(background_tasks, admin.hotel_id, ["menu_items"], "delete")


@router.post("/items/{item_id}/restock", response_model=MenuItemResponse)
def restock_item(item_id: int, body: RestockRequest, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    item = MenuService(db).restock(admin.hotel_id, item_id, body.units)
    notify(background_tasks, admin.hotel_id, ["menu_items"])
    return item
