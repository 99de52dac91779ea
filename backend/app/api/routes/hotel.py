"""Hotel housekeeping routes: shop status, table count and staff accounts."""

from typing import List

from fastapi import APIRouter, BackgroundTasks, status

from app.core.rbac import CurrentProfile, RequireAdmin
from app.db.session import DbSession
from app.schemas.hotel import (
    HotelResponse,
    ProfileResponse,
    ShopStatusRequest,
    StaffCreate,
    StaffRepair,
    TableCountRequest,
    TableCountResponse,
)
from app.services.change_feed import change_feed, notify
from app.services.hotel_service import HotelService

router = APIRouter()


@router.get("", response_model=HotelResponse)
def get_hotel(db: DbSession, current_profile: CurrentProfile):
    return HotelService(db).get_hotel(current_profile.hotel_id)


@router.put("/shop-status", response_model=HotelResponse)
def set_shop_status(body: ShopStatusRequest, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    """Open or close ordering for every device. Omit ``is_open`` to toggle."""
    hotel = HotelService(db).toggle_shop(admin.hotel_id, body.is_open)
    notify(background_tasks, hotel.id, ["hotels"])
    return hotel


@router.put("/tables", response_model=TableCountResponse)
def set_table_count(body: TableCountRequest, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    result = HotelService(db).set_table_count(admin.hotel_id, body.count)
    notify(background_tasks, admin.hotel_id, ["seats"])
    return result


@router.get("/staff", response_model=List[ProfileResponse])
def list_staff(db: DbSession, admin: RequireAdmin):
    return HotelService(db).list_staff(admin.hotel_id)


@router.post("/staff", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_staff(body: StaffCreate, db: DbSession, admin: RequireAdmin):
    return HotelService(db).create_staff_profile(
        admin.hotel_id, body.username, body.password, body.full_name, body.role
    )


@router.post("/staff/repair", response_model=ProfileResponse)
def repair_staff(body: StaffRepair, db: DbSession, admin: RequireAdmin):
    return HotelService(db).repair_staff_profile(
        admin.hotel_id, body.username, body.full_name, body.role, body.password
    )


@router.delete("/staff/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_staff(profile_id: str, db: DbSession, admin: RequireAdmin, background_tasks: BackgroundTasks):
    HotelService(db).delete_staff_account(admin.hotel_id, profile_id, acting=admin)
    background_tasks.add_task(change_feed.drop_profile, admin.hotel_id, profile_id)
