"""Seat (table) routes."""

from typing import List

from fastapi import APIRouter, BackgroundTasks

from app.core.rbac import CurrentProfile
from app.db.session import DbSession
from app.schemas.hotel import ReconcileResponse, SeatResponse
from app.services.change_feed import notify
from app.services.read_model import ReadModel
from app.services.seat_occupancy import SeatOccupancy

router = APIRouter()


@router.get("", response_model=List[SeatResponse])
def list_seats(db: DbSession, current_profile: CurrentProfile):
    """Seats reconciled against active orders, parcel sentinel first."""
    return ReadModel(db).seats(current_profile.hotel_id)


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile_seats(db: DbSession, current_profile: CurrentProfile, background_tasks: BackgroundTasks):
    corrected = SeatOccupancy(db).reconcile(current_profile.hotel_id)
    if corrected:
        notify(background_tasks, current_profile.hotel_id, ["seats"])
    return ReconcileResponse(corrected=corrected)
