"""Order routes: placement, views and lifecycle transitions."""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Request, status

from app.core.config import settings
from app.core.rate_limit import limiter
from app.core.rbac import CurrentProfile, RequireFloorStaff
from app.db.session import DbSession
from app.schemas.order import OrderResponse, OrderSubmit, PlacementResponse, TransitionResponse
from app.services.cart import cart_registry
from app.services.change_feed import notify
from app.services.order_assembler import OrderAssembler
from app.services.order_lifecycle import OrderLifecycle, TransitionResult
from app.services.read_model import ReadModel

router = APIRouter()


def _transition_response(result: TransitionResult, background_tasks: BackgroundTasks) -> TransitionResponse:
    notify(background_tasks, result.order.hotel_id, result.touched_tables)
    return TransitionResponse(
        order=OrderResponse.model_validate(result.order),
        seat_freed=result.seat_freed,
        order_cancelled=result.order_cancelled,
        stock_failures=result.stock_failures,
    )


# ===== VIEWS =====

@router.get("/active", response_model=List[OrderResponse])
def list_active_orders(db: DbSession, current_profile: CurrentProfile):
    """Active orders and completed orders awaiting payment, newest first."""
    return ReadModel(db).open_orders(current_profile.hotel_id)


@router.get("/kitchen", response_model=List[OrderResponse])
def kitchen_queue(db: DbSession, current_profile: CurrentProfile):
    return ReadModel(db).kitchen_queue(current_profile.hotel_id)


@router.get("/parcels/active", response_model=List[OrderResponse])
def list_active_parcels(db: DbSession, current_profile: CurrentProfile):
    """Parcels the caller may continue: all for admins, own ones otherwise."""
    return OrderAssembler(db).active_parcels(current_profile)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: DbSession, current_profile: CurrentProfile):
    return ReadModel(db).order(current_profile.hotel_id, order_id)


# ===== PLACEMENT =====

@router.post("", response_model=PlacementResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_orders)
def submit_order(
    request: Request,
    body: OrderSubmit,
    db: DbSession,
    profile: RequireFloorStaff,
    background_tasks: BackgroundTasks,
):
    """Place the caller's cart for a seat.

    Appends to the table's active order when there is one. For the parcel
    seat a new parcel is started unless ``order_id`` picks an open one.
    """
    cart = cart_registry.get(profile.hotel_id, profile.id, body.seat_id)
    result = OrderAssembler(db).submit(cart, profile, order_id=body.order_id)
    notify(background_tasks, profile.hotel_id, result.touched_tables, "insert" if result.created else "update")
    return PlacementResponse(
        order=OrderResponse.model_validate(result.order),
        created=result.created,
        subtotal=result.subtotal,
        stock_failures=result.stock_failures,
        seat_synced=result.seat_synced,
    )


# ===== LIFECYCLE =====

@router.post("/{order_id}/items/{item_id}/serve", response_model=TransitionResponse)
def serve_item(order_id: int, item_id: int, db: DbSession, current_profile: CurrentProfile, background_tasks: BackgroundTasks):
    result = OrderLifecycle(db).mark_item_served(current_profile.hotel_id, order_id, item_id)
    return _transition_response(result, background_tasks)


@router.post("/{order_id}/serve", response_model=TransitionResponse)
def serve_order(order_id: int, db: DbSession, current_profile: CurrentProfile, background_tasks: BackgroundTasks):
    result = OrderLifecycle(db).mark_served(current_profile.hotel_id, order_id)
    return _transition_response(result, background_tasks)


@router.post("/{order_id}/close", response_model=TransitionResponse)
def close_order(order_id: int, db: DbSession, profile: RequireFloorStaff, background_tasks: BackgroundTasks):
    result = OrderLifecycle(db).close(profile.hotel_id, order_id)
    return _transition_response(result, background_tasks)


@router.post("/{order_id}/pay", response_model=TransitionResponse)
def pay_order(order_id: int, db: DbSession, profile: RequireFloorStaff, background_tasks: BackgroundTasks):
    result = OrderLifecycle(db).mark_paid(profile.hotel_id, order_id)
    return _transition_response(result, background_tasks)


@router.post("/{order_id}/cancel", response_model=TransitionResponse)
def cancel_order(order_id: int, db: DbSession, profile: RequireFloorStaff, background_tasks: BackgroundTasks):
    result = OrderLifecycle(db).cancel(profile.hotel_id, order_id)
    return _transition_response(result, background_tasks)


@router.delete("/{order_id}/items/{item_id}", response_model=TransitionResponse)
def cancel_item(order_id: int, item_id: int, db: DbSession, profile: RequireFloorStaff, background_tasks: BackgroundTasks):
    """Remove one line. Removing the last line cancels the order."""
    result = OrderLifecycle(db).cancel_item(profile.hotel_id, order_id, item_id)
    return _transition_response(result, background_tasks)
