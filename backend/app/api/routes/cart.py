"""Cart routes. Each staff member keeps one cart per seat until it is placed."""

from decimal import Decimal

from fastapi import APIRouter, status

from app.core.rbac import RequireFloorStaff
from app.core.sanitize import sanitize_note
from app.db.session import DbSession
from app.models.menu import MenuItem
from app.schemas.cart import CartItemChange, CartLineResponse, CartNoteRequest, CartResponse
from app.services.cart import Cart, CartKey, cart_registry
from app.services.menu_service import MenuService

router = APIRouter()


def _cart_response(cart: Cart, db) -> CartResponse:
    lines = []
    subtotal = Decimal("0")
    for line in cart.lines():
        item = db.get(MenuItem, line.menu_item_id)
        if item is None:
            continue
        unit_price = item.resolved_price(line.variant_name)
        line_total = unit_price * line.quantity
        subtotal += line_total
        lines.append(CartLineResponse(
            menu_item_id=line.menu_item_id,
            variant_name=line.variant_name,
            name=item.name,
            quantity=line.quantity,
            unit_price=unit_price,
            line_total=line_total,
            note=line.note,
        ))
    return CartResponse(seat_id=cart.seat_id, lines=lines, subtotal=subtotal)


@router.get("/{seat_id}", response_model=CartResponse)
def get_cart(seat_id: int, db: DbSession, profile: RequireFloorStaff):
    return _cart_response(cart_registry.get(profile.hotel_id, profile.id, seat_id), db)


@router.post("/{seat_id}/items", response_model=CartResponse)
def change_quantity(seat_id: int, body: CartItemChange, db: DbSession, profile: RequireFloorStaff):
    """Add or remove portions. Increases beyond current stock are refused."""
    item = MenuService(db).get_item(profile.hotel_id, body.menu_item_id)
    cart = cart_registry.get(profile.hotel_id, profile.id, seat_id)
    cart.update_quantity(item, body.delta, body.variant_name)
    return _cart_response(cart, db)


@router.put("/{seat_id}/notes", response_model=CartResponse)
def set_note(seat_id: int, body: CartNoteRequest, db: DbSession, profile: RequireFloorStaff):
    cart = cart_registry.get(profile.hotel_id, profile.id, seat_id)
    cart.set_note(CartKey(body.menu_item_id, body.variant_name or None), sanitize_note(body.note))
    return _cart_response(cart, db)


@router.delete("/{seat_id}", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(seat_id: int, profile: RequireFloorStaff):
    cart_registry.discard(profile.hotel_id, profile.id, seat_id)
