"""API routes."""

from fastapi import APIRouter

from app.api.routes import auth, cart, hotel, menu, orders, reports, seats

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(hotel.router, prefix="/hotel", tags=["hotel"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(seats.router, prefix="/seats", tags=["seats"])
api_router.include_router(cart.router, prefix="/cart", tags=["cart"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
