"""FastAPI application entry point."""

import json
import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.routes import api_router
from app.core.config import settings
from app.core.errors import FloorError
from app.core.rate_limit import limiter
from app.core.security import decode_access_token
from app.db.base import Base
from app.db.session import DbSession, engine
from app.models.hotel import Profile
from app.services.change_feed import change_feed

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip logging for health checks and docs
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        request_logger.info(f"Request: {request.method} {request.url.path} - Client: {client_ip}")

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            request_logger.log(
                log_level,
                f"Response: {request.method} {request.url.path} - "
                f"Status: {response.status_code} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            return response
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            raise


async def floor_error_handler(request: Request, exc: FloorError) -> JSONResponse:
    """Render expected business outcomes with their code and detail."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.app_name} ({settings.redacted_database_url})")

    # Create tables if they don't exist (SQLite deployments have no migrations)
    if settings.database_url.startswith("sqlite"):
        db_path = settings.database_url.split("///", 1)[-1]
        if db_path and db_path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    yield

    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="Restaurant floor and order management API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(FloorError, floor_error_handler)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# ===== WebSocket change feed =====

async def _authenticate_websocket(
    websocket: WebSocket, db: Session, token: Optional[str], hotel_id: str
) -> Optional[str]:
    """Authenticate a WebSocket connection. Returns the profile id or None (rejected).

    The profile row is re-read like ``get_current_profile`` does, so a
    deleted account or one belonging to another hotel is refused.
    """
    payload = decode_access_token(token) if token else None
    if not payload:
        cookie_token = websocket.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    if not payload or not payload.get("sub"):
        logger.warning(f"WebSocket rejected for hotel {hotel_id}: no valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None

    profile = db.get(Profile, payload["sub"])
    profile_hotel = profile.hotel_id if profile is not None else None

    if profile_hotel is None:
        logger.warning(f"WebSocket rejected for hotel {hotel_id}: staff account no longer exists")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None

    if profile_hotel != hotel_id:
        logger.warning(f"WebSocket rejected for hotel {hotel_id}: token is for another hotel")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None

    return payload["sub"]


@app.websocket("/ws/hotels/{hotel_id}")
async def websocket_hotel_feed(
    websocket: WebSocket,
    hotel_id: str,
    db: DbSession,
    token: Optional[str] = Query(None)
):
    """Change notifications for one hotel. Requires JWT token.

    Each message names a changed table; clients re-fetch it.
    """
    profile_id = await _authenticate_websocket(websocket, db, token, hotel_id)
    if profile_id is None:
        return
    if not await change_feed.connect(websocket, hotel_id, profile_id=profile_id):
        return

    try:
        await websocket.send_json({"event": "connected", "hotel_id": hotel_id})
        while True:
            data = await websocket.receive_text()
            if len(data) > change_feed.MAX_MESSAGE_SIZE:
                logger.warning(f"WebSocket message too large from hotel {hotel_id}")
                continue
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        change_feed.disconnect(websocket, hotel_id)
    except Exception as e:
        logger.error(f"WebSocket error in hotel {hotel_id}: {e}", exc_info=True)
        change_feed.disconnect(websocket, hotel_id)
