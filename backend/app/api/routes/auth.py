"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from app.core.rate_limit import limiter
from app.core.rbac import CurrentProfile
from app.core.security import create_profile_token
from app.db.session import DbSession
from app.schemas.auth import LoginRequest, RegisterRequest, RegisterResponse, Token
from app.schemas.hotel import HotelResponse, ProfileResponse
from app.services.hotel_service import HotelService

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(request: Request, body: RegisterRequest, db: DbSession):
    """Register a hotel and its first admin, and log the admin in."""
    hotel, admin = HotelService(db).register_tenant_and_admin(
        hotel_name=body.hotel_name,
        username=body.username,
        password=body.password,
        full_name=body.full_name,
        table_count=body.table_count,
    )
    return RegisterResponse(
        access_token=create_profile_token(admin),
        profile=ProfileResponse.model_validate(admin),
        hotel=HotelResponse.model_validate(hotel),
    )


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, body: LoginRequest, db: DbSession):
    """Authenticate a staff member and return a JWT token."""
    client_ip = request.client.host if request.client else "unknown"
    profile = HotelService(db).authenticate(body.username, body.password)
    if profile is None:
        logger.warning(f"Failed login attempt for username: {body.username} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    logger.info(f"Successful login: {profile.username} (role: {profile.role}) from IP: {client_ip}")
    return Token(access_token=create_profile_token(profile), profile=ProfileResponse.model_validate(profile))


@router.get("/me", response_model=ProfileResponse)
def me(current_profile: CurrentProfile):
    return current_profile
