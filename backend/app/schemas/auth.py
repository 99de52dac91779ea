"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.hotel import HotelResponse, ProfileResponse


class RegisterRequest(BaseModel):
    """Register a hotel together with its first admin."""

    hotel_name: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field("", max_length=200)
    table_count: Optional[int] = Field(default=None, ge=0, le=500)


class LoginRequest(BaseModel):
    """Login request body."""

    username: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=1, max_length=128)


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    profile: ProfileResponse


class RegisterResponse(Token):
    hotel: HotelResponse
