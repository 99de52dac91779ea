"""Shared rate limiter instance for use across route files."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from app.core.config import settings


def get_profile_or_ip(request: Request) -> str:
    """Rate limit by staff profile if authenticated, else by IP.

    Waiters on one venue network share an address, so the token decides.
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        from app.core.security import decode_access_token
        token = auth.split(" ", 1)[1]
        payload = decode_access_token(token)
        if payload and payload.get("sub"):
            return f"profile:{payload['sub']}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_profile_or_ip, enabled=settings.rate_limit_enabled)
