"""Role-Based Access Control (RBAC) utilities."""

from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status

from app.core.security import decode_access_token
from app.db.session import DbSession
from app.models.hotel import Profile, ProfileRole


def _bearer_payload(request: Request) -> Optional[Dict[str, Any]]:
    """Decode the token from the Authorization header, or the access_token cookie."""
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        cookie_token = request.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    return payload


def get_current_profile(request: Request, db: DbSession) -> Profile:
    """Resolve the acting staff profile from its JWT.

    The profile row is re-read so a deleted account loses access at once,
    and so the role and hotel come from the store rather than the token.
    """
    payload = _bearer_payload(request)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile_id = payload.get("sub")
    if not profile_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    profile = db.get(Profile, profile_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Staff account no longer exists",
        )
    return profile


def require_role(*roles: ProfileRole):
    """Dependency to require one of the given roles."""
    allowed = {role.value for role in roles}

    def role_checker(
        current_profile: Annotated[Profile, Depends(get_current_profile)]
    ) -> Profile:
        if current_profile.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {' or '.join(sorted(allowed))}",
            )
        return current_profile

    return role_checker


# Common role dependencies
CurrentProfile = Annotated[Profile, Depends(get_current_profile)]
RequireAdmin = Annotated[Profile, Depends(require_role(ProfileRole.ADMIN))]
RequireFloorStaff = Annotated[Profile, Depends(require_role(ProfileRole.ADMIN, ProfileRole.WAITER))]
