"""
Authentication dependencies for FastAPI.
"""
import secrets
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from gamelogd.preferences.errors import AuthError
from gamelogd.web.schemas.auth import UserResponse
from gamelogd.web.services.container import Services, get_services

# auto_error=False: a missing header must be a 401, not FastAPI's default
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services)
) -> UserResponse:
    """
    Resolve the current user from the bearer token.

    Raises:
        HTTPException 401: missing or invalid token
        HTTPException 404: token for a user that no longer exists
    """
    if credentials is None:
        raise _unauthorized("No token provided")

    try:
        user_id = services.auth.verify_token(credentials.credentials)
    except AuthError as e:
        raise _unauthorized(e.message)

    user = services.auth.find_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services)
) -> None:
    """Admin routes take the ADMIN_SECRET as bearer token. No secret set, no access."""
    admin_secret = services.settings.admin_secret
    if (
        credentials is None
        or not admin_secret
        or not secrets.compare_digest(credentials.credentials.encode("utf-8"), admin_secret.encode("utf-8"))
    ):
        raise _unauthorized("Unauthorized")
