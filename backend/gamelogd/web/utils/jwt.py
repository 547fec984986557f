"""
JWT token utilities.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt

from gamelogd.config import Settings


def create_access_token(
    data: dict,
    settings: Settings,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (``sub`` holds the user id)
        settings: Settings with the signing secret and algorithm
        expires_delta: Token lifetime (default: ``settings.jwt_expire_days``)

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta is None:
        expires_delta = timedelta(days=settings.jwt_expire_days)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str, settings: Settings) -> Optional[dict]:
    """
    Decode and verify a JWT token.

    Returns:
        Payload dict if the token is valid and unexpired, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None
