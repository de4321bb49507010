"""Bearer token helpers.

Tokens are issued by the identity provider; the ``sub`` claim carries the
numeric user id that scopes every goal operation.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from prep_tracker.config import settings


def create_access_token(
    user_id: int, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: User ID to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(user_id=42)
        >>> isinstance(token, str)
        True
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> int:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string to verify

    Returns:
        User ID from token

    Raises:
        JWTError: If token is invalid, expired or has a non-numeric subject

    Example:
        >>> verify_access_token(create_access_token(user_id=42))
        42
    """
    payload = jwt.decode(
        token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
    )
    subject = payload.get("sub")

    if subject is None:
        raise JWTError("Token payload missing 'sub' claim")

    try:
        return int(subject)
    except (TypeError, ValueError):
        raise JWTError("Token subject is not a user id")
