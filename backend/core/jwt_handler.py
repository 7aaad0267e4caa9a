"""
JWT token creation and verification.

Tokens carry the caller identity and editorial role used by workflow guards.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from config import settings


def create_access_token(
    data: dict, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT with the given payload."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta
        or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_identity_token(user_id: int, email: str, role: str, name: str = "") -> str:
    """Token in the shape get_current_user expects; for tooling and tests."""
    return create_access_token({
        "sub": email,
        "user_id": user_id,
        "role": getattr(role, "value", role),
        "name": name,
    })


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT.
    Raises JWTError on invalid / expired tokens.
    """
    return jwt.decode(
        token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
    )


# Re-export so callers can catch the right exception.
__all__ = ["create_access_token", "create_identity_token", "decode_access_token", "JWTError"]
