"""
Shared FastAPI dependencies.
"""
from fastapi import Depends, HTTPException

from core.security import oauth2_scheme
from core.jwt_handler import decode_access_token, JWTError
from db.session import SessionLocal
from constants import Role


def get_db():
    """Yield a SQLAlchemy session, closing it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(token: str = Depends(oauth2_scheme)) -> dict:
    """Decode JWT and return the caller identity and role."""
    try:
        payload = decode_access_token(token)
        email: str = payload.get("sub")
        user_id: int = payload.get("user_id")
        role: str = payload.get("role")
        if email is None or user_id is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        if role not in {r.value for r in Role}:
            raise HTTPException(status_code=401, detail="Invalid role in token")
        return {
            "email": email,
            "name": payload.get("name", ""),
            "user_id": user_id,
            "role": role,
        }
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def require_roles(*roles: str):
    """Dependency factory rejecting callers whose role is not listed."""
    allowed = {getattr(r, "value", r) for r in roles}

    def _checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user["role"] not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user

    return _checker
