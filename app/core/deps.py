"""
Dependencies and guards for FastAPI endpoints
"""
from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from app.db.session import SessionLocal
from app.core.security import decode_token
from app.constants import ROLE_ADMIN


security = HTTPBearer()


class Actor(BaseModel):
    """Authenticated operator. The id is opaque to this service."""
    id: str
    role: str


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Actor:
    """
    Get the acting operator from the bearer JWT ("sub" = actor id, "role" claim)
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    sub_value = payload.get("sub")
    if not sub_value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Actor(id=str(sub_value), role=str(payload.get("role") or "").upper())


def require_roles(*allowed_roles: str):
    """
    Dependency factory for role-based access control

    Usage:
        @router.post("/periods/{period_id}/finalize")
        async def finalize(actor: Actor = Depends(require_roles(ROLE_HR))):
            ...
    """
    def role_checker(current_actor: Actor = Depends(get_current_actor)) -> Actor:
        # ADMIN passes every role check
        if current_actor.role == ROLE_ADMIN:
            return current_actor

        if current_actor.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {list(allowed_roles)}"
            )
        return current_actor
    return role_checker
