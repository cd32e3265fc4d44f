"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.redis_client import CacheManager, get_redis_client
from clinic_portal.core.security import decode_access_token
from clinic_portal.database import get_db
from clinic_portal.models.users import users
from clinic_portal.schemas.auth import Actor, UserRole

# Security
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise _unauthorized("Could not validate credentials")

    try:
        return UUID(user_id_str)
    except ValueError:
        raise _unauthorized("Invalid user ID format")


async def get_current_actor(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Actor:
    """
    Resolve the caller's identity and role.

    The role is read from the user directory, never from client state.

    Raises:
        HTTPException: If the user is unknown or has no portal role
    """
    result = await db.execute(select(users.c.id, users.c.role).where(users.c.id == user_id))
    user = result.mappings().first()

    if not user:
        raise _unauthorized("User not found")

    try:
        role = UserRole(user["role"])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User has no portal role",
        )

    return Actor(id=user["id"], role=role)


def get_cache_manager() -> CacheManager:
    """Get cache manager backed by the shared Redis client."""
    return CacheManager(redis_client=get_redis_client())


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
