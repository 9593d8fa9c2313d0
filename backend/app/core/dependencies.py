"""
Authentication dependencies for FastAPI.

Resolves the bearer JWT into a Principal that endpoints hand to services.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.auth import Principal

# HTTP Bearer security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _load_principal(db: AsyncSession, user_id: int) -> Optional[Principal]:
    # The role comes from the database row, not the token
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        return None
    return Principal(id=user.id, role=user.role, email=user.email)


async def resolve_principal(token: str, db: AsyncSession) -> Optional[Principal]:
    """
    Turn a raw token into a Principal, or None if it is unusable.

    Used by the tracking WebSocket, which receives its token as a query
    parameter and closes the socket instead of answering 401.
    """
    payload = decode_access_token(token)
    if payload is None or not payload.get("user_id"):
        return None
    if await is_token_revoked(token):
        return None
    return await _load_principal(db, payload["user_id"])


async def get_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    return credentials.credentials


async def get_current_principal(
    token: str = Depends(get_current_token),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. Token signature and expiry
    2. Token not revoked by logout
    3. User still exists

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")

    principal = await _load_principal(db, user_id)
    if principal is None:
        raise _unauthorized("User not found")

    return principal
