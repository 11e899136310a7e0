"""
Hearth Butler Backend — Route Dependencies
============================================

What:  Resolves the `Authorization: Bearer <token>` header to a User.
How:   HTTPBearer with auto_error=False, so a missing header reaches
       AuthService and becomes our own 401 envelope instead of FastAPI's 403.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.exceptions import AuthenticationError
from hearth.models.user import User
from hearth.schemas.common import ErrorResponse
from hearth.services.auth_service import auth_service

bearer_scheme = HTTPBearer(auto_error=False)


def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    return await auth_service.resolve_session(db, token)


async def get_optional_user(
    token: Optional[str] = Depends(bearer_token),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    """For public endpoints that show more to signed-in family members."""
    if not token:
        return None
    try:
        return await auth_service.resolve_session(db, token)
    except AuthenticationError:
        return None


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# OpenAPI error documentation shared by the authenticated routers
AUTH_RESPONSES = {
    401: {"description": "Missing or invalid session token", "model": ErrorResponse},
    403: {"description": "Not allowed for this family", "model": ErrorResponse},
    404: {"description": "Resource not found", "model": ErrorResponse},
}
