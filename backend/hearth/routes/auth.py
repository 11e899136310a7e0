"""
Hearth Butler Backend — Auth Routes
=====================================

    POST /api/auth/register   create an account, returns a session token (201)
    POST /api/auth/login      exchange credentials for a session token
    POST /api/auth/logout     revoke the current token
    GET  /api/auth/me         the calling user
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.user import User
from hearth.routes.deps import bearer_token, get_current_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.family import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from hearth.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={400: {"description": "Invalid email, weak password or email taken", "model": ErrorResponse}},
    summary="Register a new account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.register(db, body.email, body.password, body.name)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.login(db, body.email, body.password)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse, summary="Revoke the current session")
async def logout(
    token: Optional[str] = Depends(bearer_token),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.logout(db, token)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse, summary="Current user")
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
