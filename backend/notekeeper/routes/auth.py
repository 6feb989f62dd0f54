"""
NoteKeeper Backend: Auth Route Handlers
========================================

What:  Account endpoints under /api/auth.
How:   Validates the JSON body with pydantic, delegates to AuthService.

Endpoints:
    POST /api/auth/register         → 201 AuthResponse
    POST /api/auth/login            → 200 AuthResponse
    GET  /api/auth/profile          → 200 ProfileResponse
    PUT  /api/auth/profile          → 200 ProfileResponse
    PUT  /api/auth/change-password  → 200 AuthResponse (fresh token)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.database import get_db_session
from notekeeper.dependencies import get_auth_service, get_current_user
from notekeeper.models.user import User
from notekeeper.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
)
from notekeeper.schemas.common import ErrorResponse
from notekeeper.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid registration data", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth.register(
        db,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Exchange email and password for a bearer token",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth.login(db, email=payload.email, password=payload.password)


@router.get("/profile", response_model=ProfileResponse, summary="Current user's profile")
async def get_profile(user: User = Depends(get_current_user)) -> ProfileResponse:
    return ProfileResponse(user=UserResponse.model_validate(user))


@router.put(
    "/profile",
    response_model=ProfileResponse,
    summary="Update first and last name",
    description="Blank or omitted names keep their current value.",
)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    updated = await auth.update_profile(
        db, user, first_name=payload.first_name, last_name=payload.last_name,
    )
    return ProfileResponse(user=updated)


@router.put(
    "/change-password",
    response_model=AuthResponse,
    responses={
        400: {"description": "New password too short", "model": ErrorResponse},
        401: {"description": "Current password is incorrect", "model": ErrorResponse},
    },
    summary="Change password",
    description="Every token issued before the change stops working; use the returned one.",
)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth.change_password(
        db,
        user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
