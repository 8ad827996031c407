# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for account operations:
# - register / login (public)
# - me / update-profile / change-password (bearer token)
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser
from core.models.user import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from core.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/api/register")
async def register(body: RegisterRequest) -> dict:
    """
    Create an account.

    Raises:
        400: Invalid phone, password or name
        409: Phone already registered
    """
    UserService.register(body.phone, body.password, body.full_name)
    return {"success": True}


@router.post("/api/login")
async def login(body: LoginRequest) -> dict:
    """
    Exchange phone + password for a bearer token.

    Returns:
        {"token": "...", "user": {...}} (no credential columns)
    """
    return UserService.login(body.phone, body.password)


@router.get("/api/me")
async def get_me(user: AuthUser = Depends(get_current_user)) -> dict:
    """Get the current authenticated user's profile."""
    return {"user": UserService.get_user(user.user_id)}


@router.post("/api/update-profile")
async def update_profile(
    body: UpdateProfileRequest,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    updated = UserService.update_profile(user.user_id, body.model_dump(exclude_none=True))
    return {"success": True, "user": updated}


@router.post("/api/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """
    Change the caller's password.

    Raises:
        400: Missing, unchanged or weak new password
        401: Current password is incorrect
    """
    UserService.change_password(user.user_id, body.currentPassword, body.newPassword)
    return {"success": True, "message": "Password changed successfully"}
