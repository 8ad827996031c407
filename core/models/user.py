# =============================================================================
# core/models/user.py - User Schemas
# =============================================================================
# Request bodies for registration, login, profile and admin user management.
# Fields are optional at the schema level so the service layer can report
# the specific rule a missing or malformed value breaks.
# =============================================================================

from enum import Enum

from pydantic import BaseModel


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class RegisterRequest(BaseModel):
    """
    Body of POST /api/register.

    Example:
        {"phone": "+256701234567", "password": "Passw0rd1", "full_name": "Jane Doe"}
    """
    phone: str | None = None
    password: str | None = None
    full_name: str | None = None


class LoginRequest(BaseModel):
    phone: str | None = None
    password: str | None = None


class UpdateProfileRequest(BaseModel):
    """
    Body of POST /api/update-profile.

    `password` and `password_hash` are accepted only so the endpoint can
    refuse them explicitly.
    """
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    password: str | None = None
    password_hash: str | None = None


class ChangePasswordRequest(BaseModel):
    currentPassword: str | None = None
    newPassword: str | None = None


class AdminUserRequest(BaseModel):
    """Body of admin verify/unverify/delete-user endpoints."""
    userId: str | int | None = None


class AdminResetPasswordRequest(BaseModel):
    userId: str | int | None = None
    newPassword: str | None = None
