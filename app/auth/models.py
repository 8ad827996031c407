# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from typing import Any

from pydantic import BaseModel

from core.models.user import UserRole


class AuthUser(BaseModel):
    """
    Authenticated caller extracted from a verified bearer token.

    This is the minimal identity available from the token itself, without
    querying the records service. The role comes only from the signed
    token.
    """
    user_id: str
    role: UserRole = UserRole.USER

    class Config:
        frozen = True  # Make immutable

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def claims(self) -> dict[str, Any]:
        """Claims shape used by the credential helpers."""
        return {"userId": self.user_id, "role": self.role.value}

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AuthUser":
        role = claims.get("role")
        return cls(
            user_id=str(claims["userId"]),
            role=UserRole.ADMIN if role == UserRole.ADMIN.value else UserRole.USER,
        )
