# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Provides bearer-token authentication using tokens signed by this service.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.user_id}
# =============================================================================

from app.auth.dependencies import get_current_user, get_current_user_optional, require_admin
from app.auth.models import AuthUser

__all__ = [
    "get_current_user",
    "get_current_user_optional",
    "require_admin",
    "AuthUser",
]
