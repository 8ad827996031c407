# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# Tokens are HS256-signed by this service (lib/credentials.py) and carry
# userId and role. There is no server-side session store: a token stays
# valid until it expires, so logout is client-side only.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.user_id}
# =============================================================================

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from lib.credentials import verify_token
from app.auth.models import AuthUser
from app.exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

# auto_error=False so a missing header produces our own 401 JSON body
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    """
    Extract and validate the caller from the bearer token.

    Returns:
        AuthUser: The authenticated caller

    Raises:
        AuthenticationError: 401 if the token is missing, malformed,
            tampered with or expired
    """
    if credentials is None:
        raise AuthenticationError()

    claims = verify_token(credentials.credentials)
    if not claims or not claims.get("userId"):
        logger.warning("Rejected invalid or expired bearer token")
        raise AuthenticationError()

    return AuthUser.from_claims(claims)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[AuthUser]:
    """
    Optionally get the current user from the bearer token.

    Returns None if no token is provided or it does not verify, instead of
    raising an error.
    """
    if credentials is None:
        return None

    try:
        return await get_current_user(credentials)
    except AuthenticationError:
        return None


async def require_admin(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """
    Require an admin token.

    Raises:
        AuthenticationError: 401 without a valid token
        ForbiddenError: 403 for a valid non-admin token
    """
    if not user.is_admin:
        logger.info(f"User {user.user_id} denied admin access")
        raise ForbiddenError()
    return user
