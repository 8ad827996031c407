# =============================================================================
# core/services/user_service.py - User Business Logic
# =============================================================================
# Registration, login, profile maintenance and admin user management.
# Separates HTTP concerns from records-service calls.
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any

from lib.credentials import (
    ROLE_USER,
    hash_password,
    sign_token,
    validate_password,
    verify_password,
)
from lib.records_client import (
    RecordsClient,
    RecordsGatewayError,
    is_unique_violation,
    strip_credentials,
)
from lib.validators import sanitize_name, sanitize_phone
from app.exceptions import (
    AuthenticationError,
    ConflictError,
    MarketplaceException,
    UserNotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_valid_password(password: Any) -> str:
    error = validate_password(password)
    if error:
        raise ValidationFailedError(error)
    return password


def _stored_hash(user: dict[str, Any]) -> str:
    stored = user.get("password_hash") or user.get("password")
    if not stored:
        # Legacy rows created before hashing was introduced
        raise MarketplaceException(
            message="Password migration required",
            code="PASSWORD_MIGRATION_REQUIRED",
            status_code=500,
        )
    return stored


class UserService:
    """
    Service for user account operations.

    All methods are static and talk to the records service through
    RecordsClient; they raise MarketplaceException subclasses for every
    client-visible failure.
    """

    @staticmethod
    def register(phone: Any, password: Any, full_name: Any = None) -> dict[str, Any]:
        """
        Create a new user account.

        Args:
            phone: Raw phone number (normalized to +2567XXXXXXXX)
            password: Plain-text password (validated against the policy)
            full_name: Optional display name

        Returns:
            The created user without credential columns

        Raises:
            ValidationFailedError: Bad phone, password or name
            ConflictError: A user with this phone already exists
        """
        clean_phone = sanitize_phone(phone)
        if not clean_phone:
            raise ValidationFailedError("Invalid phone format. Must be +2567XXXXXXXX")

        _require_valid_password(password)

        clean_name = None
        if full_name:
            clean_name = sanitize_name(full_name)
            if not clean_name:
                raise ValidationFailedError("Invalid name format")

        if RecordsClient.fetch_user_by_phone(clean_phone):
            raise ConflictError("User already exists")

        try:
            user = RecordsClient.insert_user({
                "phone": clean_phone,
                "password_hash": hash_password(password),
                "full_name": clean_name,
                "role": ROLE_USER,
                "created_at": utc_now_iso(),
            })
        except RecordsGatewayError as e:
            # A concurrent registration won the phone's unique constraint
            if is_unique_violation(e):
                raise ConflictError("User already exists") from e
            raise
        logger.info(f"Registered user {user.get('id')}")
        return strip_credentials(user)

    @staticmethod
    def login(phone: Any, password: Any) -> dict[str, Any]:
        """
        Check credentials and issue a bearer token.

        The token's role comes from the stored user row, never from the
        request.

        Returns:
            {"token": ..., "user": {...}}

        Raises:
            ValidationFailedError: Phone or password missing
            AuthenticationError: Unknown phone or wrong password
        """
        if not phone or not password:
            raise ValidationFailedError("Phone and password required")

        user = RecordsClient.fetch_user_by_phone(sanitize_phone(phone) or phone)
        if not user:
            raise AuthenticationError("Invalid credentials")

        if not verify_password(password, _stored_hash(user)):
            logger.info(f"Failed login for user {user.get('id')}")
            raise AuthenticationError("Invalid credentials")

        token = sign_token({"userId": user["id"], "role": user.get("role") or ROLE_USER})

        try:
            RecordsClient.update_user(user["id"], {"last_active": utc_now_iso()})
        except RecordsGatewayError as e:
            logger.warning(f"Could not stamp last_active for {user['id']}: {e}")

        return {"token": token, "user": strip_credentials(user)}

    @staticmethod
    def get_user(user_id: str) -> dict[str, Any]:
        user = RecordsClient.fetch_user_by_id(user_id)
        if not user:
            raise UserNotFoundError(str(user_id))
        return strip_credentials(user)

    @staticmethod
    def update_profile(user_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Update name, phone and/or avatar of the calling user.

        Raises:
            ValidationFailedError: Bad field, password fields present, or
                nothing to update
            ConflictError: Phone already belongs to another user
        """
        if body.get("password") or body.get("password_hash"):
            raise ValidationFailedError("Use /api/change-password endpoint for password changes")

        updates: dict[str, Any] = {}

        if body.get("full_name"):
            name = sanitize_name(body["full_name"])
            if not name:
                raise ValidationFailedError("Invalid name format")
            updates["full_name"] = name

        if body.get("phone"):
            phone = sanitize_phone(body["phone"])
            if not phone:
                raise ValidationFailedError("Invalid phone format")
            existing = RecordsClient.fetch_user_by_phone(phone)
            if existing and str(existing.get("id")) != str(user_id):
                raise ConflictError("Phone already in use")
            updates["phone"] = phone

        if body.get("avatar_url") and isinstance(body["avatar_url"], str):
            updates["avatar_url"] = body["avatar_url"]

        if not updates:
            raise ValidationFailedError("No valid fields to update")

        updates["updated_at"] = utc_now_iso()
        try:
            user = RecordsClient.update_user(user_id, updates)
        except RecordsGatewayError as e:
            if "phone" in updates and is_unique_violation(e):
                raise ConflictError("Phone already in use") from e
            raise
        if user is None:
            raise UserNotFoundError(str(user_id))
        return strip_credentials(user)

    @staticmethod
    def change_password(user_id: str, current_password: Any, new_password: Any) -> None:
        """
        Replace the calling user's password after checking the current one.

        Raises:
            ValidationFailedError: Missing fields, unchanged or weak password
            UserNotFoundError: Token subject no longer exists
            AuthenticationError: Current password is wrong
        """
        if not current_password or not new_password:
            raise ValidationFailedError("Current and new passwords required")
        if current_password == new_password:
            raise ValidationFailedError("New password must be different from current")
        _require_valid_password(new_password)

        user = RecordsClient.fetch_user_by_id(user_id)
        if not user:
            raise UserNotFoundError(str(user_id))

        if not verify_password(current_password, _stored_hash(user)):
            raise AuthenticationError("Current password is incorrect")

        RecordsClient.update_user(user_id, {
            "password_hash": hash_password(new_password),
            "updated_at": utc_now_iso(),
        })
        logger.info(f"Password changed for user {user_id}")

    # -------------------------------------------------------------------------
    # Admin operations
    # -------------------------------------------------------------------------

    @staticmethod
    def admin_reset_password(user_id: Any, new_password: Any) -> None:
        if not user_id or not new_password:
            raise ValidationFailedError("userId and newPassword required")
        _require_valid_password(new_password)

        user = RecordsClient.update_user(str(user_id), {
            "password_hash": hash_password(new_password),
            "updated_at": utc_now_iso(),
        })
        if user is None:
            raise UserNotFoundError(str(user_id))
        logger.info(f"Admin reset password for user {user_id}")

    @staticmethod
    def set_verified(user_id: Any, verified: bool) -> None:
        if not user_id:
            raise ValidationFailedError("userId required")
        user = RecordsClient.update_user(str(user_id), {"is_verified": verified})
        if user is None:
            raise UserNotFoundError(str(user_id))
        logger.info(f"User {user_id} verified={verified}")
