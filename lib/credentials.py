# =============================================================================
# lib/credentials.py - Password Hashing & Bearer Tokens
# =============================================================================
# This module is the credential engine for the marketplace:
# - Password policy validation (length + character classes)
# - PBKDF2-SHA256 password hashing with a self-describing storage format
# - HS256 bearer token issuance and verification
# - The ownership-or-admin authorization predicate
#
# Storage format for password hashes (part of the at-rest contract):
#   pbkdf2$<iterations>$<saltHex>$<derivedKeyBase64url>
#
# Token claims:
#   {"userId": ..., "role": "user" | "admin", "iat": <issuedAt>, "exp": <expiresAt>}
#
# Usage:
#   from lib.credentials import hash_password, verify_password, sign_token, verify_token
#   stored = hash_password("Passw0rd1")
#   token = sign_token({"userId": user["id"], "role": user["role"]})
# =============================================================================

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import re
import time
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

HASH_ALGORITHM_TAG = "pbkdf2"
PBKDF2_ITERATIONS = 100_000
PBKDF2_DIGEST = "sha256"
SALT_BYTES = 16
DERIVED_KEY_BYTES = 32

TOKEN_ALGORITHM = "HS256"

ROLE_USER = "user"
ROLE_ADMIN = "admin"


# =============================================================================
# Encoding helpers
# =============================================================================

def _b64url_encode(raw: bytes) -> str:
    """URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


# =============================================================================
# Password Policy
# =============================================================================

_PASSWORD_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
]


def validate_password(password: Any) -> str | None:
    """
    Check a candidate password against the password policy.

    Rules are checked in order and the first violation is reported, so the
    caller can surface a message naming exactly which rule failed.

    Args:
        password: Candidate password (anything the client sent)

    Returns:
        None if the password is acceptable, otherwise the violation message

    Example:
        error = validate_password("password1")
        # "Password must contain at least one uppercase letter"
    """
    if not password or not isinstance(password, str):
        return "Password is required"
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if len(password) > PASSWORD_MAX_LENGTH:
        return f"Password must not exceed {PASSWORD_MAX_LENGTH} characters"
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(password):
            return message
    return None


# =============================================================================
# Password Hashing
# =============================================================================

def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        salt,
        iterations,
        dklen=DERIVED_KEY_BYTES,
    )


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """
    Hash a password for storage.

    A fresh 16-byte salt is drawn for every call, so hashing the same
    password twice yields different strings.

    Args:
        password: Plain-text password (already validated)
        iterations: PBKDF2 iteration count (stored alongside the hash)

    Returns:
        "pbkdf2$<iterations>$<saltHex>$<hashB64url>"
    """
    salt = os.urandom(SALT_BYTES)
    derived = _derive(password, salt, iterations)
    return f"{HASH_ALGORITHM_TAG}${iterations}${salt.hex()}${_b64url_encode(derived)}"


def verify_password(password: str, stored: str | None) -> bool:
    """
    Verify a password against a stored hash.

    Re-derives with the stored salt and iteration count, then compares in
    constant time. Any stored value that does not have exactly four
    `$`-delimited fields tagged `pbkdf2` is rejected.

    Args:
        password: Plain-text password from the login form
        stored: Value of the user's password_hash column

    Returns:
        True if the password matches
    """
    if not stored or not isinstance(password, str):
        return False

    parts = stored.split("$")
    if len(parts) != 4 or parts[0] != HASH_ALGORITHM_TAG:
        return False

    _, iterations_raw, salt_hex, expected = parts
    try:
        iterations = int(iterations_raw)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        logger.warning("Stored password hash has malformed parameters")
        return False
    if iterations <= 0:
        return False

    derived = _b64url_encode(_derive(password, salt, iterations))
    # compare_digest returns False immediately on length mismatch
    return hmac.compare_digest(derived.encode("ascii"), expected.encode("ascii", "replace"))


# =============================================================================
# Bearer Tokens
# =============================================================================

def sign_token(
    claims: dict[str, Any],
    expires_in: timedelta | None = None,
    secret: str | None = None,
) -> str:
    """
    Issue a signed bearer token.

    The caller's claims are copied and `iat` (issued at) and `exp`
    (expires at) are added as integer epoch seconds.

    Args:
        claims: Claims to embed, typically {"userId": ..., "role": ...}
        expires_in: Token lifetime (default: JWT_EXPIRY_HOURS)
        secret: Signing key override (default: JWT_SECRET)

    Returns:
        Compact token "<header>.<payload>.<signature>"
    """
    now = int(time.time())
    lifetime = expires_in if expires_in is not None else timedelta(seconds=settings.jwt_expiry_seconds)

    payload = dict(claims)
    payload["iat"] = now
    payload["exp"] = now + int(lifetime.total_seconds())

    return jwt.encode(
        payload,
        secret or settings.JWT_SECRET,
        algorithm=TOKEN_ALGORITHM,
        headers={"typ": "JWT"},
    )


def verify_token(token: str | None, secret: str | None = None) -> dict[str, Any] | None:
    """
    Verify a bearer token and return its claims.

    Never raises: a token that does not have exactly three segments, fails
    signature verification, cannot be decoded, or has expired yields None.
    """
    if not token or not isinstance(token, str) or token.count(".") != 2:
        return None

    try:
        claims = jwt.decode(
            token,
            secret or settings.JWT_SECRET,
            algorithms=[TOKEN_ALGORITHM],
        )
    except JWTError as e:
        logger.debug(f"Token rejected: {e}")
        return None
    except (ValueError, TypeError) as e:
        logger.debug(f"Token could not be decoded: {e}")
        return None

    if not isinstance(claims, dict) or "exp" not in claims:
        return None
    return claims


# =============================================================================
# Authorization
# =============================================================================

def is_admin(claims: dict[str, Any] | None) -> bool:
    return bool(claims) and claims.get("role") == ROLE_ADMIN


def is_authorized(claims: dict[str, Any] | None, owner_id: Any) -> bool:
    """
    Ownership-or-admin predicate for protected operations.

    The role is only ever read from verified token claims, never from
    request data.

    Args:
        claims: Verified token claims (None when unauthenticated)
        owner_id: The resource owner's user id (Listing.user_id)

    Returns:
        True if the caller owns the resource or is an admin
    """
    if not claims:
        return False
    if is_admin(claims):
        return True
    subject = claims.get("userId")
    return subject is not None and owner_id is not None and str(subject) == str(owner_id)
