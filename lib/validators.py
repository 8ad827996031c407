# =============================================================================
# lib/validators.py - Input Sanitizers
# =============================================================================
# Normalizes and validates client-supplied values before they reach the
# records service:
# - Ugandan mobile numbers (+2567XXXXXXXX)
# - Display names
# - Listing payloads, filtered through per-role allow-lists
# =============================================================================

import re
from typing import Any

PHONE_PATTERN = re.compile(r"^\+2567[0-9]{8}$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-']{1,100}$")

# Fields an owner may write on their own listing
OWNER_LISTING_FIELDS = frozenset({
    "name",
    "category",
    "price",
    "description",
    "condition",
    "negotiable",
    "installment",
    "location",
    "phone",
    "images",
    "ad_type",
})

# Admins may additionally move the listing through its review workflow
ADMIN_LISTING_FIELDS = OWNER_LISTING_FIELDS | frozenset({
    "status",
    "is_featured",
    "featured_until",
    "boosted_at",
    "boosted_until",
    "expires_at",
    "approved_at",
})


def sanitize_phone(phone: Any) -> str | None:
    """
    Normalize a phone number.

    Whitespace is removed; the result must be +2567 followed by 8 digits.

    Returns:
        The normalized number, or None if it is not acceptable
    """
    if not phone or not isinstance(phone, str):
        return None
    cleaned = re.sub(r"\s", "", phone)
    if not PHONE_PATTERN.match(cleaned):
        return None
    return cleaned


def sanitize_name(name: Any) -> str | None:
    """Trim a display name; letters, spaces, hyphens and apostrophes only."""
    if not name or not isinstance(name, str):
        return None
    trimmed = name.strip()
    if not NAME_PATTERN.match(trimmed):
        return None
    return trimmed


def filter_listing_fields(raw: dict[str, Any], allowed: frozenset[str] = OWNER_LISTING_FIELDS) -> dict[str, Any]:
    """
    Keep only the listing fields the caller is allowed to set.

    Anything else (ids, ownership, approval flags, timestamps, role or
    credential fields) is dropped silently.
    """
    return {key: value for key, value in raw.items() if key in allowed}
