# =============================================================================
# lib/records_client.py - Records Service Client
# =============================================================================
# This module provides a typed wrapper for the hosted Postgres REST API
# (Supabase / PostgREST). It implements the singleton pattern to reuse a
# single client connection and provides specialized methods for the two
# logical tables the marketplace uses:
# - users: identity records (phone, password hash, role, verification)
# - products: marketplace listings owned by a user (user_id foreign key)
#
# Every call uses the service_role key, which is never exposed to end clients.
# Every non-2xx upstream response surfaces as a RecordsGatewayError with the
# upstream status/body attached; nothing is silently swallowed.
#
# Usage:
#   from lib.records_client import RecordsClient
#   user = RecordsClient.fetch_user_by_phone("+256701234567")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

USERS_TABLE = "users"
LISTINGS_TABLE = "products"

# Public user columns embedded into the listings feed
PUBLIC_USER_COLUMNS = "id,full_name,avatar_url,is_verified,last_active,created_at"

FEED_COLUMNS = (
    "id,name,price,images,location,category,description,condition,installment,"
    "negotiable,phone,user_id,ad_type,is_featured,featured_until,boosted_at,"
    "boosted_until,ad_duration,created_at,"
    f"users({PUBLIC_USER_COLUMNS})"
)

# Statuses that count towards a user's free listing quota
ACTIVE_STATUSES = ["pending", "approved", "edited"]

# Columns that must never leave the server
CREDENTIAL_COLUMNS = ("password", "password_hash")


class RecordsGatewayError(Exception):
    """
    Error during records service operations.

    Carries the upstream status code and response body (when available)
    so operators can diagnose what the records service rejected.
    """

    def __init__(
        self,
        message: str,
        code: str = "RECORDS_GATEWAY_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# PostgreSQL unique_violation, surfaced by PostgREST as the error code
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: RecordsGatewayError) -> bool:
    """True when the records service rejected a write on a unique constraint."""
    upstream = error.details.get("upstream") or {}
    return str(upstream.get("code")) == UNIQUE_VIOLATION


def strip_credentials(user: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return a copy of a user row without password columns."""
    if user is None:
        return None
    return {k: v for k, v in user.items() if k not in CREDENTIAL_COLUMNS}


def _upstream_details(error: Exception) -> dict[str, Any]:
    """Pull the PostgREST status/body out of a client exception."""
    details: dict[str, Any] = {}
    for attr in ("code", "message", "details", "hint"):
        value = getattr(error, attr, None)
        if value is not None:
            details[attr] = value
    if not details:
        details["message"] = str(error)
    return details


class RecordsClient:
    """
    Typed wrapper for records service operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        user = RecordsClient.fetch_user_by_id(user_id)
        feed = RecordsClient.fetch_approved_feed()
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Returns:
            Client: Supabase client instance

        Raises:
            RecordsGatewayError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Records client initialized successfully")
            except Exception as e:
                raise RecordsGatewayError(
                    message=f"Failed to create records client: {e}",
                    code="CLIENT_INIT_FAILED",
                )
        return cls._instance

    @classmethod
    def _execute(cls, query: Any, action: str, code: str, **context: Any) -> Any:
        """
        Run a built query and translate upstream failures.

        Args:
            query: A fully-built query (table().select()... etc.)
            action: Human-readable description used in the error message
            code: Error code for RecordsGatewayError
            **context: Extra identifiers attached to the error details

        Returns:
            The client response (with .data and, for counts, .count)
        """
        try:
            return query.execute()
        except Exception as e:
            details = {"upstream": _upstream_details(e), **context}
            logger.error(f"Records service call failed ({action}): {e}")
            raise RecordsGatewayError(
                message=f"Failed to {action}",
                code=code,
                details=details,
            ) from e

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_user_by_phone(cls, phone: str) -> dict[str, Any] | None:
        """
        Fetch a user (including password hash) by normalized phone.

        Returns:
            User row, or None if no user has this phone
        """
        query = (
            cls.get_client().table(USERS_TABLE)
            .select("*")
            .eq("phone", phone)
            .limit(1)
        )
        rows = cls._execute(query, "fetch user", "FETCH_USER_FAILED").data or []
        return rows[0] if rows else None

    @classmethod
    def fetch_user_by_id(cls, user_id: str) -> dict[str, Any] | None:
        """Fetch a user row by id, or None."""
        query = (
            cls.get_client().table(USERS_TABLE)
            .select("*")
            .eq("id", str(user_id))
            .limit(1)
        )
        rows = cls._execute(query, "fetch user", "FETCH_USER_FAILED", user_id=str(user_id)).data or []
        return rows[0] if rows else None

    @classmethod
    def insert_user(cls, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new user.

        Args:
            data: Column values (phone, password_hash, full_name, role, ...)

        Returns:
            Inserted user row with generated id

        Raises:
            RecordsGatewayError: If the insert fails or returns nothing
        """
        query = cls.get_client().table(USERS_TABLE).insert(data)
        rows = cls._execute(query, "create user", "INSERT_USER_FAILED").data or []
        if not rows:
            raise RecordsGatewayError(message="Insert returned no data", code="INSERT_NO_DATA")
        logger.info(f"Created user: {rows[0].get('id')}")
        return rows[0]

    @classmethod
    def update_user(cls, user_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        """
        Patch a user row.

        Returns:
            The updated row, or None if no row matched
        """
        query = (
            cls.get_client().table(USERS_TABLE)
            .update(updates)
            .eq("id", str(user_id))
        )
        rows = cls._execute(query, "update user", "UPDATE_USER_FAILED", user_id=str(user_id)).data or []
        return rows[0] if rows else None

    @classmethod
    def delete_user(cls, user_id: str) -> None:
        query = cls.get_client().table(USERS_TABLE).delete().eq("id", str(user_id))
        cls._execute(query, "delete user", "DELETE_USER_FAILED", user_id=str(user_id))
        logger.info(f"Deleted user: {user_id}")

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_listing(cls, listing_id: str, columns: str = "*") -> dict[str, Any] | None:
        """
        Fetch a single listing.

        Args:
            listing_id: Listing id
            columns: Column projection (e.g. "user_id,status")

        Returns:
            Listing row, or None if not found
        """
        query = (
            cls.get_client().table(LISTINGS_TABLE)
            .select(columns)
            .eq("id", str(listing_id))
            .limit(1)
        )
        rows = cls._execute(
            query, "fetch listing", "FETCH_LISTING_FAILED", listing_id=str(listing_id)
        ).data or []
        return rows[0] if rows else None

    @classmethod
    def fetch_listings_by_owner(cls, user_id: str, columns: str = "id") -> list[dict[str, Any]]:
        query = (
            cls.get_client().table(LISTINGS_TABLE)
            .select(columns)
            .eq("user_id", str(user_id))
        )
        return cls._execute(
            query, "fetch user listings", "FETCH_LISTINGS_FAILED", user_id=str(user_id)
        ).data or []

    @classmethod
    def fetch_approved_feed(cls) -> list[dict[str, Any]]:
        """
        Fetch all approved listings with their owner's public fields embedded.

        Ordered newest first.
        """
        query = (
            cls.get_client().table(LISTINGS_TABLE)
            .select(FEED_COLUMNS)
            .eq("status", "approved")
            .order("created_at", desc=True)
        )
        rows = cls._execute(query, "fetch products", "FETCH_FEED_FAILED").data or []
        logger.debug(f"Fetched {len(rows)} approved listings")
        return rows

    @classmethod
    def count_active_free_listings(cls, user_id: str) -> int:
        """Count a user's free listings that are pending, approved or edited."""
        query = (
            cls.get_client().table(LISTINGS_TABLE)
            .select("id", count="exact")
            .eq("user_id", str(user_id))
            .eq("ad_type", "free")
            .in_("status", ACTIVE_STATUSES)
        )
        response = cls._execute(query, "count free listings", "COUNT_LISTINGS_FAILED", user_id=str(user_id))
        if response.count is not None:
            return response.count
        return len(response.data or [])

    @classmethod
    def fetch_expired_listings(cls, paid: bool, now: str, columns: str = "id,ad_type,expires_at,images") -> list[dict[str, Any]]:
        """
        Fetch approved listings whose expires_at is before `now`.

        Args:
            paid: True for paid tiers (ad_type != free), False for free tier
            now: ISO-8601 timestamp to compare expires_at against
            columns: Column projection
        """
        query = (
            cls.get_client().table(LISTINGS_TABLE)
            .select(columns)
            .eq("status", "approved")
            .lt("expires_at", now)
        )
        query = query.neq("ad_type", "free") if paid else query.eq("ad_type", "free")
        return cls._execute(
            query, "fetch expired listings", "FETCH_EXPIRED_FAILED", paid=paid
        ).data or []

    @classmethod
    def insert_listing(cls, data: dict[str, Any]) -> dict[str, Any]:
        query = cls.get_client().table(LISTINGS_TABLE).insert(data)
        rows = cls._execute(query, "create product", "INSERT_LISTING_FAILED").data or []
        if not rows:
            raise RecordsGatewayError(message="Insert returned no data", code="INSERT_NO_DATA")
        logger.info(f"Created listing: {rows[0].get('id')} for user: {data.get('user_id')}")
        return rows[0]

    @classmethod
    def update_listing(cls, listing_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        """Patch a listing row; returns the updated row or None."""
        query = (
            cls.get_client().table(LISTINGS_TABLE)
            .update(updates)
            .eq("id", str(listing_id))
        )
        rows = cls._execute(
            query, "update product", "UPDATE_LISTING_FAILED", listing_id=str(listing_id)
        ).data or []
        return rows[0] if rows else None

    @classmethod
    def delete_listing(cls, listing_id: str) -> None:
        query = cls.get_client().table(LISTINGS_TABLE).delete().eq("id", str(listing_id))
        cls._execute(query, "delete product", "DELETE_LISTING_FAILED", listing_id=str(listing_id))
        logger.info(f"Deleted listing: {listing_id}")

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @classmethod
    def ping(cls) -> None:
        """Cheapest round trip to the records service (readiness checks)."""
        query = cls.get_client().table(USERS_TABLE).select("id").limit(1)
        cls._execute(query, "reach records service", "PING_FAILED")
