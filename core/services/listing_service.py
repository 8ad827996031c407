# =============================================================================
# core/services/listing_service.py - Listing Business Logic
# =============================================================================
# Handles listing CRUD, ownership checks and the review workflow:
# - create (always pending, free-tier quota enforced)
# - update (owners can never self-approve; owner edits of approved
#   listings go back to review as "edited")
# - admin review: approve / reject / approve edit / reject edit
# - compound deletion: purge every image version, then the row
#
# Ownership is the listing's user_id foreign key, looked up per request.
# =============================================================================

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from lib.credentials import is_admin, is_authorized
from lib.records_client import RecordsClient
from lib.validators import ADMIN_LISTING_FIELDS, OWNER_LISTING_FIELDS, filter_listing_fields
from core.models.listing import AdTier, ListingStatus
from core.models.reports import ImageDeletionReport, ListingDeletionResult
from core.services.image_service import ImageService, to_proxy_path
from app.config import settings
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    ListingNotFoundError,
    UserNotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

# Statuses an admin may set explicitly through update-product
_ADMIN_SETTABLE_STATUSES = {
    ListingStatus.PENDING.value,
    ListingStatus.APPROVED.value,
    ListingStatus.EDITED.value,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_tier(value: Any) -> AdTier:
    tier = AdTier.parse(value or AdTier.FREE.value)
    if tier is None:
        raise ValidationFailedError(
            "Invalid ad type",
            details={"ad_type": value, "allowed": [t.value for t in AdTier]},
        )
    return tier


def _check_images(images: Any) -> None:
    if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
        raise ValidationFailedError("images must be an array of image paths")


def tier_columns(tier: AdTier) -> dict[str, Any]:
    """Columns derived from the ad tier (never trusted from clients)."""
    return {
        "ad_type": tier.value,
        "ad_price": tier.price,
        "ad_duration": tier.duration_days,
    }


def approval_window(tier: AdTier, now: datetime | None = None) -> dict[str, Any]:
    """
    Expiry and promotion columns stamped when a pending listing is approved.

    Featured listings get a featured window, boosted tiers a boost window,
    and free listings have every promotion cleared.
    """
    start = now or _now()
    expires = (start + timedelta(days=tier.duration_days)).isoformat()
    window: dict[str, Any] = {"expires_at": expires, **tier_columns(tier)}

    if tier is AdTier.FEATURED:
        window.update(is_featured=True, featured_until=expires)
    elif tier.is_paid:
        window.update(
            is_featured=False,
            boosted_at=start.isoformat(),
            boosted_until=expires,
        )
    else:
        window.update(
            is_featured=False,
            featured_until=None,
            boosted_at=None,
            boosted_until=None,
        )
    return window


class ListingService:
    """
    Service for listing operations.

    Args:
        images: Image service used for compound deletion
    """

    def __init__(self, images: ImageService):
        self.images = images

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def get_listing(listing_id: Any, columns: str = "*") -> dict[str, Any]:
        if not listing_id:
            raise ValidationFailedError("productId required")
        listing = RecordsClient.fetch_listing(str(listing_id), columns)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        return listing

    @classmethod
    def require_access(cls, claims: dict[str, Any], listing_id: Any, columns: str = "user_id") -> dict[str, Any]:
        """
        Fetch a listing and check the caller owns it or is an admin.

        Raises:
            ValidationFailedError: listing_id missing
            ListingNotFoundError: No such listing
            ForbiddenError: Caller is neither owner nor admin
        """
        if "user_id" not in columns and columns != "*":
            columns = f"user_id,{columns}"
        listing = cls.get_listing(listing_id, columns)
        if not is_authorized(claims, listing.get("user_id")):
            logger.info(f"User {claims.get('userId')} denied access to listing {listing_id}")
            raise ForbiddenError()
        return listing

    @staticmethod
    def approved_feed() -> list[dict[str, Any]]:
        """Approved listings, newest first, with image references in proxy form."""
        feed = []
        for listing in RecordsClient.fetch_approved_feed():
            images = listing.get("images")
            if isinstance(images, list) and images:
                listing = {**listing, "images": [to_proxy_path(img) for img in images]}
            feed.append(listing)
        return feed

    # -------------------------------------------------------------------------
    # Create / Update
    # -------------------------------------------------------------------------

    @staticmethod
    def create_listing(claims: dict[str, Any], raw: dict[str, Any] | None) -> dict[str, Any]:
        """
        Create a pending listing owned by the caller.

        Raises:
            ValidationFailedError: Missing listing object or required fields
            ConflictError: Free listing quota reached
        """
        if not isinstance(raw, dict):
            raise ValidationFailedError("listing object required")

        listing = filter_listing_fields(raw, OWNER_LISTING_FIELDS)
        if not listing.get("name") or not listing.get("category") or not listing.get("price"):
            raise ValidationFailedError("name, category and price are required")
        if "images" in listing:
            _check_images(listing["images"])

        tier = _parse_tier(listing.get("ad_type"))
        user_id = str(claims["userId"])

        if tier is AdTier.FREE:
            active = RecordsClient.count_active_free_listings(user_id)
            if active >= settings.MAX_FREE_ADS:
                raise ConflictError(
                    f"You have reached the limit of {settings.MAX_FREE_ADS} active free ads",
                    details={"active_free_ads": active, "limit": settings.MAX_FREE_ADS},
                )

        listing.update(tier_columns(tier))
        listing.update(
            user_id=user_id,
            status=ListingStatus.PENDING.value,
            admin_approved=False,
            is_featured=False,
            created_at=_now().isoformat(),
        )
        return RecordsClient.insert_listing(listing)

    @classmethod
    def update_listing(cls, claims: dict[str, Any], listing_id: Any, raw: dict[str, Any] | None) -> dict[str, Any]:
        """
        Apply an owner or admin update to a listing.

        Admins: status defaults to approved (or the status they pass) and
        the approval is stamped. Owners: an approved listing becomes edited
        and goes back to review; any other status is kept.

        Raises:
            ValidationFailedError: Missing productId/updates or bad values
            ListingNotFoundError: No such listing
            ForbiddenError: Caller is neither owner nor admin
        """
        if not listing_id or not isinstance(raw, dict):
            raise ValidationFailedError("productId and updates required")

        current = cls.require_access(claims, listing_id, "user_id,status,admin_approved,approved_at")

        if is_admin(claims):
            updates = filter_listing_fields(raw, ADMIN_LISTING_FIELDS)
            status = raw.get("status") or ListingStatus.APPROVED.value
            if status not in _ADMIN_SETTABLE_STATUSES:
                raise ValidationFailedError(f"Invalid status: {status}")
            updates["status"] = status
            updates["admin_approved"] = True
            updates["approved_at"] = updates.get("approved_at") or current.get("approved_at") or _now().isoformat()
        else:
            updates = filter_listing_fields(raw, OWNER_LISTING_FIELDS)
            if current.get("status") == ListingStatus.APPROVED.value:
                updates["status"] = ListingStatus.EDITED.value
            else:
                updates["status"] = current.get("status") or ListingStatus.PENDING.value

        if "images" in updates:
            _check_images(updates["images"])
        if "ad_type" in updates:
            updates.update(tier_columns(_parse_tier(updates["ad_type"])))

        updates["updated_at"] = _now().isoformat()
        updated = RecordsClient.update_listing(str(listing_id), updates)
        if updated is None:
            raise ListingNotFoundError(str(listing_id))
        logger.info(f"Listing {listing_id} updated by {claims.get('role')} {claims.get('userId')} -> {updates['status']}")
        return updated

    # -------------------------------------------------------------------------
    # Admin review
    # -------------------------------------------------------------------------

    @classmethod
    def _require_status(cls, listing_id: Any, expected: ListingStatus, columns: str) -> dict[str, Any]:
        listing = cls.get_listing(listing_id, f"status,{columns}")
        if listing.get("status") != expected.value:
            raise ConflictError(
                f"Product is not {expected.value}",
                details={"product_id": str(listing_id), "status": listing.get("status")},
            )
        return listing

    @classmethod
    def approve_listing(cls, listing_id: Any) -> dict[str, Any]:
        """
        pending -> approved, stamping expiry and promotion windows.

        Raises:
            ValidationFailedError: More images than the tier allows
            ConflictError: Listing is not pending
        """
        listing = cls._require_status(listing_id, ListingStatus.PENDING, "id,ad_type,images")
        tier = _parse_tier(listing.get("ad_type"))

        images = listing.get("images") or []
        if len(images) > tier.max_images:
            raise ValidationFailedError(
                f"Listing has {len(images)} images but the {tier.value} plan allows only {tier.max_images}",
                details={"images": len(images), "limit": tier.max_images},
            )

        now = _now()
        updates = {
            "status": ListingStatus.APPROVED.value,
            "admin_approved": True,
            "approved_at": now.isoformat(),
            "updated_at": now.isoformat(),
            **approval_window(tier, now),
        }
        updated = RecordsClient.update_listing(str(listing_id), updates)
        logger.info(f"Listing {listing_id} approved on {tier.value} tier until {updates['expires_at']}")
        return updated or {**listing, **updates}

    async def reject_listing(self, listing_id: Any) -> ListingDeletionResult:
        """pending -> deleted: images purged, row removed."""
        self._require_status(listing_id, ListingStatus.PENDING, "id")
        return await self.delete_listing_with_images(listing_id)

    @classmethod
    def approve_edit(cls, listing_id: Any) -> dict[str, Any]:
        """
        edited -> approved.

        Expiry, featured and boost windows are left exactly as they were
        when the listing was first approved.
        """
        listing = cls._require_status(listing_id, ListingStatus.EDITED, "id,approved_at")
        now = _now().isoformat()
        updates = {
            "status": ListingStatus.APPROVED.value,
            "admin_approved": True,
            "approved_at": listing.get("approved_at") or now,
            "updated_at": now,
        }
        updated = RecordsClient.update_listing(str(listing_id), updates)
        return updated or {**listing, **updates}

    @classmethod
    def reject_edit(cls, listing_id: Any) -> dict[str, Any]:
        """
        edited -> approved, status only.

        Field values written by the rejected edit are not rolled back; the
        listing's current values become its approved baseline.
        """
        listing = cls._require_status(listing_id, ListingStatus.EDITED, "id")
        updates = {
            "status": ListingStatus.APPROVED.value,
            "admin_approved": True,
            "updated_at": _now().isoformat(),
        }
        updated = RecordsClient.update_listing(str(listing_id), updates)
        logger.info(f"Edit rejected for listing {listing_id}; current values kept")
        return updated or {**listing, **updates}

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def delete_listing_with_images(self, listing_id: Any) -> ListingDeletionResult:
        """
        Compound deletion: every version of every image, then the row.

        Image failures are reported in the result; only failing to delete
        the row itself is fatal.

        Raises:
            ListingNotFoundError: No such listing
            RecordsGatewayError: The row could not be fetched or deleted
        """
        listing = self.get_listing(listing_id, "id,name,images")
        result = ListingDeletionResult(product_id=str(listing_id), product_name=listing.get("name"))

        images = listing.get("images") or []
        if images:
            result.images = await self.images.delete_images(images)
            if result.images.errors:
                logger.warning(f"Some images failed to delete for listing {listing_id}: {result.images.errors}")

        RecordsClient.delete_listing(str(listing_id))
        return result

    async def delete_listing(self, claims: dict[str, Any], listing_id: Any) -> ListingDeletionResult:
        self.require_access(claims, listing_id)
        return await self.delete_listing_with_images(listing_id)

    async def delete_images(
        self,
        claims: dict[str, Any],
        images: Any,
        listing_id: Any = None,
    ) -> ImageDeletionReport:
        """Delete images, checking listing ownership when they belong to one."""
        if not isinstance(images, list):
            raise ValidationFailedError("images array required")
        if listing_id:
            self.require_access(claims, listing_id)
        return await self.images.delete_images(images)

    async def delete_user_with_listings(self, user_id: Any) -> dict[str, Any]:
        """
        Hard-delete a user after compound-deleting every listing they own.

        Returns:
            {"deletedProducts": n, "imageErrors": [...]}
        """
        if not user_id:
            raise ValidationFailedError("userId required")
        if not RecordsClient.fetch_user_by_id(str(user_id)):
            raise UserNotFoundError(str(user_id))

        image_errors: list[str] = []
        owned = RecordsClient.fetch_listings_by_owner(str(user_id), "id")
        for listing in owned:
            result = await self.delete_listing_with_images(listing["id"])
            image_errors.extend(result.images.errors)

        RecordsClient.delete_user(str(user_id))
        logger.info(f"Deleted user {user_id} and {len(owned)} listing(s)")
        return {"deletedProducts": len(owned), "imageErrors": image_errors}
