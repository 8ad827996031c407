# =============================================================================
# core/models/listing.py - Listing Schemas
# =============================================================================
# These models define the listing (product) contract:
# - ListingStatus: review workflow states
# - AdTier: paid/free category with derived price, duration and image limit
# - Request bodies for create/update/delete/review endpoints
#
# Status flow:
#   pending --(admin approve)--> approved
#   pending --(admin reject)--> deleted (row removed, images purged)
#   approved --(owner edit)--> edited
#   edited --(admin approve edit)--> approved (expiry windows preserved)
#   edited --(admin reject edit)--> approved (status only)
#   any --(owner/admin delete)--> deleted
#   approved + expired paid tier --(sweep)--> free/approved
#   approved + expired free tier --(sweep)--> deleted
# =============================================================================

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ListingStatus(str, Enum):
    """
    Review state of a listing.

    `deleted` is terminal and never stored: reaching it removes the row.
    """
    PENDING = "pending"
    APPROVED = "approved"
    EDITED = "edited"
    DELETED = "deleted"


@dataclass(frozen=True)
class TierTerms:
    price: int
    duration_days: int
    max_images: int


class AdTier(str, Enum):
    """
    Advertising tier of a listing.

    Each tier fixes its price (UGX), how many days it runs once approved,
    and how many images the listing may carry.
    """
    FREE = "free"
    SEVEN_DAYS = "7days"
    THIRTY_DAYS = "30days"
    FEATURED = "featured"

    @property
    def terms(self) -> TierTerms:
        return _TIER_TERMS[self]

    @property
    def price(self) -> int:
        return self.terms.price

    @property
    def duration_days(self) -> int:
        return self.terms.duration_days

    @property
    def max_images(self) -> int:
        return self.terms.max_images

    @property
    def is_paid(self) -> bool:
        return self is not AdTier.FREE

    @classmethod
    def parse(cls, value: Any) -> "AdTier | None":
        """Return the tier for a raw value, or None if it is not a tier."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


_TIER_TERMS: dict[AdTier, TierTerms] = {
    AdTier.FREE: TierTerms(price=0, duration_days=30, max_images=1),
    AdTier.SEVEN_DAYS: TierTerms(price=5000, duration_days=7, max_images=3),
    AdTier.THIRTY_DAYS: TierTerms(price=15000, duration_days=30, max_images=5),
    AdTier.FEATURED: TierTerms(price=50000, duration_days=30, max_images=8),
}

# Demoted listings run for this many days on the free tier
DEMOTED_DURATION_DAYS = AdTier.FREE.duration_days


# =============================================================================
# Request bodies
# =============================================================================

class CreateListingRequest(BaseModel):
    """
    Body of POST /api/create-product.

    Example:
        {"listing": {"name": "Sofa", "category": "furniture", "price": 350000,
                     "images": ["/images/products/1700000000000_ab12cd.webp"],
                     "ad_type": "free"}}
    """
    listing: dict[str, Any] | None = None


class UpdateListingRequest(BaseModel):
    """Body of POST /api/update-product."""
    productId: str | int | None = None
    updates: dict[str, Any] | None = None


class ListingIdRequest(BaseModel):
    """Body of endpoints that act on a single listing."""
    productId: str | int | None = None


class DeleteImagesRequest(BaseModel):
    """
    Body of POST /api/delete-images.

    When productId is given, the caller must own that listing (or be admin).
    """
    images: list[str] | None = None
    productId: str | int | None = Field(default=None)
