# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains the marketplace schemas:
# - user.py: Auth, profile and admin user request bodies
# - listing.py: Listing status, ad tiers and listing request bodies
# - reports.py: Results of best-effort deletion and the expiry sweep
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# User Models
# -----------------------------------------------------------------------------
from .user import (
    AdminResetPasswordRequest,
    AdminUserRequest,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserRole,
)

# -----------------------------------------------------------------------------
# Listing Models
# -----------------------------------------------------------------------------
from .listing import (
    AdTier,
    CreateListingRequest,
    DeleteImagesRequest,
    ListingIdRequest,
    ListingStatus,
    TierTerms,
    UpdateListingRequest,
)

# -----------------------------------------------------------------------------
# Reports
# -----------------------------------------------------------------------------
from .reports import (
    ImageDeletionReport,
    ListingDeletionResult,
    SweepReport,
)

__all__ = [
    # User
    "AdminResetPasswordRequest",
    "AdminUserRequest",
    "ChangePasswordRequest",
    "LoginRequest",
    "RegisterRequest",
    "UpdateProfileRequest",
    "UserRole",
    # Listing
    "AdTier",
    "CreateListingRequest",
    "DeleteImagesRequest",
    "ListingIdRequest",
    "ListingStatus",
    "TierTerms",
    "UpdateListingRequest",
    # Reports
    "ImageDeletionReport",
    "ListingDeletionResult",
    "SweepReport",
]
