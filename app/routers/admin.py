# =============================================================================
# app/routers/admin.py - Admin Endpoints
# =============================================================================
# User management and listing review. Every route requires a token whose
# signed role is "admin" (401 without a token, 403 for other roles).
#
# Review transitions:
#   approve-product  pending -> approved (tier windows stamped)
#   reject-product   pending -> deleted  (compound deletion)
#   approve-edit     edited  -> approved (windows preserved)
#   reject-edit      edited  -> approved (status only, current values kept)
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth import AuthUser, require_admin
from app.dependencies import ListingServiceDep
from core.models.listing import ListingIdRequest
from core.models.user import AdminResetPasswordRequest, AdminUserRequest
from core.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# =============================================================================
# Users
# =============================================================================

@router.post("/reset-password")
async def reset_password(
    body: AdminResetPasswordRequest,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    UserService.admin_reset_password(body.userId, body.newPassword)
    return {"success": True}


@router.post("/verify-user")
async def verify_user(
    body: AdminUserRequest,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    UserService.set_verified(body.userId, True)
    return {"success": True}


@router.post("/unverify-user")
async def unverify_user(
    body: AdminUserRequest,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    UserService.set_verified(body.userId, False)
    return {"success": True}


@router.post("/delete-user")
async def delete_user(
    body: AdminUserRequest,
    listings: ListingServiceDep,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    """
    Hard-delete a user and compound-delete every listing they own.

    Image deletion failures are reported, not fatal.
    """
    result = await listings.delete_user_with_listings(body.userId)
    logger.info(f"Admin {admin.user_id} deleted user {body.userId}")
    return {"success": True, **result}


# =============================================================================
# Listing review
# =============================================================================

@router.post("/approve-product")
async def approve_product(
    body: ListingIdRequest,
    listings: ListingServiceDep,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    """
    Approve a pending listing.

    Raises:
        400: More images than the listing's tier allows
        409: Listing is not pending
    """
    return {"success": True, "product": listings.approve_listing(body.productId)}


@router.post("/reject-product")
async def reject_product(
    body: ListingIdRequest,
    listings: ListingServiceDep,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    result = await listings.reject_listing(body.productId)
    return result.to_response()


@router.post("/approve-edit")
async def approve_edit(
    body: ListingIdRequest,
    listings: ListingServiceDep,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    return {"success": True, "product": listings.approve_edit(body.productId)}


@router.post("/reject-edit")
async def reject_edit(
    body: ListingIdRequest,
    listings: ListingServiceDep,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    return {"success": True, "product": listings.reject_edit(body.productId)}
