# =============================================================================
# app/routers/products.py - Listing Endpoints
# =============================================================================
# Public feed plus owner-scoped listing and image mutations:
# - GET  /api/get-products      cached approved feed (X-Cache: HIT|MISS)
# - POST /api/create-product    always created as pending
# - POST /api/update-product    owner or admin
# - POST /api/delete-product    owner or admin, compound deletion
# - POST /api/delete-images     owner or admin when tied to a listing
# - POST /api/upload-image      multipart, one image field named "file"
# =============================================================================

import json
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, Response, UploadFile

from app.auth import AuthUser, get_current_user, get_current_user_optional
from app.config import settings
from app.dependencies import ImageServiceDep, ListingServiceDep, ResponseCacheDep
from app.exceptions import FileTooLargeError, ValidationFailedError
from core.models.listing import (
    CreateListingRequest,
    DeleteImagesRequest,
    ListingIdRequest,
    UpdateListingRequest,
)
from core.services.image_service import ALLOWED_CONTENT_TYPES
from lib.response_cache import CachedResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Products"])

FEED_CACHE_KEY = "feed:/api/get-products"


def _feed_headers(cache_status: str) -> dict[str, str]:
    return {
        "Cache-Control": f"public, max-age={settings.PRODUCT_CACHE_TTL_SECONDS}",
        "X-Cache": cache_status,
    }


# =============================================================================
# Public feed
# =============================================================================

@router.get("/api/get-products")
async def get_products(
    request: Request,
    background_tasks: BackgroundTasks,
    listings: ListingServiceDep,
    cache: ResponseCacheDep,
):
    """
    Approved listings, newest first, image references in proxy form.

    Served from the response cache for PRODUCT_CACHE_TTL_SECONDS; the
    X-Cache header says whether this response came from the cache.
    """
    cache_key = f"{FEED_CACHE_KEY}?{request.url.query}" if request.url.query else FEED_CACHE_KEY

    cached = await cache.get(cache_key)
    if cached is not None:
        logger.debug("Feed cache HIT")
        return Response(
            content=cached.body,
            status_code=cached.status_code,
            media_type="application/json",
            headers=_feed_headers("HIT"),
        )

    feed = listings.approved_feed()
    body = json.dumps(feed, default=str).encode("utf-8")

    background_tasks.add_task(
        cache.put,
        cache_key,
        CachedResponse(body=body, headers={"content-type": "application/json"}),
        settings.PRODUCT_CACHE_TTL_SECONDS,
    )
    return Response(content=body, media_type="application/json", headers=_feed_headers("MISS"))


# =============================================================================
# Listing mutations
# =============================================================================

@router.post("/api/create-product")
async def create_product(
    body: CreateListingRequest,
    listings: ListingServiceDep,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """
    Create a listing owned by the caller.

    Status is always pending; price/duration come from the ad tier.

    Raises:
        400: Missing listing or required fields, unknown ad tier
        409: Free listing quota reached
    """
    product = listings.create_listing(user.claims, body.listing)
    return {"success": True, "product": product}


@router.post("/api/update-product")
async def update_product(
    body: UpdateListingRequest,
    listings: ListingServiceDep,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """
    Update a listing.

    Owners never self-approve: editing an approved listing sends it back to
    review as "edited". Admin updates approve the listing.
    """
    product = listings.update_listing(user.claims, body.productId, body.updates)
    return {"success": True, "product": product}


@router.post("/api/delete-product")
async def delete_product(
    body: ListingIdRequest,
    listings: ListingServiceDep,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """Delete every image version, then the listing row."""
    result = await listings.delete_listing(user.claims, body.productId)
    return result.to_response()


@router.post("/api/delete-images")
async def delete_images(
    body: DeleteImagesRequest,
    listings: ListingServiceDep,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    report = await listings.delete_images(user.claims, body.images, body.productId)
    return report.to_response()


# =============================================================================
# Upload
# =============================================================================

@router.post("/api/upload-image")
async def upload_image(
    images: ImageServiceDep,
    file: Annotated[Optional[UploadFile], File(description="Image file")] = None,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
) -> dict:
    """
    Store one image and return its proxy path.

    Raises:
        400: Missing file or a type outside ALLOWED_CONTENT_TYPES (no SVG)
        413: File exceeds MAX_UPLOAD_SIZE_MB
    """
    if file is None or (file.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailedError("Invalid file")

    content = await file.read()
    if len(content) > settings.max_upload_size_bytes:
        raise FileTooLargeError(len(content) / (1024 * 1024), settings.MAX_UPLOAD_SIZE_MB)

    url = await images.upload_image(content, file.content_type)
    logger.info(f"Uploaded {url} ({len(content)} bytes) for {user.user_id if user else 'anonymous'}")
    return {"success": True, "url": url}
