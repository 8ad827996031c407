# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# The blob client and response cache are process-wide singletons (closed in
# the app lifespan); tests override these providers via
# app.dependency_overrides.
# =============================================================================

from typing import Annotated

from fastapi import Depends

from lib.blob_client import BlobClient
from lib.records_client import RecordsClient
from lib.response_cache import ResponseCache
from core.services.image_service import ImageService
from core.services.listing_service import ListingService
from core.services.maintenance_service import MaintenanceService

_blob_client: BlobClient | None = None
_response_cache: ResponseCache | None = None


def get_records_client() -> type[RecordsClient]:
    """
    Get records client.

    Returns the class itself; every operation is a classmethod over the
    singleton Supabase client.
    """
    return RecordsClient


def get_blob_client() -> BlobClient:
    global _blob_client
    if _blob_client is None:
        _blob_client = BlobClient()
    return _blob_client


def get_response_cache() -> ResponseCache:
    global _response_cache
    if _response_cache is None:
        _response_cache = ResponseCache()
    return _response_cache


async def close_shared_clients() -> None:
    """Release the singleton HTTP and Redis connections (app shutdown)."""
    global _blob_client, _response_cache
    if _blob_client is not None:
        await _blob_client.aclose()
        _blob_client = None
    if _response_cache is not None:
        await _response_cache.aclose()
        _response_cache = None


def get_image_service(blob: BlobClient = Depends(get_blob_client)) -> ImageService:
    return ImageService(blob)


def get_listing_service(images: ImageService = Depends(get_image_service)) -> ListingService:
    return ListingService(images)


def get_maintenance_service(
    listings: ListingService = Depends(get_listing_service),
) -> MaintenanceService:
    return MaintenanceService(listings)


# Type aliases for dependency injection
RecordsDep = Annotated[type[RecordsClient], Depends(get_records_client)]
ImageServiceDep = Annotated[ImageService, Depends(get_image_service)]
ListingServiceDep = Annotated[ListingService, Depends(get_listing_service)]
MaintenanceServiceDep = Annotated[MaintenanceService, Depends(get_maintenance_service)]
ResponseCacheDep = Annotated[ResponseCache, Depends(get_response_cache)]
