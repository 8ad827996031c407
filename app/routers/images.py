# =============================================================================
# app/routers/images.py - Image Proxy
# =============================================================================
# GET /images/<path> serves listing images from the blob service so clients
# never see raw storage URLs. Responses are immutable and cached for a year.
# =============================================================================

import logging

from fastapi import APIRouter, BackgroundTasks, Request, Response

from app.config import settings
from app.dependencies import ImageServiceDep, ResponseCacheDep
from core.services.image_service import validate_proxy_path
from lib.response_cache import CachedResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Images"])


def _image_headers(file_path: str, content_type: str, cache_status: str) -> dict[str, str]:
    return {
        "Content-Type": content_type,
        "Cache-Control": f"public, max-age={settings.IMAGE_CACHE_TTL_SECONDS}, immutable",
        "Access-Control-Allow-Origin": "*",
        "X-Content-Type-Options": "nosniff",
        "X-Cache": cache_status,
        "X-Image-Path": file_path,
    }


@router.get("/images/{file_path:path}")
async def get_image(
    file_path: str,
    request: Request,
    background_tasks: BackgroundTasks,
    images: ImageServiceDep,
    cache: ResponseCacheDep,
):
    """
    Proxy one image from the blob service.

    Raises:
        400: Path traversal attempt (no backend call is made)
        404: Image not found
        502: Network failure or other blob service error (status echoed)
        503: Blob service authorization failed
    """
    validate_proxy_path(file_path)

    cache_key = f"image:{request.url.path}"
    cached = await cache.get(cache_key)
    if cached is not None:
        logger.info(f"[IMG] Cache HIT: {file_path}")
        content_type = cached.headers.get("content-type", "application/octet-stream")
        return Response(
            content=cached.body,
            status_code=cached.status_code,
            headers=_image_headers(file_path, content_type, "HIT"),
        )

    obj = await images.fetch_image(file_path)
    content_type = obj.content_type or "application/octet-stream"

    background_tasks.add_task(
        cache.put,
        cache_key,
        CachedResponse(body=obj.content, headers={"content-type": content_type}),
        settings.IMAGE_CACHE_TTL_SECONDS,
    )
    return Response(content=obj.content, headers=_image_headers(file_path, content_type, "MISS"))
