# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines scheduled maintenance tasks.
#
# Tasks:
# - run_listing_expiry_sweep: Demote expired paid listings, delete expired
#   free listings (scheduled daily by beat, see workers/config.py)
# =============================================================================

import asyncio
import logging
from typing import Any

from celery import shared_task

logger = logging.getLogger(__name__)


async def _run_sweep() -> dict[str, Any]:
    from lib.blob_client import BlobClient
    from core.services.image_service import ImageService
    from core.services.listing_service import ListingService
    from core.services.maintenance_service import MaintenanceService

    # Fresh HTTP client per run; asyncio.run gives every run its own loop
    async with BlobClient() as blob:
        maintenance = MaintenanceService(ListingService(ImageService(blob)))
        report = await maintenance.run_expiry_sweep()
    return report.to_response()


# =============================================================================
# Listing Expiry Sweep
# =============================================================================

@shared_task(bind=True, name="workers.tasks.run_listing_expiry_sweep")
def run_listing_expiry_sweep(self) -> dict[str, Any]:
    """
    Run the daily listing expiry sweep.

    Per-listing failures are collected in the result rather than raised, so
    one bad listing never fails the whole task.

    Returns:
        Dict with:
        - success: bool (no per-listing failures)
        - message: str
        - demoted: Number of paid listings moved to the free tier
        - deleted: Number of free listings purged
        - failures: [{"stage", "productId"?, "error"}]
    """
    logger.info(f"Starting listing expiry sweep [{self.request.id}]")
    result = asyncio.run(_run_sweep())

    if result["failures"]:
        logger.warning(f"Sweep finished with {len(result['failures'])} failure(s)")
    return result
