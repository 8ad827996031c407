# =============================================================================
# core/services/maintenance_service.py - Listing Expiry Sweep
# =============================================================================
# Daily maintenance over approved listings:
# 1. Paid listings whose expiry has passed are demoted to the free tier and
#    get a fresh free window.
# 2. Free listings whose expiry has passed are compound-deleted.
#
# One listing failing never stops the others; failures are collected into
# the SweepReport. Triggered by Celery beat or the admin-only manual route.
# =============================================================================

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from lib.records_client import RecordsClient, RecordsGatewayError
from core.models.listing import DEMOTED_DURATION_DAYS, AdTier
from core.models.reports import SweepReport
from core.services.listing_service import ListingService, tier_columns
from app.exceptions import MarketplaceException

logger = logging.getLogger(__name__)


def demotion_updates(now: datetime) -> dict[str, Any]:
    """Columns written when an expired paid listing falls back to free."""
    return {
        **tier_columns(AdTier.FREE),
        "ad_duration": DEMOTED_DURATION_DAYS,
        "is_featured": False,
        "featured_until": None,
        "boosted_at": None,
        "boosted_until": None,
        "expires_at": (now + timedelta(days=DEMOTED_DURATION_DAYS)).isoformat(),
        "updated_at": now.isoformat(),
    }


class MaintenanceService:
    """
    Service for scheduled listing maintenance.

    Args:
        listings: Listing service used for compound deletion
    """

    def __init__(self, listings: ListingService):
        self.listings = listings

    def _demote_expired_paid(self, now: datetime, report: SweepReport) -> None:
        try:
            expired = RecordsClient.fetch_expired_listings(paid=True, now=now.isoformat())
        except RecordsGatewayError as e:
            logger.error(f"Sweep could not list expired paid listings: {e.message}")
            report.failures.append({"stage": "demote", "error": e.message})
            return

        for listing in expired:
            listing_id = str(listing["id"])
            try:
                RecordsClient.update_listing(listing_id, demotion_updates(now))
            except RecordsGatewayError as e:
                logger.error(f"Failed to demote listing {listing_id}: {e.message}")
                report.failures.append({"stage": "demote", "productId": listing_id, "error": e.message})
                continue
            logger.info(f"Demoted listing {listing_id} from {listing.get('ad_type')} to free")
            report.demoted.append(listing_id)

    async def _delete_expired_free(self, now: datetime, report: SweepReport) -> None:
        try:
            expired = RecordsClient.fetch_expired_listings(paid=False, now=now.isoformat())
        except RecordsGatewayError as e:
            logger.error(f"Sweep could not list expired free listings: {e.message}")
            report.failures.append({"stage": "delete", "error": e.message})
            return

        for listing in expired:
            listing_id = str(listing["id"])
            try:
                result = await self.listings.delete_listing_with_images(listing_id)
            except (RecordsGatewayError, MarketplaceException) as e:
                logger.error(f"Failed to delete expired listing {listing_id}: {e.message}")
                report.failures.append({"stage": "delete", "productId": listing_id, "error": e.message})
                continue
            if result.images.errors:
                report.failures.append({
                    "stage": "delete-images",
                    "productId": listing_id,
                    "error": "; ".join(result.images.errors),
                })
            report.deleted.append(listing_id)

    async def run_expiry_sweep(self, now: datetime | None = None) -> SweepReport:
        """
        Run both sweep passes once.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            SweepReport with demoted/deleted ids and per-listing failures
        """
        now = now or datetime.now(timezone.utc)
        report = SweepReport()

        logger.info(f"Running listing expiry sweep at {now.isoformat()}")
        self._demote_expired_paid(now, report)
        await self._delete_expired_free(now, report)

        logger.info(
            f"Sweep complete: {len(report.demoted)} demoted, "
            f"{len(report.deleted)} deleted, {len(report.failures)} failure(s)"
        )
        return report
