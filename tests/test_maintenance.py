# =============================================================================
# tests/test_maintenance.py - Listing Expiry Sweep Tests
# =============================================================================

import asyncio
from datetime import datetime, timezone

import pytest

from core.services.maintenance_service import MaintenanceService

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)
PAST = "2026-05-01T00:00:00+00:00"
FUTURE = "2026-12-01T00:00:00+00:00"


@pytest.fixture
def maintenance(listing_service):
    return MaintenanceService(listing_service)


def sweep(maintenance):
    return asyncio.run(maintenance.run_expiry_sweep(now=NOW))


class TestDemotion:
    """Expired paid listings fall back to the free tier."""

    def test_expired_paid_listing_is_demoted(self, records, maintenance):
        listing = records.add_listing(
            status="approved", ad_type="featured", ad_price=50000, is_featured=True,
            featured_until=PAST, boosted_at=PAST, boosted_until=PAST, expires_at=PAST,
        )

        report = sweep(maintenance)

        row = records.listing(listing["id"])
        assert report.demoted == [str(listing["id"])]
        assert row["ad_type"] == "free"
        assert row["ad_price"] == 0
        assert row["ad_duration"] == 30
        assert row["is_featured"] is False
        assert row["featured_until"] is None
        assert row["boosted_at"] is None
        assert row["boosted_until"] is None
        assert row["expires_at"] == "2026-07-01T00:00:00+00:00"
        assert row["status"] == "approved"

    def test_unexpired_and_unapproved_are_left_alone(self, records, maintenance):
        records.add_listing(status="approved", ad_type="7days", expires_at=FUTURE)
        records.add_listing(status="edited", ad_type="7days", expires_at=PAST)

        report = sweep(maintenance)

        assert report.demoted == []
        assert report.deleted == []


class TestFreeExpiry:
    """Expired free listings are compound-deleted."""

    def test_expired_free_listing_and_images_are_removed(self, records, b2, maintenance):
        b2.put("products/a.webp")
        b2.put("products/a.webp")
        listing = records.add_listing(
            status="approved", ad_type="free", expires_at=PAST, images=["/images/products/a.webp"],
        )

        report = sweep(maintenance)

        assert report.deleted == [str(listing["id"])]
        assert records.listing(listing["id"]) is None
        assert b2.objects == {}
        assert report.success

    def test_image_failure_is_listed_but_record_is_gone(self, records, b2, maintenance):
        bad = b2.put("products/a.webp")
        b2.failing_deletes.add(bad)
        listing = records.add_listing(
            status="approved", ad_type="free", expires_at=PAST, images=["/images/products/a.webp"],
        )

        report = sweep(maintenance)

        assert records.listing(listing["id"]) is None
        assert report.failures[0]["stage"] == "delete-images"
        assert report.failures[0]["productId"] == str(listing["id"])


class TestIsolation:
    """One failing listing never stops the sweep."""

    def test_demote_failure_does_not_block_deletions(self, records, maintenance):
        records.add_listing(status="approved", ad_type="30days", expires_at=PAST)
        free = records.add_listing(status="approved", ad_type="free", expires_at=PAST)
        records.fail("products", "update")

        report = sweep(maintenance)

        assert report.demoted == []
        assert report.deleted == [str(free["id"])]
        assert report.failures[0]["stage"] == "demote"
        assert not report.success

    def test_delete_failure_is_per_listing(self, records, maintenance):
        records.add_listing(status="approved", ad_type="free", expires_at=PAST)
        records.add_listing(status="approved", ad_type="free", expires_at=PAST)
        records.fail("products", "delete")

        report = sweep(maintenance)

        assert report.deleted == []
        assert len(report.failures) == 2
        assert len(records.tables["products"]) == 2

    def test_response_shape(self, records, maintenance):
        report = sweep(maintenance).to_response()

        assert report == {
            "success": True,
            "message": "Ad expiry and cleanup completed",
            "demoted": 0,
            "deleted": 0,
            "failures": [],
        }
