# =============================================================================
# tests/test_records_client.py - Records Client Tests
# =============================================================================
# Tests use the in-memory FakeSupabase installed as the client singleton.
# =============================================================================

import pytest

from lib.records_client import RecordsClient, RecordsGatewayError, strip_credentials


class TestUsers:
    """Test user row operations."""

    def test_insert_and_fetch_by_phone(self, records):
        created = RecordsClient.insert_user({"phone": "+256701234567", "password_hash": "x"})

        fetched = RecordsClient.fetch_user_by_phone("+256701234567")

        assert fetched["id"] == created["id"]
        assert RecordsClient.fetch_user_by_phone("+256709999999") is None

    def test_update_returns_none_for_missing_user(self, records):
        assert RecordsClient.update_user("missing", {"full_name": "X"}) is None

    def test_strip_credentials(self):
        user = {"id": "u", "phone": "+256701234567", "password": "old", "password_hash": "new"}
        assert strip_credentials(user) == {"id": "u", "phone": "+256701234567"}
        assert strip_credentials(None) is None


class TestListings:
    """Test listing queries."""

    def test_feed_is_approved_only_newest_first_with_owner(self, records, owner):
        records.add_listing(user_id=owner["id"], status="approved", created_at="2026-01-01T00:00:00+00:00")
        newest = records.add_listing(user_id=owner["id"], status="approved", created_at="2026-02-01T00:00:00+00:00")
        records.add_listing(user_id=owner["id"], status="pending")

        feed = RecordsClient.fetch_approved_feed()

        assert [row["id"] for row in feed][0] == newest["id"]
        assert len(feed) == 2
        assert feed[0]["users"]["full_name"] == "Jane Doe"
        assert "phone" not in feed[0]["users"]
        assert "status" not in feed[0]

    def test_count_active_free_listings(self, records, owner):
        records.add_listing(user_id=owner["id"], status="pending", ad_type="free")
        records.add_listing(user_id=owner["id"], status="approved", ad_type="free")
        records.add_listing(user_id=owner["id"], status="approved", ad_type="7days")
        records.add_listing(user_id="someone-else", status="approved", ad_type="free")

        assert RecordsClient.count_active_free_listings(owner["id"]) == 2

    def test_fetch_expired_splits_paid_and_free(self, records):
        past = "2026-01-01T00:00:00+00:00"
        future = "2099-01-01T00:00:00+00:00"
        paid = records.add_listing(status="approved", ad_type="featured", expires_at=past)
        free = records.add_listing(status="approved", ad_type="free", expires_at=past)
        records.add_listing(status="approved", ad_type="free", expires_at=future)
        records.add_listing(status="pending", ad_type="free", expires_at=past)

        now = "2026-06-01T00:00:00+00:00"

        assert [r["id"] for r in RecordsClient.fetch_expired_listings(paid=True, now=now)] == [paid["id"]]
        assert [r["id"] for r in RecordsClient.fetch_expired_listings(paid=False, now=now)] == [free["id"]]


class TestGatewayErrors:
    """Upstream failures surface as RecordsGatewayError with details."""

    def test_failure_carries_upstream_details(self, records):
        records.fail("products", "select")

        with pytest.raises(RecordsGatewayError) as exc_info:
            RecordsClient.fetch_approved_feed()

        error = exc_info.value
        assert error.message == "Failed to fetch products"
        assert error.code == "FETCH_FEED_FAILED"
        assert error.details["upstream"]["code"] == "XX000"

    def test_delete_failure_is_not_swallowed(self, records):
        listing = records.add_listing()
        records.fail("products", "delete")

        with pytest.raises(RecordsGatewayError):
            RecordsClient.delete_listing(str(listing["id"]))

        assert records.listing(listing["id"]) is not None
