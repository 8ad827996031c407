# =============================================================================
# tests/test_blob_client.py - Blob Client Tests
# =============================================================================
# This module contains tests for:
# - Authorization caching and refresh
# - Upload, version listing and version deletion calls
# - Download failure classes
#
# Tests run against FakeB2 through httpx.MockTransport; no network.
# =============================================================================

import asyncio
import hashlib

import pytest

from lib.blob_client import (
    BlobAuthCache,
    BlobAuthContext,
    BlobAuthError,
    BlobClient,
    BlobObjectNotFound,
    BlobServiceError,
    BlobTransportError,
)


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# Auth Cache Tests
# =============================================================================

class TestBlobAuthCache:
    """Test the shared authorization cache."""

    def test_context_reused_until_stale(self, b2, auth_cache, blob_client):
        async def scenario():
            first = await blob_client.authorize()
            second = await blob_client.authorize()
            return first, second

        first, second = run(scenario())

        assert first is second
        assert b2.auth_calls == 1

    def test_stale_context_is_refreshed(self, b2):
        cache = BlobAuthCache(max_age_seconds=0)
        client = BlobClient(auth_cache=cache, transport=b2.transport())

        async def scenario():
            await client.authorize()
            await client.authorize()

        run(scenario())

        assert b2.auth_calls == 2

    def test_concurrent_callers_share_one_refresh(self, b2, blob_client):
        async def scenario():
            await asyncio.gather(*(blob_client.authorize() for _ in range(5)))

        run(scenario())

        assert b2.auth_calls == 1

    def test_freshness_uses_age(self):
        context = BlobAuthContext("https://api", "https://dl", "tok", obtained_at=100.0)
        assert context.is_fresh(60, now=150.0)
        assert not context.is_fresh(60, now=170.0)

    def test_auth_failure_raises(self, b2, blob_client):
        b2.auth_status = 401

        with pytest.raises(BlobAuthError) as exc_info:
            run(blob_client.authorize())

        assert exc_info.value.status_code == 401

    def test_invalidate_forces_refresh(self, b2, auth_cache, blob_client):
        run(blob_client.authorize())
        auth_cache.invalidate()
        run(blob_client.authorize())

        assert b2.auth_calls == 2


# =============================================================================
# Object Operation Tests
# =============================================================================

class TestObjectOperations:
    """Test upload, listing, deletion and download."""

    def test_upload_sends_name_and_sha1(self, b2, blob_client):
        data = b"\x89PNG fake"
        run(blob_client.upload("products/1_abc.png", data, "image/png"))

        upload_request = b2.requests[-1]
        assert upload_request.headers["X-Bz-File-Name"] == "products/1_abc.png"
        assert upload_request.headers["X-Bz-Content-Sha1"] == hashlib.sha1(data).hexdigest()
        assert upload_request.headers["Authorization"] == "upload-token"
        assert b2.version_count("products/1_abc.png") == 1

    def test_list_versions_pages(self, b2, blob_client):
        for _ in range(3):
            b2.put("products/a.webp")

        page = run(blob_client.list_file_versions("products/a.webp", max_file_count=2))

        assert len(page.versions) == 2
        assert page.next_file_name == "products/a.webp"
        assert page.next_file_id is not None

    def test_delete_version(self, b2, blob_client):
        file_id = b2.put("products/a.webp")

        run(blob_client.delete_file_version("products/a.webp", file_id))

        assert b2.version_count("products/a.webp") == 0

    def test_unreadable_success_body_is_service_error(self, b2, blob_client):
        file_id = b2.put("products/a.webp")
        b2.garbled_deletes.add(file_id)

        with pytest.raises(BlobServiceError) as exc:
            run(blob_client.delete_file_version("products/a.webp", file_id))

        assert exc.value.status_code == 200
        assert "unreadable" in exc.value.message

    def test_download_returns_content(self, b2, blob_client):
        b2.put("products/a.webp", b"bytes", "image/webp")

        obj = run(blob_client.download("products/a.webp"))

        assert obj.content == b"bytes"
        assert obj.content_type == "image/webp"

    def test_download_missing_object(self, blob_client):
        with pytest.raises(BlobObjectNotFound):
            run(blob_client.download("products/missing.webp"))

    def test_download_other_status(self, b2, blob_client):
        b2.download_status["products/a.webp"] = 500

        with pytest.raises(BlobServiceError) as exc_info:
            run(blob_client.download("products/a.webp"))

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, BlobObjectNotFound)

    def test_download_network_error(self, b2, blob_client):
        b2.unreachable.add("products/a.webp")

        with pytest.raises(BlobTransportError):
            run(blob_client.download("products/a.webp"))

    def test_download_url_uses_bucket_name(self, blob_client):
        context = BlobAuthContext("https://api", "https://f000.example", "tok")
        assert blob_client.download_url(context, "products/a.webp") == (
            "https://f000.example/file/tesatiki-products/products/a.webp"
        )
