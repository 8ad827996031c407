# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Swaps the records, blob and cache backends for in-memory fakes
# - Provides an API client and signed tokens for a user, another user and
#   an admin
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("B2_KEY_ID", "test-key-id")
os.environ.setdefault("B2_APP_KEY", "test-app-key")
os.environ.setdefault("B2_BUCKET_ID", "test-bucket-id")
os.environ.setdefault("B2_BUCKET_NAME", "tesatiki-products")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-0123456789abcdef")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from lib.blob_client import BlobAuthCache, BlobClient
from lib.credentials import sign_token
from lib.records_client import RecordsClient
from core.services.image_service import ImageService
from core.services.listing_service import ListingService
from app.dependencies import get_blob_client, get_response_cache
from tests.fakes import FakeB2, FakeSupabase, InMemoryResponseCache


# =============================================================================
# Backends
# =============================================================================

@pytest.fixture
def records(monkeypatch):
    """In-memory records service installed as the RecordsClient singleton."""
    fake = FakeSupabase()
    monkeypatch.setattr(RecordsClient, "_instance", fake)
    return fake


@pytest.fixture
def b2():
    return FakeB2()


@pytest.fixture
def auth_cache():
    return BlobAuthCache(max_age_seconds=3600)


@pytest.fixture
def blob_client(b2, auth_cache):
    return BlobClient(auth_cache=auth_cache, transport=b2.transport())


@pytest.fixture
def image_service(blob_client):
    return ImageService(blob_client)


@pytest.fixture
def listing_service(image_service):
    return ListingService(image_service)


@pytest.fixture
def response_cache():
    return InMemoryResponseCache()


# =============================================================================
# Identities
# =============================================================================

@pytest.fixture
def owner(records):
    return records.add_user(phone="+256701234567", full_name="Jane Doe")


@pytest.fixture
def other_user(records):
    return records.add_user(phone="+256709876543", full_name="John Roe")


@pytest.fixture
def admin_user(records):
    return records.add_user(phone="+256700000001", full_name="Site Admin", role="admin")


def bearer(user: dict) -> dict[str, str]:
    token = sign_token({"userId": user["id"], "role": user.get("role", "user")})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner_headers(owner):
    return bearer(owner)


@pytest.fixture
def other_headers(other_user):
    return bearer(other_user)


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


# =============================================================================
# API client
# =============================================================================

@pytest.fixture
def client(records, b2, auth_cache, response_cache):
    """
    TestClient against the real app with fake backends.

    A BlobClient is built per request so no httpx client outlives the
    event loop that created it.
    """
    from app.main import app

    async def request_blob_client():
        async with BlobClient(auth_cache=auth_cache, transport=b2.transport()) as blob:
            yield blob

    app.dependency_overrides[get_blob_client] = request_blob_client
    app.dependency_overrides[get_response_cache] = lambda: response_cache

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
