# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable building blocks:
# - credentials.py: Password policy, hashing and signed bearer tokens
# - validators.py: Phone/name sanitizers and listing field allow-lists
# - records_client.py: Typed Supabase wrapper for users and listings
# - blob_client.py: Backblaze B2 native API client with shared auth cache
# - response_cache.py: Redis-backed cache for feed and image responses
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.records_client import RecordsClient, RecordsGatewayError
from lib.blob_client import BlobClient, BlobServiceError, blob_auth_cache
from lib.response_cache import CachedResponse, ResponseCache

__all__ = [
    # Records
    "RecordsClient",
    "RecordsGatewayError",
    # Blob storage
    "BlobClient",
    "BlobServiceError",
    "blob_auth_cache",
    # Cache
    "CachedResponse",
    "ResponseCache",
]
