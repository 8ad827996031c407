# =============================================================================
# lib/blob_client.py - Blob Service Client (Backblaze B2)
# =============================================================================
# Thin async client for the B2 native API, used for listing images:
# - b2_authorize_account: exchange the key pair for an API context
# - b2_get_upload_url / upload: store a new object
# - b2_list_file_versions / b2_delete_file_version: version-aware deletion
# - /file/<bucket>/<name>: authenticated download
#
# The authorization context is cached process-wide in BlobAuthCache and
# refreshed proactively before it expires. Concurrent refreshes are
# collapsed with a double-checked lock; a redundant refresh under a race
# is harmless.
#
# Usage:
#   from lib.blob_client import BlobClient
#   blob = BlobClient()
#   versions = await blob.list_file_versions("products/123_ab.webp")
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/b2api/v2"
MAX_FILE_COUNT_PER_PAGE = 100


# =============================================================================
# Errors
# =============================================================================

class BlobServiceError(Exception):
    """
    A blob service call returned a non-2xx response.

    Attributes:
        status_code: Upstream HTTP status (None if no response was received)
        body: Upstream response body, for diagnostics
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class BlobAuthError(BlobServiceError):
    """Account authorization failed; the blob subsystem is unavailable."""


class BlobTransportError(BlobServiceError):
    """The blob service could not be reached (DNS, connect, timeout...)."""


class BlobObjectNotFound(BlobServiceError):
    """The requested object does not exist."""


def _json_body(response: httpx.Response, operation: str) -> dict[str, Any]:
    """Decode a 2xx JSON body; anything unreadable is a service error."""
    try:
        data = response.json()
    except ValueError as e:
        raise BlobServiceError(
            f"{operation} returned an unreadable body: {e}",
            status_code=response.status_code,
            body=response.text,
        ) from e
    if not isinstance(data, dict):
        raise BlobServiceError(
            f"{operation} returned an unexpected body",
            status_code=response.status_code,
            body=response.text,
        )
    return data


# =============================================================================
# Authorization context
# =============================================================================

@dataclass(frozen=True)
class BlobAuthContext:
    """Short-lived API context returned by b2_authorize_account."""
    api_url: str
    download_url: str
    authorization_token: str
    obtained_at: float = field(default_factory=time.monotonic)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "BlobAuthContext":
        return cls(
            api_url=data["apiUrl"].rstrip("/"),
            download_url=data["downloadUrl"].rstrip("/"),
            authorization_token=data["authorizationToken"],
        )

    def is_fresh(self, max_age_seconds: float, now: float | None = None) -> bool:
        current = time.monotonic() if now is None else now
        return current - self.obtained_at < max_age_seconds


class BlobAuthCache:
    """
    Process-wide cache of the blob authorization context.

    `get_or_refresh(fetch)` returns the cached context while it is younger
    than `max_age_seconds`, otherwise awaits `fetch()` once and stores the
    result. Callers racing on an expired context wait on the same lock and
    re-check before fetching.
    """

    def __init__(self, max_age_seconds: float | None = None):
        self.max_age_seconds = max_age_seconds if max_age_seconds is not None else settings.b2_auth_max_age_seconds
        self._context: BlobAuthContext | None = None
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop it is first used on; Celery runs each
        # sweep in a fresh loop via asyncio.run
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def peek(self) -> BlobAuthContext | None:
        context = self._context
        if context is not None and context.is_fresh(self.max_age_seconds):
            return context
        return None

    async def get_or_refresh(self, fetch: Callable[[], Awaitable[BlobAuthContext]]) -> BlobAuthContext:
        context = self.peek()
        if context is not None:
            return context

        async with self._get_lock():
            context = self.peek()
            if context is not None:
                return context
            context = await fetch()
            self._context = context
            logger.info("Blob service authorization refreshed")
            return context

    def invalidate(self) -> None:
        self._context = None


# Shared by every BlobClient in the process
blob_auth_cache = BlobAuthCache()


# =============================================================================
# Client
# =============================================================================

@dataclass(frozen=True)
class FileVersion:
    file_name: str
    file_id: str


@dataclass(frozen=True)
class VersionPage:
    """One page of b2_list_file_versions."""
    versions: list[FileVersion]
    next_file_name: str | None
    next_file_id: str | None


@dataclass(frozen=True)
class DownloadedObject:
    content: bytes
    content_type: str
    content_length: str


class BlobClient:
    """
    Async client for the blob service.

    Args:
        auth_cache: Authorization cache (defaults to the process-wide one)
        transport: Optional httpx transport (tests pass httpx.MockTransport)
        bucket_id: Bucket id for list/upload calls
        bucket_name: Bucket name for download URLs
    """

    def __init__(
        self,
        auth_cache: BlobAuthCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        bucket_id: str | None = None,
        bucket_name: str | None = None,
    ):
        self.auth_cache = auth_cache if auth_cache is not None else blob_auth_cache
        self.bucket_id = bucket_id or settings.B2_BUCKET_ID
        self.bucket_name = bucket_name or settings.B2_BUCKET_NAME
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                transport=self._transport,
                timeout=settings.B2_HTTP_TIMEOUT_SECONDS,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "BlobClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    async def _authorize(self) -> BlobAuthContext:
        try:
            response = await self._client().get(
                settings.B2_AUTH_URL,
                auth=(settings.B2_KEY_ID, settings.B2_APP_KEY),
            )
        except httpx.HTTPError as e:
            raise BlobAuthError(f"B2 authorization failed: {e}") from e

        if response.status_code != 200:
            raise BlobAuthError(
                "B2 authorization failed",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return BlobAuthContext.from_response(response.json())
        except (KeyError, ValueError) as e:
            raise BlobAuthError(f"B2 authorization returned an unexpected payload: {e}") from e

    async def authorize(self) -> BlobAuthContext:
        """Return the cached authorization context, refreshing when stale."""
        return await self.auth_cache.get_or_refresh(self._authorize)

    async def _call_api(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON call to <apiUrl>/b2api/v2/<operation>."""
        context = await self.authorize()
        url = f"{context.api_url}{API_PREFIX}/{operation}"
        try:
            response = await self._client().post(
                url,
                json=payload,
                headers={"Authorization": context.authorization_token},
            )
        except httpx.HTTPError as e:
            raise BlobTransportError(f"{operation} failed: {e}") from e

        if response.status_code == 401:
            # Token revoked or expired early; force a refresh on the next call
            self.auth_cache.invalidate()
        if not response.is_success:
            raise BlobServiceError(
                f"{operation} failed",
                status_code=response.status_code,
                body=response.text,
            )
        return _json_body(response, operation)

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    async def upload(self, file_name: str, data: bytes, content_type: str) -> dict[str, Any]:
        """
        Upload an object under `file_name`.

        Requests a fresh upload target for every upload, as B2 upload URLs
        must not be shared between concurrent uploads.

        Returns:
            The b2 file info (fileId, fileName, contentLength, ...)
        """
        target = await self._call_api("b2_get_upload_url", {"bucketId": self.bucket_id})

        try:
            response = await self._client().post(
                target["uploadUrl"],
                content=data,
                headers={
                    "Authorization": target["authorizationToken"],
                    "X-Bz-File-Name": quote(file_name, safe="/"),
                    "Content-Type": content_type,
                    "X-Bz-Content-Sha1": hashlib.sha1(data).hexdigest(),
                },
            )
        except httpx.HTTPError as e:
            raise BlobTransportError(f"Upload failed: {e}") from e

        if not response.is_success:
            raise BlobServiceError("Upload failed", status_code=response.status_code, body=response.text)

        logger.info(f"Uploaded object: {file_name} ({len(data)} bytes)")
        return _json_body(response, "Upload")

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    async def list_file_versions(
        self,
        prefix: str,
        start_file_name: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int = MAX_FILE_COUNT_PER_PAGE,
    ) -> VersionPage:
        """Fetch one page of object versions, ordered by name then upload time."""
        payload: dict[str, Any] = {
            "bucketId": self.bucket_id,
            "startFileName": start_file_name or prefix,
            "maxFileCount": max_file_count,
            "prefix": prefix,
        }
        if start_file_id:
            payload["startFileId"] = start_file_id

        data = await self._call_api("b2_list_file_versions", payload)
        versions = [
            FileVersion(file_name=f["fileName"], file_id=f["fileId"])
            for f in data.get("files") or []
        ]
        return VersionPage(
            versions=versions,
            next_file_name=data.get("nextFileName"),
            next_file_id=data.get("nextFileId"),
        )

    async def delete_file_version(self, file_name: str, file_id: str) -> None:
        await self._call_api("b2_delete_file_version", {"fileName": file_name, "fileId": file_id})

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    def download_url(self, context: BlobAuthContext, file_name: str) -> str:
        return f"{context.download_url}/file/{self.bucket_name}/{file_name}"

    async def download(self, file_name: str) -> DownloadedObject:
        """
        Download an object by name.

        Raises:
            BlobAuthError: Authorization could not be obtained
            BlobTransportError: The download request did not complete
            BlobObjectNotFound: The object does not exist (404)
            BlobServiceError: Any other non-2xx response
        """
        context = await self.authorize()
        url = self.download_url(context, file_name)
        logger.debug(f"Fetching object from {url}")

        try:
            response = await self._client().get(
                url,
                headers={"Authorization": context.authorization_token},
            )
        except httpx.HTTPError as e:
            raise BlobTransportError(f"Network error fetching {file_name}: {e}") from e

        if response.status_code == 404:
            raise BlobObjectNotFound(f"Object not found: {file_name}", status_code=404, body=response.text)
        if response.status_code == 401:
            self.auth_cache.invalidate()
        if not response.is_success:
            raise BlobServiceError(
                f"Download failed for {file_name}",
                status_code=response.status_code,
                body=response.text,
            )

        return DownloadedObject(
            content=response.content,
            content_type=response.headers.get("Content-Type", "application/octet-stream"),
            content_length=response.headers.get("Content-Length", str(len(response.content))),
        )
