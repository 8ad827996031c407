# =============================================================================
# core/services/image_service.py - Listing Image Lifecycle
# =============================================================================
# Handles listing images stored in the blob service:
# - upload under a collision-resistant name, returning an internal proxy path
# - proxy reads with path validation and distinct failure classes
# - deletion of every historical version of every referenced image
#
# Consumers only ever see proxy paths (/images/products/<name>), never raw
# storage URLs.
# =============================================================================

import logging
import secrets
import string
import time
from urllib.parse import unquote, urlsplit

from lib.blob_client import (
    BlobAuthError,
    BlobClient,
    BlobObjectNotFound,
    BlobServiceError,
    BlobTransportError,
    DownloadedObject,
    FileVersion,
)
from core.models.reports import ImageDeletionReport
from app.exceptions import (
    BlobAuthUnavailableError,
    BlobNetworkError,
    BlobUpstreamError,
    ImageNotFoundError,
    ImageUploadError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

PROXY_PREFIX = "/images/"
UPLOAD_NAMESPACE = "products"

# Guards against malformed continuation data looping forever
MAX_VERSION_PAGES = 50

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

_EXTENSIONS = {
    "image/webp": "webp",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/avif": "avif",
}

# Raster formats only; SVG can carry script and is served from the API origin
ALLOWED_CONTENT_TYPES = frozenset(_EXTENSIONS)

# Download URLs look like https://<host>/file/<bucket>/<object name>
_STORAGE_FILE_PREFIX = "/file/"


def _object_name_from_url(url: str) -> str | None:
    """Object name inside an absolute proxy or storage URL, if it has one."""
    path = unquote(urlsplit(url).path)
    if path.startswith(PROXY_PREFIX):
        return path[len(PROXY_PREFIX):] or None
    if path.startswith(_STORAGE_FILE_PREFIX):
        _bucket, _, name = path[len(_STORAGE_FILE_PREFIX):].partition("/")
        return name or None
    return None


def object_name_from_reference(reference: str) -> str:
    """
    Derive the storage object name from an image reference.

    Accepts proxy paths (/images/products/x.webp), absolute proxy URLs,
    raw storage download URLs (.../file/<bucket>/products/x.webp) and bare
    object names.
    """
    if reference.startswith(PROXY_PREFIX):
        return reference[len(PROXY_PREFIX):]
    if "://" in reference:
        return _object_name_from_url(reference) or reference
    return reference


def to_proxy_path(reference: object) -> object:
    """
    Rewrite a raw image reference into proxy form.

    Non-string values and references outside the products namespace
    (avatars, external URLs) are returned unchanged.
    """
    if not isinstance(reference, str):
        return reference
    if reference.startswith(PROXY_PREFIX):
        return reference
    name = _object_name_from_url(reference) if "://" in reference else reference
    if name and name.startswith(f"{UPLOAD_NAMESPACE}/"):
        return f"{PROXY_PREFIX}{name}"
    return reference


def validate_proxy_path(file_path: str) -> str:
    """
    Check a proxied object path before any backend call.

    Raises:
        ValidationFailedError: Empty path, parent-directory segment, or
            absolute path marker
    """
    if not file_path or ".." in file_path or file_path.startswith("/"):
        logger.error(f"[IMG] Invalid file path: {file_path!r}")
        raise ValidationFailedError("Invalid file path", details={"path": file_path})
    return file_path


def generate_object_name(content_type: str) -> str:
    """products/<epoch-ms>_<random suffix>.<ext>"""
    extension = _EXTENSIONS.get(content_type.lower(), "webp")
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(8))
    return f"{UPLOAD_NAMESPACE}/{time.time_ns() // 1_000_000}_{suffix}.{extension}"


class ImageService:
    """
    Service for listing image operations.

    Args:
        blob: Blob service client (shares the process-wide auth cache)
    """

    def __init__(self, blob: BlobClient):
        self.blob = blob

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    async def upload_image(self, data: bytes, content_type: str) -> str:
        """
        Store an image and return its proxy path.

        Args:
            data: Image bytes
            content_type: Client-declared content type (image/*)

        Returns:
            "/images/products/<name>"

        Raises:
            BlobAuthUnavailableError: Blob authorization failed
            ImageUploadError: Upload target or upload call failed
        """
        object_name = generate_object_name(content_type)
        try:
            await self.blob.upload(object_name, data, content_type)
        except BlobAuthError as e:
            raise BlobAuthUnavailableError(e.message) from e
        except BlobServiceError as e:
            logger.error(f"Image upload failed: {e.message} ({e.status_code})")
            raise ImageUploadError(e.message, details={"status": e.status_code, "body": e.body}) from e

        return f"{PROXY_PREFIX}{object_name}"

    # -------------------------------------------------------------------------
    # Proxy read
    # -------------------------------------------------------------------------

    async def fetch_image(self, file_path: str) -> DownloadedObject:
        """
        Fetch an image for the proxy.

        Each failure class maps to its own error so operators can tell them
        apart from the response alone.

        Raises:
            ValidationFailedError: 400, path traversal attempt
            ImageNotFoundError: 404, object missing
            BlobAuthUnavailableError: 503, blob authorization failed
            BlobNetworkError: 502, blob service unreachable
            BlobUpstreamError: 502, any other non-2xx (status echoed)
        """
        validate_proxy_path(file_path)
        logger.info(f"[IMG] Proxy request: {file_path}")

        try:
            obj = await self.blob.download(file_path)
        except BlobAuthError as e:
            logger.error(f"[IMG] B2 auth failed: {e.message}")
            raise BlobAuthUnavailableError(e.message) from e
        except BlobTransportError as e:
            logger.error(f"[IMG] Network error: {e.message}")
            raise BlobNetworkError(e.message) from e
        except BlobObjectNotFound as e:
            logger.error(f"[IMG] File not found: {file_path}")
            raise ImageNotFoundError(file_path) from e
        except BlobServiceError as e:
            logger.error(f"[IMG] B2 error {e.status_code}: {e.body}")
            raise BlobUpstreamError(e.status_code, file_path) from e

        logger.info(f"[IMG] Fetched from B2: {file_path}")
        return obj

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def list_all_versions(self, object_name: str) -> list[FileVersion]:
        """
        Enumerate every stored version of exactly `object_name`.

        Version listings are ordered by name, so a page can spill into
        other names sharing the prefix; those are skipped, and paging stops
        once the continuation token points at a different name. Versions are
        unique by file id even if the backend repeats a page.
        """
        versions: dict[str, FileVersion] = {}
        start_name: str | None = object_name
        start_id: str | None = None

        for _ in range(MAX_VERSION_PAGES):
            page = await self.blob.list_file_versions(
                prefix=object_name,
                start_file_name=start_name,
                start_file_id=start_id,
            )
            if not page.versions:
                break

            for version in page.versions:
                if version.file_name == object_name:
                    versions.setdefault(version.file_id, version)

            if not (page.next_file_name and page.next_file_id):
                break
            if page.next_file_name != object_name:
                break
            if (page.next_file_name, page.next_file_id) == (start_name, start_id):
                logger.warning(f"Version listing of {object_name} repeated its continuation; stopping")
                break
            start_name, start_id = page.next_file_name, page.next_file_id
        else:
            logger.warning(f"Stopped listing versions of {object_name} after {MAX_VERSION_PAGES} pages")

        return list(versions.values())

    async def _delete_one(self, reference: str) -> ImageDeletionReport:
        report = ImageDeletionReport()
        object_name = object_name_from_reference(reference)

        try:
            versions = await self.list_all_versions(object_name)
        except BlobServiceError as e:
            report.errors.append(f"Failed to list versions for {object_name}: {e.body or e.message}")
            return report
        except (KeyError, ValueError) as e:
            report.errors.append(f"Unreadable version listing for {object_name}: {e}")
            return report

        if not versions:
            logger.info(f"File not found in B2: {object_name}")
            return report

        logger.info(f"Deleting {len(versions)} version(s) of: {object_name}")
        for version in versions:
            try:
                await self.blob.delete_file_version(version.file_name, version.file_id)
                report.deleted += 1
            except BlobServiceError as e:
                report.errors.append(f"Failed to delete version {version.file_id}: {e.body or e.message}")

        return report

    async def delete_images(self, references: list[str] | None) -> ImageDeletionReport:
        """
        Delete every version of every referenced image.

        Best-effort: a failure on one image or version is recorded and the
        remaining images are still processed.

        Args:
            references: Image references (proxy paths or object names)

        Returns:
            ImageDeletionReport with the number of versions deleted and
            any failures
        """
        report = ImageDeletionReport()
        if not references:
            return report

        try:
            await self.blob.authorize()
        except BlobAuthError as e:
            report.errors.append(f"B2 authorization failed: {e.message}")
            return report

        for reference in references:
            if not isinstance(reference, str) or not reference:
                report.errors.append(f"Invalid image reference: {reference!r}")
                continue
            report.merge(await self._delete_one(reference))

        if report.errors:
            logger.warning(f"Image deletion finished with {len(report.errors)} error(s)")
        return report
