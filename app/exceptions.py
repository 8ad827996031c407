# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every failure path returns JSON with a human-readable `error` field; the
# HTTP status communicates the error class:
#   400 validation, 401 unauthenticated, 403 forbidden, 404 not found,
#   409 conflict, 413 too large, 500 internal / records gateway,
#   502/503 blob service
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lib.records_client import RecordsGatewayError

logger = logging.getLogger(__name__)


class MarketplaceException(Exception):
    """
    Base exception for the marketplace API.

    All custom exceptions inherit from this class.
    Provides structured error responses: {"error", "code", "details"?}.
    """

    def __init__(
        self,
        message: str,
        code: str = "MARKETPLACE_ERROR",
        status_code: int = 500,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Request Exceptions
# =============================================================================

class ValidationFailedError(MarketplaceException):
    """Raised when client input breaks a validation rule."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=details,
        )


class AuthenticationError(MarketplaceException):
    """Missing, invalid or expired bearer token, or bad credentials."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, code="UNAUTHORIZED", status_code=401)


class ForbiddenError(MarketplaceException):
    """Valid token, insufficient rights."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, code="FORBIDDEN", status_code=403)


class ConflictError(MarketplaceException):

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, code="CONFLICT", status_code=409, details=details)


# =============================================================================
# Not Found Exceptions
# =============================================================================

class NotFoundError(MarketplaceException):

    def __init__(self, message: str, code: str = "NOT_FOUND", details: Any = None):
        super().__init__(message=message, code=code, status_code=404, details=details)


class UserNotFoundError(NotFoundError):

    def __init__(self, user_id: str | None = None):
        super().__init__(
            message="User not found",
            code="USER_NOT_FOUND",
            details={"user_id": user_id} if user_id else None,
        )


class ListingNotFoundError(NotFoundError):

    def __init__(self, listing_id: str):
        super().__init__(
            message="Product not found",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": listing_id},
        )


class ImageNotFoundError(NotFoundError):

    def __init__(self, path: str):
        super().__init__(message="Image not found", code="IMAGE_NOT_FOUND", details={"path": path})


# =============================================================================
# Upload Exceptions
# =============================================================================

class FileTooLargeError(MarketplaceException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
            details={"size_mb": round(size_mb, 2), "max_mb": max_mb},
        )


class ImageUploadError(MarketplaceException):
    """Raised when image upload to the blob service fails."""

    def __init__(self, error: str, details: Any = None):
        super().__init__(
            message="Upload failed",
            code="IMAGE_UPLOAD_ERROR",
            status_code=500,
            details={"error": error, **(details or {})},
        )


# =============================================================================
# Upstream Exceptions
# =============================================================================

class RecordsGatewayFailure(MarketplaceException):
    """
    The records service returned a non-2xx response.

    The upstream status/body travel in `details` for operator diagnosis.
    """

    def __init__(self, message: str, details: Any = None):
        super().__init__(
            message=message,
            code="RECORDS_GATEWAY_ERROR",
            status_code=500,
            details=details,
        )


class BlobAuthUnavailableError(MarketplaceException):
    """Blob service authorization failed; image subsystem unavailable."""

    def __init__(self, error: str):
        super().__init__(
            message="B2 authentication failed",
            code="BLOB_AUTH_FAILED",
            status_code=503,
            details={"error": error},
        )


class BlobNetworkError(MarketplaceException):
    """The blob service could not be reached."""

    def __init__(self, error: str):
        super().__init__(
            message="Network error fetching image",
            code="BLOB_NETWORK_ERROR",
            status_code=502,
            details={"error": error},
        )


class BlobUpstreamError(MarketplaceException):
    """The blob service answered with an unexpected non-2xx status."""

    def __init__(self, upstream_status: int | None, path: str | None = None):
        super().__init__(
            message="Failed to retrieve image from B2",
            code="BLOB_UPSTREAM_ERROR",
            status_code=502,
            details={"status": upstream_status, "path": path},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def marketplace_exception_handler(
    request: Request,
    exc: MarketplaceException
) -> JSONResponse:
    """Convert MarketplaceException to JSON response."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: [{exc.code}] {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request body validation errors.

    Malformed bodies are client errors (400), like every other validation
    failure in this API.
    """
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                for err in exc.errors()
            ],
        }
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Re-shape framework HTTP errors (404 route, 405 method) as {"error": ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Outermost boundary: log the traceback, return the message only."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) or "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


async def records_gateway_exception_handler(
    request: Request,
    exc: RecordsGatewayError
) -> JSONResponse:
    """Surface records service failures as 500 with upstream details attached."""
    logger.error(f"Records gateway failure on {request.url.path}: {exc}")
    failure = RecordsGatewayFailure(exc.message, details=exc.details or None)
    return JSONResponse(
        status_code=failure.status_code,
        content=failure.to_dict()
    )
