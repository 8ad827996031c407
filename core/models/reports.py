# =============================================================================
# core/models/reports.py - Operation Reports
# =============================================================================
# Result objects for best-effort, multi-step operations. These never raise
# for partial failures; failures are collected and reported to the caller.
# =============================================================================

from typing import Any

from pydantic import BaseModel, Field


class ImageDeletionReport(BaseModel):
    """
    Outcome of deleting every version of a batch of images.

    Example:
        {"success": false, "deleted": 3,
         "errors": ["Failed to delete version 4_z27: 500 ..."]}
    """
    deleted: int = Field(default=0, ge=0, description="Object versions deleted")
    errors: list[str] = Field(default_factory=list, description="Per-version or per-image failures")

    @property
    def success(self) -> bool:
        return not self.errors

    def merge(self, other: "ImageDeletionReport") -> None:
        self.deleted += other.deleted
        self.errors.extend(other.errors)

    def to_response(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "deleted": self.deleted}
        if self.errors:
            result["errors"] = self.errors
        return result


class ListingDeletionResult(BaseModel):
    """Outcome of compound deletion (images, then the listing row)."""
    product_id: str
    product_name: str | None = None
    images: ImageDeletionReport = Field(default_factory=ImageDeletionReport)

    def to_response(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": True,
            "productName": self.product_name,
            "imagesDeleted": self.images.deleted,
        }
        if self.images.errors:
            result["imageErrors"] = self.images.errors
        return result


class SweepReport(BaseModel):
    """Outcome of one run of the listing expiry sweep."""
    demoted: list[str] = Field(default_factory=list, description="Listing ids moved to the free tier")
    deleted: list[str] = Field(default_factory=list, description="Listing ids purged")
    failures: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def to_response(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": "Ad expiry and cleanup completed",
            "demoted": len(self.demoted),
            "deleted": len(self.deleted),
            "failures": self.failures,
        }
