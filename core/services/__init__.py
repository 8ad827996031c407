# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .user_service import UserService
from .image_service import ImageService
from .listing_service import ListingService
from .maintenance_service import MaintenanceService

__all__ = [
    "UserService",
    "ImageService",
    "ListingService",
    "MaintenanceService",
]
