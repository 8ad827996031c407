# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Liveness and readiness endpoints
# - products.py: Listing feed, listing mutations and image upload
# - images.py: Image proxy (GET /images/<path>)
# - admin.py: Admin user management and listing review
# - maintenance.py: Manual trigger for the listing expiry sweep
#
# Account endpoints live in app/auth/routes.py. Routers carry their full
# paths, so main.py mounts them without a prefix.
# =============================================================================

from . import health
from . import products
from . import images
from . import admin
from . import maintenance

__all__ = [
    "health",
    "products",
    "images",
    "admin",
    "maintenance",
]
