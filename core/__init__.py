# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the marketplace business logic:
# - models/: Pydantic schemas, ad tiers and listing statuses, result reports
# - services/: Users, listings (review workflow), images, expiry sweep
#
# Services raise the typed errors from app/exceptions.py and never build
# HTTP responses themselves; routers stay thin.
# =============================================================================
