# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Tesatiki marketplace API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.dependencies import close_shared_clients
from app.exceptions import (
    MarketplaceException,
    http_exception_handler,
    marketplace_exception_handler,
    records_gateway_exception_handler,
    unexpected_exception_handler,
    validation_exception_handler,
)
from app.routers import admin, health, images, maintenance, products
from app.auth import routes as auth_routes
from lib.records_client import RecordsGatewayError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: Log configuration
    - Shutdown: Close the shared blob HTTP client and Redis connection
    """
    logger.info(f"Starting Tesatiki API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    yield

    logger.info("Shutting down Tesatiki API")
    await close_shared_clients()


# Create FastAPI application
app = FastAPI(
    title="Tesatiki API",
    description="""
## Classified-Ads Marketplace API

Users register with a Ugandan mobile number, post listings with images, and
pay for promotion tiers. Admins review every new or edited listing before it
appears in the public feed.

### Listing lifecycle

| From | Action | To |
|------|--------|----|
| (new) | create-product | pending |
| pending | admin approve | approved |
| approved | owner edit | edited |
| edited | admin approve / reject edit | approved |
| approved, expired paid | daily sweep | approved (free tier) |
| approved, expired free | daily sweep | deleted |

### Ad tiers

| Tier | Price (UGX) | Days | Images |
|------|-------------|------|--------|
| free | 0 | 30 | 1 |
| 7days | 5,000 | 7 | 3 |
| 30days | 15,000 | 30 | 5 |
| featured | 50,000 | 30 | 8 |
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Registration, login and profile management",
        },
        {
            "name": "Products",
            "description": "Public feed, listing mutations and image upload",
        },
        {
            "name": "Images",
            "description": "Image proxy in front of blob storage",
        },
        {
            "name": "Admin",
            "description": "User management and listing review (admin role)",
        },
        {
            "name": "Maintenance",
            "description": "Manual trigger for the listing expiry sweep",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(MarketplaceException, marketplace_exception_handler)
app.add_exception_handler(RecordsGatewayError, records_gateway_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unexpected_exception_handler)


# =============================================================================
# Routers
# =============================================================================

# Health check endpoints
app.include_router(health.router, tags=["Health"])

# Account endpoints
app.include_router(auth_routes.router)

# Feed, listing mutations and upload
app.include_router(products.router)

# Image proxy
app.include_router(images.router)

# Admin endpoints
app.include_router(admin.router)

# Manual sweep trigger
app.include_router(maintenance.router)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Tesatiki API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
