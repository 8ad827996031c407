# =============================================================================
# app/config.py - Settings
# =============================================================================
# Every tunable of the marketplace API, read from the environment (or a .env
# file in the working directory) by pydantic-settings:
#   - records service (Supabase) URL and service-role key
#   - Backblaze B2 key pair, bucket and authorization refresh margin
#   - Redis cache TTLs, the daily sweep hour, JWT secret and lifetime
#   - upload size and free-listing limits
#
# Import the shared instance:
#   from app.config import settings
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Marketplace settings.

    Upper-case names match the environment variables one-to-one. Missing
    required values (records service, B2 keys, JWT secret) fail at import.
    """

    # -------------------------------------------------------------------------
    # Records Service (Supabase / PostgREST)
    # -------------------------------------------------------------------------
    # Server-side only; never sent to clients

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS, server-side only)"
    )

    # -------------------------------------------------------------------------
    # Blob Service (Backblaze B2)
    # -------------------------------------------------------------------------

    B2_KEY_ID: str = Field(
        ...,
        description="B2 application key id"
    )

    B2_APP_KEY: str = Field(
        ...,
        description="B2 application key"
    )

    B2_BUCKET_ID: str = Field(
        ...,
        description="Bucket id used for upload and version listing calls"
    )

    B2_BUCKET_NAME: str = Field(
        default="tesatiki-products",
        description="Bucket name used when building download URLs"
    )

    B2_AUTH_URL: str = Field(
        default="https://api.backblazeb2.com/b2api/v2/b2_authorize_account",
        description="Account authorization endpoint"
    )

    # B2 authorization tokens are valid for 24 hours; refresh before that
    B2_AUTH_MAX_AGE_HOURS: int = Field(
        default=23,
        ge=1,
        le=24,
        description="Hours before the cached B2 authorization is refreshed"
    )

    B2_HTTP_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for each call to the blob service"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (edge cache + Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the response cache and Celery broker"
    )

    PRODUCT_CACHE_TTL_SECONDS: int = Field(
        default=600,
        ge=0,
        description="How long the approved-listings feed is cached"
    )

    IMAGE_CACHE_TTL_SECONDS: int = Field(
        default=31536000,
        ge=0,
        description="How long proxied images are cached (1 year, immutable)"
    )

    # -------------------------------------------------------------------------
    # Scheduled Maintenance
    # -------------------------------------------------------------------------

    SWEEP_CRON_HOUR: int = Field(
        default=0,
        ge=0,
        le=23,
        description="Hour of day (UTC) when the listing expiry sweep runs"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    JWT_SECRET: str = Field(
        ...,
        min_length=16,
        description="Secret key for signing bearer tokens"
    )

    JWT_EXPIRY_HOURS: int = Field(
        default=8,
        ge=1,
        le=168,
        description="Lifetime of issued bearer tokens"
    )

    # Only enforced in production; other environments allow any origin
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Listings & Uploads
    # -------------------------------------------------------------------------

    MAX_UPLOAD_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum image upload size in MB"
    )

    MAX_FREE_ADS: int = Field(
        default=3,
        ge=1,
        description="Maximum active (pending, approved or edited) free listings per user"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Deployed environments set variables directly; .env is optional
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://tesatiki.com" -> ["http://localhost:3000", "https://tesatiki.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert MB to bytes for upload size validation."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def b2_auth_max_age_seconds(self) -> int:
        return self.B2_AUTH_MAX_AGE_HOURS * 60 * 60

    @property
    def jwt_expiry_seconds(self) -> int:
        return self.JWT_EXPIRY_HOURS * 60 * 60

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Build and validate Settings once per process."""
    return Settings()


settings = get_settings()
