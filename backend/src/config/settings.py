"""
Application settings configuration for FanHub notifications.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        JWT_SECRET_KEY: Secret key for signing bearer access tokens
        JWT_TOKEN_EXPIRY_MINUTES: Access token lifetime in minutes (default: 60)
        SESSION_SECRET_KEY: Secret used to sign the session cookie
        RATE_LIMIT_STORAGE_URI: Storage backend URI for rate limiting (default: "memory://")
        CORS_ORIGINS: Comma-separated list of allowed browser origins
        NOTIFICATIONS_PAGE_SIZE: Default page size for notification listings (default: 50)
        NOTIFICATIONS_MAX_PAGE_SIZE: Upper bound accepted for the limit parameter (default: 100)
        NOTIFICATIONS_READ_RETENTION_DAYS: Days to keep read notifications (default: 30)
        NOTIFICATIONS_MAX_PER_USER: Per-user notification cap, read rows trimmed first (default: 500)
        UNREAD_COUNT_CACHE_TTL: Seconds to cache unread counts, 0 disables (default: 0)
        FANOUT_SWEEP_HOURS: Window used by the scheduled fan-out sweep (default: 24)
    """

    jwt_secret_key: str = Field(
        default="",
        validation_alias="JWT_SECRET_KEY",
        description="Secret key for signing bearer access tokens. Must be at least 32 bytes."
    )

    jwt_token_expiry_minutes: int = Field(
        default=60,
        validation_alias="JWT_TOKEN_EXPIRY_MINUTES",
        ge=1,
        le=60 * 24 * 30,
    )

    session_secret_key: str = Field(
        default="fanhub-dev-session-secret-change-me",
        validation_alias="SESSION_SECRET_KEY",
    )

    # Rate limiting storage backend
    # "memory://" is per-process; use "redis://host:6379" for multi-worker deployments
    rate_limit_storage_uri: str = Field(
        default="memory://",
        validation_alias="RATE_LIMIT_STORAGE_URI",
        description="Storage backend URI for rate limiting counters"
    )

    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="CORS_ORIGINS",
    )

    notifications_page_size: int = Field(
        default=50,
        validation_alias="NOTIFICATIONS_PAGE_SIZE",
        ge=1,
        le=500,
    )

    notifications_max_page_size: int = Field(
        default=100,
        validation_alias="NOTIFICATIONS_MAX_PAGE_SIZE",
        ge=1,
        le=500,
    )

    notifications_read_retention_days: int = Field(
        default=30,
        validation_alias="NOTIFICATIONS_READ_RETENTION_DAYS",
        ge=1,
        le=365,
        description="Read notifications older than this (by read_at) are purged"
    )

    notifications_max_per_user: int = Field(
        default=500,
        validation_alias="NOTIFICATIONS_MAX_PER_USER",
        ge=10,
        description="Per-user cap; the oldest read notifications beyond it are purged"
    )

    unread_count_cache_ttl: int = Field(
        default=0,
        validation_alias="UNREAD_COUNT_CACHE_TTL",
        ge=0,
        description="Seconds an unread count may be served from cache (0 = always live)"
    )

    fanout_sweep_hours: int = Field(
        default=24,
        validation_alias="FANOUT_SWEEP_HOURS",
        ge=1,
        le=24 * 14,
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Validate that JWT secret key is sufficiently long."""
        if v and len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @property
    def jwt_configured(self) -> bool:
        """Check if bearer token authentication is configured."""
        return bool(self.jwt_secret_key)

    @property
    def cors_origins_list(self) -> List[str]:
        """Get the allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def clamp_page_size(self, limit: int) -> int:
        """Bound a caller-supplied page size to the configured maximum."""
        return max(1, min(limit, self.notifications_max_page_size))


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
