"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required fields are validated at load time.
"""

import logging
from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    database_url and secret_key are validated in validate_required;
    everything else has a default.
    """

    # App
    app_name: str = "fleet-rbac"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str | None = None

    # Database: any SQLAlchemy async URL (postgresql+asyncpg, sqlite+aiosqlite)
    database_url: str = "sqlite+aiosqlite:///./fleet_rbac.sqlite"
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None

    # Security: HS256 bearer tokens shared with the identity service
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Tenant
    tenant_header_name: str = "X-Tenant-ID"
    agency_header_name: str = "X-Agency-ID"

    # Redis cache for effective permission sets
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    cache_ttl_permissions: int = 300

    # Assignments / reporting
    assignment_expiring_soon_days: int = 7
    role_stats_period_days: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Validate required env.

        - DATABASE_URL must be set.
        - SECRET_KEY is required unless DEBUG is on.
        """
        if not self.database_url.strip():
            raise ValueError("DATABASE_URL is required")
        if not self.debug and not self.secret_key.get_secret_value():
            raise ValueError("SECRET_KEY is required when DEBUG is false")
        if self.log_level and not isinstance(
            logging.getLevelName(self.log_level.upper()), int
        ):
            raise ValueError("LOG_LEVEL must be a logging level name")
        if self.assignment_expiring_soon_days < 1:
            raise ValueError("ASSIGNMENT_EXPIRING_SOON_DAYS must be >= 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (one instance per process)."""
    return Settings()
