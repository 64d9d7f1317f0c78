"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development (docker-compose
with Postgres, Redis and MinIO on localhost).

Usage:
    from storedemo.app.core.config import settings
    print(settings.database_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "storedemo"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = "staging"  # development | staging | production
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # debug | info | warn | error

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # ── Object storage (S3 / MinIO) ──
    S3_BUCKET: str = ""  # empty = object storage not configured
    AWS_REGION: Optional[str] = None
    AWS_DEFAULT_REGION: Optional[str] = None
    S3_ENDPOINT: Optional[str] = None
    S3_FORCE_PATH_STYLE: bool = True
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None

    # ── Database ──
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASS: str = ""
    DB_NAME: str = "postgres"
    DB_SSL: str = "disable"  # required | disable
    DB_POOL_SIZE: int = 10
    DB_IDLE_TIMEOUT: int = 30  # seconds
    DB_CONNECT_TIMEOUT: int = 5  # seconds
    DB_ECHO: bool = False  # log SQL queries
    DB_STARTUP_ATTEMPTS: int = 20
    DB_STARTUP_DELAY: float = 1.5  # seconds between startup probes
    SEED_DB: bool = False

    # ── Redis ──
    REDIS_URL: Optional[str] = None  # rediss:// enables TLS
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_USERNAME: Optional[str] = None
    REDIS_PASS: Optional[str] = None
    REDIS_TLS: bool = False

    # ── Auth (demo only) ──
    APP_AUTH_SECRET: str = "hunter2"
    READYZ_PUBLIC: bool = False

    # ── Self-test ──
    SELF_TEST_ON_BOOT: bool = True

    # ── Telemetry ──
    TRACING_ENABLED: bool = True
    OTEL_SERVICE_NAME: str = "storedemo"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://otel-collector.observability:4318"
    OTEL_EXPORTER_OTLP_HEADERS: str = ""

    # ── Runtime platform override ──
    DEPLOY_PLATFORM: Optional[str] = None
    RUN_PLATFORM: Optional[str] = None
    PLATFORM: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def s3_configured(self) -> bool:
        return bool(self.S3_BUCKET)

    @property
    def aws_region(self) -> str:
        return self.AWS_REGION or self.AWS_DEFAULT_REGION or "ap-southeast-2"

    @property
    def database_url(self) -> URL:
        return URL.create(
            "postgresql+asyncpg",
            username=self.DB_USER,
            password=self.DB_PASS or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    @property
    def platform_override(self) -> str:
        return (self.DEPLOY_PLATFORM or self.RUN_PLATFORM or self.PLATFORM or "").lower()

    @property
    def otlp_headers(self) -> Dict[str, str]:
        """Parse ``k=v,k2=v2`` exporter headers; values may contain '='."""
        headers: Dict[str, str] = {}
        for pair in self.OTEL_EXPORTER_OTLP_HEADERS.split(","):
            if not pair:
                continue
            raw_key, _, value = pair.partition("=")
            key = raw_key.strip()
            if key:
                headers[key] = value.strip()
        return headers


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
