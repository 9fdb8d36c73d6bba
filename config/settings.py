"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``USSDKIT_`` prefix; infrastructure settings use their
canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the USSD gateway application.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``USSDKIT_``; infra keys use
    their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="USSDKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"
    service_name: str = "Money Transfer"

    # ── Redis ──────────────────────────────────────────────────────────
    # Empty string selects the in-process session store.
    redis_url: str = Field(default="", validation_alias="REDIS_URL")

    # ── Session store ──────────────────────────────────────────────────
    session_ttl_seconds: int = Field(default=300, ge=1)  # 5 minutes
    session_store_max_size: int = Field(default=10_000, ge=1)
    session_purge_interval_seconds: int = Field(default=60, ge=1)
    session_namespace: str = "ussd:session:"

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Money transfer flow ────────────────────────────────────────────
    transfer_currency: str = "KES"
    transfer_max_amount: Decimal = Field(default=Decimal("100000"), gt=0)

    # ── Account menu ───────────────────────────────────────────────────
    support_line: str = "0800-123-456"

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def uses_redis(self) -> bool:
        return bool(self.redis_url)


# Module-level singleton, import ``settings`` everywhere.
settings = Settings()
