"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Deployment Tracker application, loading and validating environment
variables at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


def _validate_http_url(v: str | None) -> str | None:
    if v is None:
        return v
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must be an HTTP(S) endpoint")
    return v.rstrip("/")


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        default="sqlite+aiosqlite:///data/tracker.db",
        alias="DATABASE_URL",
        description="SQLite or PostgreSQL connection string",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(("sqlite", "postgresql://", "postgresql+asyncpg://")):
            raise ValueError("DATABASE_URL must be a SQLite or PostgreSQL connection string")
        return v


class ChainSettings(BaseSettings):
    """Tracked chain and its third-party data endpoints."""

    model_config = SettingsConfigDict(env_prefix="CHAIN_", extra="ignore")

    name: str = Field(
        default="MegaETH",
        alias="CHAIN_NAME",
        description="Chain name as used by the analytics provider",
    )
    rpc_url: str | None = Field(
        default=None,
        alias="CHAIN_RPC_URL",
        description="Preferred JSON-RPC endpoint (e.g. a keyed provider URL)",
    )
    public_rpc_url: str = Field(
        default="https://rpc.megaeth.com",
        alias="CHAIN_PUBLIC_RPC_URL",
        description="Public JSON-RPC endpoint used when no preferred endpoint is set",
    )
    explorer_api_url: str = Field(
        default="https://megaeth.blockscout.com/api/v2",
        alias="CHAIN_EXPLORER_API_URL",
        description="Blockscout v2 API base URL",
    )
    analytics_api_url: str = Field(
        default="https://api.llama.fi",
        alias="CHAIN_ANALYTICS_API_URL",
        description="DefiLlama API base URL",
    )

    @field_validator("rpc_url", "public_rpc_url", "explorer_api_url", "analytics_api_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate endpoint URL format."""
        return _validate_http_url(v)

    @property
    def preferred_rpc_url(self) -> str:
        return self.rpc_url or self.public_rpc_url


class FetchSettings(BaseSettings):
    """HTTP fetch retry settings."""

    model_config = SettingsConfigDict(env_prefix="FETCH_", extra="ignore")

    timeout_seconds: float = Field(
        default=15.0,
        alias="FETCH_TIMEOUT_SECONDS",
        gt=0.0,
        le=300.0,
        description="Per-attempt request timeout",
    )
    max_attempts: int = Field(
        default=3,
        alias="FETCH_MAX_ATTEMPTS",
        ge=1,
        le=10,
        description="Attempts per request before the error is surfaced",
    )


class EnrichmentSettings(BaseSettings):
    """Enrichment run pacing and windows."""

    model_config = SettingsConfigDict(env_prefix="ENRICHMENT_", extra="ignore")

    project_pause_seconds: float = Field(
        default=0.2,
        alias="ENRICHMENT_PROJECT_PAUSE_SECONDS",
        ge=0.0,
        le=10.0,
        description="Pause after each project to respect third-party rate limits",
    )
    resolution_pause_seconds: float = Field(
        default=0.3,
        alias="ENRICHMENT_RESOLUTION_PAUSE_SECONDS",
        ge=0.0,
        le=10.0,
        description="Pause after each address resolution",
    )
    tx_avg_window_days: int = Field(
        default=7,
        alias="ENRICHMENT_TX_AVG_WINDOW_DAYS",
        ge=1,
        le=90,
        description="Time window of snapshots used for the average tx delta",
    )
    protocol_cache_ttl_seconds: int = Field(
        default=3600,
        alias="ENRICHMENT_PROTOCOL_CACHE_TTL_SECONDS",
        ge=0,
        le=24 * 3600,
        description="TTL of the in-process protocol listing cache",
    )


class MilestoneSettings(BaseSettings):
    """Milestone detection and alerting settings."""

    model_config = SettingsConfigDict(env_prefix="MILESTONE_", extra="ignore")

    deployment_interval: int = Field(
        default=10,
        alias="MILESTONE_DEPLOYMENT_INTERVAL",
        ge=1,
        description="Raise a deployment-count milestone every N deployments",
    )
    deployment_floor: int = Field(
        default=40,
        alias="MILESTONE_DEPLOYMENT_FLOOR",
        ge=1,
        description="Smallest deployment count that raises a milestone",
    )
    alert_pause_seconds: float = Field(
        default=0.5,
        alias="MILESTONE_ALERT_PAUSE_SECONDS",
        ge=0.0,
        le=10.0,
        description="Pause between milestone alert messages",
    )


class TelegramSettings(BaseSettings):
    """Telegram notification settings."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_", extra="ignore")

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_BOT_TOKEN",
        description="Telegram bot token",
    )
    chat_id: str | None = Field(
        default=None,
        alias="TELEGRAM_CHAT_ID",
        description="Telegram chat ID for milestone alerts",
    )

    @property
    def enabled(self) -> bool:
        """Check if Telegram notifications are enabled."""
        return self.bot_token is not None and self.chat_id is not None


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from deployment_tracker.config import get_settings

        settings = get_settings()
        print(settings.database.url)
        print(settings.chain.name)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    chain: ChainSettings = Field(
        default_factory=lambda: ChainSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    fetch: FetchSettings = Field(
        default_factory=lambda: FetchSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    enrichment: EnrichmentSettings = Field(
        default_factory=lambda: EnrichmentSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    milestones: MilestoneSettings = Field(
        default_factory=lambda: MilestoneSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    telegram: TelegramSettings = Field(
        default_factory=lambda: TelegramSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log milestone alerts instead of sending them",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted."""
        return {
            "database_url": self._redact_url(self.database.url),
            "chain": {
                "name": self.chain.name,
                "rpc_url": "(set)" if self.chain.rpc_url else "(not set)",
                "public_rpc_url": self.chain.public_rpc_url,
                "explorer_api_url": self.chain.explorer_api_url,
                "analytics_api_url": self.chain.analytics_api_url,
            },
            "fetch": {
                "timeout_seconds": str(self.fetch.timeout_seconds),
                "max_attempts": str(self.fetch.max_attempts),
            },
            "enrichment": {
                "tx_avg_window_days": str(self.enrichment.tx_avg_window_days),
                "protocol_cache_ttl_seconds": str(self.enrichment.protocol_cache_ttl_seconds),
            },
            "milestones": {
                "deployment_interval": str(self.milestones.deployment_interval),
                "deployment_floor": str(self.milestones.deployment_floor),
            },
            "telegram_enabled": str(self.telegram.enabled),
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
