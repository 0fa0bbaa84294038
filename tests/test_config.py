"""Tests for configuration loading."""

import logging

import pytest
from pydantic import ValidationError

from deployment_tracker.config import Settings, clear_settings_cache, get_settings

ENV_VARS = (
    "DATABASE_URL",
    "CHAIN_NAME",
    "CHAIN_RPC_URL",
    "CHAIN_PUBLIC_RPC_URL",
    "CHAIN_EXPLORER_API_URL",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "LOG_LEVEL",
    "DRY_RUN",
    "ENRICHMENT_PROJECT_PAUSE_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate settings from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.database.url == "sqlite+aiosqlite:///data/tracker.db"
        assert settings.chain.name == "MegaETH"
        assert settings.enrichment.project_pause_seconds == 0.2
        assert settings.enrichment.resolution_pause_seconds == 0.3
        assert settings.enrichment.tx_avg_window_days == 7
        assert settings.milestones.alert_pause_seconds == 0.5
        assert settings.telegram.enabled is False
        assert settings.dry_run is False
        assert settings.get_logging_level() == logging.INFO

    def test_preferred_rpc_url(self, monkeypatch):
        assert Settings().chain.preferred_rpc_url == "https://rpc.megaeth.com"

        monkeypatch.setenv("CHAIN_RPC_URL", "https://megaeth.example/v1/key/")

        assert Settings().chain.preferred_rpc_url == "https://megaeth.example/v1/key"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ENRICHMENT_PROJECT_PAUSE_SECONDS", "1.5")
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100")
        monkeypatch.setenv("DRY_RUN", "true")

        settings = Settings()

        assert settings.enrichment.project_pause_seconds == 1.5
        assert settings.telegram.enabled is True
        assert settings.telegram.bot_token is not None
        assert settings.telegram.bot_token.get_secret_value() == "123:abc"
        assert settings.dry_run is True

    def test_env_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("CHAIN_NAME=Base\n")

        assert Settings().chain.name == "Base"

    def test_invalid_endpoint_url(self, monkeypatch):
        monkeypatch.setenv("CHAIN_EXPLORER_API_URL", "ftp://explorer")

        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "mysql://localhost/db")

        with pytest.raises(ValidationError):
            Settings()

    def test_redacted_summary_hides_secrets(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://tracker:hunter2@db:5432/tracker")
        monkeypatch.setenv("CHAIN_RPC_URL", "https://megaeth.example/v1/secret-key")
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")

        summary = Settings().redacted_summary()

        assert summary["database_url"] == "postgresql+asyncpg://tracker:***@db:5432/tracker"
        assert summary["chain"]["rpc_url"] == "(set)"
        assert "123:abc" not in str(summary)


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("CHAIN_NAME", "Base")

    assert get_settings() is first

    clear_settings_cache()
    assert get_settings().chain.name == "Base"
