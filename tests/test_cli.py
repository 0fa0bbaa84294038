"""Tests for the command-line interface."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from deployment_tracker.__main__ import build_parser, main
from deployment_tracker.config import clear_settings_cache


@pytest.fixture
def database_url(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    url = f"sqlite+aiosqlite:///{tmp_path / 'data' / 'tracker.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    clear_settings_cache()
    yield url
    clear_settings_cache()


class TestParser:
    def test_enrich_phase(self):
        args = build_parser().parse_args(["enrich", "--phase", "projects"])

        assert args.command == "enrich"
        assert args.phase == "projects"

    def test_enrich_defaults_to_all_phases(self):
        assert build_parser().parse_args(["enrich"]).phase is None

    def test_rejects_unknown_phase(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["enrich", "--phase", "nope"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_add_deployment(self):
        args = build_parser().parse_args(
            ["add-deployment", "--id", "42", "--project", "gte", "--category", "defi"]
        )

        assert (args.id, args.project, args.category, args.address) == ("42", "gte", "defi", None)

    def test_recent_hours(self):
        assert build_parser().parse_args(["recent"]).hours == 24
        assert build_parser().parse_args(["recent", "--hours", "6"]).hours == 6

    def test_ecosystem_limit(self):
        assert build_parser().parse_args(["ecosystem"]).limit == 10
        assert build_parser().parse_args(["ecosystem", "--limit", "3"]).limit == 3


class TestCommands:
    def test_init_db_creates_sqlite_directory(self, database_url, tmp_path):
        assert main(["init-db"]) == 0

        assert (tmp_path / "data" / "tracker.db").exists()

    def test_add_deployment_and_score(self, database_url, tmp_path, capsys):
        main(["init-db"])

        assert main(["add-deployment", "--id", "42", "--project", "gte"]) == 0
        assert main(["add-deployment", "--id", "42", "--project", "gte"]) == 0

        out = capsys.readouterr().out
        assert "Tracking @gte (42)" in out
        assert "Deployment 42 already tracked" in out

        assert main(["score"]) == 0
        assert "No scored projects yet" in capsys.readouterr().out

    def test_alert_milestones_dry_run(self, database_url):
        main(["init-db"])

        assert main(["alert-milestones", "--dry-run"]) == 0

    def test_enrich_failure_exit_code(self, database_url):
        stats = MagicMock()
        stats.succeeded = False
        with patch("deployment_tracker.__main__.EnrichmentPipeline") as pipeline_cls:
            pipeline = pipeline_cls.return_value.__aenter__.return_value
            pipeline.run = AsyncMock(return_value=stats)

            assert main(["enrich"]) == 1

    def test_recent_lists_new_deployments(self, database_url, capsys):
        main(["init-db"])
        created_at = (datetime.now(UTC) - timedelta(hours=2)).isoformat()
        main(["add-deployment", "--id", "42", "--project", "gte", "--created-at", created_at])
        main(["add-deployment", "--id", "7", "--project", "old", "--created-at", "2020-01-01T00:00"])
        capsys.readouterr()

        assert main(["recent", "--hours", "24"]) == 0

        out = capsys.readouterr().out
        assert "@gte" in out
        assert "(unresolved)" in out
        assert "@old" not in out

    def test_recent_empty(self, database_url, capsys):
        main(["init-db"])

        assert main(["recent", "--hours", "1"]) == 0
        assert "No deployments in the last 1h" in capsys.readouterr().out

    def test_ecosystem_without_snapshots(self, database_url, capsys):
        main(["init-db"])

        assert main(["ecosystem"]) == 0
        assert "No ecosystem snapshots yet" in capsys.readouterr().out

    def test_alert_milestones_uses_configured_telegram(self, database_url, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:secret-token")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100123")
        clear_settings_cache()
        main(["init-db"])
        result = MagicMock()
        result.all_succeeded = True

        with (
            patch("deployment_tracker.__main__.TelegramChannel") as channel_cls,
            patch("deployment_tracker.__main__.MilestoneAlerter") as alerter_cls,
        ):
            alerter_cls.return_value.drain = AsyncMock(return_value=result)

            assert main(["alert-milestones"]) == 0

        channel_cls.assert_called_once()
        assert channel_cls.call_args.args[:2] == ("123456:secret-token", "-100123")
        assert alerter_cls.call_args.args[1] is channel_cls.return_value

    def test_alert_milestones_dry_run_skips_telegram(self, database_url, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:secret-token")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100123")
        clear_settings_cache()
        main(["init-db"])

        with patch("deployment_tracker.__main__.TelegramChannel") as channel_cls:
            assert main(["alert-milestones", "--dry-run"]) == 0

        channel_cls.assert_not_called()
