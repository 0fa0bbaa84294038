"""
Deployment Tracker CLI entry point.

Usage:
    python -m deployment_tracker COMMAND [OPTIONS]

Commands:
    init-db             Create the database schema
    enrich              Run the enrichment pipeline (all phases or one)
    alert-milestones    Send pending milestone alerts
    add-deployment      Register a deployment to track
    score               Print the latest score of every project
    recent              List deployments created recently
    ecosystem           Print recent ecosystem snapshots
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from datetime import UTC, datetime

from deployment_tracker.alerter.channels.log import LogChannel
from deployment_tracker.alerter.channels.telegram import TelegramChannel
from deployment_tracker.alerter.dispatcher import AlertChannel, MilestoneAlerter
from deployment_tracker.alerter.formatter import format_number
from deployment_tracker.config import Settings, get_settings
from deployment_tracker.pipeline import EnrichmentPipeline
from deployment_tracker.sources.fetch import FetchClient
from deployment_tracker.storage.database import DatabaseManager, ensure_sqlite_directory
from deployment_tracker.storage.repos import (
    DeploymentDTO,
    DeploymentRepository,
    EcosystemMetricsRepository,
    ProjectMetricsRepository,
)

logger = logging.getLogger("deployment_tracker")

PHASES = ("ecosystem", "projects", "resolve")


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.get_logging_level(),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _database(settings: Settings) -> DatabaseManager:
    ensure_sqlite_directory(settings.database.url)
    return DatabaseManager(settings.database.url)


async def _init_db(settings: Settings) -> int:
    db = _database(settings)
    try:
        await db.init_schema_async()
    finally:
        await db.dispose_async()
    return 0


async def _enrich(settings: Settings, phase: str | None) -> int:
    ensure_sqlite_directory(settings.database.url)
    async with EnrichmentPipeline(settings) as pipeline:
        if phase is None:
            stats = await pipeline.run()
            return 0 if stats.succeeded else 1
        if phase == "ecosystem":
            await pipeline.enrich_ecosystem()
        elif phase == "projects":
            await pipeline.enrich_projects()
        else:
            await pipeline.resolve_new_addresses()
    return 0


async def _alert_milestones(settings: Settings, dry_run: bool) -> int:
    db = _database(settings)
    async with FetchClient(
        timeout_seconds=settings.fetch.timeout_seconds,
        max_attempts=settings.fetch.max_attempts,
    ) as fetch_client:
        channel: AlertChannel = LogChannel()
        if not dry_run:
            if settings.telegram.enabled:
                bot_token = settings.telegram.bot_token
                chat_id = settings.telegram.chat_id
                if bot_token and chat_id:
                    channel = TelegramChannel(bot_token.get_secret_value(), chat_id, fetch_client)
            else:
                logger.warning("Telegram not configured; logging alerts instead")

        alerter = MilestoneAlerter(
            db,
            channel,
            chain=settings.chain.name,
            pause_seconds=settings.milestones.alert_pause_seconds,
        )
        try:
            result = await alerter.drain()
        finally:
            await db.dispose_async()
    return 0 if result.all_succeeded else 1


async def _add_deployment(settings: Settings, args: argparse.Namespace) -> int:
    created_at = datetime.fromisoformat(args.created_at) if args.created_at else datetime.now(UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)

    db = _database(settings)
    try:
        async with db.get_async_session() as session:
            created = await DeploymentRepository(session).insert(
                DeploymentDTO(
                    id=args.id,
                    project=args.project,
                    url=args.url,
                    tweet_text=args.text,
                    created_at=created_at,
                    contract_address=args.address,
                    category=args.category,
                )
            )
    finally:
        await db.dispose_async()

    if created:
        print(f"Tracking @{args.project} ({args.id})")
    else:
        print(f"Deployment {args.id} already tracked")
    return 0


async def _score(settings: Settings) -> int:
    db = _database(settings)
    try:
        async with db.get_async_session() as session:
            deployments = {d.id: d for d in await DeploymentRepository(session).list_all()}
            latest = await ProjectMetricsRepository(session).get_latest_for_all()
    finally:
        await db.dispose_async()

    if not latest:
        print("No scored projects yet")
        return 0
    for snapshot in latest:
        deployment = deployments.get(snapshot.deployment_id)
        name = deployment.project if deployment else snapshot.deployment_id
        tvl = f"${format_number(snapshot.tvl_usd)}" if snapshot.tvl_usd is not None else "N/A"
        print(
            f"@{name:<24} {snapshot.score if snapshot.score is not None else '-':>3} "
            f"{snapshot.classification or 'N/A':<8} tvl={tvl} "
            f"txs={format_number(snapshot.tx_count) if snapshot.tx_count is not None else 'N/A'}"
        )
    return 0


async def _recent(settings: Settings, hours: int) -> int:
    db = _database(settings)
    try:
        async with db.get_async_session() as session:
            deployments = await DeploymentRepository(session).list_recent(hours)
    finally:
        await db.dispose_async()

    if not deployments:
        print(f"No deployments in the last {hours}h")
        return 0
    for deployment in deployments:
        created = deployment.created_at.isoformat(timespec="minutes") if deployment.created_at else "?"
        print(
            f"{created}  @{deployment.project:<24} "
            f"{deployment.contract_address or '(unresolved)'}"
        )
    return 0


async def _ecosystem(settings: Settings, limit: int) -> int:
    db = _database(settings)
    try:
        async with db.get_async_session() as session:
            history = await EcosystemMetricsRepository(session).get_history(limit=limit)
    finally:
        await db.dispose_async()

    if not history:
        print("No ecosystem snapshots yet")
        return 0
    for snapshot in history:
        taken = snapshot.snapshot_at.isoformat(timespec="minutes") if snapshot.snapshot_at else "?"
        tvl = f"${format_number(snapshot.total_tvl)}" if snapshot.total_tvl is not None else "N/A"
        print(
            f"{taken}  tvl={tvl} txs={format_number(snapshot.total_txs)} "
            f"wallets={format_number(snapshot.total_addresses)} "
            f"deployments={snapshot.deployment_count if snapshot.deployment_count is not None else 'N/A'}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deployment-tracker",
        description="Deployment Tracker - enrichment, scoring, and milestone alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Create tables
    python -m deployment_tracker init-db

    # Full enrichment run (every 30 minutes via cron)
    python -m deployment_tracker enrich

    # Send pending milestone alerts without posting
    python -m deployment_tracker alert-milestones --dry-run
        """,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database schema")

    enrich = commands.add_parser("enrich", help="Run the enrichment pipeline")
    enrich.add_argument(
        "--phase",
        choices=PHASES,
        default=None,
        help="Run a single phase (default: all phases in order)",
    )

    alert = commands.add_parser("alert-milestones", help="Send pending milestone alerts")
    alert.add_argument(
        "--dry-run",
        action="store_true",
        help="Log alerts instead of sending them (default: DRY_RUN setting)",
    )

    add = commands.add_parser("add-deployment", help="Register a deployment to track")
    add.add_argument("--id", required=True, help="Unique deployment id (e.g. announcement id)")
    add.add_argument("--project", required=True, help="Project handle")
    add.add_argument("--url", default=None, help="Announcement URL")
    add.add_argument("--text", default=None, help="Announcement text")
    add.add_argument("--category", default=None, help="Project category (defi, oracle, ...)")
    add.add_argument("--address", default=None, help="Contract address, if already known")
    add.add_argument("--created-at", default=None, help="ISO-8601 timestamp (default: now)")

    commands.add_parser("score", help="Print the latest score of every project")

    recent = commands.add_parser("recent", help="List deployments created recently")
    recent.add_argument(
        "--hours", type=int, default=24, help="Look-back window in hours (default: 24)"
    )

    ecosystem = commands.add_parser("ecosystem", help="Print recent ecosystem snapshots")
    ecosystem.add_argument(
        "--limit", type=int, default=10, help="Number of snapshots to show (default: 10)"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    _configure_logging(settings)
    logger.debug("Settings: %s", settings.redacted_summary())

    try:
        if args.command == "init-db":
            return asyncio.run(_init_db(settings))
        if args.command == "enrich":
            return asyncio.run(_enrich(settings, args.phase))
        if args.command == "alert-milestones":
            return asyncio.run(_alert_milestones(settings, args.dry_run or settings.dry_run))
        if args.command == "add-deployment":
            return asyncio.run(_add_deployment(settings, args))
        if args.command == "recent":
            return asyncio.run(_recent(settings, args.hours))
        if args.command == "ecosystem":
            return asyncio.run(_ecosystem(settings, args.limit))
        return asyncio.run(_score(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
