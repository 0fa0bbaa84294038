"""Enrichment pipeline orchestrator for the Deployment Tracker.

This module provides the EnrichmentPipeline class that wires together the
source adapters, the address resolver, the scoring engine, and the
milestone detector, and persists every result through the repositories.

A run walks three phases in order. Each phase is isolated: a failure is
logged and counted, and the next phase still runs. Within the project
phase each project is isolated the same way. Only store connection errors
end a run early.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy.exc import InterfaceError, OperationalError
from web3 import Web3

from deployment_tracker.config import Settings, get_settings
from deployment_tracker.resolver.cascade import AddressResolver, ResolutionAttempt, ResolvedAddress
from deployment_tracker.scoring.engine import score_project
from deployment_tracker.scoring.milestones import MilestoneDetector
from deployment_tracker.scoring.models import MilestoneCandidate, ScoreInputs
from deployment_tracker.sources.analytics import ChainAnalyticsClient
from deployment_tracker.sources.explorer import BlockExplorerClient
from deployment_tracker.sources.fetch import FetchClient
from deployment_tracker.sources.models import ChainStats, Protocol
from deployment_tracker.sources.rpc import ChainRpcClient
from deployment_tracker.storage.database import DatabaseManager
from deployment_tracker.storage.repos import (
    AddressResolutionDTO,
    AddressResolutionRepository,
    DeploymentDTO,
    DeploymentRepository,
    EcosystemMetricsDTO,
    EcosystemMetricsRepository,
    MilestoneDTO,
    MilestoneRepository,
    ProjectMetricsDTO,
    ProjectMetricsRepository,
)

logger = logging.getLogger(__name__)

# Losing the store ends the run; everything else is isolated per phase/project.
STORE_ERRORS: tuple[type[Exception], ...] = (OperationalError, InterfaceError)

MIN_SNAPSHOTS_FOR_AVERAGE = 2

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EnrichmentPhase(str, Enum):
    """Enrichment run phases, in execution order."""

    ECOSYSTEM = "ecosystem"
    PROJECTS = "projects"
    RESOLUTION = "resolution"
    DONE = "done"


class EnrichmentError(Exception):
    """Base class for enrichment failures."""


class EnrichmentPhaseError(EnrichmentError):
    """Raised when a whole phase fails."""

    def __init__(self, phase: EnrichmentPhase, message: str) -> None:
        super().__init__(f"{phase.value} phase failed: {message}")
        self.phase = phase


class ProjectEnrichmentError(EnrichmentError):
    """Raised when a single project cannot be enriched."""

    def __init__(self, deployment_id: str, project: str, message: str) -> None:
        super().__init__(f"Failed to enrich @{project}: {message}")
        self.deployment_id = deployment_id
        self.project = project


@dataclass
class RunStats:
    """Statistics for one enrichment run."""

    started_at: datetime | None = None
    finished_at: datetime | None = None
    phase: EnrichmentPhase = EnrichmentPhase.ECOSYSTEM
    failed_phases: list[EnrichmentPhase] = field(default_factory=list)
    projects_enriched: int = 0
    projects_failed: int = 0
    resolutions_attempted: int = 0
    addresses_resolved: int = 0
    milestones_created: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return not self.failed_phases


class EnrichmentPipeline:
    """Orchestrates ecosystem enrichment, project enrichment, and address resolution.

    Pipeline flow:
        Source adapters → Scoring / Resolution → Store → Milestone detector → Store

    Example:
        ```python
        from deployment_tracker.pipeline import EnrichmentPipeline

        async with EnrichmentPipeline() as pipeline:
            stats = await pipeline.run()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        db: DatabaseManager | None = None,
        fetch_client: FetchClient | None = None,
        analytics: ChainAnalyticsClient | None = None,
        explorer: BlockExplorerClient | None = None,
        rpc: ChainRpcClient | None = None,
        resolver: AddressResolver | None = None,
        detector: MilestoneDetector | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = _utcnow,
    ) -> None:
        """Initialize the pipeline.

        Components that are not injected are built from settings; the
        pipeline then owns and closes them.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            db: Database manager.
            fetch_client: Shared HTTP fetch client.
            analytics: Chain-analytics adapter.
            explorer: Block-explorer adapter.
            rpc: JSON-RPC adapter.
            resolver: Address resolution cascade.
            detector: Milestone detector.
            sleep: Coroutine used for pacing pauses.
            clock: Current-time source for snapshots and scoring.
        """
        self._settings = settings or get_settings()
        settings = self._settings

        self._owns_db = db is None
        self._db = db or DatabaseManager(settings.database.url)

        self._owns_fetch = fetch_client is None
        self._fetch = fetch_client or FetchClient(
            timeout_seconds=settings.fetch.timeout_seconds,
            max_attempts=settings.fetch.max_attempts,
        )
        self._analytics = analytics or ChainAnalyticsClient(
            self._fetch,
            chain=settings.chain.name,
            base_url=settings.chain.analytics_api_url,
            cache_ttl_seconds=settings.enrichment.protocol_cache_ttl_seconds,
        )
        self._explorer = explorer or BlockExplorerClient(
            self._fetch, base_url=settings.chain.explorer_api_url
        )
        self._rpc = rpc or ChainRpcClient(self._fetch, rpc_url=settings.chain.preferred_rpc_url)
        self._resolver = resolver or AddressResolver.default(
            rpc=self._rpc, explorer=self._explorer, analytics=self._analytics
        )
        self._detector = detector or MilestoneDetector(
            deployment_interval=settings.milestones.deployment_interval,
            deployment_floor=settings.milestones.deployment_floor,
        )

        self._sleep = sleep
        self._clock = clock
        self._project_pause = settings.enrichment.project_pause_seconds
        self._resolution_pause = settings.enrichment.resolution_pause_seconds
        self._tx_avg_window = timedelta(days=settings.enrichment.tx_avg_window_days)

        self._stats = RunStats()

    @property
    def stats(self) -> RunStats:
        """Statistics of the current or last run."""
        return self._stats

    @property
    def db(self) -> DatabaseManager:
        return self._db

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> RunStats:
        """Run every phase in order.

        Returns:
            Statistics for this run.

        Raises:
            OperationalError: If the store becomes unreachable.
            InterfaceError: If the store connection breaks.
        """
        self._stats = RunStats(started_at=self._clock())
        logger.info("=== Enrichment run starting ===")

        phases: list[tuple[EnrichmentPhase, Callable[[], Awaitable[Any]]]] = [
            (EnrichmentPhase.ECOSYSTEM, self.enrich_ecosystem),
            (EnrichmentPhase.PROJECTS, self.enrich_projects),
            (EnrichmentPhase.RESOLUTION, self.resolve_new_addresses),
        ]
        for phase, step in phases:
            self._stats.phase = phase
            try:
                await self._run_phase(phase, step)
            except EnrichmentPhaseError as e:
                logger.error("%s", e)
                self._stats.failed_phases.append(phase)
                self._stats.errors.append(str(e))

        self._stats.phase = EnrichmentPhase.DONE
        self._stats.finished_at = self._clock()
        logger.info(
            "=== Enrichment complete in %.1fs: %d projects enriched, %d failed, "
            "%d/%d addresses resolved, %d new milestones ===",
            self._stats.duration_seconds or 0.0,
            self._stats.projects_enriched,
            self._stats.projects_failed,
            self._stats.addresses_resolved,
            self._stats.resolutions_attempted,
            self._stats.milestones_created,
        )
        return self._stats

    async def _run_phase(
        self,
        phase: EnrichmentPhase,
        step: Callable[[], Awaitable[Any]],
    ) -> None:
        try:
            await step()
        except STORE_ERRORS:
            raise
        except Exception as e:
            raise EnrichmentPhaseError(phase, str(e) or type(e).__name__) from e

    # ------------------------------------------------------------------
    # Ecosystem
    # ------------------------------------------------------------------

    async def enrich_ecosystem(self) -> EcosystemMetricsDTO:
        """Snapshot chain-wide metrics and record ecosystem milestones.

        The TVL and stats fetches fail independently; a failed fetch leaves
        its columns NULL.
        """
        logger.info("Enriching ecosystem metrics...")

        total_tvl: float | None = None
        try:
            tvl = await self._analytics.get_ecosystem_tvl()
            if tvl is not None:
                total_tvl = tvl.tvl
            logger.info("  Analytics TVL: %s", total_tvl if total_tvl is not None else "N/A")
        except Exception as e:
            logger.warning("  Ecosystem TVL fetch failed: %s", e)

        stats: ChainStats | None = None
        try:
            stats = await self._explorer.get_stats()
            logger.info(
                "  Explorer: %s addresses, %s txs",
                stats.total_addresses,
                stats.total_transactions,
            )
        except Exception as e:
            logger.warning("  Explorer stats fetch failed: %s", e)

        async with self._db.get_async_session() as session:
            deployment_count = await DeploymentRepository(session).count()
            snapshot = await EcosystemMetricsRepository(session).insert(
                EcosystemMetricsDTO(
                    total_tvl=total_tvl,
                    total_addresses=stats.total_addresses if stats else None,
                    total_txs=stats.total_transactions if stats else None,
                    txs_24h=stats.transactions_today if stats else None,
                    avg_gas_price=stats.average_gas_price if stats else None,
                    avg_block_time=stats.average_block_time if stats else None,
                    deployment_count=deployment_count,
                    snapshot_at=self._clock(),
                )
            )
        logger.info("  Ecosystem snapshot saved (%d deployments)", deployment_count)

        await self._record_milestones(
            self._detector.ecosystem_candidates(
                total_tvl=snapshot.total_tvl,
                total_txs=snapshot.total_txs,
                total_addresses=snapshot.total_addresses,
                deployment_count=deployment_count,
            )
        )
        return snapshot

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def enrich_projects(self) -> list[ProjectMetricsDTO]:
        """Enrich, score, and snapshot every deployment with a known address."""
        async with self._db.get_async_session() as session:
            deployments = await DeploymentRepository(session).list_with_address()
            latest_eco = await EcosystemMetricsRepository(session).get_latest()
        ecosystem_tvl = latest_eco.total_tvl if latest_eco else None
        logger.info("Enriching %d projects with contract addresses...", len(deployments))

        protocols: list[Protocol] = []
        try:
            protocols = await self._analytics.get_protocols()
        except Exception as e:
            logger.warning("  Protocol listing fetch failed: %s", e)

        snapshots: list[ProjectMetricsDTO] = []
        for deployment in deployments:
            try:
                snapshots.append(
                    await self.enrich_project(
                        deployment, ecosystem_tvl=ecosystem_tvl, protocols=protocols
                    )
                )
                self._stats.projects_enriched += 1
            except ProjectEnrichmentError as e:
                logger.warning("  %s", e)
                self._stats.projects_failed += 1
                self._stats.errors.append(str(e))
            await self._sleep(self._project_pause)
        return snapshots

    async def enrich_project(
        self,
        deployment: DeploymentDTO,
        *,
        ecosystem_tvl: float | None,
        protocols: list[Protocol],
    ) -> ProjectMetricsDTO:
        """Enrich a single deployment.

        Raises:
            ProjectEnrichmentError: If the project could not be enriched.
        """
        try:
            return await self._enrich_project(
                deployment, ecosystem_tvl=ecosystem_tvl, protocols=protocols
            )
        except STORE_ERRORS:
            raise
        except Exception as e:
            raise ProjectEnrichmentError(
                deployment.id, deployment.project, str(e) or type(e).__name__
            ) from e

    async def _enrich_project(
        self,
        deployment: DeploymentDTO,
        *,
        ecosystem_tvl: float | None,
        protocols: list[Protocol],
    ) -> ProjectMetricsDTO:
        address = deployment.contract_address
        if not address:
            raise ValueError("deployment has no contract address")

        tx_count: int | None = None
        balance_wei: int | None = None
        balance_eth: float | None = None
        try:
            info = await self._explorer.get_address(address)
            tx_count = info.transactions_count
            if info.coin_balance_wei is not None:
                balance_wei = info.coin_balance_wei
                balance_eth = float(Web3.from_wei(balance_wei, "ether"))
        except Exception as e:
            logger.warning("    Explorer address lookup failed for @%s: %s", deployment.project, e)

        tvl_usd = self._analytics.protocol_tvl_for_project(
            protocols, deployment.project, deployment.defillama_slug
        )

        try:
            is_verified = (await self._explorer.get_contract(address)).is_verified
        except Exception:
            # Unverified contracts answer 404.
            is_verified = False

        now = self._clock()
        async with self._db.get_async_session() as session:
            if is_verified != deployment.contract_verified:
                await DeploymentRepository(session).update(
                    deployment.id, contract_verified=is_verified
                )
            metrics = ProjectMetricsRepository(session)
            previous = await metrics.get_latest(deployment.id)
            history = await metrics.get_history(
                deployment.id, limit=None, since=now - self._tx_avg_window
            )

        tx_count_delta: int | None = None
        if tx_count is not None and previous is not None and previous.tx_count is not None:
            tx_count_delta = tx_count - previous.tx_count

        tx_count_avg: float | None = None
        if len(history) >= MIN_SNAPSHOTS_FOR_AVERAGE:
            deltas = [h.tx_count_delta for h in history if h.tx_count_delta is not None]
            if deltas:
                tx_count_avg = sum(deltas) / len(deltas)

        result = score_project(
            ScoreInputs(
                tvl_usd=tvl_usd,
                ecosystem_tvl=ecosystem_tvl,
                is_verified=is_verified,
                tx_count_delta=tx_count_delta,
                tx_count_7d_avg=tx_count_avg,
                balance_eth=balance_eth,
                created_at=deployment.created_at,
                tx_count=tx_count,
                category=deployment.category,
                analytics_listed=tvl_usd is not None,
            ),
            now=now,
        )

        async with self._db.get_async_session() as session:
            snapshot = await ProjectMetricsRepository(session).insert(
                ProjectMetricsDTO(
                    deployment_id=deployment.id,
                    tvl_usd=tvl_usd,
                    tx_count=tx_count,
                    tx_count_delta=tx_count_delta,
                    balance_wei=balance_wei,
                    balance_eth=balance_eth,
                    is_verified=is_verified,
                    score=result.score,
                    classification=result.classification.value,
                    snapshot_at=now,
                )
            )

        logger.info(
            "  @%s: score=%d [%s] tvl=%s txs=%s",
            deployment.project,
            result.score,
            result.classification.value,
            tvl_usd if tvl_usd is not None else "N/A",
            tx_count if tx_count is not None else "N/A",
        )

        await self._record_milestones(
            self._detector.project_candidates(deployment.project, tvl_usd=tvl_usd)
        )
        return snapshot

    # ------------------------------------------------------------------
    # Address resolution
    # ------------------------------------------------------------------

    async def resolve_new_addresses(self) -> int:
        """Try to resolve a contract address for every unresolved deployment.

        Returns:
            Number of deployments resolved in this call.
        """
        async with self._db.get_async_session() as session:
            unresolved = await DeploymentRepository(session).list_without_address()
        logger.info("Attempting address resolution for %d projects...", len(unresolved))

        resolved_count = 0
        for deployment in unresolved:
            self._stats.resolutions_attempted += 1
            try:
                resolved = await self.resolve_deployment(deployment)
            except STORE_ERRORS:
                raise
            except Exception as e:
                logger.warning("  Resolution failed for @%s: %s", deployment.project, e)
                self._stats.errors.append(f"resolution @{deployment.project}: {e}")
                resolved = None
            if resolved is not None:
                resolved_count += 1
            await self._sleep(self._resolution_pause)

        logger.info("  Resolved %d/%d addresses", resolved_count, len(unresolved))
        return resolved_count

    async def resolve_deployment(self, deployment: DeploymentDTO) -> ResolvedAddress | None:
        """Resolve one deployment, persisting every attempt and the outcome."""

        async def record(attempt: ResolutionAttempt) -> None:
            async with self._db.get_async_session() as session:
                await AddressResolutionRepository(session).log(
                    AddressResolutionDTO(
                        deployment_id=deployment.id,
                        method=attempt.method,
                        query=attempt.query,
                        result_address=attempt.result_address,
                        confidence=attempt.confidence,
                        success=attempt.success,
                        error=attempt.error,
                        attempted_at=self._clock(),
                    )
                )

        resolved = await self._resolver.resolve(deployment.project, record=record)
        if resolved is None:
            return None

        fields: dict[str, Any] = {"contract_address": resolved.address}
        if resolved.slug and not deployment.defillama_slug:
            fields["defillama_slug"] = resolved.slug
        async with self._db.get_async_session() as session:
            await DeploymentRepository(session).update(deployment.id, **fields)

        self._stats.addresses_resolved += 1
        logger.info(
            "  Resolved @%s -> %s (%s, confidence: %s)",
            deployment.project,
            resolved.address,
            resolved.method,
            resolved.confidence,
        )
        return resolved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _record_milestones(self, candidates: list[MilestoneCandidate]) -> list[MilestoneDTO]:
        created: list[MilestoneDTO] = []
        for candidate in candidates:
            # One committed unit per milestone
            async with self._db.get_async_session() as session:
                new = await self._detector.record([candidate], MilestoneRepository(session))
            created.extend(new)
            self._stats.milestones_created += len(new)
        return created

    async def aclose(self) -> None:
        """Release owned resources."""
        if self._owns_fetch:
            await self._fetch.aclose()
        if self._owns_db:
            await self._db.dispose_async()

    async def __aenter__(self) -> EnrichmentPipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
