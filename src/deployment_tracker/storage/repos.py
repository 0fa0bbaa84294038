"""Repository pattern implementations for data access.

This module provides clean data access abstractions for deployments,
metric snapshots, milestones, and address resolution attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from deployment_tracker.storage.models import (
    AddressResolutionModel,
    DeploymentModel,
    EcosystemMetricsModel,
    MilestoneModel,
    ProjectMetricsModel,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEPLOYMENT_UPDATABLE_FIELDS = frozenset(
    {"contract_address", "category", "defillama_slug", "contract_verified"}
)
DEFAULT_HISTORY_LIMIT = 48


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class DeploymentDTO:
    """Data transfer object for tracked deployments."""

    id: str
    project: str
    url: str | None = None
    tweet_text: str | None = None
    created_at: datetime | None = None
    contract_address: str | None = None
    category: str | None = None
    defillama_slug: str | None = None
    contract_verified: bool = False
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: DeploymentModel) -> DeploymentDTO:
        """Create DTO from SQLAlchemy model."""
        return cls(
            id=model.id,
            project=model.project,
            url=model.url,
            tweet_text=model.tweet_text,
            created_at=_as_utc(model.created_at),
            contract_address=model.contract_address,
            category=model.category,
            defillama_slug=model.defillama_slug,
            contract_verified=bool(model.contract_verified),
            updated_at=_as_utc(model.updated_at),
        )


@dataclass
class ProjectMetricsDTO:
    """Data transfer object for per-deployment metric snapshots."""

    deployment_id: str
    tvl_usd: float | None = None
    tx_count: int | None = None
    tx_count_delta: int | None = None
    balance_wei: int | None = None
    balance_eth: float | None = None
    is_verified: bool | None = None
    score: int | None = None
    classification: str | None = None
    snapshot_at: datetime | None = None
    id: int | None = None

    @classmethod
    def from_model(cls, model: ProjectMetricsModel) -> ProjectMetricsDTO:
        return cls(
            id=model.id,
            deployment_id=model.deployment_id,
            tvl_usd=model.tvl_usd,
            tx_count=model.tx_count,
            tx_count_delta=model.tx_count_delta,
            balance_wei=int(model.balance_wei) if model.balance_wei is not None else None,
            balance_eth=model.balance_eth,
            is_verified=model.is_verified,
            score=model.score,
            classification=model.classification,
            snapshot_at=_as_utc(model.snapshot_at),
        )


@dataclass
class EcosystemMetricsDTO:
    """Data transfer object for chain-wide metric snapshots."""

    total_tvl: float | None = None
    total_addresses: int | None = None
    total_txs: int | None = None
    txs_24h: int | None = None
    avg_gas_price: str | None = None
    avg_block_time: float | None = None
    deployment_count: int | None = None
    snapshot_at: datetime | None = None
    id: int | None = None

    @classmethod
    def from_model(cls, model: EcosystemMetricsModel) -> EcosystemMetricsDTO:
        return cls(
            id=model.id,
            total_tvl=model.total_tvl,
            total_addresses=model.total_addresses,
            total_txs=model.total_txs,
            txs_24h=model.txs_24h,
            avg_gas_price=model.avg_gas_price,
            avg_block_time=model.avg_block_time,
            deployment_count=model.deployment_count,
            snapshot_at=_as_utc(model.snapshot_at),
        )


@dataclass
class MilestoneDTO:
    """Data transfer object for milestones."""

    type: str
    subject: str | None
    metric: str
    threshold: float
    actual_value: float
    alerted: bool = False
    created_at: datetime | None = None
    id: int | None = None

    @classmethod
    def from_model(cls, model: MilestoneModel) -> MilestoneDTO:
        return cls(
            id=model.id,
            type=model.type,
            subject=model.subject,
            metric=model.metric,
            threshold=model.threshold,
            actual_value=model.actual_value,
            alerted=bool(model.alerted),
            created_at=_as_utc(model.created_at),
        )


@dataclass
class AddressResolutionDTO:
    """Data transfer object for address resolution audit rows."""

    deployment_id: str
    method: str
    query: str | None
    result_address: str | None
    confidence: float
    success: bool
    error: str | None = None
    attempted_at: datetime | None = None
    id: int | None = None

    @classmethod
    def from_model(cls, model: AddressResolutionModel) -> AddressResolutionDTO:
        return cls(
            id=model.id,
            deployment_id=model.deployment_id,
            method=model.method,
            query=model.query,
            result_address=model.result_address,
            confidence=model.confidence,
            success=bool(model.success),
            error=model.error,
            attempted_at=_as_utc(model.attempted_at),
        )


class DeploymentRepository:
    """Repository for tracked deployments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, deployment_id: str) -> DeploymentDTO | None:
        model = await self.session.get(DeploymentModel, deployment_id)
        return DeploymentDTO.from_model(model) if model else None

    async def insert(self, dto: DeploymentDTO) -> bool:
        """Insert a deployment unless its id is already tracked.

        Returns:
            True if a new row was created.
        """
        if await self.session.get(DeploymentModel, dto.id) is not None:
            return False
        model = DeploymentModel(
            id=dto.id,
            project=dto.project,
            url=dto.url,
            tweet_text=dto.tweet_text,
            created_at=dto.created_at,
            contract_address=dto.contract_address,
            category=dto.category,
            defillama_slug=dto.defillama_slug,
            contract_verified=dto.contract_verified,
        )
        self.session.add(model)
        await self.session.flush()
        return True

    async def update(self, deployment_id: str, **fields: Any) -> bool:
        """Update enrichment fields of a deployment.

        Fields outside the updatable set are ignored.

        Returns:
            True if any allowed field was written.
        """
        values = {k: v for k, v in fields.items() if k in DEPLOYMENT_UPDATABLE_FIELDS}
        ignored = set(fields) - set(values)
        if ignored:
            logger.debug("Ignoring non-updatable deployment fields: %s", sorted(ignored))
        if not values:
            return False
        values["updated_at"] = datetime.now(UTC)
        await self.session.execute(
            update(DeploymentModel).where(DeploymentModel.id == deployment_id).values(**values)
        )
        await self.session.flush()
        return True

    async def _list(self, *conditions: Any) -> list[DeploymentDTO]:
        stmt = select(DeploymentModel).where(*conditions).order_by(DeploymentModel.inserted_at)
        result = await self.session.execute(stmt)
        return [DeploymentDTO.from_model(m) for m in result.scalars().all()]

    async def list_all(self) -> list[DeploymentDTO]:
        """All deployments in insertion order."""
        return await self._list()

    async def list_with_address(self) -> list[DeploymentDTO]:
        return await self._list(DeploymentModel.contract_address.is_not(None))

    async def list_without_address(self) -> list[DeploymentDTO]:
        return await self._list(DeploymentModel.contract_address.is_(None))

    async def list_recent(self, hours: int = 24, *, now: datetime | None = None) -> list[DeploymentDTO]:
        """Deployments created within the last ``hours``, newest first."""
        since = (now or datetime.now(UTC)) - timedelta(hours=hours)
        stmt = (
            select(DeploymentModel)
            .where(DeploymentModel.created_at >= since)
            .order_by(DeploymentModel.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [DeploymentDTO.from_model(m) for m in result.scalars().all()]

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(DeploymentModel))
        return int(result.scalar_one())


class ProjectMetricsRepository:
    """Repository for append-only project metric snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, dto: ProjectMetricsDTO) -> ProjectMetricsDTO:
        model = ProjectMetricsModel(
            deployment_id=dto.deployment_id,
            tvl_usd=dto.tvl_usd,
            tx_count=dto.tx_count,
            tx_count_delta=dto.tx_count_delta,
            balance_wei=str(dto.balance_wei) if dto.balance_wei is not None else None,
            balance_eth=dto.balance_eth,
            is_verified=dto.is_verified,
            score=dto.score,
            classification=dto.classification,
            snapshot_at=dto.snapshot_at or datetime.now(UTC),
        )
        self.session.add(model)
        await self.session.flush()
        return ProjectMetricsDTO.from_model(model)

    async def get_latest(self, deployment_id: str) -> ProjectMetricsDTO | None:
        """Most recent snapshot by time, ties broken by insertion order."""
        stmt = (
            select(ProjectMetricsModel)
            .where(ProjectMetricsModel.deployment_id == deployment_id)
            .order_by(ProjectMetricsModel.snapshot_at.desc(), ProjectMetricsModel.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return ProjectMetricsDTO.from_model(model) if model else None

    async def get_history(
        self,
        deployment_id: str,
        *,
        limit: int | None = DEFAULT_HISTORY_LIMIT,
        since: datetime | None = None,
    ) -> list[ProjectMetricsDTO]:
        """Snapshots newest first.

        Args:
            deployment_id: Deployment to read.
            limit: Maximum rows, or None for all rows in the window.
            since: Only snapshots taken at or after this time.
        """
        stmt = select(ProjectMetricsModel).where(ProjectMetricsModel.deployment_id == deployment_id)
        if since is not None:
            stmt = stmt.where(ProjectMetricsModel.snapshot_at >= since)
        stmt = stmt.order_by(ProjectMetricsModel.snapshot_at.desc(), ProjectMetricsModel.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [ProjectMetricsDTO.from_model(m) for m in result.scalars().all()]

    async def get_latest_for_all(self) -> list[ProjectMetricsDTO]:
        """Latest snapshot of every deployment that has one."""
        # Same ordering as get_latest: newest snapshot_at, then highest id.
        ranked = select(
            ProjectMetricsModel.id,
            func.row_number()
            .over(
                partition_by=ProjectMetricsModel.deployment_id,
                order_by=[ProjectMetricsModel.snapshot_at.desc(), ProjectMetricsModel.id.desc()],
            )
            .label("row_num"),
        ).subquery()
        stmt = (
            select(ProjectMetricsModel)
            .join(ranked, ProjectMetricsModel.id == ranked.c.id)
            .where(ranked.c.row_num == 1)
            .order_by(ProjectMetricsModel.score.desc(), ProjectMetricsModel.deployment_id)
        )
        result = await self.session.execute(stmt)
        return [ProjectMetricsDTO.from_model(m) for m in result.scalars().all()]


class EcosystemMetricsRepository:
    """Repository for append-only ecosystem metric snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, dto: EcosystemMetricsDTO) -> EcosystemMetricsDTO:
        model = EcosystemMetricsModel(
            total_tvl=dto.total_tvl,
            total_addresses=dto.total_addresses,
            total_txs=dto.total_txs,
            txs_24h=dto.txs_24h,
            avg_gas_price=dto.avg_gas_price,
            avg_block_time=dto.avg_block_time,
            deployment_count=dto.deployment_count,
            snapshot_at=dto.snapshot_at or datetime.now(UTC),
        )
        self.session.add(model)
        await self.session.flush()
        return EcosystemMetricsDTO.from_model(model)

    async def get_latest(self) -> EcosystemMetricsDTO | None:
        stmt = (
            select(EcosystemMetricsModel)
            .order_by(EcosystemMetricsModel.snapshot_at.desc(), EcosystemMetricsModel.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return EcosystemMetricsDTO.from_model(model) if model else None

    async def get_history(self, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[EcosystemMetricsDTO]:
        stmt = (
            select(EcosystemMetricsModel)
            .order_by(EcosystemMetricsModel.snapshot_at.desc(), EcosystemMetricsModel.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [EcosystemMetricsDTO.from_model(m) for m in result.scalars().all()]


class MilestoneRepository:
    """Repository for milestones with idempotent insertion."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find(
        self,
        *,
        type: str,
        subject: str | None,
        metric: str,
        threshold: float,
    ) -> MilestoneDTO | None:
        """Find the milestone for a tuple; a None subject matches only NULL."""
        subject_clause = (
            MilestoneModel.subject.is_(None) if subject is None else MilestoneModel.subject == subject
        )
        stmt = select(MilestoneModel).where(
            MilestoneModel.type == type,
            MilestoneModel.metric == metric,
            MilestoneModel.threshold == threshold,
            subject_clause,
        )
        result = await self.session.execute(stmt.limit(1))
        model = result.scalar_one_or_none()
        return MilestoneDTO.from_model(model) if model else None

    async def insert(self, dto: MilestoneDTO) -> tuple[MilestoneDTO, bool]:
        """Insert a milestone unless its tuple already exists.

        Returns:
            The stored milestone and whether it was newly created. An
            existing row is returned as-is, including its ``actual_value``
            and ``alerted`` state.
        """
        existing = await self.find(
            type=dto.type,
            subject=dto.subject,
            metric=dto.metric,
            threshold=dto.threshold,
        )
        if existing is not None:
            return existing, False

        model = MilestoneModel(
            type=dto.type,
            subject=dto.subject,
            metric=dto.metric,
            threshold=dto.threshold,
            actual_value=dto.actual_value,
            alerted=False,
        )
        self.session.add(model)
        await self.session.flush()
        return MilestoneDTO.from_model(model), True

    async def get_unalerted(self) -> list[MilestoneDTO]:
        """Unalerted milestones in creation order."""
        stmt = (
            select(MilestoneModel)
            .where(MilestoneModel.alerted == False)  # noqa: E712
            .order_by(MilestoneModel.created_at, MilestoneModel.id)
        )
        result = await self.session.execute(stmt)
        return [MilestoneDTO.from_model(m) for m in result.scalars().all()]

    async def mark_alerted(self, milestone_id: int) -> None:
        await self.session.execute(
            update(MilestoneModel).where(MilestoneModel.id == milestone_id).values(alerted=True)
        )
        await self.session.flush()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(MilestoneModel))
        return int(result.scalar_one())


class AddressResolutionRepository:
    """Repository for the append-only address resolution audit log."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def log(self, dto: AddressResolutionDTO) -> AddressResolutionDTO:
        model = AddressResolutionModel(
            deployment_id=dto.deployment_id,
            method=dto.method,
            query=dto.query,
            result_address=dto.result_address,
            confidence=dto.confidence,
            success=dto.success,
            error=dto.error,
            attempted_at=dto.attempted_at or datetime.now(UTC),
        )
        self.session.add(model)
        await self.session.flush()
        return AddressResolutionDTO.from_model(model)

    async def list_for_deployment(self, deployment_id: str) -> list[AddressResolutionDTO]:
        stmt = (
            select(AddressResolutionModel)
            .where(AddressResolutionModel.deployment_id == deployment_id)
            .order_by(AddressResolutionModel.id)
        )
        result = await self.session.execute(stmt)
        return [AddressResolutionDTO.from_model(m) for m in result.scalars().all()]
