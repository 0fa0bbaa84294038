"""SQLAlchemy models for persistent storage.

This module defines the database schema for tracked deployments, their
metric snapshots, ecosystem snapshots, milestones, and the address
resolution audit log.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DeploymentModel(Base):
    """A tracked project deployment.

    Identity columns are written once; only the enrichment columns
    (address, category, slug, verification) are updated in place.
    """

    __tablename__ = "deployments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    project: Mapped[str] = mapped_column(String(128), nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    tweet_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    contract_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    defillama_slug: Mapped[str | None] = mapped_column(String(128), nullable=True)
    contract_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_deployments_contract", "contract_address"),
        Index("idx_deployments_created", "created_at"),
    )


class ProjectMetricsModel(Base):
    """Append-only per-deployment metrics snapshot."""

    __tablename__ = "project_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deployment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("deployments.id"), nullable=False
    )

    tvl_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    tx_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    tx_count_delta: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # Exact wei as a decimal string; exceeds 64-bit integer range.
    balance_wei: Mapped[str | None] = mapped_column(String(80), nullable=True)
    balance_eth: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_verified: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    classification: Mapped[str | None] = mapped_column(String(16), nullable=True)

    snapshot_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_project_metrics_deployment_snapshot", "deployment_id", "snapshot_at"),
        Index("idx_project_metrics_snapshot", "snapshot_at"),
    )


class EcosystemMetricsModel(Base):
    """Append-only chain-wide metrics snapshot."""

    __tablename__ = "ecosystem_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    total_tvl: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_addresses: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total_txs: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    txs_24h: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    avg_gas_price: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avg_block_time: Mapped[float | None] = mapped_column(Float, nullable=True)
    deployment_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    snapshot_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_ecosystem_metrics_snapshot", "snapshot_at"),)


class MilestoneModel(Base):
    """A threshold crossing, stored at most once per (type, subject, metric, threshold).

    ``subject`` is NULL for ecosystem milestones; uniqueness for those rows is
    enforced by the repository's check-then-insert since NULLs never collide
    in a unique index.
    """

    __tablename__ = "milestones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    subject: Mapped[str | None] = mapped_column(String(128), nullable=True)
    metric: Mapped[str] = mapped_column(String(32), nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    actual_value: Mapped[float] = mapped_column(Float, nullable=False)
    alerted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_milestones_alerted", "alerted"),
        Index("idx_milestones_tuple", "type", "metric", "threshold", "subject"),
    )


class AddressResolutionModel(Base):
    """Audit log row for one address resolution attempt."""

    __tablename__ = "address_resolutions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deployment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("deployments.id"), nullable=False
    )
    method: Mapped[str] = mapped_column(String(32), nullable=False)
    query: Mapped[str | None] = mapped_column(String(256), nullable=True)
    result_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_address_resolutions_deployment", "deployment_id"),)
