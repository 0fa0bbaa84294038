"""Data models for the scoring module."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum


class Classification(str, Enum):
    """Signal tier derived from a project's score."""

    ALPHA = "ALPHA"
    ROUTINE = "ROUTINE"
    WARNING = "WARNING"
    RISK = "RISK"


class MilestoneType(str, Enum):
    ECOSYSTEM = "ecosystem"
    PROJECT = "project"


@dataclass(frozen=True)
class ScoreInputs:
    """Raw metrics of one project plus the ecosystem context.

    Attributes:
        tvl_usd: Project TVL in USD, None when unknown.
        ecosystem_tvl: Total chain TVL in USD, None when unknown.
        is_verified: Contract source verified on the explorer.
        tx_count_delta: Transactions since the previous snapshot.
        tx_count_7d_avg: Average delta over the trailing window.
        balance_eth: Native balance held by the contract.
        created_at: When the deployment was first observed.
        tx_count: Total transaction count of the contract.
        category: Project category (defi, oracle, ...).
        analytics_listed: Whether the analytics provider reports a TVL for it.
    """

    tvl_usd: float | None = None
    ecosystem_tvl: float | None = None
    is_verified: bool = False
    tx_count_delta: int | None = None
    tx_count_7d_avg: float | None = None
    balance_eth: float | None = None
    created_at: datetime | None = None
    tx_count: int | None = None
    category: str | None = None
    analytics_listed: bool = False


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points awarded per component, kept for explainability."""

    tvl_relative: int = 0
    contract_verified: int = 0
    tx_activity: int = 0
    balance_health: int = 0
    age_sustained: int = 0
    category_strength: int = 0
    analytics_listed: int = 0

    @property
    def total(self) -> int:
        return sum(self.to_dict().values())

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreResult:
    """Final capped score, its tier, and the per-component breakdown."""

    score: int
    classification: Classification
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "classification": self.classification.value,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class MilestoneCandidate:
    """A crossed threshold that should be recorded as a milestone."""

    type: MilestoneType
    subject: str | None
    metric: str
    threshold: float
    actual_value: float
