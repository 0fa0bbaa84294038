"""Milestone threshold crossing detection.

Metric values are compared against ascending threshold tables; every
threshold at or below the current value counts as crossed. Recording goes
through the idempotent milestone repository, so a crossing is stored once
no matter how many runs observe it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from deployment_tracker.scoring.models import MilestoneCandidate, MilestoneType
from deployment_tracker.storage.repos import MilestoneDTO, MilestoneRepository

logger = logging.getLogger(__name__)

ECOSYSTEM_TVL_THRESHOLDS = (1e6, 5e6, 10e6, 25e6, 50e6, 100e6, 250e6, 500e6, 1e9)
PROJECT_TVL_THRESHOLDS = (10e3, 50e3, 100e3, 500e3, 1e6, 5e6, 10e6)
ECOSYSTEM_TXS_THRESHOLDS = (100e3, 500e3, 1e6, 5e6, 10e6, 50e6, 100e6, 500e6)
ACTIVE_WALLETS_THRESHOLDS = (1e3, 5e3, 10e3, 50e3, 100e3, 500e3, 1e6)

DEPLOYMENT_COUNT_INTERVAL = 10
# Counting starts above the backfilled history so old milestones are not re-raised.
DEPLOYMENT_COUNT_FLOOR = 40

METRIC_TVL = "tvl"
METRIC_TOTAL_TXS = "total_txs"
METRIC_ACTIVE_WALLETS = "active_wallets"
METRIC_DEPLOYMENT_COUNT = "deployment_count"


def get_crossed_thresholds(value: float, thresholds: Sequence[float]) -> list[float]:
    """Every threshold less than or equal to ``value``."""
    return [t for t in thresholds if value >= t]


def get_deployment_milestones(
    count: int,
    *,
    interval: int = DEPLOYMENT_COUNT_INTERVAL,
    floor: int = DEPLOYMENT_COUNT_FLOOR,
) -> list[int]:
    """Multiples of ``interval`` from ``floor`` up to ``count`` inclusive."""
    return [n for n in range(interval, count + 1, interval) if n >= floor]


class MilestoneDetector:
    """Builds milestone candidates from metrics and records new ones.

    Example:
        ```python
        detector = MilestoneDetector()
        candidates = detector.project_candidates("aave", tvl_usd=12e6)
        async with db.get_async_session() as session:
            created = await detector.record(candidates, MilestoneRepository(session))
        ```
    """

    def __init__(
        self,
        *,
        deployment_interval: int = DEPLOYMENT_COUNT_INTERVAL,
        deployment_floor: int = DEPLOYMENT_COUNT_FLOOR,
    ) -> None:
        self._deployment_interval = deployment_interval
        self._deployment_floor = deployment_floor

    @staticmethod
    def _crossings(
        type: MilestoneType,
        subject: str | None,
        metric: str,
        value: float | None,
        thresholds: Sequence[float],
    ) -> list[MilestoneCandidate]:
        if not value:
            return []
        return [
            MilestoneCandidate(
                type=type,
                subject=subject,
                metric=metric,
                threshold=float(threshold),
                actual_value=float(value),
            )
            for threshold in get_crossed_thresholds(value, thresholds)
        ]

    def ecosystem_candidates(
        self,
        *,
        total_tvl: float | None,
        total_txs: int | None,
        total_addresses: int | None,
        deployment_count: int,
    ) -> list[MilestoneCandidate]:
        """Candidates for chain-wide TVL, transactions, wallets, and deployment count."""
        eco = MilestoneType.ECOSYSTEM
        candidates = [
            *self._crossings(eco, None, METRIC_TVL, total_tvl, ECOSYSTEM_TVL_THRESHOLDS),
            *self._crossings(eco, None, METRIC_TOTAL_TXS, total_txs, ECOSYSTEM_TXS_THRESHOLDS),
            *self._crossings(
                eco, None, METRIC_ACTIVE_WALLETS, total_addresses, ACTIVE_WALLETS_THRESHOLDS
            ),
        ]
        for threshold in get_deployment_milestones(
            deployment_count,
            interval=self._deployment_interval,
            floor=self._deployment_floor,
        ):
            candidates.append(
                MilestoneCandidate(
                    type=eco,
                    subject=None,
                    metric=METRIC_DEPLOYMENT_COUNT,
                    threshold=float(threshold),
                    actual_value=float(deployment_count),
                )
            )
        return candidates

    def project_candidates(self, project: str, *, tvl_usd: float | None) -> list[MilestoneCandidate]:
        """Candidates for a project's TVL."""
        return self._crossings(
            MilestoneType.PROJECT, project, METRIC_TVL, tvl_usd, PROJECT_TVL_THRESHOLDS
        )

    async def record(
        self,
        candidates: Sequence[MilestoneCandidate],
        repo: MilestoneRepository,
    ) -> list[MilestoneDTO]:
        """Insert candidates idempotently.

        Returns:
            Only the milestones created by this call.
        """
        created: list[MilestoneDTO] = []
        for candidate in candidates:
            milestone, is_new = await repo.insert(
                MilestoneDTO(
                    type=candidate.type.value,
                    subject=candidate.subject,
                    metric=candidate.metric,
                    threshold=candidate.threshold,
                    actual_value=candidate.actual_value,
                )
            )
            if is_new:
                logger.info(
                    "Milestone crossed: %s/%s%s >= %s (actual %s)",
                    milestone.type,
                    milestone.metric,
                    f" [{milestone.subject}]" if milestone.subject else "",
                    milestone.threshold,
                    milestone.actual_value,
                )
                created.append(milestone)
        return created
