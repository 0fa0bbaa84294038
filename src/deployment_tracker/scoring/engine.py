"""Deterministic project signal scoring.

Seven independently computed components are summed and capped at 100:

    tvl_relative       25  project TVL share of the ecosystem
    contract_verified  15  source verified on the explorer
    tx_activity        20  latest tx delta against the trailing average
    balance_health     10  native balance held by the contract
    age_sustained       5  age combined with any activity
    category_strength  10  fixed weight per category
    analytics_listed   15  TVL reported by the analytics provider

The score is then mapped to a Classification tier. Scoring has no side
effects; ``now`` is injectable so the age component is reproducible.
"""

from __future__ import annotations

from datetime import UTC, datetime

from deployment_tracker.scoring.models import (
    Classification,
    ScoreBreakdown,
    ScoreInputs,
    ScoreResult,
)

MAX_SCORE = 100

WEIGHTS = {
    "tvl_relative": 25,
    "contract_verified": 15,
    "tx_activity": 20,
    "balance_health": 10,
    "age_sustained": 5,
    "category_strength": 10,
    "analytics_listed": 15,
}

CATEGORY_SCORES = {
    "defi": 10,
    "oracle": 10,
    "bridge": 9,
    "infra": 8,
    "trading": 7,
    "launchpad": 6,
    "gaming": 5,
    "social": 4,
    "nft": 4,
    "other": 3,
}

# Classification thresholds (inclusive lower bounds)
ALPHA_THRESHOLD = 75
ROUTINE_THRESHOLD = 40
WARNING_THRESHOLD = 20

# (exclusive lower bound, points), checked in order
TVL_SHARE_TIERS = ((0.10, 25), (0.05, 20), (0.01, 15), (0.001, 10))
TVL_SHARE_FLOOR = 5
TX_RATIO_TIERS = ((2.0, 20), (1.5, 16), (1.0, 12), (0.5, 8))
TX_RATIO_FLOOR = 4
TX_SOME_ACTIVITY = 4
BALANCE_TIERS = ((10.0, 10), (1.0, 8), (0.1, 5), (0.0, 2))

SECONDS_PER_DAY = 86400.0


def classify(score: float) -> Classification:
    """Map a score to its classification tier."""
    if score >= ALPHA_THRESHOLD:
        return Classification.ALPHA
    if score >= ROUTINE_THRESHOLD:
        return Classification.ROUTINE
    if score >= WARNING_THRESHOLD:
        return Classification.WARNING
    return Classification.RISK


def _tiered(value: float, tiers: tuple[tuple[float, int], ...], floor: int) -> int:
    for bound, points in tiers:
        if value > bound:
            return points
    return floor


def score_tvl_relative(tvl_usd: float | None, ecosystem_tvl: float | None) -> int:
    if tvl_usd is None or not ecosystem_tvl or ecosystem_tvl <= 0:
        return 0
    return _tiered(tvl_usd / ecosystem_tvl, TVL_SHARE_TIERS, TVL_SHARE_FLOOR)


def score_tx_activity(
    tx_count_delta: int | None,
    tx_count_7d_avg: float | None,
    tx_count: int | None,
) -> int:
    if tx_count_delta is not None and tx_count_7d_avg is not None and tx_count_7d_avg > 0:
        return _tiered(tx_count_delta / tx_count_7d_avg, TX_RATIO_TIERS, TX_RATIO_FLOOR)
    if tx_count is not None and tx_count > 0:
        return TX_SOME_ACTIVITY
    return 0


def score_balance_health(balance_eth: float | None) -> int:
    if balance_eth is None:
        return 0
    return _tiered(float(balance_eth), BALANCE_TIERS, 0)


def score_age_sustained(created_at: datetime | None, tx_count: int | None, now: datetime) -> int:
    """Older projects with activity earn more; old and inactive ones earn nothing."""
    if created_at is None:
        return 0
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    age_days = (now - created_at).total_seconds() / SECONDS_PER_DAY
    active = tx_count is not None and tx_count > 0
    if age_days > 7 and active:
        return 5
    if age_days > 3 and active:
        return 3
    if age_days < 3:
        return 1  # too young to judge
    return 0


def score_category(category: str | None) -> int:
    key = (category or "other").lower()
    return CATEGORY_SCORES.get(key, CATEGORY_SCORES["other"])


def score_project(inputs: ScoreInputs, *, now: datetime | None = None) -> ScoreResult:
    """Score a project from its raw metrics.

    Args:
        inputs: Project metrics and ecosystem context.
        now: Reference time for the age component (defaults to current UTC).

    Returns:
        ScoreResult with the capped score, its classification and breakdown.
    """
    now = now or datetime.now(UTC)
    breakdown = ScoreBreakdown(
        tvl_relative=score_tvl_relative(inputs.tvl_usd, inputs.ecosystem_tvl),
        contract_verified=WEIGHTS["contract_verified"] if inputs.is_verified else 0,
        tx_activity=score_tx_activity(inputs.tx_count_delta, inputs.tx_count_7d_avg, inputs.tx_count),
        balance_health=score_balance_health(inputs.balance_eth),
        age_sustained=score_age_sustained(inputs.created_at, inputs.tx_count, now),
        category_strength=score_category(inputs.category),
        analytics_listed=WEIGHTS["analytics_listed"] if inputs.analytics_listed else 0,
    )
    score = min(breakdown.total, MAX_SCORE)
    return ScoreResult(score=score, classification=classify(score), breakdown=breakdown)
