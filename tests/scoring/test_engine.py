"""Tests for the project scoring engine."""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from deployment_tracker.scoring.engine import (
    CATEGORY_SCORES,
    MAX_SCORE,
    WEIGHTS,
    classify,
    score_age_sustained,
    score_balance_health,
    score_project,
    score_tvl_relative,
    score_tx_activity,
)
from deployment_tracker.scoring.models import Classification, ScoreInputs

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

MAX_INPUTS = ScoreInputs(
    tvl_usd=20_000_000,
    ecosystem_tvl=50_000_000,
    is_verified=True,
    tx_count_delta=300,
    tx_count_7d_avg=100,
    balance_eth=25.0,
    created_at=NOW - timedelta(days=30),
    tx_count=10_000,
    category="defi",
    analytics_listed=True,
)


@pytest.fixture
def strong_inputs() -> ScoreInputs:
    return ScoreInputs(
        tvl_usd=6_000_000,
        ecosystem_tvl=50_000_000,
        is_verified=True,
        tx_count_delta=120,
        tx_count_7d_avg=50,
        balance_eth=2.0,
        created_at=NOW - timedelta(days=10),
        tx_count=5_000,
        category="defi",
        analytics_listed=True,
    )


class TestScoreProject:
    """End-to-end scoring tests."""

    def test_strong_project_is_alpha(self, strong_inputs: ScoreInputs) -> None:
        result = score_project(strong_inputs, now=NOW)

        assert result.breakdown.to_dict() == {
            "tvl_relative": 25,
            "contract_verified": 15,
            "tx_activity": 20,
            "balance_health": 8,
            "age_sustained": 5,
            "category_strength": 10,
            "analytics_listed": 15,
        }
        assert result.score == 98
        assert result.classification == Classification.ALPHA

    def test_empty_inputs_score_low(self) -> None:
        result = score_project(ScoreInputs(), now=NOW)

        # Only the "other" category contributes
        assert result.score == CATEGORY_SCORES["other"]
        assert result.classification == Classification.RISK

    @pytest.mark.parametrize(
        ("inputs", "expected_score", "expected_class"),
        [
            (MAX_INPUTS, 100, Classification.ALPHA),
            (ScoreInputs(), 3, Classification.RISK),
            (
                ScoreInputs(
                    tvl_usd=0,
                    ecosystem_tvl=0,
                    tx_count_delta=0,
                    tx_count_7d_avg=0,
                    balance_eth=0,
                    created_at=NOW - timedelta(days=30),
                    tx_count=0,
                    category="other",
                ),
                3,
                Classification.RISK,
            ),
        ],
        ids=["all-max", "all-unknown", "all-zero"],
    )
    def test_extremes(
        self, inputs: ScoreInputs, expected_score: int, expected_class: Classification
    ) -> None:
        result = score_project(inputs, now=NOW)

        assert result.score == expected_score
        assert result.classification == expected_class

    def test_all_max_hits_every_weight(self) -> None:
        assert score_project(MAX_INPUTS, now=NOW).breakdown.to_dict() == WEIGHTS

    def test_score_stays_in_range_for_all_extremes(self) -> None:
        options = {
            "tvl_usd": (None, 0, 1e12),
            "ecosystem_tvl": (None, 0, 1e6),
            "is_verified": (False, True),
            "tx_count_delta": (None, -5, 10**6),
            "tx_count_7d_avg": (None, 0, 1),
            "balance_eth": (None, 0, 1e6),
            "created_at": (None, NOW + timedelta(days=1), NOW - timedelta(days=365)),
            "tx_count": (None, 0, 10**9),
            "category": (None, "defi", "memecoin"),
            "analytics_listed": (False, True),
        }
        names = list(options)

        for values in itertools.product(*options.values()):
            inputs = ScoreInputs(**dict(zip(names, values, strict=True)))
            result = score_project(inputs, now=NOW)

            assert 0 <= result.score <= MAX_SCORE, inputs
            assert result.score == min(sum(result.breakdown.to_dict().values()), MAX_SCORE)
            assert result.classification == classify(result.score)

    def test_naive_created_at_is_treated_as_utc(self, strong_inputs: ScoreInputs) -> None:
        naive = replace(strong_inputs, created_at=(NOW - timedelta(days=10)).replace(tzinfo=None))
        assert score_project(naive, now=NOW).breakdown.age_sustained == 5

    def test_to_dict(self, strong_inputs: ScoreInputs) -> None:
        data = score_project(strong_inputs, now=NOW).to_dict()
        assert data["score"] == 98
        assert data["classification"] == "ALPHA"


class TestClassify:
    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (100, Classification.ALPHA),
            (75, Classification.ALPHA),
            (74, Classification.ROUTINE),
            (40, Classification.ROUTINE),
            (39, Classification.WARNING),
            (20, Classification.WARNING),
            (19, Classification.RISK),
            (0, Classification.RISK),
        ],
    )
    def test_boundaries(self, score: int, expected: Classification) -> None:
        assert classify(score) == expected


class TestComponents:
    def test_tvl_relative_tiers(self) -> None:
        assert score_tvl_relative(11, 100) == 25
        assert score_tvl_relative(10, 100) == 20  # exactly 10% is not above 10%
        assert score_tvl_relative(2, 100) == 15
        assert score_tvl_relative(0.5, 100) == 10
        assert score_tvl_relative(0.05, 100) == 5

    def test_tvl_relative_unknown(self) -> None:
        assert score_tvl_relative(None, 100) == 0
        assert score_tvl_relative(10, None) == 0
        assert score_tvl_relative(10, 0) == 0

    def test_tx_activity(self) -> None:
        assert score_tx_activity(120, 50, 1000) == 20
        assert score_tx_activity(80, 50, 1000) == 16
        assert score_tx_activity(60, 50, 1000) == 12
        assert score_tx_activity(30, 50, 1000) == 8
        assert score_tx_activity(10, 50, 1000) == 4

    def test_tx_activity_without_average(self) -> None:
        assert score_tx_activity(None, None, 12) == 4
        assert score_tx_activity(5, 0, 12) == 4
        assert score_tx_activity(None, None, 0) == 0
        assert score_tx_activity(None, None, None) == 0

    def test_balance_health(self) -> None:
        assert score_balance_health(11) == 10
        assert score_balance_health(2) == 8
        assert score_balance_health(0.5) == 5
        assert score_balance_health(0.01) == 2
        assert score_balance_health(0) == 0
        assert score_balance_health(None) == 0

    def test_age_sustained(self) -> None:
        assert score_age_sustained(NOW - timedelta(days=10), 5, NOW) == 5
        assert score_age_sustained(NOW - timedelta(days=5), 5, NOW) == 3
        assert score_age_sustained(NOW - timedelta(days=1), 0, NOW) == 1
        assert score_age_sustained(NOW - timedelta(days=10), 0, NOW) == 0
        assert score_age_sustained(None, 5, NOW) == 0

    def test_unknown_category_scores_as_other(self) -> None:
        inputs = ScoreInputs(category="memecoin")
        assert score_project(inputs, now=NOW).breakdown.category_strength == CATEGORY_SCORES["other"]
