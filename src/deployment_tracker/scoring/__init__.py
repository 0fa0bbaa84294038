"""Scoring layer - project signal scores and milestone detection."""

from deployment_tracker.scoring.engine import CATEGORY_SCORES, WEIGHTS, classify, score_project
from deployment_tracker.scoring.milestones import (
    MilestoneDetector,
    get_crossed_thresholds,
    get_deployment_milestones,
)
from deployment_tracker.scoring.models import (
    Classification,
    MilestoneCandidate,
    MilestoneType,
    ScoreBreakdown,
    ScoreInputs,
    ScoreResult,
)

__all__ = [
    "CATEGORY_SCORES",
    "Classification",
    "MilestoneCandidate",
    "MilestoneDetector",
    "MilestoneType",
    "ScoreBreakdown",
    "ScoreInputs",
    "ScoreResult",
    "WEIGHTS",
    "classify",
    "get_crossed_thresholds",
    "get_deployment_milestones",
    "score_project",
]
