"""Alerter module - Milestone alert formatting and delivery."""

from deployment_tracker.alerter.dispatcher import (
    AlertChannel,
    AlertDeliveryError,
    DrainResult,
    MilestoneAlerter,
)
from deployment_tracker.alerter.formatter import format_milestone_message, format_number

__all__ = [
    "AlertChannel",
    "AlertDeliveryError",
    "DrainResult",
    "MilestoneAlerter",
    "format_milestone_message",
    "format_number",
]
