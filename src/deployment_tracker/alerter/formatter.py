"""Milestone alert message formatting.

Messages use Telegram's legacy Markdown: ``*bold*`` only, so subjects and
labels are kept free of other markup characters.
"""

from __future__ import annotations

import re

from deployment_tracker.storage.repos import MilestoneDTO

ECOSYSTEM_METRIC_LABELS = {
    "tvl": "Total TVL",
    "total_txs": "Total Transactions",
    "active_wallets": "Active Wallets",
    "deployment_count": "Deployments Tracked",
}
PROJECT_METRIC_LABELS = {
    "tvl": "TVL",
}

# Metrics quoted in dollars
USD_METRICS = frozenset({"tvl"})


def format_number(value: float | None) -> str:
    """Compact human-readable number: 1.2B, 3.4M, 56K, 7."""
    if value is None:
        return "N/A"
    if value >= 1e9:
        return f"{value / 1e9:.1f}B"
    if value >= 1e6:
        return f"{value / 1e6:.1f}M"
    if value >= 1e3:
        return f"{value / 1e3:.0f}K"
    return f"{value:.0f}"


def _hashtag(chain: str) -> str:
    return "#" + re.sub(r"[^0-9A-Za-z_]", "", chain)


def format_milestone_message(milestone: MilestoneDTO, *, chain: str = "MegaETH") -> str:
    """Render a milestone as a Markdown chat message."""
    value = format_number(milestone.actual_value)
    threshold = format_number(milestone.threshold)
    tags = f"{_hashtag(chain)} #Milestone"

    if milestone.type == "ecosystem":
        label = ECOSYSTEM_METRIC_LABELS.get(milestone.metric, milestone.metric)
        prefix = "$" if milestone.metric in USD_METRICS else ""
        return (
            f"*{chain.upper()} ECOSYSTEM MILESTONE*\n\n"
            f"{label} has crossed *{prefix}{threshold}*\n"
            f"Current: *{prefix}{value}*\n\n"
            f"{tags}"
        )

    if milestone.type == "project":
        label = PROJECT_METRIC_LABELS.get(milestone.metric, milestone.metric)
        prefix = "$" if milestone.metric in USD_METRICS else ""
        return (
            "*PROJECT MILESTONE*\n\n"
            f"@{milestone.subject}: {label} crossed *{prefix}{threshold}*\n"
            f"Current: *{prefix}{value}*\n\n"
            f"{tags}"
        )

    return f"*MILESTONE*: {milestone.metric} crossed {threshold} (now: {value})"


def format_milestone_summary(milestone: MilestoneDTO) -> str:
    """One-line description used in logs."""
    subject = f" @{milestone.subject}" if milestone.subject else ""
    return f"{milestone.type}/{milestone.metric}{subject} crossed {format_number(milestone.threshold)}"
