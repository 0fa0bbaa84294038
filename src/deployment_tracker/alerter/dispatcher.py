"""Milestone alert dispatch.

Drains unalerted milestones from the store in creation order and delivers
them through an AlertChannel. A milestone is marked alerted only after
the channel accepted it, so failed deliveries are retried on the next
drain.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from deployment_tracker.alerter.formatter import format_milestone_message, format_milestone_summary
from deployment_tracker.storage.database import DatabaseManager
from deployment_tracker.storage.repos import MilestoneDTO, MilestoneRepository

logger = logging.getLogger(__name__)

DEFAULT_ALERT_PAUSE_SECONDS = 0.5

SleepFunc = Callable[[float], Awaitable[None]]


class AlertDeliveryError(Exception):
    """Raised by a channel when a message could not be delivered."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class AlertChannel(Protocol):
    """Destination for formatted alert messages."""

    name: str

    async def send(self, text: str) -> None:
        """Deliver a message.

        Raises:
            AlertDeliveryError: If the message was not delivered.
        """
        ...


@dataclass
class DrainResult:
    """Outcome of one drain."""

    pending: int = 0
    sent: int = 0
    failed: list[int] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


class MilestoneAlerter:
    """Sends pending milestone alerts and marks them alerted.

    Example:
        ```python
        alerter = MilestoneAlerter(db, LogChannel())
        result = await alerter.drain()
        ```
    """

    def __init__(
        self,
        db: DatabaseManager,
        channel: AlertChannel,
        *,
        chain: str = "MegaETH",
        pause_seconds: float = DEFAULT_ALERT_PAUSE_SECONDS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._db = db
        self._channel = channel
        self._chain = chain
        self._pause = pause_seconds
        self._sleep = sleep

    @property
    def channel(self) -> AlertChannel:
        return self._channel

    async def drain(self) -> DrainResult:
        """Deliver every unalerted milestone once."""
        async with self._db.get_async_session() as session:
            milestones = await MilestoneRepository(session).get_unalerted()

        result = DrainResult(pending=len(milestones))
        logger.info("Found %d unalerted milestones", len(milestones))
        if not milestones:
            return result

        for milestone in milestones:
            if await self._deliver(milestone):
                result.sent += 1
            elif milestone.id is not None:
                result.failed.append(milestone.id)
            await self._sleep(self._pause)

        logger.info(
            "Milestone alerts complete via %s: %d/%d sent",
            self._channel.name,
            result.sent,
            result.pending,
        )
        return result

    async def _deliver(self, milestone: MilestoneDTO) -> bool:
        text = format_milestone_message(milestone, chain=self._chain)
        try:
            await self._channel.send(text)
        except AlertDeliveryError as e:
            logger.error("Alert failed for %s: %s", format_milestone_summary(milestone), e)
            return False

        if milestone.id is not None:
            async with self._db.get_async_session() as session:
                await MilestoneRepository(session).mark_alerted(milestone.id)
        logger.info("Alert sent: %s", format_milestone_summary(milestone))
        return True
