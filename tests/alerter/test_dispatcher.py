"""Tests for milestone alert dispatch."""

from unittest.mock import AsyncMock

import pytest

from deployment_tracker.alerter.channels.log import LogChannel
from deployment_tracker.alerter.dispatcher import AlertDeliveryError, MilestoneAlerter
from deployment_tracker.storage.repos import MilestoneDTO, MilestoneRepository


async def seed(db, *thresholds: float) -> list[int]:
    ids = []
    async with db.get_async_session() as session:
        repo = MilestoneRepository(session)
        for threshold in thresholds:
            stored, _ = await repo.insert(
                MilestoneDTO(
                    type="ecosystem",
                    subject=None,
                    metric="tvl",
                    threshold=threshold,
                    actual_value=threshold * 1.1,
                )
            )
            ids.append(stored.id)
    return ids


async def unalerted_ids(db) -> list[int]:
    async with db.get_async_session() as session:
        return [m.id for m in await MilestoneRepository(session).get_unalerted()]


class FlakyChannel:
    """Rejects every message containing a marker."""

    name = "flaky"

    def __init__(self, reject: str) -> None:
        self.reject = reject
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        if self.reject in text:
            raise AlertDeliveryError(self.name, "chat not found")
        self.sent.append(text)


class TestMilestoneAlerter:
    @pytest.mark.asyncio
    async def test_drain_sends_in_creation_order(self, db, sleeper):
        await seed(db, 1e6, 5e6)
        channel = LogChannel()
        alerter = MilestoneAlerter(db, channel, sleep=sleeper)

        result = await alerter.drain()

        assert result.pending == 2
        assert result.sent == 2
        assert result.all_succeeded
        assert [t.splitlines()[2] for t in channel.sent] == [
            "Total TVL has crossed *$1.0M*",
            "Total TVL has crossed *$5.0M*",
        ]
        assert sleeper.delays == [0.5, 0.5]
        assert await unalerted_ids(db) == []

    @pytest.mark.asyncio
    async def test_failed_delivery_stays_pending(self, db, sleeper):
        first, second = await seed(db, 1e6, 5e6)
        alerter = MilestoneAlerter(db, FlakyChannel(reject="$5.0M"), sleep=sleeper)

        result = await alerter.drain()

        assert result.sent == 1
        assert result.failed == [second]
        assert not result.all_succeeded
        assert await unalerted_ids(db) == [second]
        assert sleeper.delays == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_redrain_retries_only_failures(self, db, sleeper):
        _, second = await seed(db, 1e6, 5e6)
        await MilestoneAlerter(db, FlakyChannel(reject="$5.0M"), sleep=sleeper).drain()
        channel = LogChannel()

        result = await MilestoneAlerter(db, channel, sleep=sleeper).drain()

        assert result.pending == 1
        assert len(channel.sent) == 1
        assert "$5.0M" in channel.sent[0]
        assert await unalerted_ids(db) == []

    @pytest.mark.asyncio
    async def test_nothing_pending(self, db, sleeper):
        channel = AsyncMock()
        channel.name = "mock"

        result = await MilestoneAlerter(db, channel, sleep=sleeper).drain()

        assert result.pending == 0
        channel.send.assert_not_awaited()
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_custom_pause_and_chain(self, db, sleeper):
        await seed(db, 1e6)
        channel = LogChannel()

        await MilestoneAlerter(db, channel, chain="Base", pause_seconds=1.5, sleep=sleeper).drain()

        assert channel.sent[0].startswith("*BASE ECOSYSTEM MILESTONE*")
        assert sleeper.delays == [1.5]
