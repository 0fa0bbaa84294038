"""Tests for the address resolution cascade."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from deployment_tracker.resolver.cascade import (
    AddressResolver,
    ResolutionAttempt,
    ResolvedAddress,
)
from deployment_tracker.sources.fetch import FetchError
from deployment_tracker.sources.models import CodeInfo, Protocol, SearchResult

AAVE_ADDRESS = "0x6A000a123a55b0E15CeCff1FE5f1D5B56FCB7f92"
SEARCH_ADDRESS = "0x2222222222222222222222222222222222222222"
PROTOCOL_ADDRESS = "0x3333333333333333333333333333333333333333"

CONTRACT = CodeInfo(code="0x6080604052", is_contract=True)
NOT_CONTRACT = CodeInfo(code="0x", is_contract=False)


class Recorder:
    def __init__(self) -> None:
        self.attempts: list[ResolutionAttempt] = []

    async def __call__(self, attempt: ResolutionAttempt) -> None:
        self.attempts.append(attempt)

    @property
    def methods(self) -> list[str]:
        return [a.method for a in self.attempts]


@pytest.fixture
def rpc() -> AsyncMock:
    rpc = AsyncMock()
    rpc.get_code = AsyncMock(return_value=CONTRACT)
    return rpc


@pytest.fixture
def explorer() -> AsyncMock:
    explorer = AsyncMock()
    explorer.search = AsyncMock(return_value=[])
    return explorer


@pytest.fixture
def analytics() -> AsyncMock:
    analytics = AsyncMock()
    analytics.get_protocols = AsyncMock(return_value=[])
    return analytics


@pytest.fixture
def resolver(rpc: AsyncMock, explorer: AsyncMock, analytics: AsyncMock) -> AddressResolver:
    return AddressResolver.default(rpc=rpc, explorer=explorer, analytics=analytics)


@pytest.fixture
def record() -> Recorder:
    return Recorder()


class TestKnownAddress:
    @pytest.mark.asyncio
    async def test_known_address_with_code(
        self, resolver: AddressResolver, explorer: AsyncMock, record: Recorder
    ) -> None:
        resolved = await resolver.resolve("Aave", record=record)

        assert resolved == ResolvedAddress(
            address=AAVE_ADDRESS, confidence=1.0, method="known_address"
        )
        assert record.methods == ["known_address"]
        assert record.attempts[0].success is True
        explorer.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_known_address_without_code_falls_through_to_search(
        self, resolver: AddressResolver, rpc: AsyncMock, explorer: AsyncMock, record: Recorder
    ) -> None:
        rpc.get_code.side_effect = [NOT_CONTRACT, CONTRACT]
        explorer.search.return_value = [SearchResult(type="contract", address=SEARCH_ADDRESS)]

        resolved = await resolver.resolve("aave", record=record)

        assert resolved is not None
        assert resolved.address == SEARCH_ADDRESS
        assert resolved.method == "explorer_search"
        assert resolved.confidence == 0.7
        assert record.methods == ["known_address", "explorer_search"]
        assert [a.success for a in record.attempts] == [False, True]


class TestExplorerSearch:
    @pytest.mark.asyncio
    async def test_search_hit_without_code_is_rejected(
        self,
        resolver: AddressResolver,
        rpc: AsyncMock,
        explorer: AsyncMock,
        record: Recorder,
    ) -> None:
        rpc.get_code.return_value = NOT_CONTRACT
        explorer.search.return_value = [SearchResult(type="address", address=SEARCH_ADDRESS)]

        assert await resolver.resolve("gte", record=record) is None
        assert record.methods == [
            "known_address",
            "explorer_search",
            "analytics_match",
            "all_methods_failed",
        ]

    @pytest.mark.asyncio
    async def test_adapter_error_is_a_miss(
        self,
        resolver: AddressResolver,
        explorer: AsyncMock,
        analytics: AsyncMock,
        record: Recorder,
    ) -> None:
        explorer.search.side_effect = FetchError("HTTP 503", status=503)
        analytics.get_protocols.return_value = [
            Protocol.from_dict(
                {
                    "name": "GTE",
                    "slug": "gte-dex",
                    "address": f"megaeth:{PROTOCOL_ADDRESS}",
                    "chains": ["MegaETH"],
                }
            )
        ]

        resolved = await resolver.resolve("gte", record=record)

        assert resolved == ResolvedAddress(
            address=PROTOCOL_ADDRESS,
            confidence=0.6,
            method="analytics_match",
            slug="gte-dex",
        )
        search_attempt = record.attempts[1]
        assert search_attempt.method == "explorer_search"
        assert search_attempt.success is False
        assert search_attempt.error == "HTTP 503"


class TestExhaustion:
    @pytest.mark.asyncio
    async def test_protocol_without_address_is_skipped(
        self, resolver: AddressResolver, analytics: AsyncMock, record: Recorder
    ) -> None:
        analytics.get_protocols.return_value = [
            Protocol.from_dict({"name": "Kumbaya", "slug": "kumbaya", "chains": ["MegaETH"]})
        ]

        assert await resolver.resolve("kumbaya", record=record) is None

        final = record.attempts[-1]
        assert final.method == "all_methods_failed"
        assert final.success is False
        assert final.confidence == 0.0
        assert final.result_address is None
        assert final.query == "kumbaya"

    @pytest.mark.asyncio
    async def test_custom_strategy_order(self, record: Recorder) -> None:
        class AlwaysMiss:
            method = "never"
            confidence = 0.9

            async def find(self, project: str) -> None:
                return None

        resolver = AddressResolver([AlwaysMiss()])

        assert await resolver.resolve("x", record=record) is None
        assert record.methods == ["never", "all_methods_failed"]
