"""Contract address resolution cascade.

Tries increasingly fuzzy strategies in a fixed order until one yields a
contract address:

    known_address    1.0  static table, confirmed on-chain
    explorer_search  0.7  first explorer search hit, confirmed on-chain
    analytics_match  0.6  protocol listed by the analytics provider

Every attempt is handed to a ``record`` callback so callers can keep an
audit trail. A miss returns None; exhaustion is itself recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from deployment_tracker.sources.analytics import find_protocol

if TYPE_CHECKING:
    from deployment_tracker.sources.analytics import ChainAnalyticsClient
    from deployment_tracker.sources.explorer import BlockExplorerClient
    from deployment_tracker.sources.rpc import ChainRpcClient

logger = logging.getLogger(__name__)

METHOD_KNOWN_ADDRESS = "known_address"
METHOD_EXPLORER_SEARCH = "explorer_search"
METHOD_ANALYTICS_MATCH = "analytics_match"
METHOD_ALL_FAILED = "all_methods_failed"

# Lower-cased project name -> contract address.
KNOWN_ADDRESSES: dict[str, str] = {
    "aave": "0x6A000a123a55b0E15CeCff1FE5f1D5B56FCB7f92",
}


@dataclass(frozen=True)
class ResolutionAttempt:
    """Outcome of one strategy for one project."""

    method: str
    query: str
    result_address: str | None
    confidence: float
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class ResolvedAddress:
    """A resolved contract address and how it was found."""

    address: str
    confidence: float
    method: str
    slug: str | None = None


@dataclass(frozen=True)
class StrategyMatch:
    address: str
    slug: str | None = None


RecordCallback = Callable[[ResolutionAttempt], Awaitable[None]]


class ResolutionStrategy(Protocol):
    """One step of the cascade."""

    method: str
    confidence: float

    async def find(self, project: str) -> StrategyMatch | None:
        """Return a match, or None to fall through to the next strategy."""
        ...


class KnownAddressStrategy:
    method = METHOD_KNOWN_ADDRESS
    confidence = 1.0

    def __init__(self, rpc: ChainRpcClient, known: Mapping[str, str] | None = None) -> None:
        self._rpc = rpc
        self._known = {k.lower(): v for k, v in (known or KNOWN_ADDRESSES).items()}

    async def find(self, project: str) -> StrategyMatch | None:
        address = self._known.get(project.lower())
        if not address:
            return None
        code = await self._rpc.get_code(address)
        if not code.is_contract:
            logger.debug("Known address for %s has no code", project)
            return None
        return StrategyMatch(address=address)


class ExplorerSearchStrategy:
    method = METHOD_EXPLORER_SEARCH
    confidence = 0.7

    def __init__(self, explorer: BlockExplorerClient, rpc: ChainRpcClient) -> None:
        self._explorer = explorer
        self._rpc = rpc

    async def find(self, project: str) -> StrategyMatch | None:
        results = await self._explorer.search(project)
        if not results or not results[0].address:
            return None
        address = results[0].address
        code = await self._rpc.get_code(address)
        if not code.is_contract:
            return None
        return StrategyMatch(address=address)


class AnalyticsMatchStrategy:
    method = METHOD_ANALYTICS_MATCH
    confidence = 0.6

    def __init__(self, analytics: ChainAnalyticsClient) -> None:
        self._analytics = analytics

    async def find(self, project: str) -> StrategyMatch | None:
        protocols = await self._analytics.get_protocols()
        match = find_protocol(protocols, project)
        if match is None:
            return None
        address = match.chain_address()
        if not address:
            return None
        return StrategyMatch(address=address, slug=match.slug)


class AddressResolver:
    """Runs the resolution strategies in order.

    Example:
        ```python
        resolver = AddressResolver.default(rpc=rpc, explorer=explorer, analytics=analytics)
        resolved = await resolver.resolve("aave", record=audit_log)
        ```
    """

    def __init__(self, strategies: Sequence[ResolutionStrategy]) -> None:
        self._strategies = list(strategies)

    @classmethod
    def default(
        cls,
        *,
        rpc: ChainRpcClient,
        explorer: BlockExplorerClient,
        analytics: ChainAnalyticsClient,
        known: Mapping[str, str] | None = None,
    ) -> AddressResolver:
        return cls(
            [
                KnownAddressStrategy(rpc, known),
                ExplorerSearchStrategy(explorer, rpc),
                AnalyticsMatchStrategy(analytics),
            ]
        )

    @property
    def strategies(self) -> list[ResolutionStrategy]:
        return list(self._strategies)

    async def resolve(self, project: str, *, record: RecordCallback) -> ResolvedAddress | None:
        """Resolve a project's contract address.

        Args:
            project: Project name (handle) to look up.
            record: Awaited with every attempt, including the final failure.

        Returns:
            The first confirmed address, or None when every strategy missed.
        """
        for strategy in self._strategies:
            try:
                match = await strategy.find(project)
            except Exception as e:
                logger.debug("%s failed for %s: %s", strategy.method, project, e)
                await record(
                    ResolutionAttempt(
                        method=strategy.method,
                        query=project,
                        result_address=None,
                        confidence=0.0,
                        success=False,
                        error=str(e) or type(e).__name__,
                    )
                )
                continue

            if match is None:
                await record(
                    ResolutionAttempt(
                        method=strategy.method,
                        query=project,
                        result_address=None,
                        confidence=0.0,
                        success=False,
                    )
                )
                continue

            await record(
                ResolutionAttempt(
                    method=strategy.method,
                    query=project,
                    result_address=match.address,
                    confidence=strategy.confidence,
                    success=True,
                )
            )
            return ResolvedAddress(
                address=match.address,
                confidence=strategy.confidence,
                method=strategy.method,
                slug=match.slug,
            )

        await record(
            ResolutionAttempt(
                method=METHOD_ALL_FAILED,
                query=project,
                result_address=None,
                confidence=0.0,
                success=False,
            )
        )
        return None
