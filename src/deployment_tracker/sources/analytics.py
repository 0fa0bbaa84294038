"""Chain-analytics (DefiLlama) adapter.

Provides ecosystem TVL history, the protocol listing for the tracked chain
(cached in-process), and per-protocol TVL lookups.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from deployment_tracker.sources.fetch import FetchClient
from deployment_tracker.sources.models import EcosystemTvl, Protocol

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.llama.fi"
DEFAULT_PROTOCOLS_CACHE_TTL_SECONDS = 3600.0


@dataclass(frozen=True)
class ProtocolCache:
    """Snapshot of the chain's protocol listing and when it was fetched."""

    data: list[Protocol]
    fetched_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return (now - self.fetched_at) < ttl_seconds


class ChainAnalyticsClient:
    """Read-only view of the chain-analytics provider for one chain."""

    def __init__(
        self,
        fetch_client: FetchClient,
        *,
        chain: str,
        base_url: str = DEFAULT_BASE_URL,
        cache_ttl_seconds: float = DEFAULT_PROTOCOLS_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the adapter.

        Args:
            fetch_client: Shared fetch client.
            chain: Chain name as spelled by the provider (e.g. "MegaETH").
            base_url: API base URL.
            cache_ttl_seconds: Lifetime of the cached protocol listing.
            clock: Monotonic time source, injectable for tests.
        """
        self._fetch = fetch_client
        self._chain = chain
        self._base_url = base_url.rstrip("/")
        self._cache_ttl = cache_ttl_seconds
        self._clock = clock
        self._cache: ProtocolCache | None = None

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def cache(self) -> ProtocolCache | None:
        return self._cache

    def invalidate(self) -> None:
        """Drop the cached protocol listing; the next call refetches it."""
        self._cache = None

    async def get_ecosystem_tvl(self) -> EcosystemTvl | None:
        """Get the chain's historical TVL series, or None when empty."""
        data = await self._fetch.fetch_json(
            f"{self._base_url}/v2/historicalChainTvl/{quote(self._chain)}"
        )
        if not isinstance(data, list):
            return None
        return EcosystemTvl.from_series(data)

    async def get_protocols(self) -> list[Protocol]:
        """Get the protocols deployed on the tracked chain.

        Served from cache while it is younger than the TTL.
        """
        now = self._clock()
        if self._cache is not None and self._cache.is_fresh(now, self._cache_ttl):
            return self._cache.data

        data = await self._fetch.fetch_json(f"{self._base_url}/protocols")
        protocols = [
            Protocol.from_dict(item)
            for item in data or []
            if isinstance(item.get("chains"), list) and self._chain in item["chains"]
        ]
        self._cache = ProtocolCache(data=protocols, fetched_at=now)
        logger.debug("Cached %d protocols on %s", len(protocols), self._chain)
        return protocols

    async def get_protocol(self, slug: str) -> dict[str, Any]:
        """Get the raw per-protocol payload (TVL history and breakdowns)."""
        result: dict[str, Any] = await self._fetch.fetch_json(
            f"{self._base_url}/protocol/{quote(slug)}"
        )
        return result

    def protocol_tvl_for_project(
        self,
        protocols: Sequence[Protocol],
        project: str,
        slug: str | None = None,
    ) -> float | None:
        return protocol_tvl_for_project(protocols, project, slug, chain=self._chain)


def find_protocol(protocols: Sequence[Protocol], project: str) -> Protocol | None:
    """First protocol whose name or slug contains the project name."""
    for protocol in protocols:
        if protocol.matches_name(project):
            return protocol
    return None


def protocol_tvl_for_project(
    protocols: Sequence[Protocol],
    project: str,
    slug: str | None,
    *,
    chain: str,
) -> float | None:
    """Look up a project's TVL on the chain.

    An exact slug hit returns the chain TVL, the overall TVL, or 0.0.
    Otherwise a fuzzy name match returns a positive TVL or None.
    """
    if slug:
        for protocol in protocols:
            if protocol.slug == slug:
                return protocol.chain_tvls.get(chain) or protocol.tvl or 0.0

    match = find_protocol(protocols, project)
    if match is None:
        return None
    return match.chain_tvls.get(chain) or match.tvl or None
