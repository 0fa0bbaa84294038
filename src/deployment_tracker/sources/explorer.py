"""Block-explorer (Blockscout v2) adapter."""

from __future__ import annotations

import logging
from urllib.parse import quote

from deployment_tracker.sources.fetch import FetchClient
from deployment_tracker.sources.models import (
    EXPLORER_SEARCH_TYPES,
    AddressInfo,
    ChainStats,
    ContractInfo,
    SearchResult,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://megaeth.blockscout.com/api/v2"


class BlockExplorerClient:
    """Read-only view of the chain's block explorer."""

    def __init__(self, fetch_client: FetchClient, *, base_url: str = DEFAULT_BASE_URL) -> None:
        self._fetch = fetch_client
        self._base_url = base_url.rstrip("/")

    async def get_stats(self) -> ChainStats:
        """Get chain-wide address, transaction, gas, and block-time stats."""
        data = await self._fetch.fetch_json(f"{self._base_url}/stats")
        return ChainStats.from_dict(data or {})

    async def search(self, query: str) -> list[SearchResult]:
        """Free-text search, keeping only contract, address, and token hits."""
        data = await self._fetch.fetch_json(f"{self._base_url}/search?q={quote(query)}")
        if not data or not data.get("items"):
            return []
        return [
            SearchResult.from_dict(item)
            for item in data["items"]
            if item.get("type") in EXPLORER_SEARCH_TYPES
        ]

    async def get_address(self, address: str) -> AddressInfo:
        """Get the transaction counter and native balance of an address."""
        data = await self._fetch.fetch_json(f"{self._base_url}/addresses/{address}")
        return AddressInfo.from_dict(data or {})

    async def get_contract(self, address: str) -> ContractInfo:
        """Get the verification status of a smart contract."""
        data = await self._fetch.fetch_json(f"{self._base_url}/smart-contracts/{address}")
        return ContractInfo.from_dict(data)
