"""Data source layer - fetch client and third-party source adapters."""

from deployment_tracker.sources.analytics import (
    ChainAnalyticsClient,
    ProtocolCache,
    protocol_tvl_for_project,
)
from deployment_tracker.sources.explorer import BlockExplorerClient
from deployment_tracker.sources.fetch import FetchClient, FetchError
from deployment_tracker.sources.models import (
    AddressInfo,
    Balance,
    ChainStats,
    CodeInfo,
    ContractInfo,
    EcosystemTvl,
    Protocol,
    SearchResult,
)
from deployment_tracker.sources.rpc import ChainRpcClient, RpcError

__all__ = [
    "AddressInfo",
    "Balance",
    "BlockExplorerClient",
    "ChainAnalyticsClient",
    "ChainRpcClient",
    "ChainStats",
    "CodeInfo",
    "ContractInfo",
    "EcosystemTvl",
    "FetchClient",
    "FetchError",
    "Protocol",
    "ProtocolCache",
    "RpcError",
    "SearchResult",
    "protocol_tvl_for_project",
]
