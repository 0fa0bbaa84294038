"""Typed views over chain-analytics, block-explorer, and RPC payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

EXPLORER_SEARCH_TYPES = frozenset({"contract", "address", "token"})


def parse_int(value: Any) -> int | None:
    """Parse an integer from an API field, returning None when absent or invalid.

    Zero is treated as "unknown", matching how the explorer reports
    counters it has not computed yet.
    """
    if value is None or value == "":
        return None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        try:
            parsed = int(float(value))
        except (TypeError, ValueError):
            return None
    return parsed or None


def parse_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed or None


@dataclass(frozen=True)
class EcosystemTvl:
    """Chain-wide TVL time series; the last point is the current value."""

    tvl: float
    date: int
    history: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_series(cls, series: list[dict[str, Any]]) -> EcosystemTvl | None:
        if not series:
            return None
        latest = series[-1]
        return cls(tvl=float(latest["tvl"]), date=int(latest["date"]), history=series)


@dataclass(frozen=True)
class Protocol:
    """A protocol listed by the chain-analytics provider."""

    name: str
    slug: str | None
    address: str | None
    tvl: float | None
    chain_tvls: dict[str, float]
    chains: tuple[str, ...]
    category: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Protocol:
        chain_tvls: dict[str, float] = {}
        for chain, value in (data.get("chainTvls") or {}).items():
            if isinstance(value, int | float):
                chain_tvls[chain] = float(value)
        tvl = data.get("tvl")
        return cls(
            name=str(data.get("name") or ""),
            slug=data.get("slug"),
            address=data.get("address") or None,
            tvl=float(tvl) if isinstance(tvl, int | float) else None,
            chain_tvls=chain_tvls,
            chains=tuple(data.get("chains") or ()),
            category=data.get("category"),
        )

    def matches_name(self, project: str) -> bool:
        """Case-insensitive substring match of a project name on name or slug."""
        needle = project.lower()
        if needle in self.name.lower():
            return True
        return bool(self.slug and needle in self.slug.lower())

    def chain_address(self) -> str | None:
        """Contract address with any ``chain:`` prefix stripped."""
        if not self.address:
            return None
        return self.address.rsplit(":", 1)[-1]


@dataclass(frozen=True)
class ChainStats:
    """Chain-wide counters reported by the block explorer."""

    total_addresses: int | None
    total_transactions: int | None
    transactions_today: int | None
    average_gas_price: str | None
    average_block_time: float | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChainStats:
        gas_prices = data.get("gas_prices") or {}
        average_gas = gas_prices.get("average") if isinstance(gas_prices, dict) else None
        return cls(
            total_addresses=parse_int(data.get("total_addresses")),
            total_transactions=parse_int(data.get("total_transactions")),
            transactions_today=parse_int(data.get("transactions_today")),
            average_gas_price=str(average_gas) if average_gas is not None else None,
            average_block_time=parse_float(data.get("average_block_time")),
        )


@dataclass(frozen=True)
class SearchResult:
    """A single explorer search hit."""

    type: str
    address: str | None
    name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResult:
        return cls(
            type=str(data.get("type") or ""),
            address=data.get("address") or data.get("address_hash"),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class AddressInfo:
    """Explorer view of an address: activity counter and native balance."""

    transactions_count: int | None
    coin_balance_wei: int | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressInfo:
        balance = data.get("coin_balance")
        return cls(
            transactions_count=parse_int(data.get("transactions_count")),
            coin_balance_wei=int(balance) if balance not in (None, "") else None,
        )


@dataclass(frozen=True)
class ContractInfo:
    """Explorer view of a smart contract."""

    is_verified: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ContractInfo:
        return cls(is_verified=bool(data and data.get("is_verified")))


@dataclass(frozen=True)
class CodeInfo:
    """Result of ``eth_getCode``."""

    code: str
    is_contract: bool


@dataclass(frozen=True)
class Balance:
    """Native balance with an exact integer wei value."""

    wei: int
    eth: Decimal
