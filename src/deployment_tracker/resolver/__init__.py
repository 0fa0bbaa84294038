"""Resolver module - Contract address resolution for tracked projects."""

from deployment_tracker.resolver.cascade import (
    KNOWN_ADDRESSES,
    AddressResolver,
    AnalyticsMatchStrategy,
    ExplorerSearchStrategy,
    KnownAddressStrategy,
    ResolutionAttempt,
    ResolutionStrategy,
    ResolvedAddress,
)

__all__ = [
    "KNOWN_ADDRESSES",
    "AddressResolver",
    "AnalyticsMatchStrategy",
    "ExplorerSearchStrategy",
    "KnownAddressStrategy",
    "ResolutionAttempt",
    "ResolutionStrategy",
    "ResolvedAddress",
]
