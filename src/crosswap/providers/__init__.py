"""Token, chain and balance provider adapters."""

from crosswap.providers.base import (
    FetchTokensParams,
    NormalizedToken,
    ProviderChain,
    ProviderToken,
    TokenProvider,
)
from crosswap.providers.registry import ProviderRegistry, create_provider_registry

__all__ = [
    "FetchTokensParams",
    "NormalizedToken",
    "ProviderChain",
    "ProviderToken",
    "TokenProvider",
    "ProviderRegistry",
    "create_provider_registry",
]
