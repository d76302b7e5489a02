"""Name-keyed provider registry, built once at startup."""

import logging
from typing import Optional

import httpx

from crosswap.chains import ChainRegistry, ExecutionFamily
from crosswap.config import Settings
from crosswap.providers.base import TokenProvider
from crosswap.providers.dexscreener import DexScreenerProvider
from crosswap.providers.lifi import LiFiProvider

logger = logging.getLogger(__name__)

# Primary (chain-specific) sources per execution family, in preference order
DEFAULT_PRIMARY = {
    ExecutionFamily.EVM: ["lifi"],
    ExecutionFamily.SOLANA: ["lifi"],
}
DEFAULT_ROUTERS = ["lifi"]
SCANNER = "dexscreener"


class ProviderRegistry:
    """Closed set of token providers selected by name."""

    def __init__(
        self,
        chains: ChainRegistry,
        providers: list[TokenProvider],
        primary: Optional[dict[ExecutionFamily, list[str]]] = None,
        routers: Optional[list[str]] = None,
    ):
        self.chains = chains
        self._providers: dict[str, TokenProvider] = {p.name: p for p in providers}
        self._primary = primary if primary is not None else DEFAULT_PRIMARY
        self._routers = routers if routers is not None else DEFAULT_ROUTERS

    def get_provider(self, name: str) -> Optional[TokenProvider]:
        return self._providers.get(name)

    @property
    def scanner(self) -> Optional[TokenProvider]:
        """The broad text-search pair scanner."""
        return self._providers.get(SCANNER)

    def get_primary_providers(self, chain_id: int) -> list[TokenProvider]:
        """Primary providers that support the given chain."""
        family = self.chains.family_of(chain_id)
        providers = []
        for name in self._primary.get(family, []):
            provider = self._providers.get(name)
            if provider and provider.supports_chain(chain_id):
                providers.append(provider)
        return providers

    def get_router_providers(self) -> list[TokenProvider]:
        return [self._providers[name] for name in self._routers if name in self._providers]

    def all(self) -> list[TokenProvider]:
        return list(self._providers.values())

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


def create_provider_registry(
    settings: Settings,
    chains: ChainRegistry,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ProviderRegistry:
    """Create the default registry: LI.FI primary/router, DexScreener scanner."""
    providers: list[TokenProvider] = [
        LiFiProvider(
            chains,
            api_url=settings.lifi_api_url,
            api_key=settings.lifi_api_key,
            http_client=http_client,
            timeout=settings.http_timeout,
        ),
        DexScreenerProvider(
            chains,
            api_url=settings.dexscreener_api_url,
            http_client=http_client,
            timeout=settings.http_timeout,
            search_deadline=settings.dexscreener_search_deadline,
        ),
    ]
    logger.info(f"Provider registry: {', '.join(p.name for p in providers)}")
    return ProviderRegistry(chains, providers)
