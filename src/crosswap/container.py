"""Service wiring.

Everything that shares state (cache, key pool, HTTP client, RPC clients) is
built once here and handed to the services that need it.
"""

import logging
from typing import Optional

import httpx

from crosswap.chains import Chain, ChainRegistry
from crosswap.config import Settings, get_settings
from crosswap.providers.moralis import MoralisClient
from crosswap.providers.registry import ProviderRegistry, create_provider_registry
from crosswap.routing.pair_index import PairIndex
from crosswap.routing.pair_query import DexPairQueryService
from crosswap.rpc import RpcClientPool
from crosswap.services.token_aggregation import TokenAggregationService
from crosswap.services.token_enrichment import TokenEnrichmentService
from crosswap.swap.builder import LiFiStepTransactionBuilder
from crosswap.swap.orchestrator import SwapOrchestrator
from crosswap.utils.cache import TTLCache
from crosswap.utils.key_pool import ApiKeyPool

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Process-wide services built from Settings."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        providers: Optional[ProviderRegistry] = None,
    ):
        self.settings = settings or get_settings()
        self.http_client = http_client or httpx.AsyncClient(timeout=self.settings.http_timeout)
        self._owns_client = http_client is None

        self.chains = ChainRegistry()
        self.cache = TTLCache(sweep_interval=self.settings.cache_sweep_interval)
        self.rpc = RpcClientPool(self.settings, http_client=self.http_client)
        self.providers = providers or create_provider_registry(
            self.settings, self.chains, http_client=self.http_client
        )

        self.enrichment = TokenEnrichmentService(
            self.chains,
            self.providers,
            self.cache,
            deadline=self.settings.enrichment_deadline,
        )
        self.aggregation = TokenAggregationService(
            self.chains,
            self.providers,
            self.enrichment,
            self.cache,
            similarity_threshold=self.settings.similarity_threshold,
            priority_chain_id=self.settings.mix_priority_chain_id,
            per_chain_cap=self.settings.mix_per_chain_cap,
            priority_chain_cap=self.settings.mix_priority_chain_cap,
            default_limit=self.settings.default_token_limit,
        )

        scanner = self.providers.scanner
        self.pair_index = PairIndex(self.chains, scanner) if scanner is not None else None
        self.pair_query = DexPairQueryService(
            self.rpc.evm, cache=self.cache, pair_index=self.pair_index
        )

        self.moralis: Optional[MoralisClient] = None
        keys = self.settings.moralis_keys
        if keys:
            self.moralis = MoralisClient(
                self.chains,
                ApiKeyPool(
                    keys,
                    name="moralis",
                    max_attempts=self.settings.key_rotation_max_attempts,
                    retry_delay=self.settings.key_rotation_delay,
                ),
                self.cache,
                api_url=self.settings.moralis_api_url,
                solana_api_url=self.settings.moralis_solana_api_url,
                http_client=self.http_client,
                timeout=self.settings.http_timeout,
            )
        else:
            logger.warning("No MORALIS_API_KEY_N configured - balance lookups disabled")

        self.builder = LiFiStepTransactionBuilder(
            api_url=self.settings.lifi_api_url,
            api_key=self.settings.lifi_api_key,
            http_client=self.http_client,
            timeout=self.settings.http_timeout,
        )
        self.orchestrator = SwapOrchestrator(
            self.chains,
            self.rpc.evm,
            self.rpc.solana,
            builder=self.builder,
            approval_settle_delay=self.settings.approval_settle_delay,
            step_settle_delay=self.settings.step_settle_delay,
            evm_confirmation_timeout=self.settings.evm_confirmation_timeout,
            solana_confirmation_timeout=self.settings.solana_confirmation_timeout,
            poll_interval=self.settings.confirmation_poll_interval,
            gas_buffer_percent=self.settings.gas_buffer_percent,
        )

    async def start(self) -> None:
        self.cache.start()
        if self.settings.discover_chains:
            await self.discover_chains()
        logger.info(
            f"Services started: {len(self.chains.ids())} chains, "
            f"providers {', '.join(p.name for p in self.providers.all())}"
        )

    async def discover_chains(self) -> list[Chain]:
        """Register chains the providers list that the static table lacks."""
        added = []
        for provider in self.providers.all():
            for provider_chain in await provider.fetch_chains():
                chain = provider.normalize_chain(provider_chain)
                if chain is not None and self.chains.register(chain):
                    added.append(chain)
        if added:
            logger.info(f"Discovered {len(added)} chains: {', '.join(c.name for c in added)}")
        return added

    async def close(self) -> None:
        """Stop background work and release HTTP connections."""
        await self.enrichment.close()
        await self.cache.stop()
        await self.providers.close()
        if self.moralis is not None:
            await self.moralis.close()
        await self.builder.close()
        await self.rpc.close()
        if self._owns_client:
            await self.http_client.aclose()
        logger.info("Services stopped")
