"""Background token enrichment.

Adds router-compatible identifiers and external liquidity to tokens after
the search response has been sent. Three entry points:

- enrich_in_background: fire-and-forget, the caller keeps no handle
- get_router_format: blocking on-demand lookup, cached for reuse
- enrich_token_with_deadline: races enrichment against a short deadline

Failures are logged here and never reach a caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from crosswap.chains import ChainRegistry, ExecutionFamily
from crosswap.providers.base import NormalizedToken, TokenProvider, to_float
from crosswap.providers.dexscreener import DexScreenerProvider, pair_liquidity
from crosswap.providers.registry import ProviderRegistry
from crosswap.utils.cache import CACHE_TTL, TTLCache

logger = logging.getLogger(__name__)


@dataclass
class EnrichedToken:
    """A token plus the data enrichment found for it."""

    token: NormalizedToken
    router_formats: dict[str, dict] = field(default_factory=dict)
    enriched_by: list[str] = field(default_factory=list)
    liquidity: Optional[float] = None
    volume_24h: Optional[float] = None

    def to_dict(self) -> dict:
        data = self.token.to_dict()
        data["routerFormats"] = dict(self.router_formats)
        data["enrichedBy"] = list(self.enriched_by)
        if self.liquidity is not None:
            data["liquidity"] = self.liquidity
        if self.volume_24h is not None:
            data["volume24h"] = self.volume_24h
        return data


class TokenEnrichmentService:
    """Router format and liquidity enrichment for normalized tokens."""

    def __init__(
        self,
        chains: ChainRegistry,
        providers: ProviderRegistry,
        cache: TTLCache,
        deadline: float = 2.0,
    ):
        self.chains = chains
        self.providers = providers
        self.cache = cache
        self.deadline = deadline
        self._tasks: set[asyncio.Task] = set()

    # ======================
    # Fire-and-forget
    # ======================

    def enrich_in_background(self, tokens: list[NormalizedToken]) -> None:
        """Start router format enrichment and return immediately."""
        if not tokens:
            return
        task = asyncio.create_task(self._enrich_router_formats(list(tokens)))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Background enrichment failed: {type(error).__name__}: {error}")

    @property
    def pending(self) -> int:
        """Number of background enrichment tasks still running."""
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for in-flight background work (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _enrich_router_formats(self, tokens: list[NormalizedToken]) -> None:
        results = await asyncio.gather(
            *(self.router_formats_for(token) for token in tokens),
            return_exceptions=True,
        )
        failed = sum(1 for r in results if isinstance(r, Exception))
        if failed:
            logger.warning(f"Router format enrichment failed for {failed}/{len(tokens)} tokens")
        else:
            logger.debug(f"Router formats enriched for {len(tokens)} tokens")

    # ======================
    # On-demand
    # ======================

    async def get_router_format(self, token: NormalizedToken, router: str) -> Optional[dict]:
        """Router-specific identifier for a token, blocking until known."""
        try:
            formats = await self.router_formats_for(token)
        except Exception as e:
            logger.error(f"Router format lookup for {router} failed: {type(e).__name__}: {e}")
            return None
        return formats.get(router)

    async def router_formats_for(self, token: NormalizedToken) -> dict[str, dict]:
        """Router formats for one token, cached per token."""
        cache_key = f"router_formats:{token.key}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        formats: dict[str, dict] = {}
        chain = self.chains.get(token.chain_id)
        if chain is None:
            return formats

        providers = self.providers.get_router_providers()
        checks = await asyncio.gather(
            *(self._check_router_provider(p, token) for p in providers),
            return_exceptions=True,
        )
        for provider, result in zip(providers, checks):
            if isinstance(result, Exception):
                logger.warning(
                    f"{provider.name} router check failed for {token.address}: "
                    f"{type(result).__name__}: {result}"
                )
                continue
            if result:
                formats[provider.name] = result

        # Jupiter routes any SPL mint
        if chain.family == ExecutionFamily.SOLANA:
            formats["jupiter"] = {"mint": token.address}

        self.cache.set(cache_key, formats, CACHE_TTL.ROUTER_FORMATS)
        return formats

    async def _check_router_provider(
        self, provider: TokenProvider, token: NormalizedToken
    ) -> Optional[dict]:
        chain = self.chains.get(token.chain_id)
        if chain is None:
            return None
        provider_chain_id = provider.get_chain_id(chain)
        if provider_chain_id is None:
            return None
        if await provider.has_token(chain, token.address) is False:
            return None
        return {"chainId": provider_chain_id, "address": token.address}

    # ======================
    # Full enrichment
    # ======================

    async def enrich_token(self, token: NormalizedToken) -> EnrichedToken:
        """Router formats plus scanner liquidity when the token has none."""
        enriched = EnrichedToken(token=token)

        enriched.router_formats = await self.router_formats_for(token)
        enriched.enriched_by.extend(enriched.router_formats)

        if not token.liquidity:
            liquidity = await self._fetch_scanner_liquidity(token)
            if liquidity:
                enriched.liquidity, enriched.volume_24h = liquidity
                enriched.enriched_by.append("dexscreener")

        return enriched

    async def enrich_token_with_deadline(self, token: NormalizedToken) -> EnrichedToken:
        """enrich_token bounded by the configured deadline.

        On timeout or failure the token comes back unenriched.
        """
        try:
            return await asyncio.wait_for(self.enrich_token(token), timeout=self.deadline)
        except asyncio.TimeoutError:
            logger.debug(f"Enrichment for {token.key} exceeded {self.deadline}s deadline")
        except Exception as e:
            logger.warning(f"Enrichment for {token.key} failed: {type(e).__name__}: {e}")
        return EnrichedToken(token=token)

    async def _fetch_scanner_liquidity(
        self, token: NormalizedToken
    ) -> Optional[tuple[float, Optional[float]]]:
        """Liquidity and 24h volume of the token's deepest pool on its chain."""
        scanner = self.providers.scanner
        chain = self.chains.get(token.chain_id)
        if not isinstance(scanner, DexScreenerProvider) or chain is None:
            return None
        slug = chain.provider_id(scanner.name)
        if slug is None:
            return None

        pairs = [p for p in await scanner.get_token_pairs(token.address) if p.get("chainId") == slug]
        if not pairs:
            return None

        top = max(pairs, key=pair_liquidity)
        return pair_liquidity(top), to_float((top.get("volume") or {}).get("h24"))

    async def close(self) -> None:
        """Cancel any background work still running."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()
