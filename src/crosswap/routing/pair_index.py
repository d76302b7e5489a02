"""Text pair index lookups (DexScreener).

Used only as a fallback when no pair verifies on chain. Results are limited
to the chain and to DEXes in the registry, deduplicated by pool address and
sorted by liquidity.
"""

import logging
from typing import Iterable, Optional

from crosswap.chains import ChainRegistry
from crosswap.providers.dexscreener import DexScreenerProvider
from crosswap.routing.base import IndexedPair
from crosswap.routing.dex_registry import is_dex_supported

logger = logging.getLogger(__name__)


class PairIndex:
    """Pair search over the DexScreener index."""

    def __init__(self, chains: ChainRegistry, scanner: DexScreenerProvider):
        self.chains = chains
        self.scanner = scanner

    def _chain_slug(self, chain_id: int) -> Optional[str]:
        chain = self.chains.get(chain_id)
        if chain is None:
            return None
        slug = chain.provider_id(self.scanner.name)
        return str(slug) if slug is not None else None

    def _filter(self, pairs: Iterable[dict], chain_id: int) -> list[IndexedPair]:
        slug = self._chain_slug(chain_id)
        if slug is None:
            return []
        return [
            IndexedPair.from_dexscreener(p)
            for p in pairs
            if p.get("chainId") == slug
            and p.get("pairAddress")
            and is_dex_supported(chain_id, p.get("dexId", ""))
        ]

    @staticmethod
    def dedupe_and_sort(pairs: Iterable[IndexedPair]) -> list[IndexedPair]:
        """One entry per pool address (the more liquid one), deepest first."""
        unique: dict[str, IndexedPair] = {}
        for pair in pairs:
            key = pair.pair_address.lower()
            existing = unique.get(key)
            if existing is None or pair.liquidity_usd > existing.liquidity_usd:
                unique[key] = pair
        return sorted(unique.values(), key=lambda p: p.liquidity_usd, reverse=True)

    async def search_pairs_by_symbol(
        self, symbol_a: str, symbol_b: str, chain_id: int
    ) -> list[IndexedPair]:
        """Search "A/B" and "B/A" and merge the results."""
        found: list[IndexedPair] = []
        for query in (f"{symbol_a}/{symbol_b}", f"{symbol_b}/{symbol_a}"):
            try:
                pairs = await self.scanner.search_pairs(query)
            except Exception as e:
                logger.warning(f"Pair index search '{query}' failed: {type(e).__name__}: {e}")
                continue
            found.extend(self._filter(pairs, chain_id))

        result = self.dedupe_and_sort(found)
        if result:
            best = result[0]
            logger.info(
                f"Pair index: {len(result)} pairs for {symbol_a}/{symbol_b}, best "
                f"{best.base_symbol}/{best.quote_symbol} on {best.dex_id} "
                f"(${best.liquidity_usd:,.0f} liquidity)"
            )
        return result

    async def get_token_pairs(self, address: str, chain_id: int) -> list[IndexedPair]:
        pairs = await self.scanner.get_token_pairs(address)
        return self.dedupe_and_sort(self._filter(pairs, chain_id))
