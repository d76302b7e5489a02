"""DexScreener pair scanner provider.

Broad text search over every indexed pool. Tokens are pulled out of the
matching pairs, so each token carries the price, liquidity and volume of
its most liquid pool.
"""

import asyncio
import logging
from typing import Optional

import httpx

from crosswap.chains import ChainRegistry
from crosswap.providers.base import (
    FetchTokensParams,
    ProviderToken,
    TokenProvider,
    to_float,
)

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
# shorter prefixes tried after the full query finds nothing
MAX_NARROWING_ROUNDS = 3


def pair_liquidity(pair: dict) -> float:
    return to_float((pair.get("liquidity") or {}).get("usd")) or 0.0


class DexScreenerProvider(TokenProvider):
    """Token search via the DexScreener public API."""

    def __init__(
        self,
        chains: ChainRegistry,
        api_url: str = "https://api.dexscreener.com",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        search_deadline: float = 10.0,
    ):
        super().__init__(chains, http_client=http_client, timeout=timeout)
        self.api_url = api_url.rstrip("/")
        self.search_deadline = search_deadline

    @property
    def name(self) -> str:
        return "dexscreener"

    async def search_pairs(self, query: str) -> list[dict]:
        """Raw pair search.

        Raises:
            httpx.HTTPError: on transport failure
        """
        client = await self._get_client()
        response = await client.get(f"{self.api_url}/latest/dex/search", params={"q": query})
        if response.status_code != 200:
            logger.warning(f"DexScreener search error: {response.status_code}")
            return []
        return response.json().get("pairs") or []

    async def get_token_pairs(self, address: str) -> list[dict]:
        """All indexed pairs that include a token address."""
        try:
            client = await self._get_client()
            response = await client.get(f"{self.api_url}/latest/dex/tokens/{address}")
            if response.status_code != 200:
                logger.warning(f"DexScreener token pairs error: {response.status_code}")
                return []
            return response.json().get("pairs") or []
        except Exception as e:
            logger.error(f"DexScreener token pairs failed for {address}: {type(e).__name__}: {e}")
            return []

    async def fetch_tokens(self, params: FetchTokensParams) -> list[ProviderToken]:
        """Search tokens by text, narrowing the query when nothing matches.

        Narrowing drops one trailing character per round, for at most
        MAX_NARROWING_ROUNDS rounds, and the whole search is bounded by
        search_deadline. Without search text the result is empty.
        """
        query = (params.search or "").strip()
        if not query:
            return []

        slugs = set()
        for chain_id in params.chain_ids:
            chain = self.chains.get(chain_id)
            if chain and self.get_chain_id(chain) is not None:
                slugs.add(str(self.get_chain_id(chain)))
        if not slugs:
            return []

        try:
            tokens = await asyncio.wait_for(
                self._narrowing_search(query, slugs), timeout=self.search_deadline
            )
            return tokens[: params.limit]

        except asyncio.TimeoutError:
            logger.warning(f"DexScreener search '{query}' exceeded {self.search_deadline}s")
            return []
        except Exception as e:
            logger.error(f"DexScreener search failed: {type(e).__name__}: {e}")
            return []

    async def _narrowing_search(self, query: str, slugs: set[str]) -> list[ProviderToken]:
        candidate = query
        for _ in range(MAX_NARROWING_ROUNDS + 1):
            if len(candidate) < MIN_QUERY_LENGTH:
                break
            tokens = self._tokens_from_pairs(await self.search_pairs(candidate), slugs)
            if tokens:
                if candidate != query:
                    logger.debug(f"DexScreener narrowed '{query}' to '{candidate}'")
                return tokens
            candidate = candidate[:-1]
        return []

    def _tokens_from_pairs(self, pairs: list[dict], slugs: set[str]) -> list[ProviderToken]:
        """Extract base and quote tokens, keeping each token's deepest pool."""
        best: dict[str, tuple[float, ProviderToken]] = {}

        for pair in pairs:
            slug = pair.get("chainId")
            if slug not in slugs:
                continue

            liquidity = pair_liquidity(pair)
            volume = to_float((pair.get("volume") or {}).get("h24"))
            change = to_float((pair.get("priceChange") or {}).get("h24"))
            image = (pair.get("info") or {}).get("imageUrl")

            for side in ("baseToken", "quoteToken"):
                info = pair.get(side) or {}
                address = info.get("address")
                if not address:
                    continue

                is_base = side == "baseToken"
                token = ProviderToken(
                    chain_id=slug,
                    address=address,
                    symbol=info.get("symbol", ""),
                    name=info.get("name", ""),
                    logo_uri=image if is_base else None,
                    price_usd=to_float(pair.get("priceUsd")) if is_base else None,
                    liquidity=liquidity or None,
                    volume_24h=volume,
                    price_change_24h=change if is_base else None,
                    raw=pair,
                )

                key = f"{slug}:{address.lower()}"
                current = best.get(key)
                if current is None:
                    best[key] = (liquidity, token)
                elif liquidity > current[0]:
                    # quote-side records carry no price of their own
                    token.price_usd = token.price_usd or current[1].price_usd
                    token.logo_uri = token.logo_uri or current[1].logo_uri
                    best[key] = (liquidity, token)
                elif current[1].price_usd is None and token.price_usd is not None:
                    current[1].price_usd = token.price_usd

        ranked = sorted(best.values(), key=lambda item: item[0], reverse=True)
        return [token for _, token in ranked]
