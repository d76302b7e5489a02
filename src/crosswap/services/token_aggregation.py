"""Token aggregation service.

Fans out to the token providers, normalizes and deduplicates their results,
scores them against the search text, ranks them, and balances multi-chain
listings.

Flow for search_tokens:
1. With search text, query the pair scanner and the primary providers
   concurrently; without, query primary providers first and the scanner
   as supplement
2. Normalize and deduplicate by (chain id, lowercased address)
3. Score by name/symbol/address similarity, drop weak non-exact matches
4. Sort: exact match, score, liquidity (all descending)
5. Balance chains for all-network listings, truncate to the limit
6. Return, then enrich the returned tokens in the background
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from crosswap.chains import ChainRegistry
from crosswap.errors import ProviderUnavailable, UnsupportedChain
from crosswap.providers.base import FetchTokensParams, NormalizedToken, TokenProvider
from crosswap.providers.registry import ProviderRegistry
from crosswap.services.token_enrichment import TokenEnrichmentService
from crosswap.utils.cache import CACHE_TTL, TTLCache
from crosswap.utils.search import calculate_similarity, is_exact_match
from crosswap.utils.token_mixer import mix_tokens_with_priority

logger = logging.getLogger(__name__)

ADDRESS_MATCH_SCORE = 0.8


@dataclass
class ScoredToken:
    """A token with its search score."""

    token: NormalizedToken
    score: float = 1.0
    is_exact_match: bool = False

    def sort_key(self) -> tuple:
        return (self.is_exact_match, self.score, self.token.liquidity or 0.0)


@dataclass
class _FetchOutcome:
    tokens: list[NormalizedToken]
    failed: bool = False


class TokenAggregationService:
    """Searches and lists tokens across all registered providers."""

    def __init__(
        self,
        chains: ChainRegistry,
        providers: ProviderRegistry,
        enrichment: TokenEnrichmentService,
        cache: TTLCache,
        similarity_threshold: float = 0.5,
        priority_chain_id: Optional[int] = 56,
        per_chain_cap: int = 3,
        priority_chain_cap: int = 6,
        default_limit: int = 30,
    ):
        self.chains = chains
        self.providers = providers
        self.enrichment = enrichment
        self.cache = cache
        self.similarity_threshold = similarity_threshold
        self.priority_chain_id = priority_chain_id
        self.per_chain_cap = per_chain_cap
        self.priority_chain_cap = priority_chain_cap
        self.default_limit = default_limit

    async def search_tokens(
        self,
        query: Optional[str] = None,
        chain_ids: Optional[list[int]] = None,
        limit: Optional[int] = None,
    ) -> list[NormalizedToken]:
        """Search tokens by text over a set of chains.

        Args:
            query: Free-text search (symbol, name or address); None lists tokens
            chain_ids: Canonical chain ids to search; None or empty means all
            limit: Maximum number of tokens returned

        Raises:
            UnsupportedChain: a requested chain is unknown
            ProviderUnavailable: every provider call failed
        """
        limit = limit or self.default_limit
        chain_ids = self._validate_chains(chain_ids)
        query = (query or "").strip() or None

        cache_key = f"search:{','.join(str(c) for c in sorted(chain_ids))}:{(query or '').lower()}:{limit}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return [NormalizedToken.from_dict(item) for item in cached]

        is_all_networks = query is None and len(chain_ids) > 1
        fetch_limit = limit * 2 if is_all_networks else limit

        if query:
            outcomes = await asyncio.gather(
                self._fetch_from_scanner(chain_ids, query, fetch_limit),
                *self._primary_fetches(chain_ids, query, fetch_limit),
            )
        else:
            outcomes = list(
                await asyncio.gather(*self._primary_fetches(chain_ids, None, fetch_limit))
            )
            outcomes.append(await self._fetch_from_scanner(chain_ids, None, fetch_limit))

        if outcomes and all(o.failed for o in outcomes):
            raise ProviderUnavailable("all", "every token provider failed")

        all_tokens = [token for outcome in outcomes for token in outcome.tokens]
        deduplicated = self.deduplicate(all_tokens)

        if query:
            scored = self.score_tokens(deduplicated, query)
        else:
            scored = [ScoredToken(token=token) for token in deduplicated]

        scored.sort(key=ScoredToken.sort_key, reverse=True)
        ranked = [item.token for item in scored]

        if is_all_networks:
            final = mix_tokens_with_priority(
                ranked,
                limit,
                self.priority_chain_id,
                self.per_chain_cap,
                self.priority_chain_cap,
            )
        else:
            final = ranked[:limit]

        logger.info(
            f"Token search '{query or ''}' on {len(chain_ids)} chains: "
            f"{len(all_tokens)} raw, {len(deduplicated)} unique, {len(final)} returned"
        )

        self.cache.set(cache_key, [token.to_dict() for token in final], CACHE_TTL.SEARCH)
        self.enrichment.enrich_in_background(final)
        return final

    async def get_tokens_by_chain(
        self, chain_id: int, limit: Optional[int] = None
    ) -> list[NormalizedToken]:
        """List tokens for a single chain."""
        return await self.search_tokens(None, [chain_id], limit)

    def _validate_chains(self, chain_ids: Optional[list[int]]) -> list[int]:
        if not chain_ids:
            return self.chains.ids()
        resolved = []
        for chain_id in chain_ids:
            chain = self.chains.get(chain_id)
            if chain is None:
                raise UnsupportedChain(chain_id)
            if chain.id not in resolved:
                resolved.append(chain.id)
        return resolved

    def _primary_fetches(self, chain_ids: list[int], query: Optional[str], limit: int) -> list:
        fetches = []
        for chain_id in chain_ids:
            for provider in self.providers.get_primary_providers(chain_id):
                fetches.append(
                    self._fetch_from_provider(
                        provider,
                        FetchTokensParams(chain_ids=[chain_id], search=query, limit=limit),
                    )
                )
        return fetches

    async def _fetch_from_scanner(
        self, chain_ids: list[int], query: Optional[str], limit: int
    ) -> _FetchOutcome:
        scanner = self.providers.scanner
        if scanner is None:
            return _FetchOutcome(tokens=[])
        return await self._fetch_from_provider(
            scanner, FetchTokensParams(chain_ids=list(chain_ids), search=query, limit=limit)
        )

    async def _fetch_from_provider(
        self, provider: TokenProvider, params: FetchTokensParams
    ) -> _FetchOutcome:
        """Fetch and normalize one provider's tokens; failures degrade to empty."""
        try:
            provider_tokens = await provider.fetch_tokens(params)
        except Exception as e:
            logger.warning(f"{provider.name} token fetch failed: {type(e).__name__}: {e}")
            return _FetchOutcome(tokens=[], failed=True)

        requested = set(params.chain_ids)
        normalized = []
        for provider_token in provider_tokens:
            chain = self.chains.resolve(provider.name, provider_token.chain_id)
            if chain is None:
                logger.debug(
                    f"No canonical chain for {provider.name} chain {provider_token.chain_id}, "
                    f"skipping {provider_token.address}"
                )
                continue
            if chain.id not in requested:
                continue
            try:
                normalized.append(provider.normalize_token(provider_token, chain))
            except Exception as e:
                logger.warning(
                    f"{provider.name} could not normalize {provider_token.address}: "
                    f"{type(e).__name__}: {e}"
                )
        return _FetchOutcome(tokens=normalized)

    @staticmethod
    def deduplicate(tokens: list[NormalizedToken]) -> list[NormalizedToken]:
        """Merge tokens that share (chain id, lowercased address), keeping first-seen order."""
        seen: dict[str, NormalizedToken] = {}
        for token in tokens:
            existing = seen.get(token.key)
            seen[token.key] = existing.merged_with(token) if existing else token
        return list(seen.values())

    def score_tokens(self, tokens: list[NormalizedToken], query: str) -> list[ScoredToken]:
        """Score tokens against the query and drop weak non-exact matches."""
        lowered = query.lower().strip()
        scored = []
        for token in tokens:
            name_score = calculate_similarity(lowered, token.name)
            symbol_score = calculate_similarity(lowered, token.symbol)
            address_score = ADDRESS_MATCH_SCORE if lowered in token.address.lower() else 0.0

            item = ScoredToken(
                token=token,
                score=max(name_score, symbol_score, address_score),
                is_exact_match=is_exact_match(lowered, token.symbol, token.name, token.address),
            )
            if item.is_exact_match or item.score >= self.similarity_threshold:
                scored.append(item)
        return scored
