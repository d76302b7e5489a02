"""Tests for token aggregation and enrichment."""

import asyncio

import pytest

from crosswap.errors import ProviderUnavailable, UnsupportedChain
from crosswap.providers.base import NormalizedToken
from crosswap.services.token_aggregation import TokenAggregationService
from crosswap.services.token_enrichment import TokenEnrichmentService
from fakes import FakeProvider, make_registry, provider_token

TWC = "0x1111111111111111111111111111111111111111"
TWCX = "0x2222222222222222222222222222222222222222"


def build_service(chains, cache, primary=None, scanner=None, **kwargs):
    providers = make_registry(chains, primary, scanner)
    enrichment = TokenEnrichmentService(chains, providers, cache)
    service = TokenAggregationService(chains, providers, enrichment, cache, **kwargs)
    return service, enrichment


class TestSearchTokens:
    """Tests for TokenAggregationService.search_tokens."""

    @pytest.mark.asyncio
    async def test_exact_match_ranks_first(self, chains, cache):
        """An exact symbol match beats a more liquid partial match."""
        scanner = FakeProvider(
            chains,
            "dexscreener",
            [
                provider_token("TWCX", "bsc", TWCX, liquidity=1_000_000),
                provider_token("TWC", "bsc", TWC, liquidity=10),
            ],
        )
        service, enrichment = build_service(chains, cache, scanner=scanner)

        tokens = await service.search_tokens("twc", [56])
        await enrichment.wait_idle()

        assert [t.symbol for t in tokens] == ["TWC", "TWCX"]

    @pytest.mark.asyncio
    async def test_deduplicates_across_providers(self, chains, cache):
        """Same (chain, address) from two providers becomes one merged token."""
        primary = FakeProvider(chains, "lifi", [provider_token("TWC", 56, TWC)])
        scanner = FakeProvider(
            chains, "dexscreener", [provider_token("TWC", "bsc", TWC, liquidity=50)]
        )
        service, enrichment = build_service(chains, cache, primary=primary, scanner=scanner)

        tokens = await service.search_tokens("twc", [56])
        await enrichment.wait_idle()

        assert len(tokens) == 1
        assert set(tokens[0].providers) == {"lifi", "dexscreener"}
        assert tokens[0].liquidity == 50

    @pytest.mark.asyncio
    async def test_nonexistent_query_returns_empty(self, chains, cache):
        primary = FakeProvider(chains, "lifi", [provider_token("USDT", 56, TWC)])
        service, _ = build_service(chains, cache, primary=primary)

        assert await service.search_tokens("zzzzqqq", [56]) == []

    @pytest.mark.asyncio
    async def test_weak_matches_are_dropped(self, chains, cache):
        primary = FakeProvider(
            chains,
            "lifi",
            [
                provider_token("USDT", 56, TWC, name="Tether USD"),
                provider_token("DOGE", 56, TWCX, name="Dogecoin"),
            ],
        )
        service, enrichment = build_service(chains, cache, primary=primary)

        tokens = await service.search_tokens("tether", [56])
        await enrichment.wait_idle()

        assert [t.symbol for t in tokens] == ["USDT"]

    @pytest.mark.asyncio
    async def test_unsupported_chain_rejected(self, chains, cache):
        service, _ = build_service(chains, cache, primary=FakeProvider(chains, "lifi"))

        with pytest.raises(UnsupportedChain):
            await service.search_tokens("usdt", [999999])

    @pytest.mark.asyncio
    async def test_one_failing_provider_degrades(self, chains, cache):
        """A failing source is absorbed when another one answers."""
        primary = FakeProvider(chains, "lifi", error=RuntimeError("down"))
        scanner = FakeProvider(chains, "dexscreener", [provider_token("TWC", "bsc", TWC)])
        service, enrichment = build_service(chains, cache, primary=primary, scanner=scanner)

        tokens = await service.search_tokens("twc", [56])
        await enrichment.wait_idle()

        assert [t.symbol for t in tokens] == ["TWC"]

    @pytest.mark.asyncio
    async def test_all_providers_failing(self, chains, cache):
        primary = FakeProvider(chains, "lifi", error=RuntimeError("down"))
        scanner = FakeProvider(chains, "dexscreener", error=RuntimeError("down"))
        service, _ = build_service(chains, cache, primary=primary, scanner=scanner)

        with pytest.raises(ProviderUnavailable):
            await service.search_tokens("twc", [56])

    @pytest.mark.asyncio
    async def test_results_are_cached(self, chains, cache):
        primary = FakeProvider(chains, "lifi", [provider_token("TWC", 56, TWC)])
        service, enrichment = build_service(chains, cache, primary=primary)

        first = await service.search_tokens("twc", [56])
        second = await service.search_tokens("TWC", [56])
        await enrichment.wait_idle()

        assert len(primary.calls) == 1
        assert [t.key for t in first] == [t.key for t in second]

    @pytest.mark.asyncio
    async def test_all_networks_listing_is_balanced(self, chains, cache):
        """Without a query, chains are capped and interleaved with BSC first."""
        tokens = []
        for chain_id in (1, 56, 137):
            for i in range(10):
                address = "0x" + f"{chain_id:06x}{i:034x}"
                tokens.append(provider_token(f"T{chain_id}_{i}", chain_id, address))
        primary = FakeProvider(chains, "lifi", tokens)
        service, enrichment = build_service(
            chains, cache, primary=primary, per_chain_cap=3, priority_chain_cap=6
        )

        result = await service.search_tokens(None, [1, 56, 137], limit=30)
        await enrichment.wait_idle()

        counts = {c: len([t for t in result if t.chain_id == c]) for c in (1, 56, 137)}
        assert counts == {1: 3, 56: 6, 137: 3}
        assert result[0].chain_id == 56

    @pytest.mark.asyncio
    async def test_get_tokens_by_chain(self, chains, cache):
        primary = FakeProvider(
            chains, "lifi", [provider_token("A", 1, TWC), provider_token("B", 56, TWCX)]
        )
        service, enrichment = build_service(chains, cache, primary=primary)

        tokens = await service.get_tokens_by_chain(56)
        await enrichment.wait_idle()

        assert [t.symbol for t in tokens] == ["B"]


class TestEnrichment:
    """Tests for TokenEnrichmentService."""

    def _token(self, chain_id=56, address=TWC):
        return NormalizedToken(chain_id=chain_id, address=address, symbol="TWC", name="TWC")

    @pytest.mark.asyncio
    async def test_router_format_for_routable_token(self, chains, cache):
        router = FakeProvider(chains, "lifi", routable=True)
        enrichment = TokenEnrichmentService(chains, make_registry(chains, primary=router), cache)

        fmt = await enrichment.get_router_format(self._token(), "lifi")
        assert fmt == {"chainId": 56, "address": TWC}

    @pytest.mark.asyncio
    async def test_unroutable_token_has_no_format(self, chains, cache):
        router = FakeProvider(chains, "lifi", routable=False)
        enrichment = TokenEnrichmentService(chains, make_registry(chains, primary=router), cache)

        assert await enrichment.get_router_format(self._token(), "lifi") is None

    @pytest.mark.asyncio
    async def test_solana_tokens_get_jupiter_mint(self, chains, cache):
        enrichment = TokenEnrichmentService(chains, make_registry(chains), cache)
        mint = "So11111111111111111111111111111111111111112"

        formats = await enrichment.router_formats_for(self._token(7565164, mint))
        assert formats["jupiter"] == {"mint": mint}

    @pytest.mark.asyncio
    async def test_background_enrichment_fills_cache(self, chains, cache):
        router = FakeProvider(chains, "lifi", routable=True)
        enrichment = TokenEnrichmentService(chains, make_registry(chains, primary=router), cache)
        token = self._token()

        enrichment.enrich_in_background([token])
        assert enrichment.pending == 1
        await enrichment.wait_idle()
        await asyncio.sleep(0)

        assert enrichment.pending == 0
        assert cache.get(f"router_formats:{token.key}") == {"lifi": {"chainId": 56, "address": TWC}}

    @pytest.mark.asyncio
    async def test_deadline_returns_unenriched_token(self, chains, cache):
        class SlowProvider(FakeProvider):
            async def has_token(self, chain, address):
                await asyncio.sleep(1)
                return True

        slow = SlowProvider(chains, "lifi")
        enrichment = TokenEnrichmentService(
            chains, make_registry(chains, primary=slow), cache, deadline=0.01
        )

        enriched = await enrichment.enrich_token_with_deadline(self._token())
        assert enriched.router_formats == {}
        assert enriched.enriched_by == []
