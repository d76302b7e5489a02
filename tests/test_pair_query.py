"""Tests for on-chain pair verification and the pair index fallback."""

import json

import httpx
import pytest

from crosswap.errors import RpcError
from crosswap.providers.dexscreener import DexScreenerProvider
from crosswap.routing.base import ZERO_ADDRESS
from crosswap.routing.intermediaries import get_intermediaries
from crosswap.routing.pair_index import PairIndex
from crosswap.routing.pair_query import (
    GET_AMOUNTS_OUT_SELECTOR,
    DexPairQueryService,
    decode_uint_array,
    encode_get_amounts_out,
    encode_get_pair,
    verification_amounts,
)
from crosswap.rpc.evm import EvmRpcClient
from fakes import FakeEvmRpc

PANCAKE_FACTORY = "0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73"
PANCAKE_ROUTER = "0x10ED43C718714eb63d5aA57B78B54704E256024E"
WBNB = "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"
USDT = "0x55d398326f99059fF775485246999027B3197955"
TOKEN = "0x1111111111111111111111111111111111111111"
PAIR = "0x3333333333333333333333333333333333333333"


def word(value: int) -> str:
    return hex(value)[2:].zfill(64)


def encoded_address(address: str) -> str:
    return "0x" + address.lower()[2:].zfill(64)


def encoded_amounts(*amounts: int) -> str:
    return "0x" + word(32) + word(len(amounts)) + "".join(word(a) for a in amounts)


def amounts_prefix(amount: int) -> str:
    return GET_AMOUNTS_OUT_SELECTOR + word(amount)


class TestAbiHelpers:
    """Tests for calldata encoding and decoding."""

    def test_encode_get_pair(self):
        data = encode_get_pair(TOKEN, WBNB)
        assert data.startswith("0xe6a43905")
        assert len(data) == 10 + 128

    def test_encode_get_amounts_out(self):
        data = encode_get_amounts_out(100, [TOKEN, WBNB])
        assert data.startswith(GET_AMOUNTS_OUT_SELECTOR + word(100) + word(64) + word(2))

    def test_decode_uint_array(self):
        assert decode_uint_array(encoded_amounts(5, 7)) == [5, 7]
        assert decode_uint_array("0x") == []

    def test_verification_amounts_escalate(self):
        amounts = verification_amounts(1)
        assert amounts[0] == 1
        assert amounts == sorted(amounts)
        assert amounts[-1] == 10**18
        assert len(amounts) == len(set(amounts))


@pytest.fixture
def rpc():
    return FakeEvmRpc()


@pytest.fixture
def service(rpc, cache):
    return DexPairQueryService(lambda chain_id: rpc, cache=cache)


class TestQueryDexPair:
    """Tests for DexPairQueryService.query_dex_pair."""

    @pytest.mark.asyncio
    async def test_verified_pair(self, rpc, service):
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(TOKEN, WBNB), encoded_address(PAIR))
        rpc.on_call(PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, encoded_amounts(1, 42))

        pair = await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap")

        assert pair is not None
        assert pair.pair_address.lower() == PAIR
        assert pair.output_amount == 42
        assert pair.test_amount == 1
        assert pair.verified is True

    @pytest.mark.asyncio
    async def test_reversed_factory_lookup(self, rpc, service):
        """getPair(B, A) is tried when getPair(A, B) returns zero."""
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(WBNB, TOKEN), encoded_address(PAIR))
        rpc.on_call(PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, encoded_amounts(1, 42))

        pair = await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap")

        assert pair is not None
        factory_calls = [d for to, d in rpc.calls if to == PANCAKE_FACTORY]
        assert factory_calls == [encode_get_pair(TOKEN, WBNB), encode_get_pair(WBNB, TOKEN)]

    @pytest.mark.asyncio
    async def test_missing_pair(self, rpc, service):
        assert await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap") is None
        assert not any(to == PANCAKE_ROUTER for to, _ in rpc.calls)

    @pytest.mark.asyncio
    async def test_router_escalates_test_amount(self, rpc, service):
        """Small inputs that revert on liquidity are retried with larger ones."""
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(TOKEN, WBNB), encoded_address(PAIR))
        rpc.on_call(
            PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, RpcError("execution reverted: INSUFFICIENT_INPUT_AMOUNT")
        )
        rpc.on_call(PANCAKE_ROUTER, amounts_prefix(100), encoded_amounts(100, 3))

        pair = await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap")

        assert pair is not None
        assert pair.test_amount == 100
        assert pair.output_amount == 3

    @pytest.mark.asyncio
    async def test_zero_output_is_not_verified(self, rpc, service):
        """A pool that exists but quotes zero for every size is not reported."""
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(TOKEN, WBNB), encoded_address(PAIR))
        rpc.on_call(PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, encoded_amounts(1, 0))

        assert await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap") is None

    @pytest.mark.asyncio
    async def test_unsupported_dex(self, service):
        assert await service.query_dex_pair(TOKEN, WBNB, 56, "uniswap") is None

    @pytest.mark.asyncio
    async def test_result_is_cached(self, rpc, service):
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(TOKEN, WBNB), encoded_address(PAIR))
        rpc.on_call(PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, encoded_amounts(1, 42))

        first = await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap")
        calls = len(rpc.calls)
        second = await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap")

        assert len(rpc.calls) == calls
        assert second.pair_address == first.pair_address

    @pytest.mark.asyncio
    async def test_transport_failure_returns_none(self, rpc, service, cache):
        rpc.on_call(PANCAKE_FACTORY, "0x", httpx.ConnectError("rpc down"))

        assert await service.query_dex_pair(TOKEN, WBNB, 56, "pancakeswap") is None
        assert cache.size() == 0


class TestBatchVerification:
    """Tests for verifying a token against every intermediary."""

    @pytest.mark.asyncio
    async def test_only_verified_combinations_returned(self, rpc, service):
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(TOKEN, WBNB), encoded_address(PAIR))
        rpc.on_call(
            PANCAKE_FACTORY,
            encode_get_pair(TOKEN, USDT),
            encoded_address("0x4444444444444444444444444444444444444444"),
        )
        rpc.on_call(PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, encoded_amounts(1, 9))

        pairs = await service.query_dex_pairs_for_token(TOKEN, 56)

        assert [p.intermediary.symbol for p in pairs] == ["WBNB", "USDT"]
        assert all(p.dex_id == "pancakeswap" for p in pairs)

    @pytest.mark.asyncio
    async def test_skips_token_as_its_own_intermediary(self, rpc, service):
        await service.query_dex_pairs_for_token(WBNB, 56)

        factory_calls = [d for to, d in rpc.calls if to == PANCAKE_FACTORY]
        assert encode_get_pair(WBNB, WBNB) not in factory_calls
        assert len(get_intermediaries(56)) == 5

    @pytest.mark.asyncio
    async def test_unknown_chain_returns_empty(self, service):
        assert await service.query_dex_pairs_for_token(TOKEN, 43114) == []

    @pytest.mark.asyncio
    async def test_non_json_reply_drops_only_that_pair(self, cache):
        """An HTML error page for one pool lookup does not fail the batch."""

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            call = body["params"][0]
            if call["to"].lower() == PANCAKE_FACTORY.lower():
                if USDT.lower()[2:] in call["data"].lower():
                    return httpx.Response(200, text="<html>rate limited</html>")
                if WBNB.lower()[2:] in call["data"].lower():
                    result = encoded_address(PAIR)
                else:
                    result = encoded_address(ZERO_ADDRESS)
            else:
                result = encoded_amounts(1, 9)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

        rpc = EvmRpcClient(
            "https://bsc.test", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        service = DexPairQueryService(lambda chain_id: rpc, cache=cache)

        pairs = await service.query_dex_pairs_for_token(TOKEN, 56)

        assert [p.intermediary.symbol for p in pairs] == ["WBNB"]

    @pytest.mark.asyncio
    async def test_non_json_reply_is_rpc_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>busy</html>"))
        rpc = EvmRpcClient("https://bsc.test", http_client=httpx.AsyncClient(transport=transport))

        with pytest.raises(RpcError):
            await rpc.eth_call(PANCAKE_FACTORY, "0x")


def index_pair(address, dex="pancakeswap", chain="bsc", liquidity=100.0, base="TWC", quote="WBNB"):
    return {
        "chainId": chain,
        "dexId": dex,
        "pairAddress": address,
        "baseToken": {"symbol": base, "address": TOKEN},
        "quoteToken": {"symbol": quote, "address": WBNB},
        "liquidity": {"usd": liquidity},
        "priceUsd": "1.5",
    }


@pytest.fixture
def index_queries():
    return []


@pytest.fixture
def pair_index(chains, index_queries):
    """PairIndex over a mocked DexScreener search."""
    pool_a = "0xaaaa000000000000000000000000000000000000"
    pool_b = "0xbbbb000000000000000000000000000000000000"

    def handler(request):
        if request.url.path.endswith("/search"):
            index_queries.append(request.url.params["q"])
            pairs = [
                index_pair(pool_a, liquidity=100.0),
                index_pair(pool_b, liquidity=900.0),
                index_pair(pool_a, liquidity=300.0),
                index_pair("0xcccc000000000000000000000000000000000000", dex="biswap"),
                index_pair("0xdddd000000000000000000000000000000000000", chain="ethereum"),
            ]
        else:
            pairs = [index_pair(pool_b, liquidity=900.0)]
        return httpx.Response(200, json={"pairs": pairs})

    scanner = DexScreenerProvider(
        chains, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    return PairIndex(chains, scanner)


class TestPairIndex:
    """Tests for the text pair index fallback."""

    @pytest.mark.asyncio
    async def test_search_filters_dedupes_and_sorts(self, pair_index, index_queries):
        pairs = await pair_index.search_pairs_by_symbol("TWC", "WBNB", 56)

        assert index_queries == ["TWC/WBNB", "WBNB/TWC"]
        assert [p.pair_address[:6] for p in pairs] == ["0xbbbb", "0xaaaa"]
        assert pairs[1].liquidity_usd == 300.0
        assert all(p.dex_id == "pancakeswap" for p in pairs)

    @pytest.mark.asyncio
    async def test_find_pair_fallback(self, rpc, cache, pair_index):
        """With no on-chain pool, find_pair returns indexed candidates."""
        service = DexPairQueryService(lambda chain_id: rpc, cache=cache, pair_index=pair_index)

        lookup = await service.find_pair(TOKEN, WBNB, 56, symbol_a="TWC", symbol_b="WBNB")

        assert lookup.verified is None
        assert lookup.found
        assert lookup.indexed[0].liquidity_usd == 900.0

    @pytest.mark.asyncio
    async def test_find_pairs_for_token_fallback(self, rpc, cache, pair_index):
        service = DexPairQueryService(lambda chain_id: rpc, cache=cache, pair_index=pair_index)

        lookup = await service.find_pairs_for_token(TOKEN, 56)

        assert lookup.source == "index"
        assert len(lookup.indexed) == 1

    @pytest.mark.asyncio
    async def test_verified_pair_skips_index(self, rpc, cache, pair_index, index_queries):
        rpc.on_call(PANCAKE_FACTORY, encode_get_pair(TOKEN, WBNB), encoded_address(PAIR))
        rpc.on_call(PANCAKE_ROUTER, GET_AMOUNTS_OUT_SELECTOR, encoded_amounts(1, 42))
        service = DexPairQueryService(lambda chain_id: rpc, cache=cache, pair_index=pair_index)

        lookup = await service.find_pair(TOKEN, WBNB, 56, symbol_a="TWC", symbol_b="WBNB")

        assert lookup.verified is not None
        assert index_queries == []

    def test_zero_address_constant(self):
        assert ZERO_ADDRESS == "0x" + "0" * 40
