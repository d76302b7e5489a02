"""On-chain DEX pair discovery and verification.

A pair is only reported when both of these hold:

1. factory.getPair(tokenA, tokenB) returns a non-zero address (the reversed
   argument order is tried before giving up)
2. router.getAmountsOut quotes a positive output for one of an escalating
   series of test input amounts

Indexer data is never trusted for verification; the text pair index is a
separate fallback that returns unverified pools.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx
from web3 import Web3

from crosswap.errors import RpcError, UnsupportedChain
from crosswap.routing.base import (
    ZERO_ADDRESS,
    DexConfig,
    IndexedPair,
    Intermediary,
    VerifiedPair,
)
from crosswap.routing.dex_registry import get_dex, get_supported_dexes
from crosswap.routing.intermediaries import get_intermediaries
from crosswap.routing.pair_index import PairIndex
from crosswap.rpc.evm import EvmRpcClient
from crosswap.utils.cache import CACHE_TTL, TTLCache

logger = logging.getLogger(__name__)

# getPair(address,address)
GET_PAIR_SELECTOR = "0xe6a43905"
# getAmountsOut(uint256,address[])
GET_AMOUNTS_OUT_SELECTOR = "0xd06ca61f"

# Router reverts that mean "too little liquidity for this input size"
LIQUIDITY_ERROR_MARKERS = ("K", "constant product", "insufficient", "INSUFFICIENT")


def _encode_address(address: str) -> str:
    return address.lower().replace("0x", "").zfill(64)


def _encode_uint(value: int) -> str:
    return hex(value)[2:].zfill(64)


def encode_get_pair(token_a: str, token_b: str) -> str:
    return GET_PAIR_SELECTOR + _encode_address(token_a) + _encode_address(token_b)


def encode_get_amounts_out(amount_in: int, path: list[str]) -> str:
    """ABI-encode getAmountsOut(amountIn, path); the dynamic array sits at offset 0x40."""
    return (
        GET_AMOUNTS_OUT_SELECTOR
        + _encode_uint(amount_in)
        + _encode_uint(64)
        + _encode_uint(len(path))
        + "".join(_encode_address(a) for a in path)
    )


def decode_address(result: str) -> str:
    data = (result or "0x")[2:]
    if len(data) < 40:
        return ZERO_ADDRESS
    return Web3.to_checksum_address("0x" + data[-40:])


def decode_uint_array(result: str) -> list[int]:
    """Decode a single ABI-encoded uint256[] return value."""
    data = (result or "0x")[2:]
    words = [data[i : i + 64] for i in range(0, len(data), 64)]
    if len(words) < 2:
        return []
    offset = int(words[0], 16) // 32
    if offset >= len(words):
        return []
    length = int(words[offset], 16)
    return [int(w, 16) for w in words[offset + 1 : offset + 1 + length]]


def verification_amounts(test_amount: int = 1) -> list[int]:
    """Escalating router test inputs, deduplicated and positive.

    Starts at the smallest unit and climbs to 1e18 so pools with unusual
    decimals still produce a non-zero quote at some size.
    """
    candidates = [
        test_amount,
        test_amount * 10,
        test_amount * 100,
        test_amount * 1000,
        10**6,
        10**9,
        10**12,
        10**15,
        10**18,
    ]
    amounts: list[int] = []
    for amount in candidates:
        if amount > 0 and amount not in amounts:
            amounts.append(amount)
    return amounts


def is_liquidity_error(message: str) -> bool:
    return any(marker in message for marker in LIQUIDITY_ERROR_MARKERS)


@dataclass
class PairLookup:
    """Result of a pair lookup with index fallback."""

    verified: Optional[VerifiedPair] = None
    indexed: list[IndexedPair] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.verified is not None or bool(self.indexed)


@dataclass
class TokenPairsLookup:
    """All pools for one token: verified on chain, or indexed as fallback."""

    verified: list[VerifiedPair] = field(default_factory=list)
    indexed: list[IndexedPair] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.verified or self.indexed)

    @property
    def source(self) -> str:
        if self.verified:
            return "onchain"
        return "index" if self.indexed else "none"


class DexPairQueryService:
    """Factory lookup plus router verification across registered DEXes."""

    def __init__(
        self,
        rpc_for_chain: Callable[[int], EvmRpcClient],
        cache: Optional[TTLCache] = None,
        pair_index: Optional[PairIndex] = None,
    ):
        self._rpc_for_chain = rpc_for_chain
        self.cache = cache
        self.pair_index = pair_index

    async def query_dex_pair(
        self,
        token_a: str,
        token_b: str,
        chain_id: int,
        dex_id: str,
        test_amount: int = 1,
    ) -> Optional[VerifiedPair]:
        """Find and verify the token_a/token_b pool on one DEX.

        Returns:
            VerifiedPair with the proof output amount, or None if the pool is
            missing, untradable, or could not be checked
        """
        dex = get_dex(chain_id, dex_id)
        if dex is None:
            logger.debug(f"DEX {dex_id} not supported on chain {chain_id}")
            return None
        if not (Web3.is_address(token_a.lower()) and Web3.is_address(token_b.lower())):
            logger.warning(f"Invalid token address in pair query: {token_a}, {token_b}")
            return None

        cache_key = f"pair:{chain_id}:{dex_id}:{token_a.lower()}:{token_b.lower()}:{test_amount}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return self._from_cached(cached)

        try:
            rpc = self._rpc_for_chain(chain_id)
            pair = await self._query(rpc, dex, token_a, token_b, test_amount)
        except UnsupportedChain:
            logger.warning(f"No RPC endpoint for chain {chain_id}")
            return None
        except (httpx.HTTPError, RpcError, ValueError) as e:
            logger.error(
                f"Pair query {token_a}/{token_b} on {dex_id} failed: {type(e).__name__}: {e}"
            )
            return None

        if self.cache is not None:
            self.cache.set(cache_key, pair.to_dict() if pair else {}, CACHE_TTL.PAIRS)
        return pair

    async def _query(
        self,
        rpc: EvmRpcClient,
        dex: DexConfig,
        token_a: str,
        token_b: str,
        test_amount: int,
    ) -> Optional[VerifiedPair]:
        pair_address = await self.get_pair_address(rpc, dex.factory_address, token_a, token_b)
        if pair_address == ZERO_ADDRESS:
            logger.debug(f"No {dex.dex_id} pair for {token_a}/{token_b}")
            return None

        verified = await self.verify_with_router(
            rpc, dex.router_address, token_a, token_b, test_amount
        )
        if verified is None:
            logger.info(
                f"{dex.dex_id} pair {pair_address} exists but did not quote a positive output"
            )
            return None

        amount_in, amount_out = verified
        return VerifiedPair(
            pair_address=pair_address,
            dex_id=dex.dex_id,
            token_a=token_a,
            token_b=token_b,
            router_address=dex.router_address,
            output_amount=amount_out,
            test_amount=amount_in,
        )

    async def get_pair_address(
        self, rpc: EvmRpcClient, factory: str, token_a: str, token_b: str
    ) -> str:
        """factory.getPair in both argument orders; ZERO_ADDRESS if neither finds one."""
        pair = decode_address(await rpc.eth_call(factory, encode_get_pair(token_a, token_b)))
        if pair != ZERO_ADDRESS:
            return pair
        return decode_address(await rpc.eth_call(factory, encode_get_pair(token_b, token_a)))

    async def verify_with_router(
        self,
        rpc: EvmRpcClient,
        router: str,
        token_a: str,
        token_b: str,
        test_amount: int = 1,
    ) -> Optional[tuple[int, int]]:
        """Try each test amount until the router quotes a positive output.

        Returns:
            (amount_in, amount_out) for the first size that worked, else None

        Raises:
            httpx.HTTPError: the RPC endpoint is unreachable
        """
        path = [token_a, token_b]
        for amount in verification_amounts(test_amount):
            try:
                amounts = decode_uint_array(
                    await rpc.eth_call(router, encode_get_amounts_out(amount, path))
                )
            except RpcError as e:
                if is_liquidity_error(e.message):
                    logger.debug(f"getAmountsOut({amount}) reverted on liquidity, trying larger size")
                else:
                    logger.debug(f"getAmountsOut({amount}) reverted: {e.message}")
                continue

            if len(amounts) == 2 and amounts[1] > 0:
                return amount, amounts[1]

        return None

    async def query_dex_pairs_for_token(
        self,
        token: str,
        chain_id: int,
        intermediaries: Optional[list[Intermediary]] = None,
        test_amount: int = 1,
    ) -> list[VerifiedPair]:
        """Verify token against every (intermediary, supported DEX) combination concurrently.

        Only combinations that verified are returned, highest-priority
        intermediary first.
        """
        if intermediaries is None:
            intermediaries = get_intermediaries(chain_id)
        dexes = get_supported_dexes(chain_id)

        combos = [
            (intermediary, dex)
            for intermediary in intermediaries
            for dex in dexes
            if intermediary.address.lower() != token.lower()
        ]
        if not combos:
            return []

        results = await asyncio.gather(
            *(
                self.query_dex_pair(token, intermediary.address, chain_id, dex.dex_id, test_amount)
                for intermediary, dex in combos
            )
        )

        verified = []
        for (intermediary, _), pair in zip(combos, results):
            if pair is not None:
                pair.intermediary = intermediary
                verified.append(pair)

        logger.info(
            f"Verified {len(verified)}/{len(combos)} pairs for {token} on chain {chain_id}"
        )
        return verified

    async def find_pair(
        self,
        token_a: str,
        token_b: str,
        chain_id: int,
        symbol_a: Optional[str] = None,
        symbol_b: Optional[str] = None,
        dex_id: Optional[str] = None,
    ) -> PairLookup:
        """On-chain verification first, then the text index by symbol pair."""
        dex_ids = [dex_id] if dex_id else [d.dex_id for d in get_supported_dexes(chain_id)]
        for candidate in dex_ids:
            pair = await self.query_dex_pair(token_a, token_b, chain_id, candidate)
            if pair is not None:
                return PairLookup(verified=pair)

        if self.pair_index is None or not (symbol_a and symbol_b):
            return PairLookup()

        logger.info(f"No verified pair for {symbol_a}/{symbol_b}, falling back to pair index")
        return PairLookup(
            indexed=await self.pair_index.search_pairs_by_symbol(symbol_a, symbol_b, chain_id)
        )

    async def find_pairs_for_token(
        self,
        token: str,
        chain_id: int,
        intermediaries: Optional[list[Intermediary]] = None,
    ) -> TokenPairsLookup:
        """Batch on-chain verification, then the pair index by token address."""
        verified = await self.query_dex_pairs_for_token(token, chain_id, intermediaries)
        if verified or self.pair_index is None:
            return TokenPairsLookup(verified=verified)

        logger.info(f"No verified pairs for {token} on chain {chain_id}, falling back to pair index")
        return TokenPairsLookup(indexed=await self.pair_index.get_token_pairs(token, chain_id))

    @staticmethod
    def _from_cached(data: dict) -> Optional[VerifiedPair]:
        if not data:
            return None
        return VerifiedPair(
            pair_address=data["pairAddress"],
            dex_id=data["dexId"],
            token_a=data["tokenA"],
            token_b=data["tokenB"],
            router_address=data["routerAddress"],
            output_amount=int(data["outputAmount"]),
            test_amount=int(data["testAmount"]),
        )
