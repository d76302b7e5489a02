"""Routing data types: DEXes, intermediary tokens, verified and indexed pairs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from crosswap.providers.base import to_float

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class IntermediaryCategory(str, Enum):
    NATIVE = "native"
    STABLE = "stable"
    LST = "lst"
    BLUECHIP = "bluechip"


@dataclass(frozen=True)
class DexConfig:
    """A Uniswap V2 style DEX deployment on one chain."""

    dex_id: str  # DexScreener dexId
    name: str
    router_address: str
    factory_address: str
    supported: bool = True


@dataclass(frozen=True)
class Intermediary:
    """A liquid token commonly used as the other side of a pair.

    Lower priority numbers are tried first.
    """

    address: str
    symbol: str
    priority: int
    category: IntermediaryCategory


@dataclass
class VerifiedPair:
    """A pool that exists on the factory and quoted a positive output on the router.

    Only built from on-chain reads, never from indexer data.
    """

    pair_address: str
    dex_id: str
    token_a: str
    token_b: str
    router_address: str
    output_amount: int
    test_amount: int
    verified: bool = True
    intermediary: Optional[Intermediary] = None

    def to_dict(self) -> dict:
        data = {
            "pairAddress": self.pair_address,
            "dexId": self.dex_id,
            "tokenA": self.token_a,
            "tokenB": self.token_b,
            "routerAddress": self.router_address,
            "outputAmount": str(self.output_amount),
            "testAmount": str(self.test_amount),
            "verified": self.verified,
        }
        if self.intermediary:
            data["intermediary"] = {
                "address": self.intermediary.address,
                "symbol": self.intermediary.symbol,
                "priority": self.intermediary.priority,
                "category": self.intermediary.category.value,
            }
        return data


@dataclass
class IndexedPair:
    """A pair reported by the text pair index (unverified)."""

    pair_address: str
    dex_id: str
    chain_slug: str
    base_symbol: str
    base_address: str
    quote_symbol: str
    quote_address: str
    liquidity_usd: float = 0.0
    price_usd: Optional[float] = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_dexscreener(cls, pair: dict) -> "IndexedPair":
        base = pair.get("baseToken") or {}
        quote = pair.get("quoteToken") or {}
        return cls(
            pair_address=pair.get("pairAddress", ""),
            dex_id=pair.get("dexId", ""),
            chain_slug=pair.get("chainId", ""),
            base_symbol=base.get("symbol", ""),
            base_address=base.get("address", ""),
            quote_symbol=quote.get("symbol", ""),
            quote_address=quote.get("address", ""),
            liquidity_usd=to_float((pair.get("liquidity") or {}).get("usd")) or 0.0,
            price_usd=to_float(pair.get("priceUsd")),
            raw=pair,
        )

    def to_dict(self) -> dict:
        return {
            "pairAddress": self.pair_address,
            "dexId": self.dex_id,
            "chain": self.chain_slug,
            "baseToken": {"symbol": self.base_symbol, "address": self.base_address},
            "quoteToken": {"symbol": self.quote_symbol, "address": self.quote_address},
            "liquidityUsd": self.liquidity_usd,
            "priceUsd": self.price_usd,
            "verified": False,
        }
