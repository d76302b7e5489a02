"""DEX pair discovery and verification.

DEXes (Uniswap V2 style):
- PancakeSwap: BNB Chain
- Uniswap V2, SushiSwap: Ethereum
- QuickSwap: Polygon
- Uniswap V2: Optimism, Arbitrum, Base
"""

from crosswap.routing.base import DexConfig, IndexedPair, Intermediary, VerifiedPair
from crosswap.routing.dex_registry import dexscreener_dex_ids, get_dex, get_supported_dexes
from crosswap.routing.intermediaries import get_intermediaries
from crosswap.routing.pair_index import PairIndex
from crosswap.routing.pair_query import DexPairQueryService, PairLookup, TokenPairsLookup

__all__ = [
    "DexConfig",
    "IndexedPair",
    "Intermediary",
    "VerifiedPair",
    "get_dex",
    "get_supported_dexes",
    "dexscreener_dex_ids",
    "get_intermediaries",
    "PairIndex",
    "DexPairQueryService",
    "PairLookup",
    "TokenPairsLookup",
]
