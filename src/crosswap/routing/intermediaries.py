"""Popular intermediary tokens per chain.

Order of preference: wrapped native, stablecoins, liquid staking tokens,
blue chips.
"""

from typing import Optional

from crosswap.routing.base import Intermediary, IntermediaryCategory

NATIVE = IntermediaryCategory.NATIVE
STABLE = IntermediaryCategory.STABLE
LST = IntermediaryCategory.LST
BLUECHIP = IntermediaryCategory.BLUECHIP

POPULAR_INTERMEDIARIES: dict[int, list[Intermediary]] = {
    56: [
        Intermediary("0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", "WBNB", 1, NATIVE),
        Intermediary("0x55d398326f99059fF775485246999027B3197955", "USDT", 2, STABLE),
        Intermediary("0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56", "BUSD", 3, STABLE),
        Intermediary("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", "USDC", 4, STABLE),
        Intermediary("0x2170Ed0880ac9A755fd29B2688956BD959F933F8", "ETH", 5, BLUECHIP),
    ],
    1: [
        Intermediary("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", "WETH", 1, NATIVE),
        Intermediary("0xdAC17F958D2ee523a2206206994597C13D831ec7", "USDT", 2, STABLE),
        Intermediary("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "USDC", 3, STABLE),
        Intermediary("0x6B175474E89094C44Da98b954EedeAC495271d0F", "DAI", 4, STABLE),
        Intermediary("0xae7ab96520DE3A18E5e111B5EaAb095312D7fE84", "stETH", 5, LST),
        Intermediary("0x7f39C581F595B53c5cb19bD0b3f8dA6c935E2Ca0", "wstETH", 6, LST),
    ],
    137: [
        Intermediary("0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270", "WMATIC", 1, NATIVE),
        Intermediary("0xc2132D05D31c914a87C6611C10748AEb04B58e8F", "USDT", 2, STABLE),
        Intermediary("0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", "USDC", 3, STABLE),
        Intermediary("0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6", "WBTC", 4, BLUECHIP),
    ],
    10: [
        Intermediary("0x4200000000000000000000000000000000000006", "WETH", 1, NATIVE),
        Intermediary("0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", "USDT", 2, STABLE),
        Intermediary("0x7F5c764cBc14f9669B88837ca1490cCa17c31607", "USDC", 3, STABLE),
        Intermediary("0x1F32b1c2345538c0C6F582fB022929c35a05FeF0", "wstETH", 4, LST),
    ],
    42161: [
        Intermediary("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", "WETH", 1, NATIVE),
        Intermediary("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", "USDT", 2, STABLE),
        Intermediary("0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8", "USDC", 3, STABLE),
        Intermediary("0x5979D7b546E38E414F7E9822514be443A4800529", "wstETH", 4, LST),
    ],
    8453: [
        Intermediary("0x4200000000000000000000000000000000000006", "WETH", 1, NATIVE),
        Intermediary("0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2", "USDC", 2, STABLE),
        Intermediary("0x4158734D47Fc9692176B5085E0F52ee0Da5d47F1", "cbETH", 3, LST),
    ],
}


def get_intermediaries(chain_id: int) -> list[Intermediary]:
    """Intermediaries for a chain, highest priority first."""
    return sorted(POPULAR_INTERMEDIARIES.get(chain_id, []), key=lambda i: i.priority)


def get_wrapped_native(chain_id: int) -> Optional[str]:
    for intermediary in get_intermediaries(chain_id):
        if intermediary.category == NATIVE:
            return intermediary.address
    return None


def get_stablecoins(chain_id: int) -> list[str]:
    return [i.address for i in get_intermediaries(chain_id) if i.category == STABLE]


def get_bridgeable_tokens(chain_id: int) -> list[str]:
    """Tokens that bridges commonly accept: native, stable and LST."""
    return [
        i.address
        for i in get_intermediaries(chain_id)
        if i.category in (NATIVE, STABLE, LST)
    ]
