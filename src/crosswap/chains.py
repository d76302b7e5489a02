"""Canonical chain registry.

Every provider numbers chains its own way. A canonical chain carries a stable
internal id plus the id each provider uses for it:

- EVM chains: canonical id is the EVM chain id
- Solana: canonical id 7565164, LI.FI 1151111081099710, DexScreener "solana"
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

logger = logging.getLogger(__name__)

ProviderChainId = Union[int, str]


class ExecutionFamily(str, Enum):
    """How a chain builds, signs and confirms transactions."""

    EVM = "evm"
    SOLANA = "solana"
    OTHER = "other"


SOLANA_CHAIN_ID = 7565164
SOLANA_LIFI_CHAIN_ID = 1151111081099710


@dataclass(frozen=True)
class Chain:
    """Immutable canonical chain description."""

    id: int
    name: str
    family: ExecutionFamily
    native_symbol: str
    native_decimals: int = 18
    provider_ids: Mapping[str, ProviderChainId] = field(default_factory=dict)
    explorer_url: str = ""
    public_rpc_urls: tuple[str, ...] = ()

    def provider_id(self, provider: str) -> Optional[ProviderChainId]:
        """Provider-specific id for this chain, or None if unsupported."""
        return self.provider_ids.get(provider)

    @property
    def is_evm(self) -> bool:
        return self.family == ExecutionFamily.EVM

    def add_chain_params(self) -> dict:
        """Parameters for a wallet_addEthereumChain request."""
        return {
            "chainId": hex(self.id),
            "chainName": self.name,
            "nativeCurrency": {
                "name": self.native_symbol,
                "symbol": self.native_symbol,
                "decimals": self.native_decimals,
            },
            "rpcUrls": list(self.public_rpc_urls),
            "blockExplorerUrls": [self.explorer_url] if self.explorer_url else [],
        }


def _chain(
    chain_id: int,
    name: str,
    family: ExecutionFamily,
    native_symbol: str,
    provider_ids: dict,
    explorer_url: str = "",
    rpc_urls: tuple[str, ...] = (),
    native_decimals: int = 18,
) -> Chain:
    return Chain(
        id=chain_id,
        name=name,
        family=family,
        native_symbol=native_symbol,
        native_decimals=native_decimals,
        provider_ids=MappingProxyType(dict(provider_ids)),
        explorer_url=explorer_url,
        public_rpc_urls=rpc_urls,
    )


# ======================
# Canonical Chains
# ======================

CANONICAL_CHAINS: tuple[Chain, ...] = (
    _chain(
        1, "Ethereum", ExecutionFamily.EVM, "ETH",
        {"lifi": 1, "dexscreener": "ethereum", "relay": 1, "moralis": "eth"},
        "https://etherscan.io", ("https://eth.llamarpc.com",),
    ),
    _chain(
        56, "BNB Chain", ExecutionFamily.EVM, "BNB",
        {"lifi": 56, "dexscreener": "bsc", "relay": 56, "moralis": "bsc"},
        "https://bscscan.com", ("https://bsc-dataseed.binance.org",),
    ),
    _chain(
        137, "Polygon", ExecutionFamily.EVM, "POL",
        {"lifi": 137, "dexscreener": "polygon", "relay": 137, "moralis": "polygon"},
        "https://polygonscan.com", ("https://polygon-rpc.com",),
    ),
    _chain(
        42161, "Arbitrum One", ExecutionFamily.EVM, "ETH",
        {"lifi": 42161, "dexscreener": "arbitrum", "relay": 42161, "moralis": "arbitrum"},
        "https://arbiscan.io", ("https://arb1.arbitrum.io/rpc",),
    ),
    _chain(
        10, "Optimism", ExecutionFamily.EVM, "ETH",
        {"lifi": 10, "dexscreener": "optimism", "relay": 10, "moralis": "optimism"},
        "https://optimistic.etherscan.io", ("https://mainnet.optimism.io",),
    ),
    _chain(
        8453, "Base", ExecutionFamily.EVM, "ETH",
        {"lifi": 8453, "dexscreener": "base", "relay": 8453, "moralis": "base"},
        "https://basescan.org", ("https://mainnet.base.org",),
    ),
    _chain(
        43114, "Avalanche", ExecutionFamily.EVM, "AVAX",
        {"lifi": 43114, "dexscreener": "avalanche", "relay": 43114, "moralis": "avalanche"},
        "https://snowtrace.io", ("https://api.avax.network/ext/bc/C/rpc",),
    ),
    _chain(
        SOLANA_CHAIN_ID, "Solana", ExecutionFamily.SOLANA, "SOL",
        {"lifi": SOLANA_LIFI_CHAIN_ID, "dexscreener": "solana", "relay": 792703809, "moralis": "mainnet"},
        "https://solscan.io", ("https://api.mainnet-beta.solana.com",),
        native_decimals=9,
    ),
)


class ChainRegistry:
    """Lookup of canonical chains by canonical id or provider id.

    The static table is loaded at construction. Chains discovered from a
    provider at runtime are added with register(); a registered chain is
    never replaced.
    """

    def __init__(self, chains: tuple[Chain, ...] = CANONICAL_CHAINS):
        self._by_id: dict[int, Chain] = {c.id: c for c in chains}
        self._static_ids: list[int] = [c.id for c in chains]
        self._by_provider: dict[tuple[str, str], Chain] = {}
        for chain in chains:
            for provider, provider_id in chain.provider_ids.items():
                self._by_provider[(provider, str(provider_id))] = chain

    def get(self, chain_id: int) -> Optional[Chain]:
        """Get a chain by canonical id.

        Solana's LI.FI id is accepted as an alias.
        """
        if chain_id == SOLANA_LIFI_CHAIN_ID:
            chain_id = SOLANA_CHAIN_ID
        return self._by_id.get(chain_id)

    def get_by_provider_id(self, provider: str, provider_id: ProviderChainId) -> Optional[Chain]:
        """Map a provider's chain id back to the canonical chain."""
        return self._by_provider.get((provider, str(provider_id)))

    def register(self, chain: Chain) -> bool:
        """Add a chain discovered at runtime; False if the id is already known."""
        if self.get(chain.id) is not None:
            return False
        self._by_id[chain.id] = chain
        for provider, provider_id in chain.provider_ids.items():
            self._by_provider.setdefault((provider, str(provider_id)), chain)
        logger.info(f"Registered chain {chain.name} ({chain.id})")
        return True

    def resolve(self, provider: str, provider_id: ProviderChainId) -> Optional[Chain]:
        """Resolve a provider chain id, falling back to a canonical id lookup."""
        chain = self.get_by_provider_id(provider, provider_id)
        if chain:
            return chain
        try:
            return self.get(int(provider_id))
        except (TypeError, ValueError):
            return None

    def family_of(self, chain_id: int) -> ExecutionFamily:
        """Execution family for a chain id; unknown ids are OTHER."""
        if chain_id in (SOLANA_CHAIN_ID, SOLANA_LIFI_CHAIN_ID):
            return ExecutionFamily.SOLANA
        chain = self._by_id.get(chain_id)
        return chain.family if chain else ExecutionFamily.OTHER

    def all(self) -> list[Chain]:
        return list(self._by_id.values())

    def ids(self) -> list[int]:
        """Statically configured chain ids, the default search set."""
        return list(self._static_ids)

    def __contains__(self, chain_id: int) -> bool:
        return self.get(chain_id) is not None
