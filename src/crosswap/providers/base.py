"""Token provider base interface and token shapes."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

import httpx
from web3 import Web3

from crosswap.chains import Chain, ChainRegistry, ExecutionFamily

logger = logging.getLogger(__name__)


@dataclass
class FetchTokensParams:
    """Parameters for a provider token fetch."""

    chain_ids: list[int] = field(default_factory=list)
    search: Optional[str] = None
    limit: int = 30


@dataclass
class ProviderToken:
    """Raw token as returned by one source.

    chain_id is the provider's own chain identifier.
    """

    chain_id: Union[int, str]
    address: str
    symbol: str
    name: str
    decimals: Optional[int] = None
    logo_uri: Optional[str] = None
    price_usd: Optional[float] = None
    liquidity: Optional[float] = None
    volume_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class ProviderChain:
    """Raw chain as returned by one source."""

    id: Union[int, str]
    name: str
    chain_type: str = ""
    native_symbol: str = ""
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class NormalizedToken:
    """Canonical token record, unique by (chain_id, lowercased address)."""

    chain_id: int
    address: str
    symbol: str
    name: str
    decimals: Optional[int] = None
    logo_uri: Optional[str] = None
    price_usd: Optional[float] = None
    liquidity: Optional[float] = None
    volume_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    chain_name: str = ""
    providers: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return token_key(self.chain_id, self.address)

    def merged_with(self, other: "NormalizedToken") -> "NormalizedToken":
        """Merge another record of the same token into this one.

        Fields keep the first non-empty value; provider lists are unioned
        in order.
        """
        providers = list(self.providers)
        for provider in other.providers:
            if provider not in providers:
                providers.append(provider)

        return replace(
            self,
            symbol=self.symbol or other.symbol,
            name=self.name or other.name,
            decimals=self.decimals if self.decimals is not None else other.decimals,
            logo_uri=self.logo_uri or other.logo_uri,
            price_usd=self.price_usd or other.price_usd,
            liquidity=self.liquidity or other.liquidity,
            volume_24h=self.volume_24h or other.volume_24h,
            price_change_24h=(
                self.price_change_24h
                if self.price_change_24h is not None
                else other.price_change_24h
            ),
            chain_name=self.chain_name or other.chain_name,
            providers=providers,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "logoURI": self.logo_uri,
            "priceUSD": self.price_usd,
            "liquidity": self.liquidity,
            "volume24h": self.volume_24h,
            "priceChange24h": self.price_change_24h,
            "chainName": self.chain_name,
            "providers": list(self.providers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NormalizedToken":
        return cls(
            chain_id=data["chainId"],
            address=data["address"],
            symbol=data.get("symbol", ""),
            name=data.get("name", ""),
            decimals=data.get("decimals"),
            logo_uri=data.get("logoURI"),
            price_usd=data.get("priceUSD"),
            liquidity=data.get("liquidity"),
            volume_24h=data.get("volume24h"),
            price_change_24h=data.get("priceChange24h"),
            chain_name=data.get("chainName", ""),
            providers=list(data.get("providers", [])),
        )


def token_key(chain_id: int, address: str) -> str:
    """Deduplication key for a token."""
    return f"{chain_id}:{address.lower()}"


def normalize_address(address: str, family: ExecutionFamily) -> str:
    """Checksum EVM addresses; other families keep their native encoding."""
    if family == ExecutionFamily.EVM and Web3.is_address(address.lower()):
        return Web3.to_checksum_address(address)
    return address


def to_float(value: Any) -> Optional[float]:
    """Parse a numeric field that providers send as number or string."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class TokenProvider(ABC):
    """Abstract base class for token and chain list providers.

    Adapters must never let network or parsing errors escape fetch_tokens or
    fetch_chains: they log and return an empty list instead.
    """

    def __init__(
        self,
        chains: ChainRegistry,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.chains = chains
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        raise NotImplementedError()

    @abstractmethod
    async def fetch_tokens(self, params: FetchTokensParams) -> list[ProviderToken]:
        """Fetch tokens for the given chains and optional search text."""
        raise NotImplementedError()

    async def fetch_chains(self) -> list[ProviderChain]:
        """Fetch chains the provider supports. Optional capability."""
        return []

    async def has_token(self, chain: Chain, address: str) -> Optional[bool]:
        """Whether the provider can route this token; None when it cannot tell."""
        return None

    def get_chain_id(self, chain: Chain) -> Optional[Union[int, str]]:
        """Provider-specific chain id for a canonical chain, None if unsupported."""
        return chain.provider_id(self.name)

    def supports_chain(self, chain_id: int) -> bool:
        chain = self.chains.get(chain_id)
        return chain is not None and self.get_chain_id(chain) is not None

    def normalize_token(self, token: ProviderToken, chain: Chain) -> NormalizedToken:
        """Convert a provider token to the canonical shape."""
        return NormalizedToken(
            chain_id=chain.id,
            address=normalize_address(token.address, chain.family),
            symbol=token.symbol or "",
            name=token.name or token.symbol or "",
            decimals=token.decimals,
            logo_uri=token.logo_uri,
            price_usd=token.price_usd,
            liquidity=token.liquidity,
            volume_24h=token.volume_24h,
            price_change_24h=token.price_change_24h,
            chain_name=chain.name,
            providers=[self.name],
        )

    def normalize_chain(self, chain: ProviderChain) -> Optional[Chain]:
        """Map a provider chain to its canonical chain, None if unknown."""
        return self.chains.resolve(self.name, chain.id)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if this provider created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
