"""Moralis balance/portfolio client.

Every request goes through an ApiKeyPool: a 429 (or the 401 Moralis returns
when a plan quota is used up) exhausts the active key and the request is
retried with the next one.
"""

import logging
from typing import Any, Optional

import httpx
from web3 import Web3

from crosswap.chains import ChainRegistry, ExecutionFamily
from crosswap.errors import ProviderUnavailable, RateLimited, UnsupportedChain
from crosswap.utils.cache import CACHE_TTL, TTLCache
from crosswap.utils.key_pool import ApiKeyPool

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = (401, 429)


class MoralisClient:
    """Wallet token balances with automatic key rotation."""

    name = "moralis"

    def __init__(
        self,
        chains: ChainRegistry,
        key_pool: ApiKeyPool,
        cache: TTLCache,
        api_url: str = "https://deep-index.moralis.io/api/v2.2",
        solana_api_url: str = "https://solana-gateway.moralis.io",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.chains = chains
        self.key_pool = key_pool
        self.cache = cache
        self.api_url = api_url.rstrip("/")
        self.solana_api_url = solana_api_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _send(self, api_key: str, url: str, params: dict) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers={"X-API-Key": api_key, "Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise ProviderUnavailable(self.name, f"{type(e).__name__}: {e}") from e

        if response.status_code in RATE_LIMIT_STATUSES:
            raise RateLimited(
                f"Moralis API error: {response.status_code}", status_code=response.status_code
            )
        if response.status_code != 200:
            raise ProviderUnavailable(self.name, f"HTTP {response.status_code}")
        return response.json()

    async def request(self, url: str, params: Optional[dict] = None) -> Any:
        """GET a Moralis endpoint using the key pool.

        Raises:
            AllKeysExhausted: every key is rate limited
            RateLimited: retries ran out while keys remain
            ProviderUnavailable: network or non-rate-limit HTTP failure
        """
        return await self.key_pool.execute(lambda key: self._send(key, url, params or {}))

    async def get_wallet_tokens(self, address: str, chain_id: int) -> list[dict]:
        """Native and token balances (with USD prices) for a wallet on one chain."""
        chain = self.chains.get(chain_id)
        if chain is None or chain.provider_id(self.name) is None:
            raise UnsupportedChain(chain_id)

        cache_key = f"moralis:tokens:{chain.id}:{address.lower()}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if chain.family == ExecutionFamily.SOLANA:
            data = await self.request(
                f"{self.solana_api_url}/account/{chain.provider_id(self.name)}/{address}/tokens"
            )
            result = data if isinstance(data, list) else []
        else:
            if not Web3.is_address(address.lower()):
                raise ValueError(f"Invalid EVM address: {address}")
            data = await self.request(
                f"{self.api_url}/wallets/{address}/tokens",
                {
                    "chain": chain.provider_id(self.name),
                    "exclude_spam": "true",
                    "exclude_unverified_contracts": "false",
                },
            )
            result = data.get("result", []) if isinstance(data, dict) else []

        self.cache.set(cache_key, result, CACHE_TTL.TOKEN_BALANCES)
        logger.debug(f"Fetched {len(result)} balances for {address} on chain {chain.id}")
        return result
