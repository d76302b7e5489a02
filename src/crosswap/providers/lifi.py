"""LI.FI token and chain list provider.

Serves as the primary token source for every supported chain and as a router
provider for enrichment (tokens LI.FI lists can be routed through it).
"""

import logging
from types import MappingProxyType
from typing import Optional

import httpx

from crosswap.chains import Chain, ChainRegistry, ExecutionFamily
from crosswap.providers.base import (
    FetchTokensParams,
    ProviderChain,
    ProviderToken,
    TokenProvider,
    to_float,
)
from crosswap.utils.token_mixer import mix_tokens_by_chain

logger = logging.getLogger(__name__)

LIFI_CHAIN_TYPES = {
    ExecutionFamily.EVM: "EVM",
    ExecutionFamily.SOLANA: "SVM",
}


class LiFiProvider(TokenProvider):
    """Token lists from the LI.FI REST API."""

    def __init__(
        self,
        chains: ChainRegistry,
        api_url: str = "https://li.quest/v1",
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        super().__init__(chains, http_client=http_client, timeout=timeout)
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key

    @property
    def name(self) -> str:
        return "lifi"

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    async def fetch_tokens(self, params: FetchTokensParams) -> list[ProviderToken]:
        """Fetch tokens for all requested chains in one call.

        Multi-chain results are interleaved round-robin so no chain dominates
        the limited list.
        """
        try:
            lifi_ids: list[int] = []
            chain_types: set[str] = set()
            for chain_id in params.chain_ids:
                chain = self.chains.get(chain_id)
                if not chain:
                    continue
                lifi_id = self.get_chain_id(chain)
                if lifi_id is None:
                    continue
                lifi_ids.append(int(lifi_id))
                if chain.family in LIFI_CHAIN_TYPES:
                    chain_types.add(LIFI_CHAIN_TYPES[chain.family])

            if not lifi_ids:
                return []

            query: dict = {
                "chains": ",".join(str(i) for i in lifi_ids),
                "limit": params.limit,
            }
            if chain_types:
                query["chainTypes"] = ",".join(sorted(chain_types))

            search = (params.search or "").strip()
            if search:
                query["search"] = search
            else:
                query["orderBy"] = "volumeUSD24H"

            client = await self._get_client()
            response = await client.get(
                f"{self.api_url}/tokens", params=query, headers=self._headers()
            )

            if response.status_code != 200:
                logger.warning(f"LI.FI tokens error: {response.status_code} - {response.text[:200]}")
                return []

            data = response.json()
            tokens_by_chain = data.get("tokens") or {}

            tokens: list[ProviderToken] = []
            for lifi_id in lifi_ids:
                for item in tokens_by_chain.get(str(lifi_id), []) or []:
                    if not item.get("address"):
                        continue
                    tokens.append(
                        ProviderToken(
                            chain_id=lifi_id,
                            address=item["address"],
                            symbol=item.get("symbol", ""),
                            name=item.get("name", ""),
                            decimals=item.get("decimals"),
                            logo_uri=item.get("logoURI"),
                            price_usd=to_float(item.get("priceUSD")),
                            volume_24h=to_float(item.get("volumeUSD24H")),
                            raw=item,
                        )
                    )

            return mix_tokens_by_chain(tokens, params.limit, chain_of=lambda t: t.chain_id)

        except Exception as e:
            logger.error(f"LI.FI token fetch failed: {type(e).__name__}: {e}")
            return []

    async def has_token(self, chain: Chain, address: str) -> Optional[bool]:
        """Look the token up on LI.FI. 404 means it is not routable there."""
        lifi_id = self.get_chain_id(chain)
        if lifi_id is None:
            return False

        client = await self._get_client()
        response = await client.get(
            f"{self.api_url}/token",
            params={"chain": lifi_id, "token": address},
            headers=self._headers(),
        )
        if response.status_code == 200:
            return True
        if response.status_code in (400, 404):
            return False
        logger.warning(f"LI.FI token lookup error: {response.status_code}")
        return None

    async def fetch_chains(self) -> list[ProviderChain]:
        try:
            client = await self._get_client()
            response = await client.get(
                f"{self.api_url}/chains",
                params={"chainTypes": "EVM,SVM"},
                headers=self._headers(),
            )

            if response.status_code != 200:
                logger.warning(f"LI.FI chains error: {response.status_code}")
                return []

            chains = []
            for item in response.json().get("chains", []):
                if item.get("id") is None:
                    continue
                chains.append(
                    ProviderChain(
                        id=item["id"],
                        name=item.get("name", ""),
                        chain_type=item.get("chainType", ""),
                        native_symbol=item.get("coin", ""),
                        raw=item,
                    )
                )
            return chains

        except Exception as e:
            logger.error(f"LI.FI chain fetch failed: {type(e).__name__}: {e}")
            return []

    def normalize_chain(self, chain: ProviderChain) -> Optional[Chain]:
        """Known chains map to the registry; unknown EVM chains become new records.

        The new record carries only the LI.FI id and the wallet parameters LI.FI
        publishes for it.
        """
        known = super().normalize_chain(chain)
        if known is not None or chain.chain_type != "EVM":
            return known
        try:
            chain_id = int(chain.id)
        except (TypeError, ValueError):
            return None

        metamask = chain.raw.get("metamask") or {}
        currency = metamask.get("nativeCurrency") or {}
        explorers = metamask.get("blockExplorerUrls") or []
        return Chain(
            id=chain_id,
            name=chain.name or f"Chain {chain_id}",
            family=ExecutionFamily.EVM,
            native_symbol=chain.native_symbol or currency.get("symbol", ""),
            native_decimals=int(currency.get("decimals") or 18),
            provider_ids=MappingProxyType({"lifi": chain_id}),
            explorer_url=explorers[0] if explorers else "",
            public_rpc_urls=tuple(metamask.get("rpcUrls") or ()),
        )
