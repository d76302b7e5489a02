"""JSON-RPC clients for EVM chains and Solana."""

import logging
from typing import Optional

import httpx

from crosswap.chains import SOLANA_CHAIN_ID
from crosswap.config import Settings
from crosswap.errors import UnsupportedChain
from crosswap.rpc.base import JsonRpcClient
from crosswap.rpc.evm import EvmRpcClient
from crosswap.rpc.solana import SolanaRpcClient

logger = logging.getLogger(__name__)


class RpcClientPool:
    """One RPC client per chain, created lazily, sharing an HTTP client."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._http_client = http_client
        self._owns_client = http_client is None
        self._evm: dict[int, EvmRpcClient] = {}
        self._solana: Optional[SolanaRpcClient] = None

    def _shared_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.http_timeout)
            self._owns_client = True
        return self._http_client

    def evm(self, chain_id: int) -> EvmRpcClient:
        """RPC client for an EVM chain."""
        if chain_id not in self._evm:
            url = self.settings.get_rpc_url(chain_id)
            if not url or chain_id == SOLANA_CHAIN_ID:
                raise UnsupportedChain(chain_id)
            self._evm[chain_id] = EvmRpcClient(url, http_client=self._shared_client())
        return self._evm[chain_id]

    def solana(self) -> SolanaRpcClient:
        if self._solana is None:
            self._solana = SolanaRpcClient(
                self.settings.sol_rpc_url, http_client=self._shared_client()
            )
        return self._solana

    async def close(self) -> None:
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None


__all__ = ["JsonRpcClient", "EvmRpcClient", "SolanaRpcClient", "RpcClientPool"]
