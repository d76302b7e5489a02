"""Minimal async JSON-RPC 2.0 client over httpx."""

import itertools
import logging
from typing import Any, Optional

import httpx

from crosswap.errors import RpcError

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """POSTs JSON-RPC requests to a single endpoint."""

    def __init__(
        self,
        rpc_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None
        self._ids = itertools.count(1)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        """Send one request and return its result.

        Raises:
            RpcError: the endpoint returned an error object, a bad status or a
                body that is not a JSON-RPC response
            httpx.HTTPError: transport failure
        """
        client = await self._get_client()
        response = await client.post(
            self.rpc_url,
            json={
                "jsonrpc": "2.0",
                "method": method,
                "params": params or [],
                "id": next(self._ids),
            },
        )

        if response.status_code != 200:
            raise RpcError(f"{method}: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RpcError(f"{method}: response is not JSON") from e
        if not isinstance(data, dict):
            raise RpcError(f"{method}: unexpected response {str(data)[:100]}")

        if data.get("error"):
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RpcError(message, rpc_code=code, data=error.get("data") if isinstance(error, dict) else None)

        return data.get("result")

    async def close(self) -> None:
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
