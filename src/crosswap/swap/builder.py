"""Transaction request builders for steps that arrive without one."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

import httpx

from crosswap.chains import ExecutionFamily
from crosswap.errors import ProviderUnavailable
from crosswap.swap.route import (
    EvmTransactionRequest,
    IncludedStep,
    SolanaTransactionRequest,
    Step,
    TransactionRequest,
    family_for_chain,
)

logger = logging.getLogger(__name__)


class StepTransactionBuilder(ABC):
    """Produces a transaction request for a step or included sub-step."""

    @abstractmethod
    async def build(
        self, step: Union[Step, IncludedStep], wallet_address: str
    ) -> TransactionRequest:
        pass


class LiFiStepTransactionBuilder(StepTransactionBuilder):
    """Populate steps via LI.FI's /advanced/stepTransaction endpoint."""

    def __init__(
        self,
        api_url: str = "https://li.quest/v1",
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def build(self, step: Union[Step, IncludedStep], wallet_address: str) -> TransactionRequest:
        """Ask LI.FI to fill in transactionRequest for the raw step.

        Raises:
            ProviderUnavailable: the request failed or returned no transaction
        """
        payload = dict(step.raw)
        action = dict(payload.get("action") or {})
        action.setdefault("fromAddress", wallet_address)
        payload["action"] = action

        headers = {"x-lifi-api-key": self.api_key} if self.api_key else {}
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.api_url}/advanced/stepTransaction", json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            raise ProviderUnavailable("lifi", f"stepTransaction failed: {e}") from e

        if response.status_code != 200:
            raise ProviderUnavailable(
                "lifi", f"stepTransaction returned {response.status_code}: {response.text[:200]}"
            )

        request = response.json().get("transactionRequest")
        if not request:
            raise ProviderUnavailable("lifi", f"no transaction for step {step.id}")

        logger.debug(f"Built transaction for step {step.id}")
        if family_for_chain(step.chain_id) == ExecutionFamily.SOLANA:
            return SolanaTransactionRequest.from_dict(request)
        return EvmTransactionRequest.from_dict(request)

    async def close(self) -> None:
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
