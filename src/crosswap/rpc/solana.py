"""Solana JSON-RPC: blockhash, broadcast and signature confirmation."""

import asyncio
import base64
import logging
import time
from typing import Optional

from crosswap.errors import ConfirmationTimeout, TransactionFailed
from crosswap.rpc.base import JsonRpcClient

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = ("confirmed", "finalized")


class SolanaRpcClient(JsonRpcClient):
    """JSON-RPC client for a Solana cluster."""

    async def get_latest_blockhash(self, commitment: str = "confirmed") -> str:
        result = await self.call("getLatestBlockhash", [{"commitment": commitment}])
        return result["value"]["blockhash"]

    async def send_transaction(self, raw: bytes, skip_preflight: bool = False) -> str:
        """Broadcast a signed transaction; returns its signature."""
        encoded = base64.b64encode(raw).decode()
        return await self.call(
            "sendTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": "confirmed",
                    "maxRetries": 3,
                },
            ],
        )

    async def get_signature_status(self, signature: str) -> Optional[dict]:
        result = await self.call(
            "getSignatureStatuses", [[signature], {"searchTransactionHistory": False}]
        )
        statuses = (result or {}).get("value") or [None]
        return statuses[0]

    async def wait_for_confirmation(
        self,
        signature: str,
        timeout: float = 60.0,
        poll_interval: float = 2.0,
    ) -> dict:
        """Poll until the signature reaches confirmed commitment.

        Raises:
            ConfirmationTimeout: not confirmed within timeout
            TransactionFailed: the transaction landed with an error
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                status = await self.get_signature_status(signature)
            except Exception as e:
                logger.debug(f"Status poll for {signature} failed: {type(e).__name__}: {e}")
                status = None

            if status is not None:
                if status.get("err"):
                    raise TransactionFailed(signature, f"Transaction failed: {status['err']}")
                if status.get("confirmationStatus") in CONFIRMED_STATUSES:
                    return status

            if time.monotonic() >= deadline:
                raise ConfirmationTimeout(signature, timeout)
            await asyncio.sleep(poll_interval)
