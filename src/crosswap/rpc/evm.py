"""EVM JSON-RPC reads, receipts and confirmation waits."""

import asyncio
import logging
import time
from typing import Optional

from crosswap.errors import ConfirmationTimeout, TransactionFailed
from crosswap.rpc.base import JsonRpcClient

logger = logging.getLogger(__name__)


class EvmRpcClient(JsonRpcClient):
    """JSON-RPC client for one EVM chain."""

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        """Read-only contract call; returns the raw hex result."""
        result = await self.call("eth_call", [{"to": to, "data": data}, block])
        return result or "0x"

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120.0,
        poll_interval: float = 2.0,
    ) -> dict:
        """Poll until the transaction is mined.

        Raises:
            ConfirmationTimeout: not mined within timeout
            TransactionFailed: mined with status 0
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
            except Exception as e:
                logger.debug(f"Receipt poll for {tx_hash} failed: {type(e).__name__}: {e}")
                receipt = None

            if receipt is not None:
                status = receipt.get("status")
                if status is not None and int(status, 16) == 0:
                    raise TransactionFailed(tx_hash, f"Transaction {tx_hash} reverted on chain")
                return receipt

            if time.monotonic() >= deadline:
                raise ConfirmationTimeout(tx_hash, timeout)
            await asyncio.sleep(poll_interval)
