"""EVM step execution.

For each transaction:
1. Make sure the wallet is on the step's chain (switch, or add then switch)
2. Normalize numeric fields to hex quantities
3. Simulate with eth_estimateGas and classify reverts before anything is sent
4. Send through the wallet and wait for the receipt
"""

import logging
from typing import Callable, Optional

from crosswap.chains import ChainRegistry
from crosswap.errors import (
    ChainMismatch,
    SimulationFailureReason,
    SimulationWouldFail,
    UnsupportedChain,
    UserRejected,
)
from crosswap.rpc.evm import EvmRpcClient
from crosswap.swap.route import EvmTransactionRequest
from crosswap.swap.wallet import EvmWallet, WalletError

logger = logging.getLogger(__name__)

GAS_FIELDS = ("gas", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas")
REVERT_MARKERS = ("execution reverted", "revert")
APPROVAL_MARKERS = ("#1002", "transfer_from_failed", "allowance")
BALANCE_MARKERS = ("insufficient funds", "balance")


def to_hex_quantity(value) -> Optional[str]:
    """int, decimal string or hex string to a 0x-prefixed quantity."""
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return hex(value)
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return hex(int(text, 16))
    return hex(int(text))


def normalize_tx_params(request: EvmTransactionRequest, from_address: str) -> dict:
    """Transaction dict ready for the wallet, all quantities hex encoded."""
    tx = {
        "from": request.from_address or from_address,
        "to": request.to,
        "data": request.data or "0x",
        "value": to_hex_quantity(request.value) or "0x0",
    }
    optional = {
        "gas": request.gas_limit,
        "gasPrice": request.gas_price,
        "maxFeePerGas": request.max_fee_per_gas,
        "maxPriorityFeePerGas": request.max_priority_fee_per_gas,
    }
    for key, value in optional.items():
        hex_value = to_hex_quantity(value)
        if hex_value is not None:
            tx[key] = hex_value
    return tx


def is_revert_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in REVERT_MARKERS + ("insufficient funds",))


def classify_revert(message: str) -> SimulationFailureReason:
    """Guess why a simulation reverted from the node's error text."""
    lowered = message.lower()
    if any(marker in lowered for marker in APPROVAL_MARKERS):
        return SimulationFailureReason.MISSING_APPROVAL
    if any(marker in lowered for marker in BALANCE_MARKERS):
        return SimulationFailureReason.INSUFFICIENT_BALANCE
    return SimulationFailureReason.GENERIC_REVERT


class EvmStepExecutor:
    """Runs EVM transactions through an injected wallet."""

    def __init__(
        self,
        wallet: EvmWallet,
        chains: ChainRegistry,
        rpc_for_chain: Callable[[int], EvmRpcClient],
        confirmation_timeout: float = 120.0,
        poll_interval: float = 2.0,
        gas_buffer_percent: int = 20,
    ):
        self.wallet = wallet
        self.chains = chains
        self._rpc_for_chain = rpc_for_chain
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.gas_buffer_percent = gas_buffer_percent

    async def ensure_chain(self, chain_id: int) -> None:
        """Switch the wallet to chain_id, adding the network when the wallet lacks it.

        Raises:
            ChainMismatch: the wallet could not be moved to the chain
            UserRejected: the user declined the switch
        """
        current = await self.wallet.get_chain_id()
        if current == chain_id:
            return

        logger.info(f"Switching wallet from chain {current} to {chain_id}")
        try:
            await self.wallet.switch_chain(chain_id)
        except WalletError as e:
            if e.is_user_rejection:
                raise UserRejected("Chain switch rejected in wallet") from e
            if not e.is_unrecognized_chain:
                raise ChainMismatch(chain_id, current, f"Failed to switch chain: {e.message}") from e
            await self._add_chain(chain_id)

        actual = await self.wallet.get_chain_id()
        if actual != chain_id:
            raise ChainMismatch(chain_id, actual)

    async def _add_chain(self, chain_id: int) -> None:
        chain = self.chains.get(chain_id)
        if chain is None:
            raise UnsupportedChain(chain_id)

        logger.info(f"Adding chain {chain.name} ({chain_id}) to wallet")
        try:
            await self.wallet.add_chain(chain.add_chain_params())
            await self.wallet.switch_chain(chain_id)
        except WalletError as e:
            if e.is_user_rejection:
                raise UserRejected("Adding network rejected in wallet") from e
            raise ChainMismatch(chain_id, message=f"Failed to add chain: {e.message}") from e

    async def simulate(self, tx: dict) -> Optional[int]:
        """Estimate gas without the caller's gas fields.

        Returns:
            The estimate, or None when estimation failed for a non-revert
            reason and a gas limit was already provided

        Raises:
            SimulationWouldFail: the node reports the transaction would revert
        """
        simulation = {k: v for k, v in tx.items() if k not in GAS_FIELDS}
        try:
            return await self.wallet.estimate_gas(simulation)
        except WalletError as e:
            if is_revert_message(e.message):
                reason = classify_revert(e.message)
                logger.warning(f"Simulation reverted ({reason.value}): {e.message}")
                raise SimulationWouldFail(reason, e.message) from e
            if "gas" not in tx:
                raise SimulationWouldFail(
                    SimulationFailureReason.GENERIC_REVERT,
                    f"Gas estimation failed: {e.message}",
                ) from e
            logger.warning(f"Gas estimation failed, using provided gas limit: {e.message}")
            return None

    def apply_gas_estimate(self, tx: dict, estimate: Optional[int]) -> dict:
        """Fill or raise the gas limit from the estimate."""
        if estimate is None:
            return tx
        provided = tx.get("gas")
        if provided is None:
            tx["gas"] = hex(estimate)
        elif int(provided, 16) < estimate:
            buffered = estimate * (100 + self.gas_buffer_percent) // 100
            logger.info(f"Provided gas {int(provided, 16)} below estimate {estimate}, using {buffered}")
            tx["gas"] = hex(buffered)
        return tx

    async def execute(
        self,
        request: EvmTransactionRequest,
        chain_id: int,
        on_sent: Optional[Callable[[str], None]] = None,
    ) -> str:
        """Simulate, send and confirm one transaction.

        Args:
            request: Transaction template
            chain_id: Chain the transaction belongs to
            on_sent: Called with the hash as soon as the wallet broadcasts

        Returns:
            The confirmed transaction hash

        Raises:
            UnsupportedChain, ChainMismatch, SimulationWouldFail, UserRejected,
            ConfirmationTimeout, TransactionFailed
        """
        # resolved before anything reaches the wallet
        rpc = self._rpc_for_chain(chain_id)
        await self.ensure_chain(chain_id)

        tx = normalize_tx_params(request, self.wallet.address)
        tx = self.apply_gas_estimate(tx, await self.simulate(tx))

        try:
            tx_hash = await self.wallet.send_transaction(tx)
        except WalletError as e:
            if e.is_user_rejection:
                raise UserRejected("Transaction rejected in wallet") from e
            raise

        if on_sent is not None:
            on_sent(tx_hash)

        logger.info(f"Sent transaction {tx_hash} on chain {chain_id}, waiting for receipt")
        await rpc.wait_for_receipt(
            tx_hash, timeout=self.confirmation_timeout, poll_interval=self.poll_interval
        )
        logger.info(f"Transaction {tx_hash} confirmed")
        return tx_hash
