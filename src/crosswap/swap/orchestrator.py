"""Swap route orchestration.

Executes a route's steps strictly one after another. Each step depends on
the confirmed state left by the previous one, so there is no parallelism
and no automatic retry: a failed step aborts the route and the caller gets
back every transaction hash that was broadcast.
"""

import asyncio
import logging
from typing import Callable, Optional

from crosswap.chains import ChainRegistry
from crosswap.errors import (
    ChainMismatch,
    ConfirmationTimeout,
    CrosswapError,
    QuoteExpired,
    SimulationFailureReason,
    SimulationWouldFail,
    TransactionFailed,
    UnsupportedChain,
    UserRejected,
)
from crosswap.rpc.evm import EvmRpcClient
from crosswap.rpc.solana import SolanaRpcClient
from crosswap.swap.builder import StepTransactionBuilder
from crosswap.swap.evm_executor import EvmStepExecutor
from crosswap.swap.route import (
    EvmStep,
    EvmTransactionRequest,
    IncludedStep,
    Route,
    SolanaStep,
    SolanaTransactionRequest,
    Step,
    SwapResult,
)
from crosswap.swap.solana_executor import SolanaStepExecutor
from crosswap.swap.wallet import EvmWallet, SolanaWallet, WalletError

logger = logging.getLogger(__name__)


def classify_execution_error(error: Exception) -> tuple[str, str]:
    """Map an execution failure to (error code, actionable message)."""
    if isinstance(error, SimulationWouldFail):
        if error.reason == SimulationFailureReason.MISSING_APPROVAL:
            message = "Token approval is missing or too low. Approve the token and try again."
        elif error.reason == SimulationFailureReason.INSUFFICIENT_BALANCE:
            message = "Insufficient balance to cover the amount and network fees."
        else:
            message = "The transaction would fail. Prices may have moved; request a new quote."
        return error.reason.value, message
    if isinstance(error, UserRejected):
        return error.code, "Transaction was rejected in the wallet."
    if isinstance(error, QuoteExpired):
        return error.code, "Quote expired. Request a new quote before executing."
    if isinstance(error, ChainMismatch):
        return error.code, f"Switch your wallet to chain {error.expected} and try again."
    if isinstance(error, ConfirmationTimeout):
        return (
            error.code,
            f"Transaction {error.tx_hash} was sent but not confirmed in time. "
            "Check the explorer before retrying.",
        )
    if isinstance(error, TransactionFailed):
        return error.code, f"Transaction {error.tx_hash} failed on chain."
    if isinstance(error, CrosswapError):
        return error.code, error.message
    if isinstance(error, WalletError):
        return "wallet-error", f"Wallet error: {error.message}"
    return "execution-failed", f"{type(error).__name__}: {error}"


class SwapOrchestrator:
    """Runs routes against caller-supplied wallets."""

    def __init__(
        self,
        chains: ChainRegistry,
        evm_rpc: Callable[[int], EvmRpcClient],
        solana_rpc: Callable[[], SolanaRpcClient],
        builder: Optional[StepTransactionBuilder] = None,
        approval_settle_delay: float = 3.0,
        step_settle_delay: float = 3.0,
        evm_confirmation_timeout: float = 120.0,
        solana_confirmation_timeout: float = 60.0,
        poll_interval: float = 2.0,
        gas_buffer_percent: int = 20,
    ):
        self.chains = chains
        self._evm_rpc = evm_rpc
        self._solana_rpc = solana_rpc
        self.builder = builder
        self.approval_settle_delay = approval_settle_delay
        self.step_settle_delay = step_settle_delay
        self.evm_confirmation_timeout = evm_confirmation_timeout
        self.solana_confirmation_timeout = solana_confirmation_timeout
        self.poll_interval = poll_interval
        self.gas_buffer_percent = gas_buffer_percent

    async def execute_swap(
        self,
        route: Route,
        wallet_address: str,
        evm_wallet: Optional[EvmWallet] = None,
        solana_wallet: Optional[SolanaWallet] = None,
    ) -> SwapResult:
        """Execute every step of the route in order.

        Args:
            route: Route to execute
            wallet_address: Address the route was quoted for
            evm_wallet: Wallet for EVM steps
            solana_wallet: Wallet for Solana steps

        Returns:
            SwapResult; on failure it still carries the hash of every
            transaction broadcast before the failure was detected
        """
        result = SwapResult(success=False)

        if route.is_expired():
            error = QuoteExpired(f"Route {route.id} expired before execution")
            result.error_code, result.error = classify_execution_error(error)
            logger.warning(f"Refusing to execute expired route {route.id}")
            return result

        for index, step in enumerate(route.steps):
            try:
                self._check_chain(step)
            except UnsupportedChain as e:
                result.error_code, result.error = classify_execution_error(e)
                result.failed_step = index
                logger.warning(f"Refusing to execute route {route.id}: {e}")
                return result

        logger.info(
            f"Executing route {route.id}: {len(route.steps)} steps for {wallet_address}, "
            f"{route.seconds_until_expiry:.0f}s before expiry"
        )

        for index, step in enumerate(route.steps):
            try:
                await self._execute_step(step, wallet_address, evm_wallet, solana_wallet, result)
            except Exception as e:
                result.error_code, result.error = classify_execution_error(e)
                result.failed_step = index
                logger.error(
                    f"Route {route.id} step {index + 1}/{len(route.steps)} failed "
                    f"({result.error_code}): {e}"
                )
                return result

            if index < len(route.steps) - 1 and self.step_settle_delay > 0:
                await asyncio.sleep(self.step_settle_delay)

        result.success = True
        logger.info(f"Route {route.id} completed: {result.tx_hash}")
        return result

    def _check_chain(self, step: Step) -> None:
        """Raise UnsupportedChain if the step's chain cannot be confirmed on."""
        if self.chains.get(step.chain_id) is None:
            raise UnsupportedChain(step.chain_id)
        if isinstance(step, EvmStep):
            for chain_id in {step.chain_id, *(sub.chain_id for sub in step.included_steps)}:
                self._evm_rpc(chain_id)

    async def _execute_step(
        self,
        step: Step,
        wallet_address: str,
        evm_wallet: Optional[EvmWallet],
        solana_wallet: Optional[SolanaWallet],
        result: SwapResult,
    ) -> None:
        match step:
            case EvmStep():
                executor = self._evm_executor(evm_wallet)
                await self._execute_included_steps(step, wallet_address, executor, result)
                request = await self._resolve_request(step, wallet_address)
                if not isinstance(request, EvmTransactionRequest):
                    raise CrosswapError(f"Step {step.id} has no EVM transaction")
                result.tx_hash = await executor.execute(
                    request, step.chain_id, on_sent=result.tx_hashes.append
                )
            case SolanaStep():
                executor = self._solana_executor(solana_wallet)
                request = await self._resolve_request(step, wallet_address)
                if not isinstance(request, SolanaTransactionRequest):
                    raise CrosswapError(f"Step {step.id} has no Solana transaction")
                result.tx_hash = await executor.execute(request, on_sent=result.tx_hashes.append)
            case _:
                raise CrosswapError(f"Unsupported step family: {getattr(step, 'family', None)}")

    async def _execute_included_steps(
        self,
        step: EvmStep,
        wallet_address: str,
        executor: EvmStepExecutor,
        result: SwapResult,
    ) -> None:
        for sub in step.included_steps:
            if not sub.is_executable:
                logger.debug(f"Skipping included step {sub.id} ({sub.kind.value}), not executable")
                continue

            request = sub.transaction_request
            if request is None:
                request = await self._build_included(sub, wallet_address)
                if request is None:
                    continue

            logger.info(f"Executing included {sub.kind.value} step {sub.id}")
            result.tx_hash = await executor.execute(
                request, sub.chain_id, on_sent=result.tx_hashes.append
            )

            # let the approval land before the main transaction is simulated
            await asyncio.sleep(self.approval_settle_delay)

    async def _build_included(
        self, sub: IncludedStep, wallet_address: str
    ) -> Optional[EvmTransactionRequest]:
        if self.builder is None:
            logger.debug(f"No transaction builder, skipping included step {sub.id}")
            return None
        try:
            request = await self.builder.build(sub, wallet_address)
        except Exception as e:
            logger.warning(f"Could not build included step {sub.id}, skipping: {e}")
            return None
        return request if isinstance(request, EvmTransactionRequest) else None

    async def _resolve_request(self, step: Step, wallet_address: str):
        if step.transaction_request is not None:
            return step.transaction_request
        if self.builder is None:
            raise CrosswapError(f"Step {step.id} has no transaction and no builder is configured")
        return await self.builder.build(step, wallet_address)

    def _evm_executor(self, wallet: Optional[EvmWallet]) -> EvmStepExecutor:
        if wallet is None:
            raise CrosswapError("Route has an EVM step but no EVM wallet was provided")
        return EvmStepExecutor(
            wallet,
            self.chains,
            self._evm_rpc,
            confirmation_timeout=self.evm_confirmation_timeout,
            poll_interval=self.poll_interval,
            gas_buffer_percent=self.gas_buffer_percent,
        )

    def _solana_executor(self, wallet: Optional[SolanaWallet]) -> SolanaStepExecutor:
        if wallet is None:
            raise CrosswapError("Route has a Solana step but no Solana wallet was provided")
        return SolanaStepExecutor(
            wallet,
            self._solana_rpc(),
            confirmation_timeout=self.solana_confirmation_timeout,
            poll_interval=self.poll_interval,
        )
