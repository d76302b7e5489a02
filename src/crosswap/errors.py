"""Error taxonomy for token discovery and swap execution.

Provider-level errors are absorbed by the adapters and services that raise
them. Execution-level errors abort a route and are reported back to the
caller through SwapResult.
"""

from enum import Enum
from typing import Optional


class CrosswapError(Exception):
    """Base class for all crosswap errors."""

    code: str = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or (self.__class__.__doc__ or "")


class ProviderUnavailable(CrosswapError):
    """A token or liquidity source failed to respond."""

    code = "provider-unavailable"

    def __init__(self, provider: str, message: str = ""):
        super().__init__(f"{provider}: {message}" if message else f"{provider} unavailable")
        self.provider = provider


class RateLimited(CrosswapError):
    """The upstream API rejected the request because of a rate limit."""

    code = "rate-limited"

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AllKeysExhausted(CrosswapError):
    """Every API key in the pool has hit its rate limit."""

    code = "all-keys-exhausted"


class UnsupportedChain(CrosswapError):
    """The requested chain is not supported."""

    code = "unsupported-chain"

    def __init__(self, chain_id):
        super().__init__(f"Unsupported chain: {chain_id}")
        self.chain_id = chain_id


class SimulationFailureReason(str, Enum):
    """Heuristic classification of a reverted gas simulation."""

    MISSING_APPROVAL = "missing-approval"
    INSUFFICIENT_BALANCE = "insufficient-balance"
    GENERIC_REVERT = "generic-revert"


class SimulationWouldFail(CrosswapError):
    """Gas simulation shows the transaction would revert."""

    code = "simulation-would-fail"

    def __init__(self, reason: SimulationFailureReason, detail: str = ""):
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)
        self.reason = reason
        self.detail = detail


class UserRejected(CrosswapError):
    """The wallet declined to sign or send."""

    code = "user-rejected"


class QuoteExpired(CrosswapError):
    """The route expired before execution started."""

    code = "quote-expired"


class ChainMismatch(CrosswapError):
    """The wallet is connected to a different chain than the step requires."""

    code = "chain-mismatch"

    def __init__(self, expected: int, actual: Optional[int] = None, message: str = ""):
        text = message or f"Wallet is on chain {actual}, step requires chain {expected}"
        super().__init__(text)
        self.expected = expected
        self.actual = actual


class ConfirmationTimeout(CrosswapError):
    """The transaction was sent but not confirmed in time."""

    code = "confirmation-timeout"

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout:.0f}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class TransactionFailed(CrosswapError):
    """The transaction was mined but failed on chain."""

    code = "transaction-failed"

    def __init__(self, tx_hash: str, message: str = ""):
        super().__init__(message or f"Transaction {tx_hash} failed on chain")
        self.tx_hash = tx_hash


class RpcError(CrosswapError):
    """A JSON-RPC endpoint returned an error object."""

    code = "rpc-error"

    def __init__(self, message: str, rpc_code: Optional[int] = None, data=None):
        super().__init__(message)
        self.rpc_code = rpc_code
        self.data = data
