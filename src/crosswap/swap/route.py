"""Route and step types for swap execution.

A Route is an ordered, immutable sequence of steps with an expiry. Each step
is either an EvmStep or a SolanaStep; the execution family discriminates the
union so executors can dispatch with match.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from crosswap.chains import SOLANA_CHAIN_ID, SOLANA_LIFI_CHAIN_ID, ExecutionFamily


class StepKind(str, Enum):
    SWAP = "swap"
    BRIDGE = "bridge"
    WRAP = "wrap"
    UNWRAP = "unwrap"
    APPROVE = "approve"
    CROSS = "cross"
    PROTOCOL = "protocol"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "StepKind":
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.OTHER


# Kinds a transaction can be requested for when none is prebuilt
EXECUTABLE_KINDS = frozenset({StepKind.SWAP, StepKind.BRIDGE, StepKind.WRAP, StepKind.UNWRAP})


def family_for_chain(chain_id: int) -> ExecutionFamily:
    """Solana ids map to SOLANA; every other step chain is treated as EVM."""
    if chain_id in (SOLANA_CHAIN_ID, SOLANA_LIFI_CHAIN_ID):
        return ExecutionFamily.SOLANA
    return ExecutionFamily.EVM


@dataclass(frozen=True)
class TokenRef:
    chain_id: int
    address: str
    symbol: str = ""
    decimals: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[dict], chain_id: int) -> "TokenRef":
        data = data or {}
        return cls(
            chain_id=int(data.get("chainId", chain_id)),
            address=data.get("address", ""),
            symbol=data.get("symbol", ""),
            decimals=data.get("decimals"),
        )


@dataclass(frozen=True)
class EvmTransactionRequest:
    """EVM transaction template; numeric fields may be int, decimal or hex strings."""

    to: str
    data: str = "0x"
    value: Any = None
    gas_limit: Any = None
    gas_price: Any = None
    max_fee_per_gas: Any = None
    max_priority_fee_per_gas: Any = None
    chain_id: Optional[int] = None
    from_address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "EvmTransactionRequest":
        chain_id = data.get("chainId")
        if isinstance(chain_id, str):
            chain_id = int(chain_id, 16) if chain_id.startswith("0x") else int(chain_id)
        return cls(
            to=data["to"],
            data=data.get("data") or "0x",
            value=data.get("value"),
            gas_limit=data.get("gasLimit", data.get("gas")),
            gas_price=data.get("gasPrice"),
            max_fee_per_gas=data.get("maxFeePerGas"),
            max_priority_fee_per_gas=data.get("maxPriorityFeePerGas"),
            chain_id=chain_id,
            from_address=data.get("from"),
        )


@dataclass(frozen=True)
class SolanaTransactionRequest:
    """Base64 serialized Solana transaction."""

    data: str

    @classmethod
    def from_dict(cls, data: dict) -> "SolanaTransactionRequest":
        return cls(data=data["data"])


TransactionRequest = Union[EvmTransactionRequest, SolanaTransactionRequest]


def _parse_request(family: ExecutionFamily, data: Optional[dict]) -> Optional[TransactionRequest]:
    if not data:
        return None
    if family == ExecutionFamily.SOLANA:
        return SolanaTransactionRequest.from_dict(data)
    return EvmTransactionRequest.from_dict(data)


@dataclass(frozen=True)
class IncludedStep:
    """A sub-step (usually a token approval) executed before its parent step."""

    id: str
    kind: StepKind
    chain_id: int
    transaction_request: Optional[EvmTransactionRequest] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_executable(self) -> bool:
        return self.transaction_request is not None or self.kind in EXECUTABLE_KINDS


@dataclass(frozen=True)
class EvmStep:
    id: str
    chain_id: int
    from_token: TokenRef
    to_token: TokenRef
    kind: StepKind = StepKind.SWAP
    tool: str = ""
    included_steps: tuple[IncludedStep, ...] = ()
    transaction_request: Optional[EvmTransactionRequest] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)
    family: ExecutionFamily = field(default=ExecutionFamily.EVM, init=False)


@dataclass(frozen=True)
class SolanaStep:
    id: str
    chain_id: int
    from_token: TokenRef
    to_token: TokenRef
    kind: StepKind = StepKind.SWAP
    tool: str = ""
    included_steps: tuple[IncludedStep, ...] = ()
    transaction_request: Optional[SolanaTransactionRequest] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)
    family: ExecutionFamily = field(default=ExecutionFamily.SOLANA, init=False)


Step = Union[EvmStep, SolanaStep]


def step_from_dict(data: dict) -> Step:
    """Build a step from a LI.FI style step object."""
    action = data.get("action") or {}
    chain_id = int(action.get("fromChainId") or data.get("chainId") or 0)
    family = family_for_chain(chain_id)

    included = tuple(
        IncludedStep(
            id=str(sub.get("id", "")),
            kind=StepKind.parse(sub.get("type")),
            chain_id=chain_id,
            transaction_request=(
                EvmTransactionRequest.from_dict(sub["transactionRequest"])
                if sub.get("transactionRequest") and family == ExecutionFamily.EVM
                else None
            ),
            raw=sub,
        )
        for sub in data.get("includedSteps") or []
    )

    common = dict(
        id=str(data.get("id", "")),
        chain_id=chain_id,
        from_token=TokenRef.from_dict(action.get("fromToken"), chain_id),
        to_token=TokenRef.from_dict(action.get("toToken"), int(action.get("toChainId") or chain_id)),
        kind=StepKind.parse(data.get("type")),
        tool=data.get("tool", ""),
        included_steps=included,
        raw=data,
    )
    request = _parse_request(family, data.get("transactionRequest"))

    if family == ExecutionFamily.SOLANA:
        return SolanaStep(transaction_request=request, **common)
    return EvmStep(transaction_request=request, **common)


@dataclass(frozen=True)
class Route:
    """Ordered steps produced by one quote, valid until expires_at (unix seconds)."""

    id: str
    steps: tuple[Step, ...]
    expires_at: float
    provider: str = "lifi"

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.time() if now is None else now) >= self.expires_at

    @property
    def seconds_until_expiry(self) -> float:
        return self.expires_at - time.time()

    @classmethod
    def from_dict(cls, data: dict, default_ttl: float = 60.0) -> "Route":
        """Parse a route; expiresAt may be in seconds or milliseconds."""
        expires_at = data.get("expiresAt")
        if expires_at is None:
            expires_at = time.time() + default_ttl
        else:
            expires_at = float(expires_at)
            if expires_at > 10**11:
                expires_at /= 1000.0
        return cls(
            id=str(data.get("id", "")),
            steps=tuple(step_from_dict(step) for step in data.get("steps") or []),
            expires_at=expires_at,
            provider=data.get("provider", "lifi"),
        )


@dataclass
class SwapResult:
    """Outcome of executing a route.

    tx_hash is the most recent confirmed transaction. tx_hashes holds every
    transaction that was broadcast, in order, including those from steps that
    completed before a failure and one whose confirmation then failed.
    """

    success: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    tx_hashes: list[str] = field(default_factory=list)
    failed_step: Optional[int] = None

    def to_dict(self) -> dict:
        data: dict = {"success": self.success, "txHashes": list(self.tx_hashes)}
        if self.success:
            data["txHash"] = self.tx_hash
        else:
            data["error"] = self.error
            data["errorCode"] = self.error_code
            data["failedStep"] = self.failed_step
            if self.tx_hash:
                data["lastTxHash"] = self.tx_hash
        return data
