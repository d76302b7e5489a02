"""Route execution across EVM and Solana.

Steps run strictly in sequence through caller-supplied wallets:
- EVM: chain switch/add, gas simulation with revert classification, send, receipt wait
- Solana: fee payer and blockhash fill, wallet signature, broadcast, confirmation
"""

from crosswap.swap.builder import LiFiStepTransactionBuilder, StepTransactionBuilder
from crosswap.swap.evm_executor import EvmStepExecutor, classify_revert
from crosswap.swap.orchestrator import SwapOrchestrator, classify_execution_error
from crosswap.swap.route import (
    EvmStep,
    EvmTransactionRequest,
    IncludedStep,
    Route,
    SolanaStep,
    SolanaTransactionRequest,
    Step,
    StepKind,
    SwapResult,
    TokenRef,
)
from crosswap.swap.solana_executor import SolanaStepExecutor
from crosswap.swap.wallet import EvmWallet, SolanaWallet, WalletError

__all__ = [
    "LiFiStepTransactionBuilder",
    "StepTransactionBuilder",
    "EvmStepExecutor",
    "classify_revert",
    "SwapOrchestrator",
    "classify_execution_error",
    "EvmStep",
    "EvmTransactionRequest",
    "IncludedStep",
    "Route",
    "SolanaStep",
    "SolanaTransactionRequest",
    "Step",
    "StepKind",
    "SwapResult",
    "TokenRef",
    "SolanaStepExecutor",
    "EvmWallet",
    "SolanaWallet",
    "WalletError",
]
