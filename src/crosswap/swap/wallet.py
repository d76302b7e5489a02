"""Wallet capabilities the executors drive.

The engine never holds keys. A caller plugs in a wallet that can report its
chain, switch networks, simulate and send EVM transactions, or sign Solana
transactions. Errors surface as WalletError carrying the EIP-1193 code.
"""

from abc import ABC, abstractmethod
from typing import Optional

from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

# EIP-1193 / wallet RPC error codes
USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902

REJECTION_MARKERS = ("user rejected", "user denied", "rejected the request")


class WalletError(Exception):
    """Error reported by a wallet, with its provider error code when known."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def is_user_rejection(self) -> bool:
        if self.code == USER_REJECTED_CODE:
            return True
        lowered = self.message.lower()
        return any(marker in lowered for marker in REJECTION_MARKERS)

    @property
    def is_unrecognized_chain(self) -> bool:
        return self.code == UNRECOGNIZED_CHAIN_CODE or "unrecognized chain" in self.message.lower()


class EvmWallet(ABC):
    """Injected EVM wallet (browser extension, WalletConnect, local signer)."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def get_chain_id(self) -> int:
        pass

    @abstractmethod
    async def switch_chain(self, chain_id: int) -> None:
        """wallet_switchEthereumChain."""
        pass

    @abstractmethod
    async def add_chain(self, params: dict) -> None:
        """wallet_addEthereumChain with EIP-3085 parameters."""
        pass

    @abstractmethod
    async def estimate_gas(self, tx: dict) -> int:
        """eth_estimateGas; raises WalletError with the revert text on failure."""
        pass

    @abstractmethod
    async def send_transaction(self, tx: dict) -> str:
        """eth_sendTransaction; returns the transaction hash."""
        pass


class SolanaWallet(ABC):
    """Solana wallet that signs but does not broadcast."""

    @property
    @abstractmethod
    def public_key(self) -> Pubkey:
        pass

    @abstractmethod
    async def sign_transaction(self, tx: VersionedTransaction) -> VersionedTransaction:
        pass
