"""Solana step execution.

Routers sometimes hand back transactions with a placeholder fee payer or a
zeroed blockhash. Those are filled in before the wallet signs; the signed
transaction is broadcast here and confirmed by polling its signature.
"""

import base64
import logging
from typing import Callable, Optional

from solders.hash import Hash
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from crosswap.errors import UserRejected
from crosswap.rpc.solana import SolanaRpcClient
from crosswap.swap.route import SolanaTransactionRequest
from crosswap.swap.wallet import SolanaWallet, WalletError

logger = logging.getLogger(__name__)


def decode_transaction(data: str) -> VersionedTransaction:
    """Deserialize a base64 legacy or v0 transaction."""
    return VersionedTransaction.from_bytes(base64.b64decode(data))


class SolanaStepExecutor:
    """Prepares, signs, broadcasts and confirms Solana transactions."""

    def __init__(
        self,
        wallet: SolanaWallet,
        rpc: SolanaRpcClient,
        confirmation_timeout: float = 60.0,
        poll_interval: float = 2.0,
    ):
        self.wallet = wallet
        self.rpc = rpc
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    async def prepare(self, tx: VersionedTransaction) -> VersionedTransaction:
        """Fill a missing fee payer and blockhash; returns tx unchanged otherwise."""
        message = tx.message
        header = message.header
        account_keys = list(message.account_keys)
        blockhash = message.recent_blockhash
        changed = False

        payer = self.wallet.public_key
        if not account_keys:
            account_keys = [payer]
            changed = True
        elif account_keys[0] == Pubkey.default():
            logger.debug(f"Setting fee payer to {payer}")
            account_keys[0] = payer
            changed = True

        if blockhash == Hash.default():
            blockhash = Hash.from_string(await self.rpc.get_latest_blockhash())
            logger.debug(f"Filled recent blockhash {blockhash}")
            changed = True

        if not changed:
            return tx

        if isinstance(message, MessageV0):
            rebuilt = MessageV0(
                header,
                account_keys,
                blockhash,
                message.instructions,
                message.address_table_lookups,
            )
        else:
            rebuilt = Message.new_with_compiled_instructions(
                header.num_required_signatures,
                header.num_readonly_signed_accounts,
                header.num_readonly_unsigned_accounts,
                account_keys,
                blockhash,
                message.instructions,
            )
        return VersionedTransaction.populate(
            rebuilt, [Signature.default()] * header.num_required_signatures
        )

    async def execute(
        self,
        request: SolanaTransactionRequest,
        on_sent: Optional[Callable[[str], None]] = None,
    ) -> str:
        """Sign, send and confirm; returns the transaction signature.

        on_sent receives the signature as soon as it is broadcast.

        Raises:
            UserRejected, ConfirmationTimeout, TransactionFailed
        """
        tx = await self.prepare(decode_transaction(request.data))

        try:
            signed = await self.wallet.sign_transaction(tx)
        except WalletError as e:
            if e.is_user_rejection:
                raise UserRejected("Transaction rejected in wallet") from e
            raise

        signature = await self.rpc.send_transaction(bytes(signed))
        if on_sent is not None:
            on_sent(signature)
        logger.info(f"Sent Solana transaction {signature}, waiting for confirmation")

        await self.rpc.wait_for_confirmation(
            signature, timeout=self.confirmation_timeout, poll_interval=self.poll_interval
        )
        logger.info(f"Solana transaction {signature} confirmed")
        return signature
