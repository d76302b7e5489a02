"""Tests for Solana transaction preparation and execution."""

import base64
import time

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from crosswap.errors import ConfirmationTimeout, UserRejected
from crosswap.swap.orchestrator import SwapOrchestrator
from crosswap.swap.route import Route, SolanaTransactionRequest
from crosswap.swap.solana_executor import SolanaStepExecutor, decode_transaction
from fakes import FakeSolanaRpc, FakeSolanaWallet


def unsigned_transfer(payer: Pubkey, blockhash: Hash) -> VersionedTransaction:
    ix = transfer(TransferParams(from_pubkey=payer, to_pubkey=Keypair().pubkey(), lamports=1_000))
    message = Message.new_with_blockhash([ix], payer, blockhash)
    return VersionedTransaction.populate(message, [Signature.default()])


def encode(tx: VersionedTransaction) -> str:
    return base64.b64encode(bytes(tx)).decode()


@pytest.fixture
def keypair():
    return Keypair()


@pytest.fixture
def fresh_blockhash():
    return Hash.new_unique()


class TestPrepare:
    """Tests for fee payer and blockhash filling."""

    @pytest.mark.asyncio
    async def test_fills_missing_payer_and_blockhash(self, keypair, fresh_blockhash):
        rpc = FakeSolanaRpc(str(fresh_blockhash))
        executor = SolanaStepExecutor(FakeSolanaWallet(keypair), rpc)

        tx = unsigned_transfer(Pubkey.default(), Hash.default())
        prepared = await executor.prepare(decode_transaction(encode(tx)))

        assert prepared.message.account_keys[0] == keypair.pubkey()
        assert prepared.message.recent_blockhash == fresh_blockhash
        assert len(prepared.signatures) == 1

    @pytest.mark.asyncio
    async def test_complete_transaction_is_unchanged(self, keypair):
        existing = Hash.new_unique()
        rpc = FakeSolanaRpc(str(Hash.new_unique()))
        executor = SolanaStepExecutor(FakeSolanaWallet(keypair), rpc)

        tx = unsigned_transfer(keypair.pubkey(), existing)
        prepared = await executor.prepare(tx)

        assert prepared is tx
        assert prepared.message.recent_blockhash == existing


class TestExecute:
    """Tests for sign, broadcast and confirm."""

    @pytest.mark.asyncio
    async def test_signs_and_broadcasts(self, keypair, fresh_blockhash):
        rpc = FakeSolanaRpc(str(fresh_blockhash))
        wallet = FakeSolanaWallet(keypair)
        executor = SolanaStepExecutor(wallet, rpc)

        tx = unsigned_transfer(Pubkey.default(), Hash.default())
        signature = await executor.execute(SolanaTransactionRequest(data=encode(tx)))

        assert signature == "sig1"
        assert wallet.signed == 1
        sent = VersionedTransaction.from_bytes(rpc.sent[0])
        assert sent.signatures[0] != Signature.default()
        assert sent.message.recent_blockhash == fresh_blockhash

    @pytest.mark.asyncio
    async def test_user_rejection(self, keypair, fresh_blockhash):
        rpc = FakeSolanaRpc(str(fresh_blockhash))
        executor = SolanaStepExecutor(FakeSolanaWallet(keypair, reject=True), rpc)

        tx = unsigned_transfer(keypair.pubkey(), fresh_blockhash)
        with pytest.raises(UserRejected):
            await executor.execute(SolanaTransactionRequest(data=encode(tx)))
        assert rpc.sent == []

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self, keypair, fresh_blockhash):
        rpc = FakeSolanaRpc(str(fresh_blockhash))
        rpc.confirm_error = ConfirmationTimeout("sig1", 60)
        executor = SolanaStepExecutor(FakeSolanaWallet(keypair), rpc)

        tx = unsigned_transfer(keypair.pubkey(), fresh_blockhash)
        with pytest.raises(ConfirmationTimeout):
            await executor.execute(SolanaTransactionRequest(data=encode(tx)))


class TestSolanaRoute:
    """Tests for Solana steps through the orchestrator."""

    @pytest.mark.asyncio
    async def test_solana_step(self, chains, keypair, fresh_blockhash):
        rpc = FakeSolanaRpc(str(fresh_blockhash))
        orchestrator = SwapOrchestrator(
            chains, lambda chain_id: None, lambda: rpc, approval_settle_delay=0, step_settle_delay=0
        )
        tx = unsigned_transfer(Pubkey.default(), Hash.default())
        route = Route.from_dict(
            {
                "id": "sol",
                "expiresAt": time.time() + 60,
                "steps": [
                    {
                        "id": "jup",
                        "type": "swap",
                        "action": {"fromChainId": 1151111081099710},
                        "transactionRequest": {"data": encode(tx)},
                    }
                ],
            }
        )

        result = await orchestrator.execute_swap(
            route, str(keypair.pubkey()), solana_wallet=FakeSolanaWallet(keypair)
        )

        assert result.success is True
        assert result.tx_hashes == ["sig1"]
