"""
Operator wallet: holds the keypair, signs, submits and confirms transactions.
"""

import json
import time

import base58
from solana.rpc.api import Client
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import transfer, TransferParams
from solders.transaction import VersionedTransaction, Transaction
from solders.transaction_status import TransactionConfirmationStatus

from errors import TransactionError
from logs import log, Style

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def load_keypair(secret: str) -> Keypair:
    """Accepts a base58 secret key or a JSON byte array (solana-keygen format)."""
    try:
        if not secret:
            raise ValueError("empty secret")
        key = secret.strip()
        if key.startswith("[") and key.endswith("]"):
            return Keypair.from_bytes(bytes(json.loads(key)))
        return Keypair.from_bytes(base58.b58decode(key))
    except Exception as e:
        raise ValueError(f"Failed to load keypair: {e}") from e


def _status_rank(status) -> int:
    if status == TransactionConfirmationStatus.Finalized:
        return 2
    if status == TransactionConfirmationStatus.Confirmed:
        return 1
    if status == TransactionConfirmationStatus.Processed:
        return 0
    return -1


class Wallet:
    def __init__(self, client: Client, keypair: Keypair, commitment: str = "confirmed",
                 confirm_retries: int = 30, confirm_sleep: float = 1.0, sleep=time.sleep):
        if commitment not in COMMITMENT_RANK:
            raise ValueError(f"Unknown commitment '{commitment}'")
        self.client = client
        self.keypair = keypair
        self.commitment = commitment
        self.confirm_retries = confirm_retries
        self.confirm_sleep = confirm_sleep
        self.sleep = sleep

    @property
    def pubkey(self) -> str:
        return str(self.keypair.pubkey())

    def transfer_sol(self, recipient: str, lamports: int) -> str:
        try:
            ix = transfer(
                TransferParams(
                    from_pubkey=self.keypair.pubkey(),
                    to_pubkey=Pubkey.from_string(recipient),
                    lamports=lamports,
                )
            )
            blockhash = self.client.get_latest_blockhash().value.blockhash
            msg = Message([ix], self.keypair.pubkey())
            tx = Transaction([self.keypair], msg, blockhash)
            response = self.client.send_transaction(tx)
        except Exception as e:
            raise TransactionError(f"Transfer failed: {e}") from e

        if not getattr(response, "value", None):
            raise TransactionError("Transfer returned no signature")
        return str(response.value)

    def sign_and_send(self, tx_bytes: bytes) -> str:
        """Co-sign a serialized VersionedTransaction built elsewhere and submit it."""
        try:
            tx = VersionedTransaction.from_bytes(tx_bytes)
            signed_tx = VersionedTransaction(tx.message, [self.keypair])
            response = self.client.send_raw_transaction(bytes(signed_tx), TxOpts(skip_preflight=True))
        except Exception as e:
            raise TransactionError(f"Tx failed: {e}") from e

        if not getattr(response, "value", None):
            raise TransactionError("Submission returned no signature")
        return str(response.value)

    def confirm(self, signature: str) -> None:
        """Poll signature status until the configured commitment, bounded by confirm_retries."""
        wanted = COMMITMENT_RANK[self.commitment]
        sig = Signature.from_string(signature)

        for attempt in range(1, self.confirm_retries + 1):
            try:
                statuses = self.client.get_signature_statuses([sig]).value
            except Exception as e:
                log("WARN", f"Status check {attempt}/{self.confirm_retries} failed: {e}", Style.DIM)
                statuses = None

            status = statuses[0] if statuses else None
            if status is not None:
                if status.err:
                    raise TransactionError(f"Transaction {signature[:8]}... failed on-chain: {status.err}")
                if _status_rank(status.confirmation_status) >= wanted:
                    return

            if attempt < self.confirm_retries:
                self.sleep(self.confirm_sleep)

        raise TransactionError(f"Transaction {signature[:8]}... not {self.commitment} after {self.confirm_retries} checks")
