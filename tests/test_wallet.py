import json
from types import SimpleNamespace

import base58
import pytest
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from errors import TransactionError
from wallet import Wallet, load_keypair

SIG = str(Signature.default())


def test_load_keypair_formats():
    kp = Keypair()
    assert load_keypair(base58.b58encode(bytes(kp)).decode()).pubkey() == kp.pubkey()
    assert load_keypair(json.dumps(list(bytes(kp)))).pubkey() == kp.pubkey()


@pytest.mark.parametrize("secret", ["", "not-a-key", "[1, 2, 3]"])
def test_load_keypair_rejects_garbage(secret):
    with pytest.raises(ValueError):
        load_keypair(secret)


class StatusClient:
    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.calls = 0

    def get_signature_statuses(self, signatures):
        self.calls += 1
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return SimpleNamespace(value=[status])


def status(level, err=None):
    return SimpleNamespace(err=err, confirmation_status=level)


def make_wallet(client, **kwargs):
    return Wallet(client, Keypair(), confirm_sleep=0, sleep=lambda s: None, **kwargs)


def test_confirm_waits_for_commitment():
    client = StatusClient(None, status(TransactionConfirmationStatus.Processed),
                          status(TransactionConfirmationStatus.Confirmed))
    make_wallet(client).confirm(SIG)
    assert client.calls == 3


def test_finalized_commitment_needs_finalized():
    client = StatusClient(status(TransactionConfirmationStatus.Confirmed))
    with pytest.raises(TransactionError):
        make_wallet(client, commitment="finalized", confirm_retries=4).confirm(SIG)
    assert client.calls == 4


def test_confirm_raises_on_chain_error():
    client = StatusClient(status(TransactionConfirmationStatus.Confirmed, err="InstructionError"))
    with pytest.raises(TransactionError):
        make_wallet(client).confirm(SIG)


def test_unknown_commitment():
    with pytest.raises(ValueError):
        Wallet(StatusClient(None), Keypair(), commitment="eventually")


def test_transfer_failure_is_transaction_error():
    class Broken:
        def get_latest_blockhash(self):
            raise RuntimeError("rpc down")

    with pytest.raises(TransactionError):
        make_wallet(Broken()).transfer_sol(str(Keypair().pubkey()), 1000)
