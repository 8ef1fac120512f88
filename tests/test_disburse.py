import pytest

from disburse import BuybackExecutor, ForwardExecutor, compute_buyback_spend, compute_send_amount
from errors import UpstreamError
from tests.fakes import FakeChain, FakePortal, FakeWallet, MINT, OPERATOR

RESERVE = 1_000_000


@pytest.mark.parametrize("balance", [0, 999_999, RESERVE])
def test_forward_skips_when_nothing_above_reserve(balance):
    wallet = FakeWallet()
    outcome = ForwardExecutor(wallet, RESERVE).execute("alice", balance)

    assert wallet.transfers == []
    assert outcome.amount_lamports == 0
    assert outcome.signature is None
    assert outcome.error is None
    assert outcome.wallet == "alice"


def test_forward_sends_balance_minus_reserve():
    wallet = FakeWallet()
    outcome = ForwardExecutor(wallet, RESERVE).execute("alice", 251_000_000)

    assert compute_send_amount(251_000_000, RESERVE) == 250_000_000
    assert wallet.transfers == [("alice", 250_000_000)]
    assert wallet.confirmed == ["sig-transfer-1"]
    assert outcome.amount_lamports == 250_000_000
    assert outcome.signature == "sig-transfer-1"


@pytest.mark.parametrize("failure", ["transfer", "confirm"])
def test_forward_failure_becomes_outcome(failure):
    outcome = ForwardExecutor(FakeWallet(fail_on={failure}), RESERVE).execute("alice", 50_000_000)
    assert outcome.signature is None
    assert outcome.amount_lamports == 0
    assert outcome.error


def test_forward_dry_run_does_not_transfer():
    wallet = FakeWallet()
    outcome = ForwardExecutor(wallet, RESERVE, dry_run=True).execute("alice", 50_000_000)
    assert wallet.transfers == []
    assert outcome.amount_lamports == 49_000_000
    assert outcome.signature is None


def test_buyback_spend_math():
    assert compute_buyback_spend(100, 100 + 5_000_000, RESERVE, 10_000_000) == (5_000_000, 0)
    assert compute_buyback_spend(100, 100 + 20_000_000, RESERVE, 10_000_000) == (20_000_000, 19_000_000)
    assert compute_buyback_spend(100, 100 + 500_000, RESERVE, 0) == (500_000, 0)


def buyback(chain, wallet=None, portal=None, sleeps=None):
    return BuybackExecutor(
        wallet or FakeWallet(), portal or FakePortal(swap_echo_tokens=999_999_999), chain, MINT,
        reserve_lamports=RESERVE, min_claim_lamports=10_000_000, slippage=15, priority_fee=0.00001,
        swap_settle_delay=5, sleep=(sleeps.append if sleeps is not None else lambda s: None),
    )


def test_buyback_measures_tokens_received():
    chain = FakeChain(token_balances=[1_000_000, 3_500_000])
    portal = FakePortal(swap_echo_tokens=999_999_999)
    wallet = FakeWallet()
    sleeps = []

    outcome = buyback(chain, wallet, portal, sleeps).execute(50_000_000, 250_000_000)

    assert portal.swaps == [(MINT, 0.199, 15, 0.00001, OPERATOR)]
    assert wallet.confirmed == ["sig-swap-1"]
    assert sleeps == [5]
    assert outcome.claimed_lamports == 200_000_000
    assert outcome.amount_lamports == 199_000_000
    assert outcome.tokens_received == 2_500_000
    assert outcome.signature == "sig-swap-1"


def test_buyback_below_threshold_skips():
    chain = FakeChain(token_balances=[1_000_000])
    portal = FakePortal()
    outcome = buyback(chain, portal=portal).execute(50_000_000, 55_000_000)

    assert portal.swaps == []
    assert outcome.amount_lamports == 0
    assert outcome.tokens_received == 0
    assert outcome.claimed_lamports == 5_000_000


def test_buyback_swap_failure_is_recorded_not_raised():
    outcome = buyback(FakeChain(token_balances=[0]), wallet=FakeWallet(fail_on={"send"})).execute(0, 100_000_000)
    assert outcome.signature is None
    assert outcome.tokens_received == 0
    assert "simulation error" in outcome.error


def test_buyback_upstream_failure_is_recorded_not_raised():
    class RejectingPortal(FakePortal):
        def request_swap(self, *args):
            raise UpstreamError("PumpPortal buy failed: 400 - bad mint")

    outcome = buyback(FakeChain(token_balances=[0]), portal=RejectingPortal()).execute(0, 100_000_000)
    assert outcome.signature is None
    assert "bad mint" in outcome.error
