from datetime import datetime, timedelta, timezone

import pytest

from disburse import Outcome
from errors import DuplicateCycleError
from ledger import DuckDBLedger, MemoryLedger, open_ledger

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "duckdb"])
def ledger(request):
    store = MemoryLedger(capacity=50) if request.param == "memory" else DuckDBLedger(":memory:")
    yield store
    store.close()


def paid(wallet="alice", lamports=5_000_000, sig="sig-1"):
    return Outcome(mode="forward", wallet=wallet, amount_lamports=lamports, signature=sig)


def test_record_and_lookup(ledger):
    assert not ledger.has_executed(101)
    record = ledger.record(101, paid(), created_at=T0)

    assert ledger.has_executed(101)
    stored = ledger.get(101)
    assert stored == record
    assert stored.created_at == T0
    assert stored.to_dict()["amount_sol"] == 0.005


def test_second_record_for_a_cycle_is_refused(ledger):
    ledger.record(101, paid(sig="first"), created_at=T0)
    with pytest.raises(DuplicateCycleError) as exc:
        ledger.record(101, paid(sig="second"), created_at=T0 + timedelta(seconds=5))

    assert exc.value.cycle_id == 101
    assert ledger.get(101).signature == "first"
    assert len(ledger.recent(10)) == 1


def test_recent_is_newest_first_and_limited(ledger):
    for i in range(5):
        ledger.record(200 + i, paid(sig=f"sig-{i}"), created_at=T0 + timedelta(minutes=i))

    recent = ledger.recent(3)
    assert [r.cycle_id for r in recent] == [204, 203, 202]


def test_stats(ledger):
    ledger.record(1, paid(lamports=2_000_000_000), created_at=T0)
    ledger.record(2, Outcome(mode="forward", wallet="bob"), created_at=T0 + timedelta(minutes=1))
    ledger.record(3, Outcome(mode="buyback", amount_lamports=500_000_000, signature="swap",
                             claimed_lamports=510_000_000, tokens_received=12_345),
                  created_at=T0 + timedelta(minutes=2))

    stats = ledger.stats()
    assert stats["cycles"] == 3
    assert stats["payouts"] == 2
    assert stats["total_lamports"] == 2_500_000_000
    assert stats["total_sol"] == 2.5
    assert stats["total_tokens"] == 12_345


def test_failed_outcome_round_trips(ledger):
    ledger.record(7, Outcome(mode="forward", wallet="carol", error="Transfer failed"), created_at=T0)
    record = ledger.get(7)
    assert record.signature is None
    assert record.amount_lamports == 0
    assert record.error == "Transfer failed"


def test_memory_ledger_is_capped():
    store = MemoryLedger(capacity=3)
    for i in range(5):
        store.record(i, paid(), created_at=T0 + timedelta(minutes=i))
    assert [r.cycle_id for r in store.recent(10)] == [4, 3, 2]
    assert not store.has_executed(0)


def test_duckdb_ledger_survives_reopen(tmp_path):
    path = str(tmp_path / "db" / "ledger.duckdb")
    store = DuckDBLedger(path)
    store.record(42, paid(), created_at=T0)
    store.close()

    reopened = DuckDBLedger(path)
    try:
        assert reopened.has_executed(42)
        with pytest.raises(DuplicateCycleError):
            reopened.record(42, paid())
    finally:
        reopened.close()


def test_open_ledger():
    assert isinstance(open_ledger(""), MemoryLedger)
    store = open_ledger(":memory:")
    assert isinstance(store, DuckDBLedger)
    store.close()
