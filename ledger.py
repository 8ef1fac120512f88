"""
Cycle ledger: one record per cycle id, newest first for the dashboard.

DuckDBLedger is the durable store; cycle_id is its primary key, so two
triggers racing in the same cycle can't both write a row. MemoryLedger is the
capped in-memory fallback that forgets everything on restart.
"""

import threading
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path

import duckdb

from config import LAMPORTS_PER_SOL
from errors import DuplicateCycleError


@dataclass
class CycleRecord:
    cycle_id: int
    mode: str
    wallet: str | None
    amount_lamports: int
    signature: str | None
    claimed_lamports: int | None
    tokens_received: int | None
    error: str | None
    created_at: datetime

    @classmethod
    def from_outcome(cls, cycle_id: int, outcome, created_at: datetime | None = None) -> "CycleRecord":
        return cls(
            cycle_id=cycle_id,
            mode=outcome.mode,
            wallet=outcome.wallet,
            amount_lamports=outcome.amount_lamports,
            signature=outcome.signature,
            claimed_lamports=outcome.claimed_lamports,
            tokens_received=outcome.tokens_received,
            error=outcome.error,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["time"] = data["created_at"]
        data["amount_sol"] = self.amount_lamports / LAMPORTS_PER_SOL
        data["sig"] = self.signature
        return data


def _summarise(records) -> dict:
    total_lamports = sum(r.amount_lamports for r in records)
    return {
        "cycles": len(records),
        "payouts": sum(1 for r in records if r.signature),
        "total_lamports": total_lamports,
        "total_sol": total_lamports / LAMPORTS_PER_SOL,
        "total_tokens": sum(r.tokens_received or 0 for r in records),
    }


class MemoryLedger:
    def __init__(self, capacity: int = 20):
        self._records = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def get(self, cycle_id: int) -> CycleRecord | None:
        with self._lock:
            for record in self._records:
                if record.cycle_id == cycle_id:
                    return record
        return None

    def has_executed(self, cycle_id: int) -> bool:
        return self.get(cycle_id) is not None

    def record(self, cycle_id: int, outcome, created_at: datetime | None = None) -> CycleRecord:
        entry = CycleRecord.from_outcome(cycle_id, outcome, created_at)
        with self._lock:
            if any(r.cycle_id == cycle_id for r in self._records):
                raise DuplicateCycleError(cycle_id)
            self._records.appendleft(entry)
        return entry

    def recent(self, limit: int = 20) -> list[CycleRecord]:
        with self._lock:
            ordered = sorted(self._records, key=lambda r: r.created_at, reverse=True)
        return ordered[:limit]

    def stats(self) -> dict:
        with self._lock:
            return _summarise(list(self._records))

    def close(self):
        pass


SCHEMA = """
CREATE TABLE IF NOT EXISTS cycle_records (
    cycle_id BIGINT PRIMARY KEY,
    mode VARCHAR NOT NULL,
    wallet VARCHAR,
    amount_lamports BIGINT NOT NULL,
    signature VARCHAR,
    claimed_lamports BIGINT,
    tokens_received BIGINT,
    error VARCHAR,
    created_at TIMESTAMP NOT NULL
)
"""

COLUMNS = "cycle_id, mode, wallet, amount_lamports, signature, claimed_lamports, tokens_received, error, created_at"


class DuckDBLedger:
    def __init__(self, path: str = ":memory:"):
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.path = path
        self._conn = duckdb.connect(path)
        # One connection shared across server and scheduler threads
        self._lock = threading.Lock()
        with self._lock:
            self._conn.execute(SCHEMA)

    @staticmethod
    def _row_to_record(row) -> CycleRecord:
        values = dict(zip([c.strip() for c in COLUMNS.split(",")], row))
        # stored as naive UTC
        values["created_at"] = values["created_at"].replace(tzinfo=timezone.utc)
        return CycleRecord(**values)

    def get(self, cycle_id: int) -> CycleRecord | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {COLUMNS} FROM cycle_records WHERE cycle_id = ?", [cycle_id]
            ).fetchone()
        return self._row_to_record(row) if row else None

    def has_executed(self, cycle_id: int) -> bool:
        return self.get(cycle_id) is not None

    def record(self, cycle_id: int, outcome, created_at: datetime | None = None) -> CycleRecord:
        entry = CycleRecord.from_outcome(cycle_id, outcome, created_at)
        stored_at = entry.created_at.astimezone(timezone.utc).replace(tzinfo=None)
        try:
            with self._lock:
                self._conn.execute(
                    f"INSERT INTO cycle_records ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [entry.cycle_id, entry.mode, entry.wallet, entry.amount_lamports, entry.signature,
                     entry.claimed_lamports, entry.tokens_received, entry.error, stored_at],
                )
        except duckdb.ConstraintException as e:
            raise DuplicateCycleError(cycle_id) from e
        return entry

    def recent(self, limit: int = 20) -> list[CycleRecord]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {COLUMNS} FROM cycle_records ORDER BY created_at DESC, cycle_id DESC LIMIT ?", [limit]
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def stats(self) -> dict:
        with self._lock:
            cycles, payouts, total_lamports, total_tokens = self._conn.execute(
                """
                SELECT
                    COUNT(*),
                    COUNT(signature),
                    COALESCE(SUM(amount_lamports), 0),
                    COALESCE(SUM(tokens_received), 0)
                FROM cycle_records
                """
            ).fetchone()
        return {
            "cycles": int(cycles),
            "payouts": int(payouts),
            "total_lamports": int(total_lamports),
            "total_sol": int(total_lamports) / LAMPORTS_PER_SOL,
            "total_tokens": int(total_tokens),
        }

    def close(self):
        with self._lock:
            self._conn.close()


def open_ledger(path: str, capacity: int = 20):
    if not path:
        return MemoryLedger(capacity=capacity)
    return DuckDBLedger(path)
