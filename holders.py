"""
Holder selection: balance-weighted random draw among token holders.

The largest holder is assumed to be the bonding-curve / liquidity pool and is
never eligible, and neither is the operator wallet.
"""

import random
from collections import defaultdict
from dataclasses import dataclass

from errors import NoHoldersError, NoEligibleHoldersError, SelectionError
from logs import log, short, Style


@dataclass
class HolderRecord:
    owner: str
    balance: int  # raw token units


@dataclass
class WeightedHolder:
    owner: str
    balance: int
    weight: float
    cumulative_weight: float


def _coerce(row) -> HolderRecord | None:
    try:
        owner = row.get("owner")
        balance = int(row.get("balance"))
    except (AttributeError, TypeError, ValueError):
        return None
    if not isinstance(owner, str) or not owner.strip() or balance < 0:
        return None
    return HolderRecord(owner=owner.strip(), balance=balance)


def to_records(rows) -> list[HolderRecord]:
    """Convert loose chain rows to records, merging accounts of the same owner.

    Malformed rows are skipped so one bad account can't sink the draw.
    """
    merged = defaultdict(int)
    skipped = 0
    for row in rows:
        record = _coerce(row)
        if record is None:
            skipped += 1
            continue
        merged[record.owner] += record.balance

    if skipped:
        log("HOLDERS", f"Skipped {skipped} malformed token account(s)", Style.YELLOW)
    return [HolderRecord(owner=o, balance=b) for o, b in merged.items()]


def rank_eligible(records: list[HolderRecord], excluded=()) -> list[HolderRecord]:
    """Positive balances minus the excluded wallets, largest first, pool dropped."""
    excluded = set(excluded)
    holders = [r for r in records if r.balance > 0 and r.owner not in excluded]
    if not holders:
        raise NoEligibleHoldersError("No token holders with positive balance found (excluding operator wallet)")

    holders.sort(key=lambda r: r.balance, reverse=True)

    # Top holder is the pool
    holders = holders[1:]
    if not holders:
        raise NoEligibleHoldersError("No eligible holders found (only the pool and/or operator wallet detected)")
    return holders


def compute_weights(holders: list[HolderRecord]) -> list[WeightedHolder]:
    total = sum(h.balance for h in holders)
    if total <= 0:
        raise NoEligibleHoldersError("Eligible holders have no combined balance")

    weighted = []
    running = 0
    for h in holders:
        running += h.balance
        # running / total keeps the last cumulative weight at exactly 1.0
        weighted.append(WeightedHolder(
            owner=h.owner,
            balance=h.balance,
            weight=h.balance / total,
            cumulative_weight=running / total,
        ))
    return weighted


def pick_weighted(weighted: list[WeightedHolder], r: float) -> WeightedHolder:
    """Inverse-CDF pick: first holder whose cumulative weight reaches r."""
    if not weighted:
        raise SelectionError("No weighted holders to select from")
    if not 0.0 <= r < 1.0:
        raise SelectionError(f"Random draw {r!r} outside [0, 1)")

    for holder in weighted:
        if holder.cumulative_weight >= r:
            return holder
    return weighted[-1]


class HolderSelector:
    def __init__(self, chain, excluded=(), rng: random.Random | None = None):
        self.chain = chain
        self.excluded = {address for address in excluded if address}
        self.rng = rng or random.SystemRandom()

    def candidates(self, mint: str) -> list[WeightedHolder]:
        rows = self.chain.get_token_holders(mint)
        if not rows:
            raise NoHoldersError("No token accounts found")
        return compute_weights(rank_eligible(to_records(rows), self.excluded))

    def select(self, mint: str) -> WeightedHolder:
        weighted = self.candidates(mint)
        draw = self.rng.random()
        winner = pick_weighted(weighted, draw)
        log(
            "LOTTERY",
            f"🎲 Draw {draw:.4f} over {len(weighted)} holders -> {short(winner.owner)} "
            f"({winner.balance} tokens, {winner.weight * 100:.2f}% of eligible supply)",
            Style.MAGENTA,
        )
        return winner
