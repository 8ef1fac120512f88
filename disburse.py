"""
Disbursement: forward the wallet balance to a holder, or buy back the token.

Transaction failures are caught here and turned into an outcome so the cycle
is still recorded exactly once.
"""

import time
from dataclasses import dataclass

from config import LAMPORTS_PER_SOL, MODE_FORWARD, MODE_BUYBACK
from errors import TransactionError, UpstreamError
from logs import log, short, Style


@dataclass
class Outcome:
    mode: str
    wallet: str | None = None
    amount_lamports: int = 0
    signature: str | None = None
    claimed_lamports: int | None = None
    tokens_received: int | None = None
    error: str | None = None


def compute_send_amount(balance: int, reserve: int) -> int:
    return balance - reserve


def compute_buyback_spend(balance_before: int, balance_after: int, reserve: int, minimum: int) -> tuple[int, int]:
    """Returns (claimed, spend); spend is 0 when the claim isn't worth a swap."""
    claimed = balance_after - balance_before
    if claimed < minimum:
        return claimed, 0
    spend = claimed - reserve
    return claimed, max(spend, 0)


class ForwardExecutor:
    def __init__(self, wallet, reserve_lamports: int, dry_run: bool = False):
        self.wallet = wallet
        self.reserve_lamports = reserve_lamports
        self.dry_run = dry_run

    def execute(self, recipient: str, balance: int) -> Outcome:
        send_amount = compute_send_amount(balance, self.reserve_lamports)
        if send_amount <= 0:
            log("SKIP", f"⚠️ Nothing to forward: {balance / LAMPORTS_PER_SOL:.4f} SOL (reserve {self.reserve_lamports / LAMPORTS_PER_SOL:.4f})", Style.YELLOW)
            return Outcome(mode=MODE_FORWARD, wallet=recipient)

        if self.dry_run:
            log("DRY", f"Would send {send_amount / LAMPORTS_PER_SOL:.4f} SOL -> {short(recipient)}", Style.DIM)
            return Outcome(mode=MODE_FORWARD, wallet=recipient, amount_lamports=send_amount)

        log("TRANSFER", f"Sending {send_amount / LAMPORTS_PER_SOL:.4f} SOL -> {short(recipient)}...", Style.CYAN)
        try:
            sig = self.wallet.transfer_sol(recipient, send_amount)
            self.wallet.confirm(sig)
        except TransactionError as e:
            log("ERROR", f"Transfer failed: {e}", Style.RED)
            return Outcome(mode=MODE_FORWARD, wallet=recipient, error=str(e))

        log("WINNER", f"🎉 SENT {send_amount / LAMPORTS_PER_SOL:.4f} SOL -> {short(recipient)} | https://solscan.io/tx/{sig}", Style.GREEN)
        return Outcome(mode=MODE_FORWARD, wallet=recipient, amount_lamports=send_amount, signature=sig)


class BuybackExecutor:
    def __init__(self, wallet, portal, chain, token_mint: str, reserve_lamports: int, min_claim_lamports: int,
                 slippage: int, priority_fee: float, swap_settle_delay: float = 5.0,
                 dry_run: bool = False, sleep=time.sleep):
        self.wallet = wallet
        self.portal = portal
        self.chain = chain
        self.token_mint = token_mint
        self.reserve_lamports = reserve_lamports
        self.min_claim_lamports = min_claim_lamports
        self.slippage = slippage
        self.priority_fee = priority_fee
        self.swap_settle_delay = swap_settle_delay
        self.dry_run = dry_run
        self.sleep = sleep

    def execute(self, balance_before: int, balance_after: int) -> Outcome:
        claimed, spend = compute_buyback_spend(
            balance_before, balance_after, self.reserve_lamports, self.min_claim_lamports
        )
        if spend <= 0:
            log("SKIP", f"⚠️ Claimed {claimed / LAMPORTS_PER_SOL:.4f} SOL, below buyback threshold", Style.YELLOW)
            return Outcome(mode=MODE_BUYBACK, claimed_lamports=claimed, tokens_received=0)

        if self.dry_run:
            log("DRY", f"Would buy back with {spend / LAMPORTS_PER_SOL:.4f} SOL", Style.DIM)
            return Outcome(mode=MODE_BUYBACK, amount_lamports=spend, claimed_lamports=claimed, tokens_received=0)

        owner = self.wallet.pubkey
        log("BUY", f"🚀 Buyback | Claimed {claimed / LAMPORTS_PER_SOL:.4f} SOL, spending {spend / LAMPORTS_PER_SOL:.4f}", Style.GREEN)
        try:
            tokens_before = self.chain.get_token_balance(self.token_mint, owner)
            tx_bytes = self.portal.request_swap(
                self.token_mint, spend / LAMPORTS_PER_SOL, self.slippage, self.priority_fee, owner
            )
            sig = self.wallet.sign_and_send(tx_bytes)
            self.wallet.confirm(sig)
        except (TransactionError, UpstreamError) as e:
            log("ERROR", f"Buyback failed: {e}", Style.RED)
            return Outcome(mode=MODE_BUYBACK, claimed_lamports=claimed, tokens_received=0, error=str(e))

        log("TX", f"https://solscan.io/tx/{sig}", Style.GREEN)
        self.sleep(self.swap_settle_delay)

        # Measured, not taken from the swap request
        try:
            tokens_after = self.chain.get_token_balance(self.token_mint, owner)
        except UpstreamError as e:
            log("WARN", f"Post-swap balance check failed: {e}", Style.YELLOW)
            return Outcome(mode=MODE_BUYBACK, amount_lamports=spend, signature=sig,
                           claimed_lamports=claimed, error=str(e))

        received = tokens_after - tokens_before
        log("SUCCESS", f"✅ Bought back {received} tokens", Style.GREEN)
        return Outcome(mode=MODE_BUYBACK, amount_lamports=spend, signature=sig,
                       claimed_lamports=claimed, tokens_received=received)
