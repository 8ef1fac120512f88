"""
Pipeline orchestrator: claim -> settle -> select/compute -> disburse -> record.

Every exit path returns the same payload shape (success flag, error, cycle
timing, recent outcomes) so the dashboard stays in sync even on failure.
"""

import threading
import time
import traceback
from datetime import datetime, timezone

from solana.rpc.api import Client

from chain import ChainQuery
from config import Config, LAMPORTS_PER_SOL, MODE_FORWARD
from cycles import CycleClock
from disburse import ForwardExecutor, BuybackExecutor
from errors import DripError, ConfigurationError, DuplicateCycleError
from holders import HolderSelector
from ledger import open_ledger
from logs import log, short, Style
from pumpportal import PumpPortal
from wallet import Wallet, load_keypair


class Pipeline:
    def __init__(self, config: Config, clock: CycleClock, ledger, chain=None, portal=None, wallet=None,
                 selector=None, sleep=time.sleep, now=None):
        self.config = config
        self.clock = clock
        self.ledger = ledger
        self.chain = chain
        self.portal = portal
        self.wallet = wallet
        self.sleep = sleep
        self.now = now or (lambda: datetime.now(timezone.utc))

        # Serialises triggers inside this process; the ledger key covers the rest
        self._lock = threading.Lock()

        # operator wallet is always excluded, EXCLUDED_WALLET adds to it
        excluded = {config.excluded_wallet, wallet.pubkey if wallet else None} - {None, ""}
        self.selector = selector or (HolderSelector(chain, excluded) if chain is not None else None)

        self.forward = ForwardExecutor(wallet, config.reserve_lamports, dry_run=config.dry_run)
        self.buyback = BuybackExecutor(
            wallet, portal, chain, config.token_mint,
            reserve_lamports=config.reserve_lamports,
            min_claim_lamports=config.min_claim_lamports,
            slippage=config.slippage,
            priority_fee=config.priority_fee,
            swap_settle_delay=config.swap_settle_delay,
            dry_run=config.dry_run,
            sleep=sleep,
        )

    # --- payloads ---

    def _history(self) -> tuple[list, dict]:
        try:
            winners = [r.to_dict() for r in self.ledger.recent(self.config.recent_limit)]
            return winners, self.ledger.stats()
        except Exception as e:
            log("ERROR", f"Ledger read failed: {e}", Style.RED)
            return [], {}

    def _payload(self, success: bool, status: str, error: str | None = None, error_code: str | None = None,
                 record=None, claim_result=None) -> dict:
        now = self.now()
        winners, stats = self._history()
        return {
            "success": success,
            "status": status,
            "error": error,
            "error_code": error_code,
            "configured": self.config.configured,
            "mode": self.config.mode,
            "dry_run": self.config.dry_run,
            "cycle": self.clock.window(now).to_dict(now),
            "record": record.to_dict() if record else None,
            "recipient": record.wallet if record else None,
            "forwardedLamports": record.amount_lamports if record else None,
            "txSignature": record.signature if record else None,
            "claimResult": claim_result,
            "winners": winners,
            "stats": stats,
        }

    def status(self) -> dict:
        """Read-only view for the dashboard; safe to poll."""
        return self._payload(success=True, status="idle")

    # --- pipeline ---

    def _require_collaborators(self):
        if self.wallet is None:
            raise ConfigurationError("WALLET_SECRET not configured")
        if self.chain is None or self.portal is None:
            raise ConfigurationError("Chain or PumpPortal client not configured")

    def _disburse(self):
        self._require_collaborators()
        owner = self.wallet.pubkey
        balance_before = self.chain.get_sol_balance(owner)

        if self.config.dry_run:
            log("DRY", "Skipping fee claim", Style.DIM)
            claim_result = {"dry_run": True}
        else:
            log("CLAIM", "Checking creator fees (Pump.fun)...", Style.DIM)
            claim_result = self.portal.claim_creator_fees(self.wallet)

        log("SETTLE", f"Waiting {self.config.settle_delay:.0f}s for the claim to land...", Style.DIM)
        self.sleep(self.config.settle_delay)

        if self.config.mode == MODE_FORWARD:
            winner = self.selector.select(self.config.token_mint)
            balance = self.chain.get_sol_balance(owner)
            log("LOTTERY", f"🏆 Winner: {short(winner.owner)} | Wallet: {balance / LAMPORTS_PER_SOL:.4f} SOL", Style.GREEN)
            outcome = self.forward.execute(winner.owner, balance)
        else:
            balance_after = self.chain.get_sol_balance(owner)
            outcome = self.buyback.execute(balance_before, balance_after)
        return outcome, claim_result

    def _already(self, cycle_id: int, record=None) -> dict:
        log("SKIP", f"Cycle {cycle_id} already executed", Style.DIM)
        return self._payload(success=True, status="already_executed", record=record)

    def run(self) -> dict:
        with self._lock:
            window = self.clock.window(self.now())
            try:
                if not self.config.configured:
                    raise ConfigurationError("TOKEN_MINT not configured")

                existing = self.ledger.get(window.cycle_id)
                if existing is not None:
                    return self._already(window.cycle_id, existing)

                log("CYCLE", f"⏱️ Cycle {window.cycle_id} ({self.config.mode}) started", Style.BLUE)
                outcome, claim_result = self._disburse()

                try:
                    record = self.ledger.record(window.cycle_id, outcome, created_at=self.now())
                except DuplicateCycleError:
                    return self._already(window.cycle_id, self.ledger.get(window.cycle_id))

                if outcome.error:
                    return self._payload(success=False, status="executed", error=outcome.error,
                                         error_code="transaction_error", record=record, claim_result=claim_result)
                return self._payload(success=True, status="executed", record=record, claim_result=claim_result)

            except DripError as e:
                if e.code in ("not_configured", "no_holders", "no_eligible_holders"):
                    log("WAIT", f"⏳ {e}", Style.YELLOW)
                else:
                    log("ERROR", f"{e.code}: {e}", Style.RED)
                return self._payload(success=False, status=e.code, error=str(e), error_code=e.code)
            except Exception as e:
                log("ERROR", f"Pipeline Exception: {e}", Style.RED)
                log("ERROR", f"Traceback: {traceback.format_exc()}", Style.RED)
                return self._payload(success=False, status="error", error=str(e), error_code="error")


def build_pipeline(config: Config) -> Pipeline:
    client = Client(config.rpc_url)
    wallet = None
    if config.wallet_secret:
        wallet = Wallet(client, load_keypair(config.wallet_secret),
                        commitment=config.commitment, confirm_retries=config.confirm_retries)
    else:
        log("WARN", "WALLET_SECRET not set; pipeline runs will report not configured", Style.YELLOW)

    return Pipeline(
        config=config,
        clock=CycleClock(config.cycle_minutes),
        ledger=open_ledger(config.ledger_path, capacity=config.recent_limit),
        chain=ChainQuery(client, config.rpc_url),
        portal=PumpPortal(config.pumpportal_api_key),
        wallet=wallet,
    )
