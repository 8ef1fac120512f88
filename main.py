"""
Drip ($DRIP) - Creator Fee Reward Engine
Claims Pump.fun creator fees every cycle and either drips them to a
balance-weighted random holder or buys the token back.
"""

import os
import time

from config import Config, LAMPORTS_PER_SOL
from logs import log, init_log_file, set_log_file, short, Style
from pipeline import build_pipeline

PULSE_SECONDS = 10


def print_banner():
    # Attempt to enable ANSI on Windows
    if os.name == "nt":
        os.system("color")

    banner = f"""{Style.BOLD}{Style.CYAN}
    ██████╗ ██████╗ ██╗██████╗
    ██╔══██╗██╔══██╗██║██╔══██╗
    ██║  ██║██████╔╝██║██████╔╝
    ██║  ██║██╔══██╗██║██╔═══╝
    ██████╔╝██║  ██║██║██║
    ╚═════╝ ╚═╝  ╚═╝╚═╝╚═╝
             {Style.WHITE}>> CREATOR FEES, BACK TO HOLDERS <<{Style.RESET}
    """
    print(banner)
    print(f"{Style.DIM}    v1.0.0 | DRIP PROTOCOL | SYSTEM: FLOW 💧{Style.RESET}\n")


def startup_log(config: Config):
    steps = [
        ("INIT", f"Mode: {config.mode.upper()}{' (DRY RUN)' if config.dry_run else ''}", Style.BLUE),
        ("INIT", f"Cycle: every {config.cycle_minutes} min", Style.CYAN),
        ("INIT", f"Token: {short(config.token_mint) if config.configured else 'NOT CONFIGURED'}", Style.WHITE),
        ("INIT", f"Reserve: {config.reserve_lamports / LAMPORTS_PER_SOL:.4f} SOL", Style.GREEN),
        ("INIT", f"Ledger: {config.ledger_path or 'in-memory'}", Style.DIM),
    ]
    for tag, msg, color in steps:
        log(tag, msg, color)


class CycleScheduler:
    """Runs the pipeline once each time a new cycle id is observed."""

    def __init__(self, pipeline, poll_interval: float = 1.0, sleep=time.sleep, monotonic=time.monotonic):
        self.pipeline = pipeline
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.monotonic = monotonic
        self.last_cycle = None
        self.last_pulse = 0.0

    def tick(self) -> dict | None:
        now = self.pipeline.now()
        window = self.pipeline.clock.window(now)

        if window.cycle_id == self.last_cycle:
            if self.monotonic() - self.last_pulse > PULSE_SECONDS:
                log("MONITOR", f"💓 Next cycle in {window.seconds_until_next(now)}s", Style.DIM)
                self.last_pulse = self.monotonic()
            return None

        self.last_cycle = window.cycle_id
        result = self.pipeline.run()
        if result["success"]:
            log("CYCLE", f"Cycle {window.cycle_id}: {result['status']}", Style.GREEN)
        else:
            log("CYCLE", f"Cycle {window.cycle_id}: {result['status']} - {result['error']}", Style.YELLOW)
        return result

    def run_forever(self):
        log("SYSTEM", "🕒 Scheduler: ACTIVE", Style.CYAN)
        try:
            while True:
                try:
                    self.tick()
                except Exception as e:
                    log("ERROR", f"Main Loop Error: {e}", Style.RED)
                self.sleep(self.poll_interval)
        except KeyboardInterrupt:
            print(f"\n{Style.RED}🛑 Bot Stopped{Style.RESET}")


def main(pipeline=None):
    print_banner()
    config = pipeline.config if pipeline else Config.from_env()
    set_log_file(config.log_file_path)
    init_log_file()  # Init web logs

    startup_log(config)
    pipeline = pipeline or build_pipeline(config)

    if pipeline.wallet:
        log("INIT", f"Operator: {short(pipeline.wallet.pubkey)}", Style.DIM)

    CycleScheduler(pipeline, config.poll_interval).run_forever()


if __name__ == "__main__":
    main()
