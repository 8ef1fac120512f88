"""
Runtime configuration, read once from the environment (.env supported).
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# Relative paths (log file, ledger, web root) resolve against the project dir
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

MODE_FORWARD = "forward"
MODE_BUYBACK = "buyback"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def resolve_path(path: str) -> str:
    if not path or path == ":memory:" or os.path.isabs(path):
        return path
    return os.path.join(BASE_DIR, path)


@dataclass
class Config:
    # Credentials
    helius_api_key: str = ""
    rpc_url: str = DEFAULT_RPC_URL
    pumpportal_api_key: str = ""
    wallet_secret: str = ""

    # Target
    token_mint: str = ""
    excluded_wallet: str = ""  # excluded alongside the operator wallet
    mode: str = MODE_FORWARD

    # Disbursement
    reserve_lamports: int = 1_000_000  # keep 0.001 SOL for fees
    min_claim_lamports: int = 10_000_000
    slippage: int = 15  # percent
    priority_fee: float = 0.00001  # SOL

    # Timing
    cycle_minutes: int = 1
    settle_delay: float = 10.0
    swap_settle_delay: float = 5.0
    poll_interval: float = 1.0

    # Confirmation
    commitment: str = "confirmed"
    confirm_retries: int = 30

    # Storage / surface
    ledger_path: str = "data/ledger.duckdb"
    log_file_path: str = "web/public/logs.json"
    web_dir: str = "web"
    recent_limit: int = 20
    port: int = 8000
    dry_run: bool = False

    def __post_init__(self):
        self.ledger_path = resolve_path(self.ledger_path)
        self.log_file_path = resolve_path(self.log_file_path)
        self.web_dir = resolve_path(self.web_dir)

    @property
    def configured(self) -> bool:
        return bool(self.token_mint.strip())

    @classmethod
    def from_env(cls) -> "Config":
        load_dotenv()
        helius_key = os.getenv("HELIUS_API_KEY", "")
        default_rpc = f"https://mainnet.helius-rpc.com/?api-key={helius_key}" if helius_key else DEFAULT_RPC_URL

        mode = os.getenv("MODE", MODE_FORWARD).strip().lower()
        if mode not in (MODE_FORWARD, MODE_BUYBACK):
            raise ValueError(f"MODE must be '{MODE_FORWARD}' or '{MODE_BUYBACK}', got '{mode}'")

        return cls(
            helius_api_key=helius_key,
            rpc_url=os.getenv("RPC_URL", default_rpc),
            pumpportal_api_key=os.getenv("PUMPPORTAL_API_KEY", ""),
            wallet_secret=os.getenv("WALLET_SECRET", ""),
            token_mint=os.getenv("TOKEN_MINT", "").strip(),
            excluded_wallet=os.getenv("EXCLUDED_WALLET", os.getenv("DEV_WALLET", "")).strip(),
            mode=mode,
            reserve_lamports=int(os.getenv("RESERVE_LAMPORTS", "1000000")),
            min_claim_lamports=int(os.getenv("MIN_CLAIM_LAMPORTS", "10000000")),
            slippage=int(os.getenv("SLIPPAGE", "15")),
            priority_fee=float(os.getenv("PRIORITY_FEE", "0.00001")),
            cycle_minutes=int(os.getenv("CYCLE_MINUTES", "1")),
            settle_delay=float(os.getenv("SETTLE_DELAY", "10")),
            swap_settle_delay=float(os.getenv("SWAP_SETTLE_DELAY", "5")),
            poll_interval=float(os.getenv("POLL_INTERVAL", "1")),
            commitment=os.getenv("COMMITMENT", "confirmed").strip().lower(),
            confirm_retries=int(os.getenv("CONFIRM_RETRIES", "30")),
            ledger_path=os.getenv("LEDGER_PATH", "data/ledger.duckdb"),
            log_file_path=os.getenv("LOG_FILE_PATH", "web/public/logs.json"),
            web_dir=os.getenv("WEB_DIR", "web"),
            recent_limit=int(os.getenv("RECENT_LIMIT", "20")),
            port=int(os.getenv("PORT", "8000")),
            dry_run=_env_bool("DRY_RUN"),
        )
