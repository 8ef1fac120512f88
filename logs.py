import os
import json
import threading
from datetime import datetime


# --- TERMINAL STYLING ---
class Style:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Foreground
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"


# --- LOGGING SYSTEM ---
# Overridden from Config.log_file_path at startup
LOG_FILE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "web", "public", "logs.json")
LOG_KEEP = 500
log_lock = threading.Lock()


def set_log_file(path: str):
    global LOG_FILE_PATH
    LOG_FILE_PATH = path


def init_log_file():
    """Ensure the log directory exists and init an empty JSON list if needed"""
    folder = os.path.dirname(LOG_FILE_PATH)
    if folder:
        os.makedirs(folder, exist_ok=True)
    if not os.path.exists(LOG_FILE_PATH):
        with open(LOG_FILE_PATH, "w") as f:
            json.dump([], f)


def log(tag: str, msg: str, color: str = Style.WHITE):
    timestamp = datetime.now().strftime("%H:%M:%S")

    # 1. Console Output
    print(f"{Style.DIM}[{timestamp}]{Style.RESET} {color}{Style.BOLD}[{tag:^10}]{Style.RESET} {msg}")

    # 2. JSON Output for Web UI
    entry = {
        "timestamp": timestamp,
        "tag": tag,
        "msg": msg,
        "color": color.replace("\033", ""),
    }

    with log_lock:
        try:
            if not os.path.exists(LOG_FILE_PATH):
                init_log_file()

            with open(LOG_FILE_PATH, "r") as f:
                try:
                    data = json.load(f)
                except json.JSONDecodeError:
                    data = []
            if not isinstance(data, list):
                data = []

            data.append(entry)
            if len(data) > LOG_KEEP:
                data = data[-LOG_KEEP:]

            with open(LOG_FILE_PATH, "w") as f:
                json.dump(data, f)
        except Exception as e:
            print(f"Log Error: {e}")


def short(address: str) -> str:
    """Abbreviate a base58 address for log lines."""
    if not address or len(address) <= 10:
        return address or "?"
    return f"{address[:6]}...{address[-4:]}"
