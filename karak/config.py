"""
Centralised configuration constants and environment helpers.
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Storage ──────────────────────────────────────────────────────────
DB_FILE = os.getenv("KARAK_DB_FILE", "database.json")

# ── Logging ──────────────────────────────────────────────────────────
LOG_FILE = os.getenv("KARAK_LOG_FILE", "karak.log")
LOG_LEVEL = os.getenv("KARAK_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# ── Input validation ─────────────────────────────────────────────────
USERNAME_PATTERN = r"^[a-zA-Z][a-zA-Z0-9_]{2,19}$"
AVS_COUNTRY_PREFIX = "756"
MIN_PASSWORD_LENGTH = 9
MAX_PASSWORD_LENGTH = 63
MIN_PASSWORD_SCORE = 3  # zxcvbn score, 0 to 4

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = int(os.getenv("TOKEN_EXPIRY_HOURS", "24"))
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value


def configure_logging(log_file: str = LOG_FILE, level: str = LOG_LEVEL) -> None:
    """Send every module logger to *log_file*; the console stays for the operator."""
    logging.basicConfig(filename=log_file, level=level, format=LOG_FORMAT)
