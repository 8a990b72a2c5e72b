"""Application configuration."""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DB_PATH = BASE_DIR / "data" / "fund_watch.db"
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{DB_PATH}"


def _csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Upstream fund data (public, no auth)
FUND_DIRECTORY_URL = os.getenv(
    "FUND_DIRECTORY_URL", "https://fund.eastmoney.com/js/fundcode_search.js"
)
FUND_NAV_URL = os.getenv("FUND_NAV_URL", "https://fundgz.1234567.com.cn/js")

# OAuth2 gateway (fund detail + DingTalk push)
GATEWAY_BASE_URL = os.getenv("GATEWAY_BASE_URL", "https://maiqishare.xyz/open-api")
GATEWAY_CLIENT_ID = os.getenv("GATEWAY_CLIENT_ID", "test_app")
GATEWAY_CLIENT_SECRET = os.getenv("GATEWAY_CLIENT_SECRET", "test_secret")
GATEWAY_SCOPE = os.getenv("GATEWAY_SCOPE", "read,write")
DEFAULT_WEBHOOK_URL = os.getenv("DEFAULT_WEBHOOK_URL") or None

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))
HTTP_VERIFY_SSL = os.getenv("HTTP_VERIFY_SSL", "true").lower() not in ("0", "false", "no")

# Cache settings (in-memory)
DIRECTORY_CACHE_TTL = 24 * 60 * 60  # seconds
TOKEN_CACHE_TTL = 60 * 60  # seconds
NAV_HISTORY_CACHE_TTL = 60 * 60  # seconds

# Fund list filters applied when the client sends none
DEFAULT_DENY_LIST = _csv_env("DEFAULT_DENY_LIST", "货币,债券,纯债,后端")
DEFAULT_ALLOW_LIST = _csv_env("DEFAULT_ALLOW_LIST", "联接C,增强C,指数C")
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "Asia/Shanghai")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Ensure data directory exists (only needed for local SQLite, skip if DATABASE_URL is overridden)
if not os.getenv("DATABASE_URL"):
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
