from __future__ import annotations

import os
from urllib.parse import urlparse


def _int_env(name: str, default: int, *, minimum: int = 0) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


BASE_URL: str = os.getenv("MOTCHILL_BASE_URL", "https://motchilltv.chat").rstrip("/")
SOURCE_HOST: str = urlparse(BASE_URL).netloc
ID_PREFIX = "vietsub-"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

# "playwright" drives headless Chromium; "http" fetches static HTML with requests.
BROWSER: str = os.getenv("MOTCHILL_BROWSER", "playwright").strip().lower() or "playwright"
HEADLESS: bool = _bool_env("MOTCHILL_HEADLESS", True)

NAV_TIMEOUT_MS: int = _int_env("MOTCHILL_NAV_TIMEOUT_MS", 30000, minimum=1000)
LISTING_SETTLE_MS: int = _int_env("MOTCHILL_LISTING_SETTLE_MS", 3000)
DETAIL_SETTLE_MS: int = _int_env("MOTCHILL_DETAIL_SETTLE_MS", 3000)
PLAYER_SETTLE_MS: int = _int_env("MOTCHILL_PLAYER_SETTLE_MS", 5000)
PROBE_SETTLE_MS: int = _int_env("MOTCHILL_PROBE_SETTLE_MS", 3000)
POLL_INTERVAL_MS: int = _int_env("MOTCHILL_POLL_INTERVAL_MS", 250, minimum=10)

MAX_CATALOG_CANDIDATES = 50
MAX_CATALOG_DETAILS = 20

HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = _int_env("PORT", 7000, minimum=1)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
