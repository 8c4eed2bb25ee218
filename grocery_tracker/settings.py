"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Monday is 0; Wednesday matches the weekly catalogue changeover.
ANCHOR_WEEKDAY = int(os.environ.get("GROCERY_TRACKER_ANCHOR_WEEKDAY", "2")) % 7

DB_PATH = Path(
    os.environ.get(
        "GROCERY_TRACKER_DB",
        Path(__file__).parent.parent / "output" / "prices.db",
    )
)

NAVIGATION_TIMEOUT_MS = int(os.environ.get("GROCERY_TRACKER_NAV_TIMEOUT_MS", "30000"))
SETTLE_DELAY_MS = int(os.environ.get("GROCERY_TRACKER_SETTLE_MS", "2000"))
USER_AGENT = os.environ.get("GROCERY_TRACKER_USER_AGENT") or DEFAULT_USER_AGENT

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]
