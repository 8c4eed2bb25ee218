"""Shared utilities for price extraction."""

from __future__ import annotations

import math
import re

CURRENCY_SYMBOLS = ("A$", "AU$", "AUD", "$", "€", "£")

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_price(price_text: str | int | float | None) -> float | None:
    """Parse price text into an amount.

    Handles formats like:
    - "$12.99"
    - "$1,234.50"
    - "was $4.00"
    - "$0.72/0.18 kg" (first number wins)
    - "$.99"
    """
    if price_text is None or isinstance(price_text, bool):
        return None
    if isinstance(price_text, (int, float)):
        value = float(price_text)
        return value if math.isfinite(value) else None

    text = price_text.replace("\xa0", " ")
    for symbol in CURRENCY_SYMBOLS:
        text = text.replace(symbol, " ")

    if not (match := _NUMBER_RE.search(text)):
        return None

    try:
        value = float(match.group(0).replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def format_price(value: float) -> str:
    """Render a numeric price without exponent notation."""
    return f"{value:f}".rstrip("0").rstrip(".") or "0"


def collapse_whitespace(text: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()
