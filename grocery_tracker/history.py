"""Decide when a refreshed price belongs in the price history."""

from __future__ import annotations

from .models import PriceData


def should_record_history(old: PriceData | None, new: PriceData) -> bool:
    """History is a change log: record first observations and changes only."""
    if old is None or old.regular_price is None:
        return True
    return (old.regular_price, old.discount_price) != (new.regular_price, new.discount_price)
