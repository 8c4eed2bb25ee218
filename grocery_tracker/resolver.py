"""Turn current/was price candidates into a regular/discount pair."""

from __future__ import annotations

from .models import CandidatePair, PriceCandidate, PriceData
from .utils import extract_price


def resolve_price(current: PriceCandidate | str | None, was: PriceCandidate | str | None = None) -> PriceData:
    """Resolve the public price pair.

    A discount is only reported when the was price is strictly higher than
    the current price; equal or inverted pairs fall back to a regular price.
    """
    current_price = extract_price(_text(current))
    if current_price is None:
        return PriceData()

    was_price = extract_price(_text(was))
    if was_price is not None and was_price > current_price:
        return PriceData(regular_price=was_price, discount_price=current_price)
    return PriceData(regular_price=current_price)


def resolve_pair(pair: CandidatePair) -> PriceData:
    return resolve_price(pair.current, pair.was)


def _text(candidate: PriceCandidate | str | None) -> str | None:
    if isinstance(candidate, PriceCandidate):
        return candidate.text
    return candidate
