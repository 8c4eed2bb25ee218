"""Base retailer class and the tiered extraction pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Callable

from bs4 import BeautifulSoup

from ..models import (
    DEFAULT_BOUNDS,
    CandidatePair,
    PriceBounds,
    PriceCandidate,
    PriceData,
    RawPage,
)
from ..resolver import resolve_pair
from ..utils import collapse_whitespace, extract_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetailerProfile:
    """Scraped-site knowledge for one retailer.

    Selectors and bounds go stale when a retailer changes its markup; they
    live here so the tier functions never hard-code them.
    """

    bounds: PriceBounds = DEFAULT_BOUNDS
    anchor_attributes: tuple[str, ...] = ()
    anchor_selectors: tuple[str, ...] = ()
    anchor_bounds: PriceBounds = DEFAULT_BOUNDS
    anchor_skip_was_text: bool = False
    # Product-buy widget that scopes anchor and was lookups.
    container_selector: str | None = None
    container_price_selector: str | None = None
    container_was_selector: str | None = None
    special_price_selector: str | None = None
    regular_price_selector: str | None = None
    sweep_scope: str | None = None
    sweep_selectors: tuple[str, ...] = ()
    sweep_bounds: PriceBounds = DEFAULT_BOUNDS
    sweep_skip_was_text: bool = False
    # "first", "lowest", or "dollar_first_below" (see tiers.generic_sweep).
    sweep_pick: str = "first"
    sweep_prefer_below: float | None = None
    was_selectors: tuple[str, ...] = ()
    was_bounds: PriceBounds = DEFAULT_BOUNDS
    raw_text_scope: str = "html"
    # DOM queries run by the browser fetcher against the rendered page.
    dom_current_selectors: tuple[str, ...] = ()
    dom_was_selectors: tuple[str, ...] = ()
    dom_bounds: PriceBounds = DEFAULT_BOUNDS
    dom_skip_was_text: bool = False
    dom_dollar_amounts: bool = False


class ParsedPage:
    """A RawPage with its HTML parsed once for all tiers."""

    def __init__(self, raw: RawPage):
        self.raw = raw
        try:
            self.soup = BeautifulSoup(raw.html or "", "lxml")
        except Exception as e:
            logger.warning(f"Failed to parse HTML for {raw.url}: {e}")
            self.soup = BeautifulSoup("", "lxml")

    @property
    def html(self) -> str:
        return self.raw.html or ""

    @cached_property
    def text(self) -> str:
        """Visible page text (body when present)."""
        root = self.soup.body or self.soup
        return collapse_whitespace(root.get_text(" "))


Tier = Callable[[ParsedPage, RetailerProfile], CandidatePair]


class BaseRetailer:
    """A retailer: a profile plus an ordered tuple of extraction tiers."""

    name: str
    display_name: str
    profile: RetailerProfile = RetailerProfile()
    tiers: tuple[Tier, ...] = ()
    was_fallbacks: tuple[Tier, ...] = ()

    def extract_candidates(self, raw: RawPage) -> CandidatePair:
        """Run the tiers in order and stop at the first accepted current price."""
        page = ParsedPage(raw)
        current: PriceCandidate | None = None
        was: PriceCandidate | None = None

        for tier in self.tiers:
            try:
                found = tier(page, self.profile)
            except Exception as e:
                logger.debug(f"[{self.name}] Tier {tier.__name__} failed: {e!r}")
                continue

            if was is None and self._accepts(found.was):
                was = found.was
            if self._accepts(found.current):
                current = found.current
                logger.debug(f"[{self.name}] Current price from {current.tier}: {current.text!r}")
                break

        if was is None:
            for fallback in self.was_fallbacks:
                try:
                    found = fallback(page, self.profile)
                except Exception as e:
                    logger.debug(f"[{self.name}] Was fallback {fallback.__name__} failed: {e!r}")
                    continue
                if self._accepts(found.was):
                    was = found.was
                    break

        return CandidatePair(current=current, was=was)

    def extract(self, raw: RawPage) -> PriceData:
        """Extract and resolve the price pair for a fetched page."""
        return resolve_pair(self.extract_candidates(raw))

    @staticmethod
    def _accepts(candidate: PriceCandidate | None) -> bool:
        return candidate is not None and extract_price(candidate.text) is not None
