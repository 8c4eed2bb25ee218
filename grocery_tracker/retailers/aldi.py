"""Price extraction profile for aldi.com.au product pages.

Aldi shows prices like "$0.72/0.18 kg" or "$3.99 per 1 kg" next to the title,
so lookups scan for $x.xx amounts and prefer the small one.
"""

from __future__ import annotations

from .base import BaseRetailer, RetailerProfile
from .tiers import (
    dom_evaluated,
    generic_sweep,
    raw_text,
    retailer_anchors,
    structured_data,
    was_text,
)

PRICE_AREA_SELECTORS = (
    "h1",
    '[class*="price"]',
    '[class*="Price"]',
    '[data-testid*="price"]',
    '[data-testid*="Price"]',
    "main",
    '[role="main"]',
)


class AldiRetailer(BaseRetailer):
    name = "aldi"
    display_name = "ALDI"

    profile = RetailerProfile(
        special_price_selector=".special-price",
        regular_price_selector=".price",
        sweep_selectors=PRICE_AREA_SELECTORS,
        sweep_pick="dollar_first_below",
        sweep_prefer_below=100,
        raw_text_scope="text",
        dom_current_selectors=PRICE_AREA_SELECTORS + ("body",),
        dom_dollar_amounts=True,
    )

    tiers = (
        dom_evaluated,
        structured_data,
        retailer_anchors,
        generic_sweep,
        raw_text,
    )
    was_fallbacks = (was_text,)
