"""Price extraction profile for woolworths.com.au product pages."""

from __future__ import annotations

from .base import BaseRetailer, RetailerProfile
from .tiers import (
    dom_evaluated,
    generic_sweep,
    raw_text,
    retailer_anchors,
    script_payload,
    structured_data,
    was_selectors,
    was_text,
)

PRICE_SELECTORS = (
    '[data-testid="product-price"]',
    '[data-testid="price"]',
    '[data-testid*="Price"]',
    '[data-testid*="price"]',
    ".product-price",
    ".price",
    '[class*="ProductPrice"]',
    '[class*="product-price"]',
    '[class*="Price"]',
    '[class*="price"]',
    'span[class*="price"]',
    'div[class*="price"]',
    'h2[class*="price"]',
    '[aria-label*="price"]',
    '[aria-label*="Price"]',
)

WAS_SELECTORS = (
    '[data-testid*="was"]',
    '[data-testid*="Was"]',
    '[class*="WasPrice"]',
    '[class*="was-price"]',
    '[class*="original-price"]',
    '[class*="OriginalPrice"]',
    ".was-price",
    ".original-price",
)


class WoolworthsRetailer(BaseRetailer):
    """Woolworths renders prices client-side but also ships JSON-LD and Next.js data."""

    name = "woolworths"
    display_name = "Woolworths"

    profile = RetailerProfile(
        anchor_attributes=("data-price", "data-current-price", "data-product-price"),
        sweep_selectors=PRICE_SELECTORS,
        was_selectors=WAS_SELECTORS,
        raw_text_scope="html",
        dom_current_selectors=PRICE_SELECTORS,
        dom_was_selectors=WAS_SELECTORS + ('span:has-text("was")',),
    )

    tiers = (
        dom_evaluated,
        structured_data,
        retailer_anchors,
        generic_sweep,
        script_payload,
        raw_text,
    )
    was_fallbacks = (was_selectors, was_text)
