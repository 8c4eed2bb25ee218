"""Price extraction profile for coles.com.au product pages."""

from __future__ import annotations

from ..models import PriceBounds
from .base import BaseRetailer, RetailerProfile
from .tiers import (
    container_was,
    dom_evaluated,
    generic_sweep,
    retailer_anchors,
    structured_data,
    was_text,
)

PRODUCT_BUY_CONTAINER = ".coles-targeting-ProductBuyProductBuyContainer"

# Unit pricing ("$1.20 per 100g") lives in .price__calculation_method.
CONTAINER_PRICE_SELECTOR = (
    '.price__value, [class*="price"]:not(.price__calculation_method), '
    '[data-price], [data-testid*="price"]'
)
CONTAINER_WAS_SELECTOR = '[class*="was"], [class*="Was"], [class*="original"]'

MAIN_PRICE_SELECTORS = (
    '[data-testid="product-price"]',
    '[data-testid="price"]',
    '[class*="ProductPrice"]',
    '[class*="product-price"]',
    '[class*="current-price"]',
    '[class*="CurrentPrice"]',
    "[data-price]",
)


class ColesRetailer(BaseRetailer):
    """Coles exposes the shelf price in a targeted product-buy widget."""

    name = "coles"
    display_name = "Coles"

    profile = RetailerProfile(
        anchor_selectors=(".price__value",),
        anchor_bounds=PriceBounds(0.01, 1000),
        anchor_skip_was_text=True,
        container_selector=PRODUCT_BUY_CONTAINER,
        container_price_selector=CONTAINER_PRICE_SELECTOR,
        container_was_selector=CONTAINER_WAS_SELECTOR,
        sweep_scope="main",
        sweep_selectors=MAIN_PRICE_SELECTORS,
        # Most grocery items are under $50; larger numbers here are usually noise.
        sweep_bounds=PriceBounds(0.01, 50),
        sweep_skip_was_text=True,
        sweep_pick="lowest",
        dom_current_selectors=(
            ".price__value",
            f"{PRODUCT_BUY_CONTAINER} .price__value",
            f'{PRODUCT_BUY_CONTAINER} [class*="price"]:not(.price__calculation_method)',
            f"{PRODUCT_BUY_CONTAINER} [data-price]",
            f'{PRODUCT_BUY_CONTAINER} [data-testid*="price"]',
        ),
        dom_was_selectors=(
            f'{PRODUCT_BUY_CONTAINER} [class*="was"]',
            f'{PRODUCT_BUY_CONTAINER} [class*="Was"]',
            f'{PRODUCT_BUY_CONTAINER} [class*="original"]',
        ),
        dom_bounds=PriceBounds(0.01, 1000),
        dom_skip_was_text=True,
    )

    tiers = (
        dom_evaluated,
        structured_data,
        retailer_anchors,
        generic_sweep,
    )
    was_fallbacks = (container_was, was_text)
