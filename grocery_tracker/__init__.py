"""Grocery price extraction and refresh scheduling."""

from .history import should_record_history
from .models import PriceData, ProductLink, RawPage, Store
from .resolver import resolve_price
from .scheduler import is_refresh_due
from .scraper import extract_price_data, scrape_price
from .utils import extract_price

__all__ = [
    "PriceData",
    "ProductLink",
    "RawPage",
    "Store",
    "extract_price",
    "extract_price_data",
    "is_refresh_due",
    "resolve_price",
    "scrape_price",
    "should_record_history",
]
