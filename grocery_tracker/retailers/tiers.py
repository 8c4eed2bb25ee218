"""Extraction tiers shared by all retailers.

Every tier is a pure function ``(ParsedPage, RetailerProfile) -> CandidatePair``.
Tiers never raise on malformed input from the page: a block that fails to parse
is skipped and the next one is tried. The retailer decides which tiers run and
in which order.
"""

from __future__ import annotations

import json
import logging
import re
from collections import deque
from typing import Any

from bs4 import Tag

from ..models import EMPTY_PAIR, CandidatePair, PriceBounds, PriceCandidate
from ..utils import collapse_whitespace, extract_price, format_price
from .base import ParsedPage, RetailerProfile

logger = logging.getLogger(__name__)

MAX_PAYLOAD_DEPTH = 10

CURRENT_PRICE_KEYS = ("price", "currentPrice", "salePrice")
WAS_PRICE_KEYS = ("wasPrice", "originalPrice")

DOLLAR_PRICE_RE = re.compile(r"\$\s*[\d,]+\.\d{2}")
WAS_TEXT_RE = re.compile(r"\bwas\s*\$?\s*\d[\d,]*(?:\.\d+)?", re.IGNORECASE)
NEXT_DATA_ASSIGN_RE = re.compile(r"__NEXT_DATA__\s*=\s*({[\s\S]*?});?\s*(?:<|$)")
NEXT_DATA_PRICE_RE = re.compile(r'"price"\s*:\s*([\d.]+)')
FRAGMENT_PATTERNS = (
    re.compile(r'\{[^{}]*"price"[^{}]*\}'),
    re.compile(r'\{[^{}]*"Price"[^{}]*\}'),
    re.compile(r'\{[^{}]*"currentPrice"[^{}]*\}'),
)
FRAGMENT_KEY_PATTERNS = (
    re.compile(r'"price"\s*:\s*"?([\d.]+)"?', re.IGNORECASE),
    re.compile(r'"currentPrice"\s*:\s*"?([\d.]+)"?', re.IGNORECASE),
    re.compile(r'"salePrice"\s*:\s*"?([\d.]+)"?', re.IGNORECASE),
)
RAW_PRICE_PATTERNS = (
    DOLLAR_PRICE_RE,
    re.compile(r'"price"\s*:\s*"?[\d.]+"?', re.IGNORECASE),
    re.compile(r'"currentPrice"\s*:\s*"?[\d.]+"?', re.IGNORECASE),
    re.compile(r'"salePrice"\s*:\s*"?[\d.]+"?', re.IGNORECASE),
    re.compile(r"price[:\s]*\$?\s*[\d,]+\.\d{2}", re.IGNORECASE),
)


def _candidate(
    text: Any,
    tier: str,
    bounds: PriceBounds,
    *,
    skip_was_text: bool = False,
) -> PriceCandidate | None:
    """Wrap text as a candidate if it normalizes inside the bounds."""
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        text = format_price(float(text))
    if not isinstance(text, str):
        return None
    text = collapse_whitespace(text)
    if not text:
        return None
    if skip_was_text and "was" in text.lower():
        return None
    if not bounds.contains(extract_price(text)):
        return None
    return PriceCandidate(text=text, tier=tier)


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, str)):
        return extract_price(value)
    return None


def _element_text(el: Tag) -> str:
    return collapse_whitespace(el.get_text(" "))


def _select(scope: Tag, selector: str) -> list[Tag]:
    try:
        return scope.select(selector)
    except Exception as e:
        logger.debug(f"Skipping selector {selector!r}: {e}")
        return []


# --- Tier 1: fragments evaluated in the rendered DOM ---


def accept_dom_text(text: str | None, profile: RetailerProfile, *, was: bool = False) -> str | None:
    """Decide whether rendered element text is a usable price fragment.

    Used by the browser fetcher while it walks the live DOM.
    """
    text = collapse_whitespace(text)
    if not text:
        return None
    if profile.dom_dollar_amounts:
        found = _first_dollar_price(text, profile.dom_bounds, profile.sweep_prefer_below)
        return found[1] if found else None
    skip_was_text = profile.dom_skip_was_text and not was
    candidate = _candidate(text, "dom_evaluated", profile.dom_bounds, skip_was_text=skip_was_text)
    return candidate.text if candidate else None


def dom_was_text(text: str | None, profile: RetailerProfile) -> str | None:
    """Find a "was $x.xx" phrase in rendered text."""
    if match := WAS_TEXT_RE.search(collapse_whitespace(text)):
        if candidate := _candidate(match.group(0), "dom_evaluated", profile.dom_bounds):
            return candidate.text
    return None


def dom_evaluated(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    fragments = page.raw.dom_candidates or {}
    return CandidatePair(
        current=_candidate(fragments.get("current"), "dom_evaluated", profile.dom_bounds),
        was=_candidate(fragments.get("was"), "dom_evaluated", profile.dom_bounds),
    )


# --- Tier 2: JSON-LD structured data ---


def _ld_nodes(data: Any):
    """Yield every dict node of a JSON-LD document, including @graph members."""
    pending = deque([data])
    while pending:
        node = pending.popleft()
        if isinstance(node, list):
            pending.extend(node)
        elif isinstance(node, dict):
            yield node
            graph = node.get("@graph")
            if isinstance(graph, list):
                pending.extend(graph)


def _has_type(node: dict, type_name: str) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return type_name in node_type
    return node_type == type_name


def _offer_price(offer: Any) -> float | None:
    if not isinstance(offer, dict):
        return None
    for key in ("price", "lowPrice"):
        price = _number(offer.get(key))
        if price is not None and price > 0:
            return price
    price_spec = offer.get("priceSpecification")
    specs = price_spec if isinstance(price_spec, list) else [price_spec]
    for item in specs:
        if isinstance(item, dict):
            value = _number(item.get("value"))
            if value is not None and value > 0:
                return value
    return None


def _ld_price(node: dict) -> float | None:
    if _has_type(node, "Product"):
        offers = node.get("offers")
        for offer in offers if isinstance(offers, list) else [offers]:
            if (price := _offer_price(offer)) is not None:
                return price
        price = _number(node.get("price"))
        if price is not None and price > 0:
            return price
    if _has_type(node, "Offer") or _has_type(node, "AggregateOffer"):
        return _offer_price(node)
    return None


def structured_data(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    for script in page.soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except ValueError as e:
            logger.debug(f"Skipping malformed JSON-LD block on {page.raw.url}: {e}")
            continue

        for node in _ld_nodes(data):
            price = _ld_price(node)
            if profile.bounds.contains(price):
                return CandidatePair(current=PriceCandidate(format_price(price), "structured_data"))
    return EMPTY_PAIR


# --- Tier 3: retailer-specific anchors ---


def container_was(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    """Find a was price inside the retailer's product-buy container."""
    if not profile.container_selector:
        return EMPTY_PAIR
    container = page.soup.select_one(profile.container_selector)
    if container is None:
        return EMPTY_PAIR

    if profile.container_was_selector:
        for el in _select(container, profile.container_was_selector):
            if was := _candidate(_element_text(el), "retailer_anchors", profile.anchor_bounds):
                return CandidatePair(was=was)

    if match := WAS_TEXT_RE.search(_element_text(container)):
        if was := _candidate(match.group(0), "retailer_anchors", profile.anchor_bounds):
            return CandidatePair(was=was)
    return EMPTY_PAIR


def retailer_anchors(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    soup = page.soup
    bounds = profile.anchor_bounds
    tier = "retailer_anchors"

    for attr in profile.anchor_attributes:
        el = soup.find(attrs={attr: True})
        if el is not None and (current := _candidate(el.get(attr), tier, bounds)):
            return CandidatePair(current=current)

    if profile.special_price_selector:
        special = soup.select_one(profile.special_price_selector)
        regular = soup.select_one(profile.regular_price_selector) if profile.regular_price_selector else None
        regular_candidate = _candidate(_element_text(regular), tier, bounds) if regular is not None else None
        special_candidate = _candidate(_element_text(special), tier, bounds) if special is not None else None
        if special_candidate:
            return CandidatePair(current=special_candidate, was=regular_candidate)
        if regular_candidate:
            return CandidatePair(current=regular_candidate)

    was = container_was(page, profile).was

    for selector in profile.anchor_selectors:
        el = soup.select_one(selector)
        if el is not None and (current := _candidate(_element_text(el), tier, bounds)):
            return CandidatePair(current=current, was=was)

    if profile.container_selector and profile.container_price_selector:
        container = soup.select_one(profile.container_selector)
        if container is not None:
            for el in _select(container, profile.container_price_selector):
                current = _candidate(
                    _element_text(el),
                    tier,
                    bounds,
                    skip_was_text=profile.anchor_skip_was_text,
                )
                if current:
                    return CandidatePair(current=current, was=was)

    return CandidatePair(was=was)


# --- Tier 4: generic selector sweep ---


def _first_dollar_price(
    text: str,
    bounds: PriceBounds,
    prefer_below: float | None = None,
) -> tuple[float, str] | None:
    """Pick the first $x.xx amount below the preferred ceiling, else the first in bounds."""
    fallback = None
    for match in DOLLAR_PRICE_RE.finditer(text):
        value = extract_price(match.group(0))
        if not bounds.contains(value):
            continue
        if prefer_below is None or value < prefer_below:
            return value, match.group(0)
        if fallback is None:
            fallback = (value, match.group(0))
    return fallback


def generic_sweep(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    """Scan generic price-looking elements.

    ``sweep_pick`` controls the tie-break: ``first`` accepts the first element
    in bounds, ``lowest`` collects all and keeps the cheapest, ``dollar_first_below``
    looks for $x.xx amounts inside each element's text.
    """
    scope = None
    if profile.sweep_scope:
        scope = page.soup.select_one(profile.sweep_scope)
    if scope is None:
        scope = page.soup.body or page.soup

    collected: list[tuple[float, str]] = []
    for selector in profile.sweep_selectors:
        for el in _select(scope, selector):
            text = _element_text(el)
            if not text:
                continue
            if profile.sweep_skip_was_text and "was" in text.lower():
                continue

            if profile.sweep_pick == "dollar_first_below":
                if found := _first_dollar_price(text, profile.sweep_bounds, profile.sweep_prefer_below):
                    return CandidatePair(current=PriceCandidate(found[1], "generic_sweep"))
                continue

            value = extract_price(text)
            if not profile.sweep_bounds.contains(value):
                continue
            if profile.sweep_pick == "lowest":
                collected.append((value, text))
                continue
            return CandidatePair(current=PriceCandidate(text, "generic_sweep"))

    if collected:
        _, text = min(collected, key=lambda item: item[0])
        return CandidatePair(current=PriceCandidate(text, "generic_sweep"))
    return EMPTY_PAIR


# --- Tier 5: embedded script payloads ---


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def find_price_in_payload(data: Any, max_depth: int = MAX_PAYLOAD_DEPTH) -> tuple[float | None, float | None]:
    """Breadth-first search for (price, was_price) in a decoded script payload.

    Only keys mentioning "price" or "product" are followed, and nothing deeper
    than ``max_depth`` levels is visited, so huge or pathological payloads
    always terminate. Shallower values win over nested ones.
    """
    price = None
    was_price = None
    pending: deque[tuple[Any, int]] = deque([(data, 0)])

    while pending and (price is None or was_price is None):
        node, depth = pending.popleft()
        if depth > max_depth:
            continue

        if isinstance(node, list):
            pending.extend((item, depth + 1) for item in node if isinstance(item, (dict, list)))
            continue
        if not isinstance(node, dict):
            continue

        node_price = None
        for key in CURRENT_PRICE_KEYS:
            node_price = _positive_number(node.get(key)) or node_price
        node_was = None
        for key in WAS_PRICE_KEYS:
            node_was = _positive_number(node.get(key)) or node_was

        if price is None:
            price = node_price
        if was_price is None:
            was_price = node_was

        for key, value in node.items():
            lowered = str(key).lower()
            if isinstance(value, (dict, list)) and ("price" in lowered or "product" in lowered):
                pending.append((value, depth + 1))

    return price, was_price


def _next_data_pair(script: Tag, content: str, profile: RetailerProfile) -> CandidatePair:
    if script.get("id") == "__NEXT_DATA__":
        raw_json = content
    elif "__NEXT_DATA__" in content and (match := NEXT_DATA_ASSIGN_RE.search(content)):
        raw_json = match.group(1)
    else:
        return EMPTY_PAIR

    try:
        data = json.loads(raw_json)
    except ValueError:
        match = NEXT_DATA_PRICE_RE.search(content)
        current = _candidate(match.group(1), "script_payload", profile.bounds) if match else None
        return CandidatePair(current=current)

    roots = [data]
    page_props = data.get("props", {}).get("pageProps") if isinstance(data, dict) else None
    if isinstance(page_props, dict):
        roots.insert(0, page_props)

    for root in roots:
        price, was_price = find_price_in_payload(root)
        current = _candidate(price, "script_payload", profile.bounds) if price else None
        was = _candidate(was_price, "script_payload", profile.bounds) if was_price else None
        if current or was:
            return CandidatePair(current=current, was=was)
    return EMPTY_PAIR


def _fragment_values(obj: dict) -> tuple[Any, Any]:
    current = None
    for key in ("price", "currentPrice"):
        if obj.get(key):
            current = obj[key]
    sale = obj.get("salePrice") or obj.get("discountPrice")
    was = obj.get("wasPrice") or obj.get("originalPrice")
    if sale:
        if not was and obj.get("price") and obj.get("price") != sale:
            was = obj["price"]
        current = sale
    return current, was


def _fragment_pair(script: Tag, content: str, profile: RetailerProfile) -> CandidatePair:
    if not any(marker in content for marker in ('"price"', "'price'", '"Price"')):
        return EMPTY_PAIR

    fragments: list[str] = []
    for pattern in FRAGMENT_PATTERNS:
        if fragments := pattern.findall(content):
            break

    first_was = None
    for fragment in fragments:
        try:
            obj = json.loads(fragment)
        except ValueError:
            for key_pattern in FRAGMENT_KEY_PATTERNS:
                if match := key_pattern.search(fragment):
                    if current := _candidate(match.group(1), "script_payload", profile.bounds):
                        return CandidatePair(current=current, was=first_was)
            continue
        if not isinstance(obj, dict):
            continue

        current_value, was_value = _fragment_values(obj)
        was = _candidate(was_value, "script_payload", profile.bounds)
        current = _candidate(current_value, "script_payload", profile.bounds)
        if current:
            return CandidatePair(current=current, was=was or first_was)
        first_was = first_was or was

    return CandidatePair(was=first_was)


def script_payload(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    was = None
    for script in page.soup.find_all("script"):
        if script.get("type") == "application/ld+json":
            continue
        content = script.string or script.get_text() or ""
        if not content.strip():
            continue

        for finder in (_next_data_pair, _fragment_pair):
            try:
                found = finder(script, content, profile)
            except Exception as e:
                logger.debug(f"Skipping script payload on {page.raw.url}: {e!r}")
                continue
            was = was or found.was
            if found.current:
                return CandidatePair(current=found.current, was=was)
    return CandidatePair(was=was)


# --- Tier 6: raw text ---


def raw_text(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    source = page.html if profile.raw_text_scope == "html" else page.text
    for pattern in RAW_PRICE_PATTERNS:
        for match in pattern.finditer(source):
            if current := _candidate(match.group(0), "raw_text", profile.bounds):
                return CandidatePair(current=current)
    return EMPTY_PAIR


# --- Was fallbacks ---


def was_selectors(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    for selector in profile.was_selectors:
        for el in _select(page.soup, selector)[:1]:
            if was := _candidate(_element_text(el), "was_text", profile.was_bounds):
                return CandidatePair(was=was)
    return EMPTY_PAIR


def was_text(page: ParsedPage, profile: RetailerProfile) -> CandidatePair:
    if match := WAS_TEXT_RE.search(page.text):
        return CandidatePair(was=_candidate(match.group(0), "was_text", profile.was_bounds))
    return EMPTY_PAIR
