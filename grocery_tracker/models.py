"""Data models for the price tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Store(str, Enum):
    """Retailers with a price extraction profile."""

    WOOLWORTHS = "woolworths"
    COLES = "coles"
    ALDI = "aldi"

    @classmethod
    def parse(cls, tag: str | Store) -> Store:
        """Resolve a store tag, rejecting anything outside the known set."""
        if isinstance(tag, cls):
            return tag
        normalized = (tag or "").strip().lower()
        for store in cls:
            if store.value == normalized:
                return store
        available = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown store '{tag}'. Available: {available}")


@dataclass(frozen=True)
class PriceBounds:
    """Inclusive window of plausible grocery prices."""

    low: float
    high: float

    def contains(self, value: float | None) -> bool:
        return value is not None and self.low <= value <= self.high


DEFAULT_BOUNDS = PriceBounds(0.01, 999.99)


@dataclass
class RawPage:
    """A fetched page: rendered HTML plus optional DOM-evaluated fragments."""

    url: str
    html: str
    dom_candidates: dict[str, str] | None = None


@dataclass(frozen=True)
class PriceCandidate:
    """Raw price text proposed by one extraction tier."""

    text: str
    tier: str


@dataclass(frozen=True)
class CandidatePair:
    """The current and was candidates found on a page."""

    current: PriceCandidate | None = None
    was: PriceCandidate | None = None


EMPTY_PAIR = CandidatePair()


@dataclass(frozen=True)
class PriceData:
    """Resolved price pair for a product link."""

    regular_price: float | None = None
    discount_price: float | None = None

    def __post_init__(self) -> None:
        if self.discount_price is not None and (
            self.regular_price is None or self.discount_price >= self.regular_price
        ):
            raise ValueError(
                f"discount_price {self.discount_price} must be below regular_price {self.regular_price}"
            )

    @property
    def is_empty(self) -> bool:
        return self.regular_price is None and self.discount_price is None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "regularPrice": self.regular_price,
            "discountPrice": self.discount_price,
        }


@dataclass
class ProductLink:
    """A tracked product page at one retailer."""

    id: int | None
    url: str
    store: Store
    regular_price: float | None = None
    discount_price: float | None = None
    last_refreshed: datetime | None = None
    grocery_item_id: str | None = None

    @property
    def has_no_price(self) -> bool:
        return self.regular_price is None and self.discount_price is None

    @property
    def price_data(self) -> PriceData | None:
        """Stored prices, or None when the link has never been priced."""
        if self.has_no_price:
            return None
        return PriceData(self.regular_price, self.discount_price)

    @classmethod
    def from_row(cls, row: dict) -> ProductLink:
        last_refreshed = row.get("last_refreshed")
        return cls(
            id=row["id"],
            url=row["url"],
            store=Store.parse(row["store"]),
            regular_price=row.get("regular_price"),
            discount_price=row.get("discount_price"),
            last_refreshed=datetime.fromisoformat(last_refreshed) if last_refreshed else None,
            grocery_item_id=row.get("grocery_item_id"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "store": self.store.value,
            "regularPrice": self.regular_price,
            "discountPrice": self.discount_price,
            "lastRefreshed": self.last_refreshed.isoformat() if self.last_refreshed else None,
            "groceryItemId": self.grocery_item_id,
        }


@dataclass
class PriceHistoryEntry:
    """Append-only record of a price change for a link."""

    link_id: int
    regular_price: float | None
    discount_price: float | None
    recorded_at: datetime


@dataclass
class RefreshOutcome:
    """Result of a refresh batch."""

    updated: list[ProductLink] = field(default_factory=list)
    skipped: int = 0
    missing: int = 0
    failed: int = 0
    history_rows: int = 0

    def to_dict(self) -> dict:
        return {
            "success": True,
            "updatedLinks": [link.to_dict() for link in self.updated],
            "skipped": self.skipped,
            "missing": self.missing,
            "failed": self.failed,
            "historyRows": self.history_rows,
        }
