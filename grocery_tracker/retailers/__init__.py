"""Retailer registry.

Retailers are auto-discovered from modules in this package. Any `BaseRetailer`
subclass with a non-empty `name` attribute will be registered; every name must
be a known `Store` tag.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil

from ..models import Store
from .base import BaseRetailer, RetailerProfile

__all__ = [
    "BaseRetailer",
    "RetailerProfile",
    "get_retailer",
    "list_retailers",
    "get_retailer_display_name",
]

logger = logging.getLogger(__name__)

_INFRASTRUCTURE_MODULES = {"base", "browser_pool", "tiers"}


def _discover_retailers() -> dict[str, type[BaseRetailer]]:
    discovered: dict[str, type[BaseRetailer]] = {}
    failures: dict[str, Exception] = {}

    # Walk sibling modules under this package (grocery_tracker.retailers.*).
    for module_info in pkgutil.iter_modules(__path__):  # type: ignore[name-defined]
        if module_info.ispkg:
            continue
        module_name = module_info.name
        if module_name.startswith("_") or module_name in _INFRASTRUCTURE_MODULES:
            continue

        full_name = f"{__name__}.{module_name}"
        try:
            module = importlib.import_module(full_name)
        except Exception as exc:  # pragma: no cover - depends on optional modules
            failures[full_name] = exc
            continue

        for _, obj in inspect.getmembers(module, inspect.isclass):
            if obj is BaseRetailer or not issubclass(obj, BaseRetailer):
                continue
            retailer_name = getattr(obj, "name", None)
            if not isinstance(retailer_name, str) or not retailer_name.strip():
                continue

            try:
                Store.parse(retailer_name)
            except ValueError:
                logger.warning("Retailer %s.%s has unknown store tag '%s'", obj.__module__, obj.__name__, retailer_name)
                continue

            if retailer_name in discovered and discovered[retailer_name] is not obj:
                logger.warning(
                    "Duplicate retailer name '%s': %s.%s and %s.%s (keeping first)",
                    retailer_name,
                    discovered[retailer_name].__module__,
                    discovered[retailer_name].__name__,
                    obj.__module__,
                    obj.__name__,
                )
                continue
            discovered[retailer_name] = obj

    for mod, exc in failures.items():
        logger.warning("Failed to import retailer module %s: %r", mod, exc)

    return dict(sorted(discovered.items(), key=lambda kv: kv[0]))


RETAILERS: dict[str, type[BaseRetailer]] = _discover_retailers()


def get_retailer(store: str | Store) -> BaseRetailer:
    """Get a retailer instance by store tag."""
    name = Store.parse(store).value
    if name not in RETAILERS:
        available = ", ".join(RETAILERS.keys())
        raise ValueError(f"No extraction profile for store '{name}'. Available: {available}")
    return RETAILERS[name]()


def list_retailers() -> list[str]:
    """List all store tags with an extraction profile."""
    return list(RETAILERS.keys())


def get_retailer_display_name(store: str | Store) -> str:
    """Get a human-friendly display name for a store."""
    name = store.value if isinstance(store, Store) else store
    cls = RETAILERS.get(name)
    return getattr(cls, "display_name", name.title()) if cls else name
