#!/usr/bin/env python3
"""CLI entry point for the grocery price tracker."""

import argparse
import asyncio
import json
import logging
import sys

from .db import PriceDatabase
from .fetcher import BrowserPageFetcher, StaticPageFetcher
from .models import RefreshOutcome, Store
from .refresh import PriceRefresher
from .retailers import get_retailer_display_name, list_retailers
from .retailers.browser_pool import BrowserPool
from .scheduler import RefreshScheduler, last_anchor
from .scraper import scrape_price


def print_outcome(outcome: RefreshOutcome) -> None:
    """Print refresh summary."""
    print(f"\nUpdated {len(outcome.updated)} link(s):")
    for link in outcome.updated[:10]:
        discount = f" (now {link.discount_price})" if link.discount_price is not None else ""
        print(f"  {link.id}. [{link.store.value}] {link.regular_price}{discount} - {link.url}")
    if len(outcome.updated) > 10:
        print(f"  ... and {len(outcome.updated) - 10} more")
    print(
        f"Skipped {outcome.skipped}, no price {outcome.missing}, "
        f"failed {outcome.failed}, history rows {outcome.history_rows}"
    )


async def run_scrape(url: str, store: Store, static: bool) -> int:
    fetcher = StaticPageFetcher() if static else BrowserPageFetcher()
    try:
        price = await scrape_price(url, store, fetcher=fetcher)
    finally:
        await BrowserPool.shutdown()
    print(json.dumps({"url": url, "store": store.value, "priceData": price.to_dict()}, indent=2))
    return 0 if not price.is_empty else 1


async def run_refresh(db: PriceDatabase, grocery_item_id: str | None, force: bool, as_json: bool = False) -> int:
    refresher = PriceRefresher(db)
    try:
        if grocery_item_id:
            outcome = await refresher.refresh_grocery_item(grocery_item_id, force=force)
        else:
            outcome = await refresher.refresh_all(force=force)
    finally:
        await BrowserPool.shutdown()
    if as_json:
        print(json.dumps(outcome.to_dict(), indent=2))
    else:
        print_outcome(outcome)
    return 0


async def run_watch(db: PriceDatabase, interval: int) -> None:
    scheduler = RefreshScheduler(PriceRefresher(db), check_interval=interval)
    scheduler.start()
    try:
        while scheduler.is_running:
            await asyncio.sleep(1)
    finally:
        scheduler.stop()
        await BrowserPool.shutdown()


def print_history(db: PriceDatabase, link_id: int) -> int:
    link = db.get_link(link_id)
    if link is None:
        print(f"Error: Unknown product link {link_id}", file=sys.stderr)
        return 1
    print(f"[{link.store.value}] {link.url}")
    for entry in db.get_price_history(link_id):
        discount = f" (discount {entry.discount_price})" if entry.discount_price is not None else ""
        print(f"  {entry.recorded_at.isoformat()}  {entry.regular_price}{discount}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Grocery price tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m grocery_tracker.cli --scrape URL --store coles       # Scrape one page
  python -m grocery_tracker.cli --add-link URL --store aldi --item milk
  python -m grocery_tracker.cli --refresh                         # Refresh all due links
  python -m grocery_tracker.cli --refresh --item milk --force     # Refresh one item now
  python -m grocery_tracker.cli --watch --interval 3600           # Refresh periodically
  python -m grocery_tracker.cli --history 3                       # Show a link's history
  python -m grocery_tracker.cli --delete-link 3                   # Stop tracking a link
        """,
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--scrape", metavar="URL", help="Scrape a single product page")
    group.add_argument("--add-link", metavar="URL", help="Track a product page")
    group.add_argument("--refresh", "-r", action="store_true", help="Refresh prices of due links")
    group.add_argument("--watch", "-w", action="store_true", help="Refresh periodically in the foreground")
    group.add_argument("--history", type=int, metavar="LINK_ID", help="Show the price history of a link")
    group.add_argument("--links", action="store_true", help="List tracked links")
    group.add_argument("--delete-link", type=int, metavar="LINK_ID", help="Stop tracking a link and drop its history")
    group.add_argument("--list-stores", "-l", action="store_true", help="List supported stores")

    parser.add_argument("--store", "-s", help="Store tag for --scrape / --add-link")
    parser.add_argument("--item", help="Grocery item ID for --add-link / --refresh")
    parser.add_argument("--static", action="store_true", help="Fetch without a browser (no JavaScript)")
    parser.add_argument("--force", action="store_true", help="Ignore the weekly refresh cadence")
    parser.add_argument("--json", action="store_true", help="Print --refresh results as JSON")
    parser.add_argument("--interval", type=int, default=3600, help="Seconds between --watch passes")
    parser.add_argument("--db", help="Path to the SQLite database")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.list_stores:
        print("Supported stores:")
        for name in list_retailers():
            print(f"  - {name} ({get_retailer_display_name(name)})")
        print(f"Current refresh anchor: {last_anchor().isoformat()}")
        return 0

    store = None
    if args.scrape or args.add_link:
        try:
            store = Store.parse(args.store or "")
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if args.scrape:
        return asyncio.run(run_scrape(args.scrape, store, args.static))

    db = PriceDatabase(db_path=args.db)

    if args.add_link:
        link_id = db.add_link(args.add_link, store, grocery_item_id=args.item)
        print(f"Tracking {store.value} link {link_id}: {args.add_link}")
        return 0

    if args.links:
        for link in db.get_links(grocery_item_id=args.item):
            print(json.dumps(link.to_dict()))
        return 0

    if args.history is not None:
        return print_history(db, args.history)

    if args.delete_link is not None:
        if not db.delete_link(args.delete_link):
            print(f"Error: Unknown product link {args.delete_link}", file=sys.stderr)
            return 1
        print(f"Deleted link {args.delete_link}")
        return 0

    if args.watch:
        print("Starting refresh loop...")
        print("Press Ctrl+C to stop")
        try:
            asyncio.run(run_watch(db, args.interval))
        except KeyboardInterrupt:
            pass
        return 0

    try:
        return asyncio.run(run_refresh(db, args.item, args.force, as_json=args.json))
    except LookupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
