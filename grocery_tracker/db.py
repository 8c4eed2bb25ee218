"""SQLite storage for tracked product links and their price history."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from . import settings
from .models import PriceData, PriceHistoryEntry, ProductLink, Store


class PriceDatabase:
    """SQLite database for product links, price history and refresh runs."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path) if db_path else settings.DB_PATH
        self._init_db()

    def _init_db(self):
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS product_links (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    grocery_item_id TEXT,
                    url TEXT NOT NULL,
                    store TEXT NOT NULL,
                    regular_price REAL,
                    discount_price REAL,
                    last_refreshed TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_product_links_item
                ON product_links (grocery_item_id)
            """)

            # Append-only change log per link
            conn.execute("""
                CREATE TABLE IF NOT EXISTS price_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_link_id INTEGER NOT NULL,
                    regular_price REAL,
                    discount_price REAL,
                    recorded_at TEXT NOT NULL,
                    FOREIGN KEY (product_link_id) REFERENCES product_links(id) ON DELETE CASCADE
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_price_history_link_time
                ON price_history (product_link_id, recorded_at)
            """)

            # Refresh runs - history of batch refreshes
            conn.execute("""
                CREATE TABLE IF NOT EXISTS refresh_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    status TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    links_updated INTEGER,
                    links_failed INTEGER,
                    error_message TEXT,
                    duration_seconds REAL
                )
            """)

            conn.commit()

    # --- Product Links ---

    def add_link(self, url: str, store: str | Store, grocery_item_id: str | None = None) -> int:
        """Start tracking a product URL and return the link ID."""
        store = Store.parse(store)
        now = datetime.now().isoformat()
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO product_links (grocery_item_id, url, store, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (grocery_item_id, url, store.value, now),
            )
            conn.commit()
            return cursor.lastrowid

    def get_link(self, link_id: int) -> ProductLink | None:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM product_links WHERE id = ?",
                (link_id,),
            ).fetchone()
            return ProductLink.from_row(dict(row)) if row else None

    def get_links(self, grocery_item_id: str | None = None) -> list[ProductLink]:
        """Get tracked links, optionally only those of one grocery item."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            if grocery_item_id is not None:
                cursor = conn.execute(
                    "SELECT * FROM product_links WHERE grocery_item_id = ? ORDER BY id",
                    (grocery_item_id,),
                )
            else:
                cursor = conn.execute("SELECT * FROM product_links ORDER BY id")
            return [ProductLink.from_row(dict(row)) for row in cursor.fetchall()]

    def record_refresh(
        self,
        link_id: int,
        price: PriceData,
        refreshed_at: datetime,
        add_history: bool = False,
    ) -> ProductLink:
        """Store a refreshed price pair and return the updated link.

        The price update and the optional history row are written in one
        transaction; if either fails, neither is stored.
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                UPDATE product_links
                SET regular_price = ?, discount_price = ?, last_refreshed = ?
                WHERE id = ?
                """,
                (price.regular_price, price.discount_price, refreshed_at.isoformat(), link_id),
            )
            if cursor.rowcount == 0:
                raise LookupError(f"Product link {link_id} not found")

            if add_history:
                conn.execute(
                    """
                    INSERT INTO price_history (product_link_id, regular_price, discount_price, recorded_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (link_id, price.regular_price, price.discount_price, refreshed_at.isoformat()),
                )
            conn.commit()

        return self.get_link(link_id)

    def delete_link(self, link_id: int) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM price_history WHERE product_link_id = ?", (link_id,))
            cursor = conn.execute("DELETE FROM product_links WHERE id = ?", (link_id,))
            conn.commit()
            return cursor.rowcount > 0

    # --- Price History ---

    def get_price_history(self, link_id: int) -> list[PriceHistoryEntry]:
        """Get the price history for a link, newest first."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """
                SELECT * FROM price_history
                WHERE product_link_id = ?
                ORDER BY recorded_at DESC, id DESC
                """,
                (link_id,),
            )
            return [
                PriceHistoryEntry(
                    link_id=row["product_link_id"],
                    regular_price=row["regular_price"],
                    discount_price=row["discount_price"],
                    recorded_at=datetime.fromisoformat(row["recorded_at"]),
                )
                for row in cursor.fetchall()
            ]

    # --- Refresh Runs ---

    def create_refresh_run(self, started_at: str) -> int:
        """Create a new refresh run record and return its ID."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO refresh_runs (status, started_at)
                VALUES ('running', ?)
                """,
                (started_at,),
            )
            conn.commit()
            return cursor.lastrowid

    def complete_refresh_run(
        self,
        run_id: int,
        status: str,
        completed_at: str,
        links_updated: int | None = None,
        links_failed: int | None = None,
        error_message: str | None = None,
        duration_seconds: float | None = None,
    ):
        """Update a refresh run with completion details."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                UPDATE refresh_runs
                SET status = ?, completed_at = ?, links_updated = ?,
                    links_failed = ?, error_message = ?, duration_seconds = ?
                WHERE id = ?
                """,
                (status, completed_at, links_updated, links_failed, error_message, duration_seconds, run_id),
            )
            conn.commit()

    def get_refresh_runs(self, limit: int = 20) -> list[dict]:
        """Get the most recent refresh runs."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                "SELECT * FROM refresh_runs ORDER BY started_at DESC, id DESC LIMIT ?",
                (limit,),
            )
            return [dict(row) for row in cursor.fetchall()]
