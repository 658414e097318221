"""SQLite database management for the local-first finance store.

Handles connection management and provides query methods for:
- Categories, credit cards, fixed bills and transactions (local records
  carrying their own sync status)
- Sync state tracking
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ..models import EntityKind
from .mixins.records import RecordsMixin
from .mixins.sync_state import SyncStateMixin
from .tables import TABLES

__all__ = ["Database"]

logger = logging.getLogger(__name__)

_SYNC_COLUMNS = """
    local_id TEXT PRIMARY KEY,
    server_id TEXT UNIQUE,
    sync_status TEXT NOT NULL DEFAULT 'pending',
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    last_sync_attempt TIMESTAMP,
    sync_error TEXT,
    user_id TEXT NOT NULL DEFAULT ''
"""


class Database(RecordsMixin, SyncStateMixin):
    """SQLite database manager for synchronized finance records."""

    def __init__(self, db_path: Union[Path, str]):
        """Initialize database connection."""
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a persistent database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30.0)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=30000")
        return self._conn

    def close(self):
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _init_schema(self):
        """Create database tables if they don't exist."""
        with self._connection() as conn:
            conn.executescript(f"""
                CREATE TABLE IF NOT EXISTS categories (
                    {_SYNC_COLUMNS},
                    name TEXT NOT NULL,
                    color_hex TEXT NOT NULL,
                    icon_name TEXT NOT NULL DEFAULT 'tag',
                    is_active BOOLEAN DEFAULT 1,
                    display_order INTEGER DEFAULT 0
                );
                CREATE TABLE IF NOT EXISTS credit_cards (
                    {_SYNC_COLUMNS},
                    card_name TEXT NOT NULL,
                    holder_name TEXT NOT NULL DEFAULT '',
                    last_four_digits TEXT NOT NULL DEFAULT '',
                    brand TEXT NOT NULL,
                    card_type TEXT NOT NULL,
                    bank TEXT NOT NULL,
                    payment_day INTEGER NOT NULL,
                    closing_day INTEGER NOT NULL,
                    limit_amount TEXT NOT NULL DEFAULT '0',
                    is_active BOOLEAN DEFAULT 1,
                    display_order INTEGER DEFAULT 0
                );
                CREATE TABLE IF NOT EXISTS fixed_bills (
                    {_SYNC_COLUMNS},
                    name TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    due_day INTEGER NOT NULL,
                    category TEXT NOT NULL,
                    is_active BOOLEAN DEFAULT 1,
                    notes TEXT,
                    custom_category_name TEXT,
                    custom_category_icon TEXT,
                    custom_category_color_hex TEXT,
                    total_installments INTEGER,
                    paid_installments INTEGER
                );
                CREATE TABLE IF NOT EXISTS transactions (
                    {_SYNC_COLUMNS},
                    description TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'expense',
                    date DATE NOT NULL,
                    category_id TEXT,
                    credit_card_id TEXT,
                    notes TEXT,
                    location_name TEXT,
                    installments INTEGER,
                    ai_confidence REAL,
                    ai_justification TEXT,
                    needs_user_review BOOLEAN DEFAULT 0
                );
                CREATE TABLE IF NOT EXISTS sync_state (
                    key TEXT PRIMARY KEY,
                    last_sync_at TIMESTAMP,
                    record_count INTEGER
                );
                CREATE INDEX IF NOT EXISTS idx_categories_status ON categories(sync_status);
                CREATE INDEX IF NOT EXISTS idx_cards_status ON credit_cards(sync_status);
                CREATE INDEX IF NOT EXISTS idx_bills_status ON fixed_bills(sync_status);
                CREATE INDEX IF NOT EXISTS idx_txn_status ON transactions(sync_status);
                CREATE INDEX IF NOT EXISTS idx_txn_date ON transactions(date);
                CREATE INDEX IF NOT EXISTS idx_txn_category ON transactions(category_id);
                CREATE INDEX IF NOT EXISTS idx_txn_card ON transactions(credit_card_id);
            """)

    def clear_all(self) -> dict[str, int]:
        """Clear all data from all tables."""
        counts = {}
        tables = [spec.table for spec in TABLES.values()] + ["sync_state"]
        with self._connection() as conn:
            for table in tables:
                row = conn.execute(f"SELECT COUNT(*) as count FROM {table}").fetchone()
                counts[table] = row["count"] if row else 0
                conn.execute(f"DELETE FROM {table}")
        return counts

    def get_counts(self) -> dict[EntityKind, dict[str, int]]:
        """Get total and pending counts per entity kind."""
        return {
            kind: {
                "total": self.count_records(kind),
                "pending": self.get_pending_count(kind),
            }
            for kind in EntityKind
        }
