"""Sync state tracking (last successful sync per key)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from ..tables import parse_datetime
from .base import DatabaseConnectionProtocol, _now_iso


class SyncStateMixin(DatabaseConnectionProtocol):
    """Mixin for the sync_state table."""

    def get_sync_state(self, key: str) -> Optional[dict[str, Any]]:
        """Get sync state for a given key."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT key, last_sync_at, record_count FROM sync_state WHERE key = ?",
                (key,),
            ).fetchone()
            if not row:
                return None
            return {
                "key": row["key"],
                "last_sync_at": parse_datetime(row["last_sync_at"]),
                "record_count": row["record_count"],
            }

    def update_sync_state(
        self, key: str, record_count: int, synced_at: Optional[datetime] = None
    ) -> None:
        """Update sync state for a given key."""
        stamp = synced_at.isoformat() if synced_at else _now_iso()
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_state (key, last_sync_at, record_count) "
                "VALUES (?, ?, ?)",
                (key, stamp, record_count),
            )
