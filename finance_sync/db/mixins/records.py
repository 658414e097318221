"""Entity record operations shared by all synchronized tables."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from ...models import EntityKind, Record, SyncStatus
from ..tables import encode_value, table_for
from .base import CountMixin

logger = logging.getLogger(__name__)


class RecordsMixin(CountMixin):
    """Typed lookups and writes for entity records.

    Records are plain dataclasses. Callers mutate them and hand them back to
    save_record(); nothing is written implicitly.
    """

    def insert_record(self, record: Record) -> None:
        """Insert a new record."""
        spec = table_for(record.KIND)
        row = spec.to_row(record)
        columns = ", ".join(row)
        placeholders = ", ".join("?" * len(row))
        with self._connection() as conn:
            conn.execute(
                f"INSERT INTO {spec.table} ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )

    def save_record(self, record: Record) -> bool:
        """Write every column of an existing record.

        Returns:
            True if a row was updated.
        """
        spec = table_for(record.KIND)
        row = spec.to_row(record)
        local_id = row.pop("local_id")
        assignments = ", ".join(f"{name} = ?" for name in row)
        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE {spec.table} SET {assignments} WHERE local_id = ?",
                (*row.values(), local_id),
            )
            return cursor.rowcount > 0

    def delete_record(self, kind: EntityKind, local_id: str) -> bool:
        """Physically remove a record.

        Returns:
            True if deleted, False if not found.
        """
        spec = table_for(kind)
        with self._connection() as conn:
            cursor = conn.execute(f"DELETE FROM {spec.table} WHERE local_id = ?", (local_id,))
            return cursor.rowcount > 0

    def get_record(self, kind: EntityKind, local_id: str) -> Optional[Record]:
        return self._fetch_one(kind, "local_id = ?", (local_id,))

    def get_record_by_server_id(self, kind: EntityKind, server_id: str) -> Optional[Record]:
        return self._fetch_one(kind, "server_id = ?", (server_id,))

    def get_records(
        self,
        kind: EntityKind,
        statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> list[Record]:
        """Get records of a kind, optionally restricted to some sync statuses."""
        if statuses is None:
            return self._fetch_all(kind)
        values = [encode_value(s) for s in statuses]
        if not values:
            return []
        placeholders = ",".join("?" * len(values))
        return self._fetch_all(kind, f"sync_status IN ({placeholders})", tuple(values))

    def get_visible_records(self, kind: EntityKind) -> list[Record]:
        """Get records the UI should show (everything except tombstones)."""
        return self._fetch_all(
            kind, "sync_status != ?", (SyncStatus.PENDING_DELETE.value,), ordered=True
        )

    def get_unsynced_records(self, kind: EntityKind) -> list[Record]:
        """Get records with local changes waiting to be pushed."""
        return self._fetch_all(kind, "sync_status != ?", (SyncStatus.SYNCED.value,))

    def get_unlinked_records(self, kind: EntityKind) -> list[Record]:
        """Get records that have never been assigned a server id."""
        return self._fetch_all(kind, "server_id IS NULL")

    def demote_unlinked_synced(self, kind: EntityKind) -> int:
        """Reset records marked synced without a server id back to pending.

        Returns:
            Number of records demoted.
        """
        spec = table_for(kind)
        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE {spec.table} SET sync_status = ? "
                "WHERE server_id IS NULL AND sync_status = ?",
                (SyncStatus.PENDING.value, SyncStatus.SYNCED.value),
            )
            if cursor.rowcount:
                logger.info(
                    "Demoted %d %s record(s) marked synced without a server id",
                    cursor.rowcount,
                    kind.label,
                )
            return cursor.rowcount

    def count_records(self, kind: EntityKind, status: Optional[SyncStatus] = None) -> int:
        spec = table_for(kind)
        if status is None:
            return self._count(spec.table)
        return self._count(spec.table, "sync_status = ?", (status.value,))

    def get_pending_count(self, kind: Optional[EntityKind] = None) -> int:
        """Count records not yet synced, for one kind or all of them."""
        kinds = [kind] if kind else list(EntityKind)
        return sum(
            self._count(table_for(k).table, "sync_status != ?", (SyncStatus.SYNCED.value,))
            for k in kinds
        )

    def get_transactions_for_month(self, year: int, month: int) -> list[Record]:
        """Get visible transactions dated within a calendar month."""
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return self._fetch_all(
            EntityKind.TRANSACTION,
            "date >= ? AND date < ? AND sync_status != ?",
            (start.isoformat(), end.isoformat(), SyncStatus.PENDING_DELETE.value),
            ordered=True,
        )

    def get_transactions_for_card(self, credit_card_id: str) -> list[Record]:
        return self._fetch_all(
            EntityKind.TRANSACTION,
            "credit_card_id = ? AND sync_status != ?",
            (credit_card_id, SyncStatus.PENDING_DELETE.value),
            ordered=True,
        )

    def _fetch_one(self, kind: EntityKind, where: str, params: tuple) -> Optional[Record]:
        spec = table_for(kind)
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {spec.table} WHERE {where} LIMIT 1", params
            ).fetchone()
            return spec.from_row(row) if row else None

    def _fetch_all(
        self,
        kind: EntityKind,
        where: str = "",
        params: tuple = (),
        ordered: bool = False,
    ) -> list[Record]:
        spec = table_for(kind)
        query = f"SELECT * FROM {spec.table}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {spec.order_by}" if ordered else " ORDER BY created_at, rowid"
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [spec.from_row(row) for row in rows]
