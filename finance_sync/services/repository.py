"""Local-first repositories used by the UI layer.

Every write lands in the local store first with status pending; the optional
``on_change`` hook (usually Scheduler.request_sync) is called afterwards so a
sync can pick the change up.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional, Union

from ..models import (
    DEFAULT_CATEGORIES,
    Category,
    EntityKind,
    Record,
    SyncStatus,
    Transaction,
    normalize_name,
    utcnow,
)

if TYPE_CHECKING:
    from ..db.database import Database

logger = logging.getLogger(__name__)


class LocalRepository:
    """Create, update, delete and query one entity kind locally."""

    def __init__(
        self,
        db: Database,
        kind: EntityKind,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self._db = db
        self.kind = kind
        self._on_change = on_change

    def list(self) -> list[Record]:
        """All records except those awaiting remote deletion."""
        return self._db.get_visible_records(self.kind)

    def get(self, local_id: str) -> Optional[Record]:
        record = self._db.get_record(self.kind, local_id)
        if record is None or record.sync_status == SyncStatus.PENDING_DELETE:
            return None
        return record

    def get_by_server_id(self, server_id: str) -> Optional[Record]:
        return self._db.get_record_by_server_id(self.kind, server_id)

    def create(self, record: Record) -> Record:
        """Store a new record as pending with no server id."""
        record.server_id = None
        record.sync_status = SyncStatus.PENDING
        record.updated_at = utcnow()
        self._db.insert_record(record)
        logger.debug("Created %s %s", self.kind.label, record.local_id)
        self._notify()
        return record

    def update(self, record: Record) -> Record:
        """Persist local edits and queue the record for push."""
        record.mark_modified()
        self._db.save_record(record)
        self._notify()
        return record

    def delete(self, record: Union[Record, str]) -> bool:
        """Delete a record.

        Never-synced records are removed immediately. Synced ones become
        tombstones until the remote delete is confirmed.

        Returns:
            True if the record existed.
        """
        if isinstance(record, str):
            record = self._db.get_record(self.kind, record)
            if record is None:
                return False
        if record.server_id is None:
            deleted = self._db.delete_record(self.kind, record.local_id)
        else:
            record.mark_for_deletion()
            record.updated_at = utcnow()
            deleted = self._db.save_record(record)
        if deleted:
            self._notify()
        return deleted

    def pending_count(self) -> int:
        return self._db.get_pending_count(self.kind)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


class CategoryRepository(LocalRepository):
    def __init__(self, db: Database, on_change: Optional[Callable[[], None]] = None):
        super().__init__(db, EntityKind.CATEGORY, on_change)

    def seed_defaults(self, user_id: str = "") -> int:
        """Insert the default categories into an empty store.

        Returns:
            Number of categories inserted (0 if any category already exists).
        """
        if self._db.count_records(EntityKind.CATEGORY) > 0:
            return 0
        for order, (name, color_hex, icon_name) in enumerate(DEFAULT_CATEGORIES):
            self._db.insert_record(
                Category(
                    name=name,
                    color_hex=color_hex,
                    icon_name=icon_name,
                    display_order=order,
                    user_id=user_id,
                )
            )
        logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
        self._notify()
        return len(DEFAULT_CATEGORIES)

    def find_by_name(self, name: str) -> Optional[Category]:
        wanted = normalize_name(name)
        for category in self.list():
            if normalize_name(category.name) == wanted:
                return category
        return None

    def reorder(self, categories: list[Category]) -> None:
        """Persist display order. Local only, so sync status is untouched."""
        for order, category in enumerate(categories):
            category.display_order = order
            self._db.save_record(category)


class TransactionRepository(LocalRepository):
    def __init__(self, db: Database, on_change: Optional[Callable[[], None]] = None):
        super().__init__(db, EntityKind.TRANSACTION, on_change)

    def list_for_month(self, year: int, month: int) -> list[Transaction]:
        return self._db.get_transactions_for_month(year, month)

    def list_for_card(self, credit_card_id: str) -> list[Transaction]:
        return self._db.get_transactions_for_card(credit_card_id)

    def update_category(self, transaction: Transaction, category_id: Optional[str]) -> Transaction:
        transaction.category_id = category_id
        transaction.needs_user_review = False
        return self.update(transaction)
