"""Sync bookkeeping shared by every synchronized entity."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional


class SyncStatus(str, Enum):
    """Local sync state of a record."""

    SYNCED = "synced"
    PENDING = "pending"
    PENDING_DELETE = "pendingDelete"


class EntityKind(str, Enum):
    """Entity collections reconciled with the remote."""

    CATEGORY = "category"
    CREDIT_CARD = "credit_card"
    FIXED_BILL = "fixed_bill"
    TRANSACTION = "transaction"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_local_id() -> str:
    return str(uuid.uuid4())


def normalize_name(value: Optional[str]) -> str:
    """Normalize a display name for duplicate detection (trim + case-fold)."""
    return " ".join((value or "").split()).casefold()


class SyncTrackedMixin:
    """Behaviour shared by the entity dataclasses.

    Subclasses are dataclasses declaring ``local_id``, ``server_id``,
    ``sync_status``, ``updated_at``, ``last_sync_attempt`` and ``sync_error``.
    """

    KIND: ClassVar[EntityKind]
    # Fields exchanged with the remote and overwritten by a pull
    SYNC_FIELDS: ClassVar[tuple[str, ...]] = ()
    # Field holding the human name used for duplicate detection
    NAME_FIELD: ClassVar[str] = "name"

    local_id: str
    server_id: Optional[str]
    sync_status: SyncStatus
    updated_at: datetime
    last_sync_attempt: Optional[datetime]
    sync_error: Optional[str]

    @property
    def display_name(self) -> str:
        return str(getattr(self, self.NAME_FIELD, "") or "")

    @property
    def is_pending_sync(self) -> bool:
        return self.sync_status in (SyncStatus.PENDING, SyncStatus.PENDING_DELETE)

    def mark_synced(self, server_id: str) -> None:
        self.server_id = server_id
        self.sync_status = SyncStatus.SYNCED
        self.sync_error = None
        self.last_sync_attempt = utcnow()

    def mark_modified(self) -> None:
        """Record a local edit: refresh updated_at and queue for push."""
        self.updated_at = utcnow()
        if self.sync_status == SyncStatus.SYNCED:
            self.sync_status = SyncStatus.PENDING

    def mark_for_deletion(self) -> None:
        self.sync_status = SyncStatus.PENDING_DELETE

    def record_sync_error(self, message: str) -> None:
        self.sync_error = message
        self.last_sync_attempt = utcnow()

    def sync_values(self) -> dict:
        """Return the remote-visible field values."""
        return {name: getattr(self, name) for name in self.SYNC_FIELDS}

    def apply_values(self, values: dict) -> bool:
        """Assign the given sync field values. Returns True if anything changed."""
        changed = False
        for name in self.SYNC_FIELDS:
            if name in values and getattr(self, name) != values[name]:
                setattr(self, name, values[name])
                changed = True
        return changed
