"""Per-kind adapters plugging each entity into the generic sync engine."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, Hashable, Optional

from ..models import MODEL_BY_KIND, EntityKind, Record, SyncStatus, normalize_name, utcnow
from .foreign_keys import ForeignKeyResolver

if TYPE_CHECKING:
    from ..clients.remote import RemoteRecord


class EntityAdapter:
    """Default behaviour: exchange SYNC_FIELDS, dedup on the name field."""

    # Attributes the server owns; never sent, only absorbed
    SERVER_FIELDS: tuple[str, ...] = ()
    # Attributes left untouched when absorbing a push response
    PRESERVED_ON_ABSORB: tuple[str, ...] = ()

    def __init__(self, kind: EntityKind):
        self.kind = kind
        self.model = MODEL_BY_KIND[kind]

    def dedup_key(self, values: dict[str, Any]) -> Hashable:
        """Key under which an unsynced local record matches a remote one."""
        return normalize_name(values.get(self.model.NAME_FIELD))

    def outbound_values(self, record: Record) -> dict[str, Any]:
        """Attribute values sent on create/update (full field set)."""
        values = {
            name: value
            for name, value in record.sync_values().items()
            if name not in self.SERVER_FIELDS
        }
        if record.user_id:
            values["user_id"] = record.user_id
        return values

    def inbound_values(self, remote: RemoteRecord) -> dict[str, Any]:
        """Attribute values to apply locally from a pulled record."""
        return dict(remote.fields)

    def merge_values(self, local: Record, values: dict[str, Any]) -> dict[str, Any]:
        """Pulled values to apply over an existing local record."""
        return values

    def absorb_response(self, record: Record, remote: RemoteRecord) -> None:
        """Take server-side state from a create/update response."""
        values = {
            name: value
            for name, value in self.inbound_values(remote).items()
            if name not in self.PRESERVED_ON_ABSORB
        }
        record.apply_values(values)
        if remote.updated_at is not None:
            record.updated_at = remote.updated_at

    def new_record(self, remote: RemoteRecord, values: dict[str, Any]) -> Record:
        """Build a synced local record for a remote one seen for the first time."""
        names = {f.name for f in dataclasses.fields(self.model)}
        kwargs = {name: value for name, value in values.items() if name in names}
        now = utcnow()
        kwargs.update(
            server_id=remote.server_id,
            sync_status=SyncStatus.SYNCED,
            created_at=remote.created_at or remote.updated_at or now,
            updated_at=remote.updated_at or now,
            last_sync_attempt=now,
        )
        return self.model(**kwargs)


class TransactionAdapter(EntityAdapter):
    """Transactions translate their category and card references."""

    SERVER_FIELDS = ("ai_confidence", "ai_justification")
    PRESERVED_ON_ABSORB = ("category_id", "credit_card_id")

    _REFERENCES = (
        ("category_id", EntityKind.CATEGORY),
        ("credit_card_id", EntityKind.CREDIT_CARD),
    )

    def __init__(self, foreign_keys: ForeignKeyResolver):
        super().__init__(EntityKind.TRANSACTION)
        self._fk = foreign_keys

    def dedup_key(self, values: dict[str, Any]) -> Hashable:
        # Same description on another day or for another amount is a new entry
        return (
            normalize_name(values.get("description")),
            values.get("amount"),
            values.get("date"),
        )

    def outbound_values(self, record: Record) -> dict[str, Any]:
        values = super().outbound_values(record)
        for attr, kind in self._REFERENCES:
            # Unresolved references are sent empty rather than holding the push
            values[attr] = self._fk.local_to_remote(kind, values.get(attr))
        return values

    def inbound_values(self, remote: RemoteRecord) -> dict[str, Any]:
        values = super().inbound_values(remote)
        for attr, kind in self._REFERENCES:
            if attr in values:
                values[attr] = self._fk.resolve_inbound(kind, values[attr])
        return values

    def merge_values(self, local: Record, values: dict[str, Any]) -> dict[str, Any]:
        values = dict(values)
        for attr, kind in self._REFERENCES:
            if attr not in values or values[attr] is not None:
                continue
            # Empty on the server while the target still waits for its own push
            if self._fk.awaits_server_id(kind, getattr(local, attr)):
                del values[attr]
        return values

    def absorb_response(self, record: Record, remote: RemoteRecord) -> None:
        super().absorb_response(record, remote)
        assigned = remote.fields.get("category_id")
        if record.category_id is None and assigned:
            # Category picked server-side (AI categorization)
            record.category_id = self._fk.resolve_inbound(EntityKind.CATEGORY, assigned)


def build_adapters(foreign_keys: ForeignKeyResolver) -> dict[EntityKind, EntityAdapter]:
    return {
        EntityKind.CATEGORY: EntityAdapter(EntityKind.CATEGORY),
        EntityKind.CREDIT_CARD: EntityAdapter(EntityKind.CREDIT_CARD),
        EntityKind.FIXED_BILL: EntityAdapter(EntityKind.FIXED_BILL),
        EntityKind.TRANSACTION: TransactionAdapter(foreign_keys),
    }


def find_by_key(
    adapter: EntityAdapter, key: Hashable, remotes: list[RemoteRecord]
) -> Optional[RemoteRecord]:
    """Return the first remote record whose dedup key equals ``key``."""
    for remote in remotes:
        if adapter.dedup_key(remote.fields) == key:
            return remote
    return None
