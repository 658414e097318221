"""Row mapping between entity dataclasses and their SQLite tables."""

from __future__ import annotations

import dataclasses
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from ..models import (
    MODEL_BY_KIND,
    EntityKind,
    FixedBillCategory,
    Record,
    SyncStatus,
    TransactionType,
)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def _optional(fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
    return lambda value: None if value is None else fn(value)


def encode_value(value: Any) -> Any:
    """Convert a Python value to its SQLite representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class TableSpec:
    """How one entity kind is laid out in SQLite."""

    kind: EntityKind
    table: str
    model: type
    decoders: dict[str, Callable[[Any], Any]]
    order_by: str = "created_at"

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(self.model))

    def to_row(self, record: Record) -> dict[str, Any]:
        return {name: encode_value(getattr(record, name)) for name in self.columns}

    def from_row(self, row: sqlite3.Row) -> Record:
        values = {}
        for name in self.columns:
            raw = row[name]
            decoder = self.decoders.get(name)
            values[name] = decoder(raw) if decoder else raw
        return self.model(**values)


_COMMON_DECODERS: dict[str, Callable[[Any], Any]] = {
    "sync_status": SyncStatus,
    "created_at": parse_datetime,
    "updated_at": parse_datetime,
    "last_sync_attempt": parse_datetime,
}

TABLES: dict[EntityKind, TableSpec] = {
    EntityKind.CATEGORY: TableSpec(
        kind=EntityKind.CATEGORY,
        table="categories",
        model=MODEL_BY_KIND[EntityKind.CATEGORY],
        decoders={**_COMMON_DECODERS, "is_active": bool},
        order_by="display_order, name",
    ),
    EntityKind.CREDIT_CARD: TableSpec(
        kind=EntityKind.CREDIT_CARD,
        table="credit_cards",
        model=MODEL_BY_KIND[EntityKind.CREDIT_CARD],
        decoders={**_COMMON_DECODERS, "is_active": bool, "limit_amount": Decimal},
        order_by="display_order, card_name",
    ),
    EntityKind.FIXED_BILL: TableSpec(
        kind=EntityKind.FIXED_BILL,
        table="fixed_bills",
        model=MODEL_BY_KIND[EntityKind.FIXED_BILL],
        decoders={
            **_COMMON_DECODERS,
            "is_active": bool,
            "amount": Decimal,
            "category": FixedBillCategory.parse,
        },
        order_by="due_day, name",
    ),
    EntityKind.TRANSACTION: TableSpec(
        kind=EntityKind.TRANSACTION,
        table="transactions",
        model=MODEL_BY_KIND[EntityKind.TRANSACTION],
        decoders={
            **_COMMON_DECODERS,
            "amount": Decimal,
            "date": parse_date,
            "type": TransactionType,
            "needs_user_review": bool,
            "ai_confidence": _optional(float),
        },
        order_by="date DESC, created_at DESC",
    ),
}


def table_for(kind: EntityKind) -> TableSpec:
    return TABLES[kind]
