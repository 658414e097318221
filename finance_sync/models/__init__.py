"""Domain models for the local-first finance store."""

from __future__ import annotations

from typing import Union

from .category import DEFAULT_CATEGORIES, Category
from .credit_card import CreditCard
from .fixed_bill import FixedBill, FixedBillCategory
from .sync import EntityKind, SyncStatus, SyncTrackedMixin, new_local_id, normalize_name, utcnow
from .transaction import Transaction, TransactionType

Record = Union[Category, CreditCard, FixedBill, Transaction]

MODEL_BY_KIND: dict[EntityKind, type] = {
    EntityKind.CATEGORY: Category,
    EntityKind.CREDIT_CARD: CreditCard,
    EntityKind.FIXED_BILL: FixedBill,
    EntityKind.TRANSACTION: Transaction,
}

__all__ = [
    "DEFAULT_CATEGORIES",
    "MODEL_BY_KIND",
    "Category",
    "CreditCard",
    "EntityKind",
    "FixedBill",
    "FixedBillCategory",
    "Record",
    "SyncStatus",
    "SyncTrackedMixin",
    "Transaction",
    "TransactionType",
    "new_local_id",
    "normalize_name",
    "utcnow",
]
