"""Transaction model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .sync import EntityKind, SyncStatus, SyncTrackedMixin, new_local_id, utcnow


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


@dataclass
class Transaction(SyncTrackedMixin):
    """A single income or expense entry.

    ``category_id`` and ``credit_card_id`` hold LOCAL ids while the record is
    stored locally. They are translated to server ids only when pushed.
    """

    KIND = EntityKind.TRANSACTION
    SYNC_FIELDS = (
        "description",
        "amount",
        "type",
        "date",
        "category_id",
        "credit_card_id",
        "notes",
        "location_name",
        "installments",
        "ai_confidence",
        "ai_justification",
        "needs_user_review",
    )
    NAME_FIELD = "description"

    description: str
    amount: Decimal
    date: date = field(default_factory=date.today)
    type: TransactionType = TransactionType.EXPENSE
    category_id: Optional[str] = None
    credit_card_id: Optional[str] = None
    notes: Optional[str] = None
    location_name: Optional[str] = None
    installments: Optional[int] = None
    ai_confidence: Optional[float] = None
    ai_justification: Optional[str] = None
    needs_user_review: bool = False
    user_id: str = ""
    local_id: str = field(default_factory=new_local_id)
    server_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_sync_attempt: Optional[datetime] = None
    sync_error: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.type == TransactionType.EXPENSE else self.amount
