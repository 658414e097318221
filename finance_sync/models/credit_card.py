"""Credit card model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .sync import EntityKind, SyncStatus, SyncTrackedMixin, new_local_id, utcnow


@dataclass
class CreditCard(SyncTrackedMixin):
    """A credit card transactions can be charged to."""

    KIND = EntityKind.CREDIT_CARD
    SYNC_FIELDS = (
        "card_name",
        "holder_name",
        "last_four_digits",
        "brand",
        "card_type",
        "bank",
        "payment_day",
        "closing_day",
        "limit_amount",
        "is_active",
        "display_order",
    )
    NAME_FIELD = "card_name"

    card_name: str
    holder_name: str = ""
    last_four_digits: str = ""
    brand: str = "Visa"
    card_type: str = "Standard"
    bank: str = "Outro"
    payment_day: int = 10
    closing_day: int = 3
    limit_amount: Decimal = Decimal("0")
    is_active: bool = True
    display_order: int = 0
    user_id: str = ""
    local_id: str = field(default_factory=new_local_id)
    server_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_sync_attempt: Optional[datetime] = None
    sync_error: Optional[str] = None

    @property
    def masked_number(self) -> str:
        return f"**** **** **** {self.last_four_digits or '****'}"
