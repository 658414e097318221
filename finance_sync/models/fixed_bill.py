"""Fixed (recurring) bill model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .sync import EntityKind, SyncStatus, SyncTrackedMixin, new_local_id, utcnow


class FixedBillCategory(str, Enum):
    HOUSING = "Moradia"
    UTILITIES = "Utilidades"
    HEALTH = "Saúde"
    EDUCATION = "Educação"
    TRANSPORT = "Transporte"
    ENTERTAINMENT = "Entretenimento"
    SUBSCRIPTION = "Assinatura"
    INSURANCE = "Seguro"
    FINANCING = "Financiamento"
    LOAN = "Empréstimo"
    OTHER = "Outros"
    CUSTOM = "Personalizada"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FixedBillCategory":
        """Parse a stored or remote value, falling back to OTHER."""
        for member in cls:
            if value in (member.value, member.name, member.name.lower()):
                return member
        return cls.OTHER


@dataclass
class FixedBill(SyncTrackedMixin):
    """A bill that recurs every month on the same due day."""

    KIND = EntityKind.FIXED_BILL
    SYNC_FIELDS = (
        "name",
        "amount",
        "due_day",
        "category",
        "is_active",
        "notes",
        "custom_category_name",
        "custom_category_icon",
        "custom_category_color_hex",
        "total_installments",
        "paid_installments",
    )

    name: str
    amount: Decimal = Decimal("0")
    due_day: int = 1
    category: FixedBillCategory = FixedBillCategory.OTHER
    is_active: bool = True
    notes: Optional[str] = None
    custom_category_name: Optional[str] = None
    custom_category_icon: Optional[str] = None
    custom_category_color_hex: Optional[str] = None
    total_installments: Optional[int] = None
    paid_installments: Optional[int] = None
    user_id: str = ""
    local_id: str = field(default_factory=new_local_id)
    server_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_sync_attempt: Optional[datetime] = None
    sync_error: Optional[str] = None

    @property
    def remaining_installments(self) -> Optional[int]:
        if self.total_installments is None:
            return None
        return max(self.total_installments - (self.paid_installments or 0), 0)
