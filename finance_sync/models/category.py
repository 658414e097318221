"""Category model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .sync import EntityKind, SyncStatus, SyncTrackedMixin, new_local_id, utcnow

# Seeded on first launch so a fresh install is usable offline
DEFAULT_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Alimentação", "#FF6B6B", "fork.knife"),
    ("Transporte", "#4ECDC4", "car.fill"),
    ("Moradia", "#45B7D1", "house.fill"),
    ("Saúde", "#96CEB4", "heart.fill"),
    ("Educação", "#DDA0DD", "book.fill"),
    ("Lazer", "#FFD93D", "gamecontroller.fill"),
    ("Compras", "#FF8C42", "bag.fill"),
    ("Outros", "#95A5A6", "ellipsis.circle.fill"),
)


@dataclass
class Category(SyncTrackedMixin):
    """A spending category."""

    KIND = EntityKind.CATEGORY
    SYNC_FIELDS = ("name", "color_hex", "icon_name", "is_active")

    name: str
    color_hex: str = "#95A5A6"
    icon_name: str = "tag"
    is_active: bool = True
    display_order: int = 0  # local only, never sent or pulled
    user_id: str = ""
    local_id: str = field(default_factory=new_local_id)
    server_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_sync_attempt: Optional[datetime] = None
    sync_error: Optional[str] = None
