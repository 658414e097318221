"""Conversion between wire payloads (camelCase JSON) and record field values.

Field values on the Python side use the dataclass attribute names and types
(Decimal money, date objects, enums). Foreign keys are passed through as-is;
translating them between local and server ids is the sync engine's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Optional

from ..db.tables import parse_date, parse_datetime
from ..models import EntityKind, FixedBillCategory, TransactionType
from .errors import DecodeError


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise DecodeError(f"Invalid amount: {value!r}") from e


def _bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise DecodeError(f"Invalid boolean: {value!r}")
    return value


def _money(value: Decimal) -> float:
    return float(value)


def _enum_value(value: Enum) -> str:
    return value.value


def _iso_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class WireField:
    """One attribute <-> JSON key mapping."""

    attr: str
    key: str
    decode: Optional[Callable[[Any], Any]] = None
    encode: Optional[Callable[[Any], Any]] = None
    nullable: bool = False


_COMMON = (WireField("user_id", "userId", decode=lambda v: str(v or "")),)

WIRE_FIELDS: dict[EntityKind, tuple[WireField, ...]] = {
    EntityKind.CATEGORY: (
        WireField("name", "name"),
        WireField("color_hex", "colorHex"),
        WireField("icon_name", "iconName"),
        WireField("is_active", "isActive", decode=_bool),
        *_COMMON,
    ),
    EntityKind.CREDIT_CARD: (
        WireField("card_name", "cardName"),
        WireField("holder_name", "holderName"),
        WireField("last_four_digits", "lastFourDigits"),
        WireField("brand", "brand"),
        WireField("card_type", "cardType"),
        WireField("bank", "bank"),
        WireField("payment_day", "paymentDay", decode=int),
        WireField("closing_day", "closingDay", decode=int),
        WireField("limit_amount", "limitAmount", decode=_decimal, encode=_money),
        WireField("is_active", "isActive", decode=_bool),
        WireField("display_order", "displayOrder", decode=int),
        *_COMMON,
    ),
    EntityKind.FIXED_BILL: (
        WireField("name", "name"),
        WireField("amount", "amount", decode=_decimal, encode=_money),
        WireField("due_day", "dueDay", decode=int),
        WireField("category", "category", decode=FixedBillCategory.parse, encode=_enum_value),
        WireField("is_active", "isActive", decode=_bool),
        WireField("notes", "notes", nullable=True),
        WireField("custom_category_name", "customCategoryName", nullable=True),
        WireField("custom_category_icon", "customCategoryIcon", nullable=True),
        WireField("custom_category_color_hex", "customCategoryColorHex", nullable=True),
        WireField("total_installments", "totalInstallments", nullable=True),
        WireField("paid_installments", "paidInstallments", nullable=True),
        *_COMMON,
    ),
    EntityKind.TRANSACTION: (
        WireField("description", "description"),
        WireField("amount", "amount", decode=_decimal, encode=_money),
        WireField("type", "type", decode=TransactionType, encode=_enum_value),
        WireField("date", "date", decode=parse_date, encode=_iso_date),
        WireField("category_id", "categoryId", decode=_str_or_none, nullable=True),
        WireField("credit_card_id", "creditCardId", decode=_str_or_none, nullable=True),
        WireField("notes", "notes", nullable=True),
        WireField("location_name", "locationName", nullable=True),
        WireField("installments", "installments", nullable=True),
        WireField("ai_confidence", "aiConfidence", decode=float, nullable=True),
        WireField("ai_justification", "aiJustification", nullable=True),
        WireField("needs_user_review", "needsUserReview", decode=_bool),
        *_COMMON,
    ),
}

# Attributes a remote payload must carry to be turned into a local record
REQUIRED_FIELDS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.CATEGORY: ("name",),
    EntityKind.CREDIT_CARD: ("card_name",),
    EntityKind.FIXED_BILL: ("name",),
    EntityKind.TRANSACTION: ("description", "amount"),
}


def to_payload(kind: EntityKind, values: dict[str, Any], drop_none: bool = False) -> dict[str, Any]:
    """Encode attribute values as a JSON payload for the given kind.

    Args:
        kind: Entity kind being sent.
        values: Attribute name -> Python value. Unknown attributes are ignored.
        drop_none: Omit keys whose value is None (used on create).
    """
    payload: dict[str, Any] = {}
    for wire in WIRE_FIELDS[kind]:
        if wire.attr not in values:
            continue
        value = values[wire.attr]
        if value is None:
            if not drop_none:
                payload[wire.key] = None
            continue
        payload[wire.key] = wire.encode(value) if wire.encode else value
    return payload


def decode_fields(kind: EntityKind, payload: dict[str, Any]) -> dict[str, Any]:
    """Decode the attribute values present in a JSON payload.

    Keys missing from the payload are left out, so applying the result never
    clobbers a local value the server did not send.
    """
    fields: dict[str, Any] = {}
    for wire in WIRE_FIELDS[kind]:
        if wire.key not in payload:
            continue
        raw = payload[wire.key]
        if raw is None:
            # null on a required attribute keeps the local value
            if wire.nullable:
                fields[wire.attr] = None
            continue
        try:
            fields[wire.attr] = wire.decode(raw) if wire.decode else raw
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid {kind.label} field {wire.key}: {raw!r}") from e
    return fields


def decode_timestamp(payload: dict[str, Any], key: str) -> Optional[datetime]:
    raw = payload.get(key)
    if raw is None:
        return None
    try:
        return parse_datetime(str(raw))
    except ValueError as e:
        raise DecodeError(f"Invalid timestamp {key}: {raw!r}") from e
