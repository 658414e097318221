"""Per-entity REST resources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..models import MODEL_BY_KIND, EntityKind
from .api_client import ApiClient
from .codecs import REQUIRED_FIELDS, decode_fields, decode_timestamp, to_payload
from .errors import DecodeError
from .protocols import RemoteResourceProtocol

logger = logging.getLogger(__name__)

ENDPOINTS: dict[EntityKind, str] = {
    EntityKind.CATEGORY: "/categories",
    EntityKind.CREDIT_CARD: "/credit-cards",
    EntityKind.FIXED_BILL: "/fixed-bills",
    EntityKind.TRANSACTION: "/transactions",
}


@dataclass
class RemoteRecord:
    """A record as returned by the server, with decoded attribute values."""

    kind: EntityKind
    server_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        return str(self.fields.get(MODEL_BY_KIND[self.kind].NAME_FIELD) or "")


def decode_record(kind: EntityKind, payload: Any) -> RemoteRecord:
    """Decode one JSON object into a RemoteRecord.

    Raises:
        DecodeError: If the payload is not an object or lacks an id or a
            required attribute.
    """
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected {kind.label} object, got {type(payload).__name__}")
    server_id = payload.get("id")
    if server_id in (None, ""):
        raise DecodeError(f"{kind.label} payload has no id")
    fields = decode_fields(kind, payload)
    missing = [name for name in REQUIRED_FIELDS[kind] if fields.get(name) is None]
    if missing:
        raise DecodeError(f"{kind.label} {server_id} missing {', '.join(missing)}")
    return RemoteRecord(
        kind=kind,
        server_id=str(server_id),
        fields=fields,
        updated_at=decode_timestamp(payload, "updatedAt"),
        created_at=decode_timestamp(payload, "createdAt"),
    )


@dataclass
class RejectedRecord:
    """A listed payload that could not be decoded."""

    kind: EntityKind
    server_id: Optional[str]
    error: str


class RemoteListing(list):
    """Decoded records of one collection, plus the items that failed to decode."""

    def __init__(self, records=(), rejected=()):
        super().__init__(records)
        self.rejected: list[RejectedRecord] = list(rejected)


def decode_list(kind: EntityKind, data: Any) -> RemoteListing:
    """Decode a list response item by item.

    A malformed item is skipped and reported in ``rejected``; only a
    response that is not a list at all raises.

    Raises:
        DecodeError: If the response is not a list.
    """
    listing = RemoteListing()
    for item in _unwrap_list(data):
        try:
            listing.append(decode_record(kind, item))
        except DecodeError as e:
            raw_id = item.get("id") if isinstance(item, dict) else None
            server_id = None if raw_id in (None, "") else str(raw_id)
            logger.error("Skipping undecodable %s %s: %s", kind.label, server_id, e)
            listing.rejected.append(RejectedRecord(kind, server_id, str(e)))
    return listing


def _unwrap_list(data: Any) -> list:
    """Accept either a bare JSON array or an object wrapping one."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("data", "items", "results"):
            if isinstance(data.get(key), list):
                return data[key]
    raise DecodeError(f"Expected a list response, got {type(data).__name__}")


class ResourceClient:
    """REST client for one entity collection."""

    def __init__(self, api: ApiClient, kind: EntityKind):
        self._api = api
        self.kind = kind
        self._endpoint = ENDPOINTS[kind]

    def list(self, params: Optional[dict[str, Any]] = None) -> RemoteListing:
        data = self._api.request("GET", self._endpoint, params=params)
        records = decode_list(self.kind, data)
        logger.debug("Fetched %d remote %s record(s)", len(records), self.kind.label)
        return records

    def get(self, server_id: str) -> RemoteRecord:
        return decode_record(self.kind, self._api.request("GET", f"{self._endpoint}/{server_id}"))

    def create(self, values: dict[str, Any]) -> RemoteRecord:
        payload = to_payload(self.kind, values, drop_none=True)
        return decode_record(self.kind, self._api.request("POST", self._endpoint, body=payload))

    def update(self, server_id: str, values: dict[str, Any]) -> RemoteRecord:
        payload = to_payload(self.kind, values)
        data = self._api.request("PATCH", f"{self._endpoint}/{server_id}", body=payload)
        return decode_record(self.kind, data)

    def delete(self, server_id: str) -> None:
        self._api.request_void("DELETE", f"{self._endpoint}/{server_id}")


@dataclass
class RemoteClients:
    """One remote resource client per entity kind."""

    categories: RemoteResourceProtocol
    credit_cards: RemoteResourceProtocol
    fixed_bills: RemoteResourceProtocol
    transactions: RemoteResourceProtocol

    def for_kind(self, kind: EntityKind) -> RemoteResourceProtocol:
        return {
            EntityKind.CATEGORY: self.categories,
            EntityKind.CREDIT_CARD: self.credit_cards,
            EntityKind.FIXED_BILL: self.fixed_bills,
            EntityKind.TRANSACTION: self.transactions,
        }[kind]


def build_remote_clients(api: ApiClient) -> RemoteClients:
    """Create HTTP-backed clients for every entity kind."""
    return RemoteClients(
        categories=ResourceClient(api, EntityKind.CATEGORY),
        credit_cards=ResourceClient(api, EntityKind.CREDIT_CARD),
        fixed_bills=ResourceClient(api, EntityKind.FIXED_BILL),
        transactions=ResourceClient(api, EntityKind.TRANSACTION),
    )
