"""In-memory stand-in for the finance backend.

Used by the test-suite and by the CLI ``--mock`` mode. Records are stored as
wire payloads so every call goes through the same codecs as the HTTP client.
The service can persist its state to a JSON file so separate CLI invocations
share one fake server.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

from ..models import EntityKind, normalize_name, utcnow
from .codecs import to_payload
from .errors import ApiError, ConflictError, NotFoundError
from .remote import (
    ENDPOINTS,
    RemoteClients,
    RemoteListing,
    RemoteRecord,
    decode_list,
    decode_record,
)

logger = logging.getLogger(__name__)

WRITE_OPERATIONS = ("create", "update", "delete")

_ID_PREFIX = {
    EntityKind.CATEGORY: "cat",
    EntityKind.CREDIT_CARD: "card",
    EntityKind.FIXED_BILL: "bill",
    EntityKind.TRANSACTION: "txn",
}


@dataclass
class MockCall:
    """One recorded call against the mock server."""

    kind: EntityKind
    operation: str
    server_id: Optional[str] = None

    @property
    def is_write(self) -> bool:
        return self.operation in WRITE_OPERATIONS


class MockRemoteService:
    """In-memory server holding every entity collection.

    Args:
        state_path: Optional JSON file the state is loaded from and saved to.
        clock: Source of server timestamps. Each write gets a strictly
            increasing timestamp even if the clock does not advance.
        unique_names: Entity kinds whose names must be unique server-side.
    """

    def __init__(
        self,
        state_path: Optional[Path] = None,
        clock: Callable[[], datetime] = utcnow,
        unique_names: tuple[EntityKind, ...] = (EntityKind.CATEGORY,),
    ):
        self.state_path = state_path
        self._clock = clock
        self._unique_names = unique_names
        self._collections: dict[EntityKind, dict[str, dict[str, Any]]] = {
            kind: {} for kind in EntityKind
        }
        self._next_id = 1
        self._last_stamp: Optional[datetime] = None
        self._failures: dict[tuple[EntityKind, str], deque[Exception]] = {}
        self.calls: list[MockCall] = []
        if state_path and Path(state_path).exists():
            self._load()

    # -- Test helpers ------------------------------------------------------

    def clients(self) -> RemoteClients:
        """Build a RemoteClients set backed by this service."""
        return RemoteClients(
            categories=MockResourceClient(self, EntityKind.CATEGORY),
            credit_cards=MockResourceClient(self, EntityKind.CREDIT_CARD),
            fixed_bills=MockResourceClient(self, EntityKind.FIXED_BILL),
            transactions=MockResourceClient(self, EntityKind.TRANSACTION),
        )

    def seed(
        self,
        kind: EntityKind,
        values: dict[str, Any],
        server_id: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> RemoteRecord:
        """Place a record on the server directly, without logging a call.

        Simulates a write made by another device.
        """
        server_id = server_id or self._new_id(kind)
        stamp = updated_at or self._stamp()
        payload = to_payload(kind, values)
        payload.update(
            {"id": server_id, "createdAt": stamp.isoformat(), "updatedAt": stamp.isoformat()}
        )
        self._collections[kind][server_id] = payload
        self._save()
        return decode_record(kind, payload)

    def seed_raw(self, kind: EntityKind, payload: dict[str, Any]) -> None:
        """Store a wire payload verbatim, even one no client could decode."""
        self._collections[kind][str(payload["id"])] = dict(payload)
        self._save()

    def edit(
        self,
        kind: EntityKind,
        server_id: str,
        values: dict[str, Any],
        updated_at: Optional[datetime] = None,
    ) -> RemoteRecord:
        """Change a stored record directly, as another device would."""
        payload = self._require(kind, server_id)
        payload.update(to_payload(kind, values))
        payload["updatedAt"] = (updated_at or self._stamp()).isoformat()
        self._save()
        return decode_record(kind, payload)

    def remove(self, kind: EntityKind, server_id: str) -> None:
        """Delete a stored record directly, as another device would."""
        self._collections[kind].pop(server_id, None)
        self._save()

    def records(self, kind: EntityKind) -> list[RemoteRecord]:
        return [decode_record(kind, p) for p in self._collections[kind].values()]

    def payload(self, kind: EntityKind, server_id: str) -> dict[str, Any]:
        """Return the raw stored payload (wire names) for assertions."""
        return dict(self._require(kind, server_id))

    def count(self, kind: EntityKind) -> int:
        return len(self._collections[kind])

    def fail_next(
        self,
        kind: EntityKind,
        operation: str,
        error: Optional[Exception] = None,
        times: int = 1,
    ) -> None:
        """Make the next ``times`` calls of an operation raise ``error``.

        Args:
            kind: Entity kind the failure applies to.
            operation: One of list, get, create, update, delete.
            error: Exception to raise. Defaults to a 500 ApiError.
            times: Number of consecutive calls to fail.
        """
        queue = self._failures.setdefault((kind, operation), deque())
        for _ in range(times):
            queue.append(error or ApiError("Injected failure", 500))

    @property
    def write_calls(self) -> list[MockCall]:
        return [c for c in self.calls if c.is_write]

    def reset_calls(self) -> None:
        self.calls.clear()

    # -- Server behaviour --------------------------------------------------

    def handle_list(self, kind: EntityKind) -> list[dict[str, Any]]:
        self._enter(kind, "list")
        return [dict(p) for p in self._collections[kind].values()]

    def handle_get(self, kind: EntityKind, server_id: str) -> dict[str, Any]:
        self._enter(kind, "get", server_id)
        return dict(self._require(kind, server_id))

    def handle_create(self, kind: EntityKind, payload: dict[str, Any]) -> dict[str, Any]:
        self._enter(kind, "create")
        self._check_unique(kind, payload)
        server_id = self._new_id(kind)
        stamp = self._stamp().isoformat()
        stored = {**payload, "id": server_id, "createdAt": stamp, "updatedAt": stamp}
        self._collections[kind][server_id] = stored
        self._save()
        logger.debug("Mock created %s %s", kind.label, server_id)
        return dict(stored)

    def handle_update(
        self, kind: EntityKind, server_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        self._enter(kind, "update", server_id)
        stored = self._require(kind, server_id)
        self._check_unique(kind, payload, exclude=server_id)
        stored.update(payload)
        stored["updatedAt"] = self._stamp().isoformat()
        self._save()
        return dict(stored)

    def handle_delete(self, kind: EntityKind, server_id: str) -> None:
        self._enter(kind, "delete", server_id)
        self._require(kind, server_id)
        del self._collections[kind][server_id]
        self._save()

    # -- Internals ---------------------------------------------------------

    def _enter(self, kind: EntityKind, operation: str, server_id: Optional[str] = None) -> None:
        self.calls.append(MockCall(kind, operation, server_id))
        queue = self._failures.get((kind, operation))
        if queue:
            raise queue.popleft()

    def _require(self, kind: EntityKind, server_id: str) -> dict[str, Any]:
        try:
            return self._collections[kind][server_id]
        except KeyError:
            raise NotFoundError(f"{ENDPOINTS[kind]}/{server_id} not found", 404) from None

    def _check_unique(
        self, kind: EntityKind, payload: dict[str, Any], exclude: Optional[str] = None
    ) -> None:
        if kind not in self._unique_names or "name" not in payload:
            return
        wanted = normalize_name(payload["name"])
        for server_id, stored in self._collections[kind].items():
            if server_id != exclude and normalize_name(stored.get("name")) == wanted:
                raise ConflictError(f"{kind.label} '{payload['name']}' already exists", 409)

    def _new_id(self, kind: EntityKind) -> str:
        server_id = f"{_ID_PREFIX[kind]}-{self._next_id}"
        self._next_id += 1
        return server_id

    def _stamp(self) -> datetime:
        stamp = self._clock()
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    def _load(self) -> None:
        with open(self.state_path, encoding="utf-8") as f:
            state = json.load(f)
        self._next_id = state.get("next_id", 1)
        for kind in EntityKind:
            self._collections[kind] = state.get("collections", {}).get(kind.value, {})
        logger.debug("Loaded mock server state from %s", self.state_path)

    def _save(self) -> None:
        if not self.state_path:
            return
        state = {
            "next_id": self._next_id,
            "collections": {kind.value: self._collections[kind] for kind in EntityKind},
        }
        Path(self.state_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.state_path, "w", encoding="utf-8") as f:
            json.dump(state, f, indent=2, ensure_ascii=False)


class MockResourceClient:
    """RemoteResourceProtocol implementation backed by MockRemoteService."""

    def __init__(self, service: MockRemoteService, kind: EntityKind):
        self._service = service
        self.kind = kind

    def list(self, params: Optional[dict[str, Any]] = None) -> RemoteListing:
        return decode_list(self.kind, self._service.handle_list(self.kind))

    def get(self, server_id: str) -> RemoteRecord:
        return decode_record(self.kind, self._service.handle_get(self.kind, server_id))

    def create(self, values: dict[str, Any]) -> RemoteRecord:
        payload = to_payload(self.kind, values, drop_none=True)
        return decode_record(self.kind, self._service.handle_create(self.kind, payload))

    def update(self, server_id: str, values: dict[str, Any]) -> RemoteRecord:
        payload = to_payload(self.kind, values)
        return decode_record(self.kind, self._service.handle_update(self.kind, server_id, payload))

    def delete(self, server_id: str) -> None:
        self._service.handle_delete(self.kind, server_id)
