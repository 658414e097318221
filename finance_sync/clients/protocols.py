"""Protocol definitions for remote resource clients.

These protocols define the interface the sync engine depends on, allowing the
HTTP-backed ResourceClient and the in-memory MockResourceClient to be used
interchangeably.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..models import EntityKind
    from .remote import RemoteListing, RemoteRecord


@runtime_checkable
class RemoteResourceProtocol(Protocol):
    """Protocol for a per-entity REST client.

    Implementations:
        - ResourceClient: Real client backed by ApiClient
        - MockResourceClient: In-memory server for testing and --mock mode
    """

    kind: EntityKind

    def list(self, params: Optional[dict[str, Any]] = None) -> RemoteListing:
        """Fetch the full remote collection, skipping undecodable items."""
        ...

    def get(self, server_id: str) -> RemoteRecord:
        """Fetch a single record by server id."""
        ...

    def create(self, values: dict[str, Any]) -> RemoteRecord:
        """Create a record from attribute values. Returns the stored record."""
        ...

    def update(self, server_id: str, values: dict[str, Any]) -> RemoteRecord:
        """Update a record. Returns the stored record."""
        ...

    def delete(self, server_id: str) -> None:
        """Delete a record."""
        ...
