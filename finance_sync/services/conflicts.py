"""Pull-side conflict resolution.

Decides, for each pulled remote record, what happens to local state:

- INSERT: nothing local matches, store the remote record as synced.
- OVERWRITE: remote state replaces the local fields.
- ADOPT: an unsynced local record is the same entity (dedup match); it takes
  the remote server id and fields.
- KEEP_LOCAL: the local record has newer pending edits or is a tombstone;
  it is left alone and pushed in the same pass.

Precedence is record-level last-writer-wins on ``updated_at``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..models import Record, SyncStatus

if TYPE_CHECKING:
    from ..clients.remote import RemoteRecord


class Resolution(str, Enum):
    INSERT = "insert"
    OVERWRITE = "overwrite"
    ADOPT = "adopt"
    KEEP_LOCAL = "keep_local"


@dataclass(frozen=True)
class Decision:
    """Outcome of resolving one remote record."""

    resolution: Resolution
    local: Optional[Record] = None
    reason: str = ""


class ConflictResolver:
    """Stateless decision function for pulled records."""

    def resolve(
        self,
        remote: RemoteRecord,
        local: Optional[Record] = None,
        duplicate: Optional[Record] = None,
    ) -> Decision:
        """Decide how a remote record merges into local state.

        Args:
            remote: Record fetched from the server.
            local: Local record sharing the remote's server id, if any.
            duplicate: Unlinked local record whose dedup key matches, if any.
                Only considered when there is no server-id match.

        Returns:
            Decision naming the resolution and the local record it applies to.
        """
        if local is not None:
            return self.compare(local, remote)
        if duplicate is not None:
            return Decision(Resolution.ADOPT, duplicate, "matched unsynced local record")
        return Decision(Resolution.INSERT, None, "new remote record")

    def compare(self, local: Record, remote: RemoteRecord) -> Decision:
        """Resolve a local/remote pair that share a server id."""
        status = local.sync_status
        if status == SyncStatus.SYNCED:
            return Decision(Resolution.OVERWRITE, local, "local has no pending edits")
        if status == SyncStatus.PENDING_DELETE:
            return Decision(Resolution.KEEP_LOCAL, local, "local delete pending")
        if status == SyncStatus.PENDING:
            if remote.updated_at is not None and remote.updated_at > local.updated_at:
                return Decision(Resolution.OVERWRITE, local, "remote edit is newer")
            return Decision(Resolution.KEEP_LOCAL, local, "local edit is newer or equal")
        raise ValueError(f"Unknown sync status: {status!r}")
