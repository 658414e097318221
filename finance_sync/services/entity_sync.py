"""Generic pull-then-push reconciliation for one entity collection.

Pull:
    1. Fetch the full remote collection. Items that fail to decode are
       reported and skipped; the rest of the pass goes on.
    2. Merge each remote record through the ConflictResolver (overwrite,
       adopt an unsynced duplicate, insert, or keep local edits).
    3. Remove synced local records whose server id disappeared remotely.

Push:
    Send every record whose status is not synced: creates, full-field
    updates and deletes, one at a time. A failing record keeps its status,
    stores the error and never stops the rest of the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Hashable, Optional

from ..clients.errors import ApiError, ConflictError, NotFoundError, UnauthorizedError
from ..models import EntityKind, Record, SyncStatus
from .conflicts import ConflictResolver, Decision, Resolution
from .entities import EntityAdapter, build_adapters, find_by_key
from .foreign_keys import ForeignKeyResolver

if TYPE_CHECKING:
    from ..clients.protocols import RemoteResourceProtocol
    from ..clients.remote import RemoteClients, RemoteListing, RemoteRecord
    from ..db.database import Database

logger = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    """Result of one entity pass."""

    kind: EntityKind
    # Pull side
    fetched: int = 0
    inserted: int = 0
    overwritten: int = 0
    merged: int = 0  # unsynced local records adopted by dedup
    kept_local: int = 0
    removed: int = 0  # deleted locally because they vanished remotely
    demoted: int = 0  # synced-without-server-id records reset to pending
    # Push side
    created: int = 0
    updated: int = 0
    deleted: int = 0
    adopted: int = 0  # creates resolved by adopting an existing remote record
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    aborted: bool = False  # pass stopped before push (fetch failed)

    @property
    def success(self) -> bool:
        """Check if the pass completed with no errors."""
        return not self.aborted and len(self.errors) == 0

    @property
    def pushed(self) -> int:
        return self.created + self.updated + self.deleted + self.adopted

    @property
    def pulled(self) -> int:
        return self.inserted + self.overwritten + self.merged + self.removed


class EntitySyncer:
    """Runs pull-then-push for a single entity kind."""

    def __init__(
        self,
        db: Database,
        remotes: RemoteClients,
        resolver: Optional[ConflictResolver] = None,
        foreign_keys: Optional[ForeignKeyResolver] = None,
    ):
        """Initialize the syncer.

        Args:
            db: Local store.
            remotes: Remote client per entity kind.
            resolver: Pull-side conflict policy.
            foreign_keys: Local/server id translation for references.
        """
        self._db = db
        self._remotes = remotes
        self._resolver = resolver or ConflictResolver()
        self._fk = foreign_keys or ForeignKeyResolver(db)
        self._adapters = build_adapters(self._fk)

    def sync(self, kind: EntityKind) -> SyncSummary:
        """Reconcile one entity collection.

        Raises:
            UnauthorizedError: The token was rejected; the caller aborts the run.
        """
        summary = SyncSummary(kind=kind)
        adapter = self._adapters[kind]
        client = self._remotes.for_kind(kind)

        summary.demoted = self._db.demote_unlinked_synced(kind)

        try:
            remote_records = client.list()
        except UnauthorizedError:
            raise
        except ApiError as e:
            logger.warning("Fetching %s records failed, skipping pass: %s", kind.label, e)
            summary.errors.append(f"Fetch failed: {e}")
            summary.aborted = True
            return summary

        summary.fetched = len(remote_records)
        for rejected in remote_records.rejected:
            summary.errors.append(
                f"Skipped remote {kind.label} {rejected.server_id}: {rejected.error}"
            )
        self._pull(adapter, remote_records, summary)
        self._push(adapter, client, summary)

        logger.info(
            "%s sync: fetched=%d inserted=%d overwritten=%d merged=%d removed=%d "
            "created=%d updated=%d deleted=%d failed=%d",
            kind.label,
            summary.fetched,
            summary.inserted,
            summary.overwritten,
            summary.merged,
            summary.removed,
            summary.created,
            summary.updated,
            summary.deleted,
            summary.failed,
        )
        return summary

    # -- Pull --------------------------------------------------------------

    def _pull(
        self,
        adapter: EntityAdapter,
        remote_records: RemoteListing,
        summary: SyncSummary,
    ) -> None:
        kind = adapter.kind
        by_server_id: dict[str, Record] = {
            record.server_id: record
            for record in self._db.get_records(kind)
            if record.server_id is not None
        }
        unlinked: dict[Hashable, list[Record]] = {}
        for record in self._db.get_unlinked_records(kind):
            if record.sync_status == SyncStatus.PENDING:
                unlinked.setdefault(adapter.dedup_key(record.sync_values()), []).append(record)

        # Undecodable remote records still exist; their local twins stay
        seen: set[str] = {r.server_id for r in remote_records.rejected if r.server_id}
        for remote in remote_records:
            if remote.server_id in seen:
                logger.warning("Duplicate %s id %s in remote list", kind.label, remote.server_id)
                continue
            seen.add(remote.server_id)
            values = adapter.inbound_values(remote)
            local = by_server_id.get(remote.server_id)
            duplicate = None
            if local is None:
                candidates = unlinked.get(adapter.dedup_key(values))
                if candidates:
                    duplicate = candidates.pop(0)
            decision = self._resolver.resolve(remote, local, duplicate)
            try:
                self._apply(decision, adapter, remote, values, summary)
            except Exception as e:
                logger.exception("Failed to merge %s %s", kind.label, remote.server_id)
                summary.errors.append(f"Merge of {remote.server_id} failed: {e}")

        for server_id, record in by_server_id.items():
            if server_id in seen or record.sync_status != SyncStatus.SYNCED:
                continue
            logger.debug(
                "Removing %s '%s' (%s): deleted remotely",
                kind.label,
                record.display_name,
                server_id,
            )
            self._db.delete_record(kind, record.local_id)
            summary.removed += 1

    def _apply(
        self,
        decision: Decision,
        adapter: EntityAdapter,
        remote: RemoteRecord,
        values: dict,
        summary: SyncSummary,
    ) -> None:
        kind = adapter.kind
        local = decision.local
        logger.debug(
            "%s %s: %s (%s)",
            kind.label,
            remote.server_id,
            decision.resolution.value,
            decision.reason,
        )

        if decision.resolution == Resolution.INSERT:
            self._db.insert_record(adapter.new_record(remote, values))
            summary.inserted += 1

        elif decision.resolution == Resolution.OVERWRITE:
            changed = local.apply_values(adapter.merge_values(local, values))
            if remote.updated_at is not None and remote.updated_at != local.updated_at:
                local.updated_at = remote.updated_at
                changed = True
            if local.sync_status != SyncStatus.SYNCED:
                local.mark_synced(remote.server_id)
                changed = True
            if changed:
                self._db.save_record(local)
                summary.overwritten += 1

        elif decision.resolution == Resolution.ADOPT:
            local.apply_values(adapter.merge_values(local, values))
            local.mark_synced(remote.server_id)
            if remote.updated_at is not None:
                local.updated_at = remote.updated_at
            self._db.save_record(local)
            summary.merged += 1
            logger.info(
                "Merged local %s '%s' with remote %s",
                kind.label,
                local.display_name,
                remote.server_id,
            )

        else:
            summary.kept_local += 1

    # -- Push --------------------------------------------------------------

    def _push(
        self,
        adapter: EntityAdapter,
        client: RemoteResourceProtocol,
        summary: SyncSummary,
    ) -> None:
        for record in self._db.get_unsynced_records(adapter.kind):
            try:
                if record.sync_status == SyncStatus.PENDING_DELETE:
                    self._push_delete(adapter, client, record, summary)
                elif record.server_id is None:
                    self._push_create(adapter, client, record, summary)
                else:
                    self._push_update(adapter, client, record, summary)
            except UnauthorizedError:
                raise
            except ApiError as e:
                self._record_failure(record, e, summary)
            except Exception as e:
                logger.exception(
                    "Unexpected error pushing %s %s", adapter.kind.label, record.local_id
                )
                self._record_failure(record, e, summary)

    def _push_create(
        self,
        adapter: EntityAdapter,
        client: RemoteResourceProtocol,
        record: Record,
        summary: SyncSummary,
    ) -> None:
        try:
            remote = client.create(adapter.outbound_values(record))
        except ConflictError:
            remote = self._find_existing(adapter, client, record)
            if remote is None:
                raise
            record.mark_synced(remote.server_id)
            adapter.absorb_response(record, remote)
            self._db.save_record(record)
            summary.adopted += 1
            logger.info(
                "Create of %s '%s' conflicted; adopted existing %s",
                adapter.kind.label,
                record.display_name,
                remote.server_id,
            )
            return

        record.mark_synced(remote.server_id)
        adapter.absorb_response(record, remote)
        self._db.save_record(record)
        summary.created += 1
        logger.debug("Created %s %s -> %s", adapter.kind.label, record.local_id, remote.server_id)

    def _find_existing(
        self,
        adapter: EntityAdapter,
        client: RemoteResourceProtocol,
        record: Record,
    ) -> Optional[RemoteRecord]:
        """Look for the remote twin of a record whose create hit a conflict."""
        remote = find_by_key(adapter, adapter.dedup_key(record.sync_values()), client.list())
        if remote is None:
            return None
        owner = self._db.get_record_by_server_id(adapter.kind, remote.server_id)
        if owner is not None and owner.local_id != record.local_id:
            raise ConflictError(
                f"{adapter.kind.label} '{record.display_name}' duplicates local record "
                f"{owner.local_id}"
            )
        return remote

    def _push_update(
        self,
        adapter: EntityAdapter,
        client: RemoteResourceProtocol,
        record: Record,
        summary: SyncSummary,
    ) -> None:
        try:
            remote = client.update(record.server_id, adapter.outbound_values(record))
        except NotFoundError:
            logger.warning(
                "%s %s vanished remotely; re-creating '%s'",
                adapter.kind.label,
                record.server_id,
                record.display_name,
            )
            record.server_id = None
            self._db.save_record(record)
            self._push_create(adapter, client, record, summary)
            return

        record.mark_synced(remote.server_id)
        adapter.absorb_response(record, remote)
        self._db.save_record(record)
        summary.updated += 1

    def _push_delete(
        self,
        adapter: EntityAdapter,
        client: RemoteResourceProtocol,
        record: Record,
        summary: SyncSummary,
    ) -> None:
        if record.server_id is not None:
            try:
                client.delete(record.server_id)
            except NotFoundError:
                logger.debug("%s %s already deleted remotely", adapter.kind.label, record.server_id)
        self._db.delete_record(adapter.kind, record.local_id)
        summary.deleted += 1

    def _record_failure(self, record: Record, error: Exception, summary: SyncSummary) -> None:
        logger.warning(
            "Failed to push %s '%s' (%s): %s",
            record.KIND.label,
            record.display_name,
            record.local_id,
            error,
        )
        record.record_sync_error(str(error))
        self._db.save_record(record)
        summary.failed += 1
        summary.errors.append(f"{record.KIND.label} '{record.display_name}': {error}")
