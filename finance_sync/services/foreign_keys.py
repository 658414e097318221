"""Translation between local and server identifiers for referenced entities."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..models import EntityKind

if TYPE_CHECKING:
    from ..db.database import Database

logger = logging.getLogger(__name__)

# Entity kinds transactions may reference
REFERENCE_KINDS = (EntityKind.CATEGORY, EntityKind.CREDIT_CARD)


class ForeignKeyResolver:
    """Maps local ids to server ids and back, using the local store as index."""

    def __init__(self, db: Database):
        self._db = db

    def local_to_remote(self, kind: EntityKind, local_id: Optional[str]) -> Optional[str]:
        """Return the server id for a locally referenced record.

        A reference may already hold a server id when a pull could not resolve
        it locally; such an id is returned unchanged once a local record
        carries it.

        Returns:
            The server id, or None if the referenced record has none yet.
        """
        if not local_id:
            return None
        record = self._db.get_record(kind, local_id)
        if record is not None:
            if record.server_id is None:
                logger.debug("%s %s has no server id yet", kind.label, local_id)
            return record.server_id
        if self._db.get_record_by_server_id(kind, local_id) is not None:
            return local_id
        logger.debug("Dangling %s reference %s", kind.label, local_id)
        return None

    def awaits_server_id(self, kind: EntityKind, local_id: Optional[str]) -> bool:
        """Check whether a reference names a local record not yet pushed."""
        if not local_id:
            return False
        record = self._db.get_record(kind, local_id)
        return record is not None and record.server_id is None

    def remote_to_local(self, kind: EntityKind, remote_id: Optional[str]) -> Optional[str]:
        """Return the local id owning a server id, or None if not pulled yet."""
        if not remote_id:
            return None
        record = self._db.get_record_by_server_id(kind, remote_id)
        return record.local_id if record is not None else None

    def resolve_inbound(self, kind: EntityKind, remote_id: Optional[str]) -> Optional[str]:
        """Translate a pulled reference, keeping the raw server id if unresolved."""
        if not remote_id:
            return None
        local_id = self.remote_to_local(kind, remote_id)
        if local_id is None:
            logger.debug("Keeping unresolved %s reference %s", kind.label, remote_id)
            return remote_id
        return local_id
