"""Database mixins composed into Database."""

from .records import RecordsMixin
from .sync_state import SyncStateMixin

__all__ = ["RecordsMixin", "SyncStateMixin"]
