"""Sync engine and local-first services."""

from .conflicts import ConflictResolver, Decision, Resolution
from .entity_sync import EntitySyncer, SyncSummary
from .foreign_keys import ForeignKeyResolver
from .repository import CategoryRepository, LocalRepository, TransactionRepository
from .scheduler import Scheduler
from .sync import (
    SYNC_ORDER,
    RunOutcome,
    SyncContext,
    SyncOrchestrator,
    SyncRunResult,
)

__all__ = [
    "SYNC_ORDER",
    "CategoryRepository",
    "ConflictResolver",
    "Decision",
    "EntitySyncer",
    "ForeignKeyResolver",
    "LocalRepository",
    "Resolution",
    "RunOutcome",
    "Scheduler",
    "SyncContext",
    "SyncOrchestrator",
    "SyncRunResult",
    "SyncSummary",
    "TransactionRepository",
]
