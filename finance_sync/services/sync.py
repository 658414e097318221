"""Sync orchestration across all entity kinds.

Runs the four entity passes in dependency order (categories, credit cards,
fixed bills, then transactions, which reference the first two) with a
single-flight guard: a run requested while another is in progress is
dropped, not queued.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ..clients.errors import UnauthorizedError
from ..config import SyncConfig
from ..models import EntityKind, utcnow
from .entity_sync import EntitySyncer, SyncSummary

if TYPE_CHECKING:
    from ..clients.connectivity import ConnectivityMonitor
    from ..clients.remote import RemoteClients
    from ..db.database import Database

logger = logging.getLogger(__name__)

SYNC_ORDER: tuple[EntityKind, ...] = (
    EntityKind.CATEGORY,
    EntityKind.CREDIT_CARD,
    EntityKind.FIXED_BILL,
    EntityKind.TRANSACTION,
)

LAST_SYNC_KEY = "all"


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    DEGRADED = "degraded"  # ran to the end but some records or passes failed
    UNAUTHORIZED = "unauthorized"
    SKIPPED_OFFLINE = "skipped_offline"
    SKIPPED_BUSY = "skipped_busy"


@dataclass
class SyncRunResult:
    """Result of one orchestrator run."""

    outcome: RunOutcome
    summaries: list[SyncSummary] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    pending_count: int = 0  # records still waiting to be pushed after the run

    @property
    def success(self) -> bool:
        """Check if the run completed with no errors."""
        return self.outcome == RunOutcome.COMPLETED

    @property
    def ran(self) -> bool:
        return self.outcome not in (RunOutcome.SKIPPED_OFFLINE, RunOutcome.SKIPPED_BUSY)

    @property
    def errors(self) -> list[str]:
        return [
            f"{summary.kind.label}: {error}"
            for summary in self.summaries
            for error in summary.errors
        ]

    def summary_for(self, kind: EntityKind) -> Optional[SyncSummary]:
        for summary in self.summaries:
            if summary.kind == kind:
                return summary
        return None


SyncListener = Callable[[SyncRunResult], None]


@dataclass
class SyncContext:
    """Everything a sync run needs, passed in explicitly."""

    db: Database
    remotes: RemoteClients
    connectivity: ConnectivityMonitor
    config: SyncConfig = field(default_factory=SyncConfig)


class SyncOrchestrator:
    """Runs full sync passes with single-flight protection.

    Listeners registered with add_listener() receive the SyncRunResult of
    every run that actually executed (completed, degraded or unauthorized).
    """

    def __init__(self, context: SyncContext, syncer: Optional[EntitySyncer] = None):
        self._context = context
        self._db = context.db
        self._syncer = syncer or EntitySyncer(context.db, context.remotes)
        self._lock = threading.Lock()
        self._listeners: list[SyncListener] = []

    @property
    def context(self) -> SyncContext:
        return self._context

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def add_listener(self, listener: SyncListener) -> Callable[[], None]:
        """Register a completion listener.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def run_all(
        self,
        pass_callback: Optional[Callable[[EntityKind], None]] = None,
    ) -> SyncRunResult:
        """Run every entity pass in dependency order.

        Args:
            pass_callback: Optional callback invoked before each entity pass,
                e.g. to drive a progress bar.

        Returns:
            SyncRunResult. Never raises for remote failures.
        """
        if not self._context.connectivity.is_connected:
            logger.info("Sync skipped: offline")
            return SyncRunResult(outcome=RunOutcome.SKIPPED_OFFLINE)

        if not self._lock.acquire(blocking=False):
            logger.debug("Sync skipped: another run is in progress")
            return SyncRunResult(outcome=RunOutcome.SKIPPED_BUSY)

        try:
            result = self._run_passes(pass_callback)
            self._publish(result)
            return result
        finally:
            self._lock.release()

    def _run_passes(
        self, pass_callback: Optional[Callable[[EntityKind], None]]
    ) -> SyncRunResult:
        result = SyncRunResult(outcome=RunOutcome.COMPLETED, started_at=utcnow())
        logger.info("Sync run started")

        for kind in SYNC_ORDER:
            if pass_callback:
                pass_callback(kind)
            try:
                summary = self._syncer.sync(kind)
            except UnauthorizedError as e:
                logger.warning("Sync aborted during %s pass: %s", kind.label, e)
                result.summaries.append(SyncSummary(kind=kind, errors=[str(e)], aborted=True))
                result.outcome = RunOutcome.UNAUTHORIZED
                break
            except Exception as e:
                logger.exception("%s pass failed", kind.label)
                summary = SyncSummary(kind=kind, errors=[str(e)], aborted=True)
            result.summaries.append(summary)

        if result.outcome != RunOutcome.UNAUTHORIZED:
            if any(not s.success for s in result.summaries):
                result.outcome = RunOutcome.DEGRADED
            if not any(s.aborted for s in result.summaries):
                total = sum(self._db.count_records(kind) for kind in SYNC_ORDER)
                self._db.update_sync_state(LAST_SYNC_KEY, total)

        result.finished_at = utcnow()
        result.pending_count = self._db.get_pending_count()
        logger.info(
            "Sync run finished: %s (%d pending, %d error(s))",
            result.outcome.value,
            result.pending_count,
            len(result.errors),
        )
        return result

    def _publish(self, result: SyncRunResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Sync listener failed")

    def last_sync_at(self) -> Optional[datetime]:
        state = self._db.get_sync_state(LAST_SYNC_KEY)
        return state["last_sync_at"] if state else None

    def get_status(self) -> dict:
        """Get current sync status.

        Returns:
            Dict with per-kind record counts, pending counts and last sync time.
        """
        counts = self._db.get_counts()
        return {
            "last_sync_at": self.last_sync_at(),
            "is_running": self.is_running,
            "online": self._context.connectivity.is_connected,
            "pending_count": self._db.get_pending_count(),
            "kinds": {
                kind: {
                    "count": counts[kind]["total"],
                    "pending": counts[kind]["pending"],
                }
                for kind in SYNC_ORDER
            },
        }
