"""Sync triggers.

Every trigger ends in SyncOrchestrator.run_all(); overlapping triggers are
coalesced by the orchestrator's single-flight guard, not here.

Triggers:
- connectivity regained (debounced)
- app becoming active
- periodic tick while active
- explicit request (pull-to-refresh, post-mutation hook)
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from ..config import SyncConfig
from .sync import SyncOrchestrator, SyncRunResult

logger = logging.getLogger(__name__)

Runner = Callable[[Callable[[], None]], None]


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def thread_runner(fn: Callable[[], None]) -> None:
    """Run a sync in a daemon thread."""
    threading.Thread(target=fn, name="finance-sync", daemon=True).start()


def thread_timer(interval: float, fn: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, fn)
    timer.daemon = True
    return timer


class Scheduler:
    """Turns app and connectivity events into sync runs.

    Args:
        orchestrator: Orchestrator whose run_all() every trigger calls.
        config: Debounce and periodic interval settings.
        runner: How a run is dispatched. Defaults to a background thread.
        timer_factory: Creates the debounce and periodic timers.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        config: Optional[SyncConfig] = None,
        runner: Runner = thread_runner,
        timer_factory: TimerFactory = thread_timer,
    ):
        self._orchestrator = orchestrator
        self._connectivity = orchestrator.context.connectivity
        self._config = config or orchestrator.context.config
        self._runner = runner
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._active = False
        self._debounce: Optional[Timer] = None
        self._tick: Optional[Timer] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Listen for connectivity changes and enter the active state."""
        if self._unsubscribe is None:
            self._unsubscribe = self._connectivity.subscribe(self._on_connectivity_change)
        self.app_did_become_active()

    def stop(self) -> None:
        """Stop listening and cancel pending timers."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.app_did_enter_background()
        with self._lock:
            self._cancel_debounce()

    def app_did_become_active(self) -> None:
        """Foreground transition: sync now and resume periodic ticks."""
        with self._lock:
            was_active = self._active
            self._active = True
            if not was_active:
                self._schedule_tick()
        self.request_sync("foreground")

    def app_did_enter_background(self) -> None:
        with self._lock:
            self._active = False
            if self._tick is not None:
                self._tick.cancel()
                self._tick = None

    def request_sync(self, reason: str = "manual") -> None:
        """Dispatch a sync run through the runner."""
        logger.debug("Sync requested (%s)", reason)
        self._runner(self._run)

    def sync_now(self) -> SyncRunResult:
        """Run a sync synchronously on the calling thread."""
        return self._orchestrator.run_all()

    def _run(self) -> None:
        self._orchestrator.run_all()

    def _on_connectivity_change(self, connected: bool) -> None:
        with self._lock:
            self._cancel_debounce()
            if not connected:
                return
            self._debounce = self._timer_factory(
                self._config.debounce_seconds, self._on_debounce_elapsed
            )
            self._debounce.start()

    def _on_debounce_elapsed(self) -> None:
        with self._lock:
            self._debounce = None
        if self._connectivity.is_connected:
            self.request_sync("connectivity")

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _schedule_tick(self) -> None:
        if self._config.interval_seconds <= 0:
            return
        self._tick = self._timer_factory(self._config.interval_seconds, self._on_tick)
        self._tick.start()

    def _on_tick(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._schedule_tick()
        self.request_sync("periodic")
