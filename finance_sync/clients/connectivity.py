"""Connectivity status and transition notifications."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    """Tracks whether the backend is reachable and notifies on transitions.

    Status can be pushed in with set_connected() (e.g. from a platform
    network-change hook) or pulled with refresh(), which probes the backend
    with a HEAD request.
    """

    def __init__(
        self,
        connected: bool = True,
        probe_url: Optional[str] = None,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self._connected = connected
        self._probe_url = probe_url
        self._timeout = timeout
        self._session = session
        self._listeners: list[ConnectivityListener] = []
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a listener called with the new status on every transition.

        Returns:
            A function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def set_connected(self, connected: bool) -> None:
        """Update status, notifying listeners only if it changed."""
        with self._lock:
            if connected == self._connected:
                return
            self._connected = connected
            listeners = list(self._listeners)
        logger.info("Connectivity changed: %s", "online" if connected else "offline")
        for listener in listeners:
            listener(connected)

    def refresh(self) -> bool:
        """Probe the backend and update status.

        Any HTTP response counts as reachable. Without a probe URL the
        current status is returned unchanged.
        """
        if not self._probe_url:
            return self._connected
        session = self._session or requests.Session()
        try:
            session.head(self._probe_url, timeout=self._timeout)
            reachable = True
        except requests.RequestException as e:
            logger.debug("Connectivity probe failed: %s", e)
            reachable = False
        self.set_connected(reachable)
        return reachable
