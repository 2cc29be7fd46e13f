"""
Network availability events.

ConnectivityMonitor is the event source the sync coordinator subscribes to.
It only notifies on transitions (offline -> online, online -> offline), so a
subscriber can treat every call as "the state just changed".

HealthProbeMonitor is the production driver: a background thread that
probes the remote store every few seconds and reports the result to the
ConnectivityMonitor. Tests drive ConnectivityMonitor.set_online() directly.

Usage:
    monitor = ConnectivityMonitor(initially_online=False)
    monitor.subscribe(coordinator.on_network_change)

    probe = HealthProbeMonitor(monitor, remote_store.ping, interval_seconds=10)
    probe.start()
    ...
    probe.stop()
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

from logging_config import get_logger, set_thread_name


logger = get_logger(__name__)

NetworkListener = Callable[[bool], None]


class ConnectivityMonitor:
    """
    Holds the current online flag and fans out transitions to listeners.

    Listeners run on the thread that reported the change.
    """

    def __init__(self, initially_online: bool = False):
        self._online = initially_online
        self._listeners: List[NetworkListener] = []
        self._lock = threading.Lock()

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: NetworkListener) -> Callable[[], None]:
        """
        Register a listener for availability transitions.

        Returns:
            Function that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> bool:
        """
        Report the current availability.

        Returns:
            True if this was a transition and listeners were notified
        """
        online = bool(online)
        with self._lock:
            if online == self._online:
                return False
            self._online = online
            listeners = list(self._listeners)

        logger.info(f"Network became {'available' if online else 'unavailable'}")

        for listener in listeners:
            try:
                listener(online)
            except Exception as e:
                # One broken listener must not starve the others
                logger.error(f"Network listener {listener!r} failed: {e}", exc_info=True)
        return True


class HealthProbeMonitor:
    """
    Background thread that polls a health check and feeds ConnectivityMonitor.

    Attributes:
        interval_seconds: Time between probes
        is_running: Whether the probe thread is active
    """

    def __init__(
        self,
        monitor: ConnectivityMonitor,
        probe: Callable[[], bool],
        interval_seconds: float = 10.0,
    ):
        self._monitor = monitor
        self._probe = probe
        self.interval_seconds = interval_seconds

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False
        self._consecutive_failures = 0

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        """Start probing. Safe to call when already running."""
        if self._is_running:
            logger.warning("HealthProbeMonitor already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._probe_loop,
            name="Connectivity",
            daemon=True
        )
        self._is_running = True
        self._thread.start()

        logger.info(f"Connectivity probe started (interval: {self.interval_seconds}s)")

    def stop(self) -> None:
        """Stop probing and wait for the thread to exit."""
        if not self._is_running:
            return

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
            if self._thread.is_alive():
                logger.warning("Connectivity thread did not stop cleanly")

        self._is_running = False
        self._thread = None

        logger.info("Connectivity probe stopped")

    def probe_once(self) -> bool:
        """Run a single probe in the calling thread and report the result."""
        try:
            online = bool(self._probe())
        except Exception as e:
            online = False
            logger.debug(f"Health probe raised: {e}")

        if online:
            if self._consecutive_failures > 0:
                logger.info(f"Remote store reachable again after {self._consecutive_failures} failed probes")
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
            if self._consecutive_failures == 1:
                logger.warning("Remote store unreachable")
            elif self._consecutive_failures % 30 == 0:
                logger.warning(f"Remote store still unreachable ({self._consecutive_failures} consecutive probes)")

        self._monitor.set_online(online)
        return online

    def _probe_loop(self) -> None:
        set_thread_name("Connectivity")

        self.probe_once()

        while not self._stop_event.is_set():
            if self._stop_event.wait(timeout=self.interval_seconds):
                break
            self.probe_once()

        logger.debug("Connectivity probe loop exiting")
