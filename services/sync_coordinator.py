"""
Sync coordinator: gets confirmed orders into the remote store.

Two entry points share one remote write:

    submit_order()  - fast path at payment confirmation. Online: write
                      directly. Offline or network failure: enqueue locally
                      and report "saved offline, will sync".
    sync_now()      - flush pass over the local queue, triggered when the
                      network becomes available (or manually).

SINGLE FLIGHT:
    At most one flush pass runs at a time. The guard is a lock owned by the
    coordinator instance, acquired non-blocking: a second trigger while a pass
    is running returns immediately instead of waiting or queueing a rerun.

FAILURE HANDLING DURING A PASS:
    RemoteNetworkError     -> entry back to QUEUED, retried on next trigger
    RemoteValidationError  -> entry back to QUEUED, flagged needs_attention
    anything else          -> treated like a network failure
    A failure never stops the pass; later entries are still attempted.

Usage:
    coordinator = SyncCoordinator(queue, remote_store, monitor)
    result = coordinator.submit_order(order)
    report = coordinator.sync_now()
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.connectivity import ConnectivityMonitor
from core.exceptions import RemoteNetworkError, RemoteValidationError
from core.remote_store import RemoteOrderStore
from models.order import Order
from models.sync_result import (
    SubmitMode,
    SubmitResult,
    SyncFailure,
    SyncReport,
    SyncState,
)
from logging_config import get_logger
from .order_queue import LocalOrderQueue


logger = get_logger(__name__)


class SyncCoordinator:
    """
    Owns the IDLE / SYNCING state machine for one terminal.

    Attributes:
        last_synced: local_id -> remote id for every order confirmed by a pass
    """

    def __init__(
        self,
        queue: LocalOrderQueue,
        remote: RemoteOrderStore,
        monitor: Optional[ConnectivityMonitor] = None,
    ):
        self._queue = queue
        self._remote = remote
        self._monitor = monitor

        self._flush_lock = threading.Lock()
        self._state = SyncState.IDLE

        self.last_synced: Dict[str, str] = {}
        self._last_report: Optional[SyncReport] = None

        if monitor is not None:
            monitor.subscribe(self.on_network_change)

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_online(self) -> bool:
        # Without an event source, always attempt the direct write
        if self._monitor is None:
            return True
        return self._monitor.is_online

    @property
    def last_report(self) -> Optional[SyncReport]:
        return self._last_report

    # =========================================================================
    # NETWORK EVENTS
    # =========================================================================

    def on_network_change(self, online: bool) -> None:
        """Connectivity listener: start a flush when the network comes back."""
        if not online:
            if self._state is SyncState.SYNCING:
                logger.info("Network lost during sync, current pass continues")
            return

        if self._state is SyncState.SYNCING:
            logger.debug("Network available but a sync pass is already running")
            return

        pending = len(self._queue)
        if pending == 0:
            return

        logger.info(f"Network available, syncing {pending} queued orders")
        self.sync_now()

    # =========================================================================
    # FLUSH
    # =========================================================================

    def sync_now(self) -> Optional[SyncReport]:
        """
        Run one flush pass over the queue.

        Returns:
            SyncReport for the pass, or None if a pass was already running
        """
        if not self._flush_lock.acquire(blocking=False):
            logger.debug("Sync already in progress, skipping trigger")
            return None

        try:
            self._state = SyncState.SYNCING
            return self._run_pass()
        finally:
            self._state = SyncState.IDLE
            self._flush_lock.release()

    def _run_pass(self) -> SyncReport:
        report = SyncReport()
        entries = self._queue.list_pending()

        for entry in entries:
            local_id = entry.local_id
            if self._queue.mark_syncing(local_id) is None:
                continue

            try:
                receipt = self._remote.create_order(entry.order)
            except RemoteValidationError as e:
                logger.error(f"Remote store rejected queued order {local_id}, flagged for review: {e}")
                self._queue.mark_failed(local_id, str(e), needs_attention=True)
                report.failures.append(SyncFailure(local_id, str(e), retryable=False))
                continue
            except RemoteNetworkError as e:
                logger.warning(f"Queued order {local_id} not synced: {e}")
                self._queue.mark_failed(local_id, str(e))
                report.failures.append(SyncFailure(local_id, str(e), retryable=True))
                continue
            except Exception as e:
                logger.error(f"Unexpected error syncing order {local_id}: {e}", exc_info=True)
                self._queue.mark_failed(local_id, str(e))
                report.failures.append(SyncFailure(local_id, str(e), retryable=True))
                continue

            # Leave the queue before anything reports the order as confirmed
            self._queue.remove(local_id)
            report.synced[local_id] = receipt.assigned_id
            self.last_synced[local_id] = receipt.assigned_id

        report.finished_at = datetime.now(timezone.utc)
        self._last_report = report

        if report.attempted:
            logger.info(
                f"Sync pass finished: {len(report.synced)} synced, "
                f"{len(report.failures)} failed, {len(self._queue)} still queued"
            )
        return report

    # =========================================================================
    # FAST PATH
    # =========================================================================

    def submit_order(self, order: Order) -> SubmitResult:
        """
        Deliver a freshly confirmed order.

        Returns:
            SubmitResult with mode ONLINE (remote ids filled in) or OFFLINE

        Raises:
            RemoteValidationError: The store rejected the order data
            StorageError: Offline fallback could not be persisted
        """
        if not self.is_online:
            return self._save_offline(order, "network unavailable")

        try:
            receipt = self._remote.create_order(order)
        except RemoteNetworkError as e:
            logger.warning(f"Direct write of order {order.local_id} failed, saving offline: {e}")
            self._report_offline()
            return self._save_offline(order, str(e))
        except RemoteValidationError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error writing order {order.local_id}, saving offline: {e}", exc_info=True)
            return self._save_offline(order, str(e))

        confirmed = order.with_remote_id(receipt.assigned_id, receipt.assigned_order_number)
        logger.info(f"Order {order.local_id} saved to remote store as {receipt.assigned_id}")
        return SubmitResult(mode=SubmitMode.ONLINE, order=confirmed)

    def _save_offline(self, order: Order, reason: str) -> SubmitResult:
        entry = self._queue.enqueue(order)
        logger.info(f"Order {order.local_id} saved offline ({reason})")
        return SubmitResult(mode=SubmitMode.OFFLINE, order=order, entry=entry)

    def _report_offline(self) -> None:
        # The next successful probe is then a transition and triggers a flush
        if self._monitor is not None:
            self._monitor.set_online(False)

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(self) -> Dict[str, Any]:
        report = self._last_report
        return {
            "state": self._state.value,
            "online": self.is_online,
            "pending": len(self._queue),
            "needs_attention": self._queue.attention_count(),
            "unreadable": self._queue.unreadable_count(),
            "last_sync_at": report.finished_at.isoformat() if report and report.finished_at else None,
            "last_report": report.to_dict() if report else None,
        }
