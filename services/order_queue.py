"""
Local durable queue for orders not yet confirmed by the remote store.

The queue is the single source of truth for "unsynced": an order is in here
until the remote store accepts it, and is removed before anything reports
it as confirmed.

DEBOUNCED WRITES:
    Every mutation updates the in-memory queue immediately and (re)starts a
    short timer. When the timer fires the whole queue is written to the
    key-value store in one go, so a burst of mutations (e.g. a flush pass
    marking and removing a dozen entries) costs a single physical write.
    flush_now() cancels the timer and writes synchronously; it is called at
    shutdown so the most recent mutation is never lost.

UNREADABLE ENTRIES:
    A stored entry that no longer parses (hand-edited file, older format) is
    kept verbatim and written back with every snapshot. It never syncs, but
    it counts towards attention_count() so an operator sees it and it is not
    lost when the readable entries change.

Thread Safety:
    - All state is guarded by an RLock
    - The timer thread and request threads may call into the queue concurrently

Usage:
    queue = LocalOrderQueue(store, debounce_ms=300)
    queue.enqueue(order)
    for entry in queue.list_pending():
        ...
    queue.remove(entry.local_id)

    # At shutdown
    queue.close()
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, List, Optional

from core.exceptions import PosTerminalError, StorageError
from core.kv_store import KeyValueStore
from models.order import Order
from models.queue_entry import QueueEntry, QueueState
from logging_config import get_logger


logger = get_logger(__name__)

PENDING_ORDERS_KEY = "pending_orders"


class LocalOrderQueue:
    """
    Crash-surviving FIFO of unsynced orders.

    Attributes:
        debounce_ms: Coalescing window for physical writes (0 writes synchronously)
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = PENDING_ORDERS_KEY,
        debounce_ms: int = 300,
    ):
        self._store = store
        self._key = key
        self.debounce_ms = debounce_ms

        self._lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._dirty = False

        self._entries: "OrderedDict[str, QueueEntry]" = OrderedDict()
        self._unreadable: List[Any] = []
        self._load()

    # =========================================================================
    # QUEUE OPERATIONS
    # =========================================================================

    def enqueue(self, order: Order) -> QueueEntry:
        """
        Add an order to the end of the queue.

        Enqueuing an order that is already queued returns the existing entry.
        """
        with self._lock:
            existing = self._entries.get(order.local_id)
            if existing is not None:
                logger.warning(f"Order {order.local_id} already queued, ignoring duplicate enqueue")
                return existing

            entry = QueueEntry.create(order)
            self._entries[order.local_id] = entry
            self._schedule_write()

        logger.info(f"Queued order {order.local_id} for sync ({len(self)} pending)")
        return entry

    def list_pending(self) -> List[QueueEntry]:
        """Return all entries in submission order."""
        with self._lock:
            return list(self._entries.values())

    def get(self, local_id: str) -> Optional[QueueEntry]:
        with self._lock:
            return self._entries.get(local_id)

    def remove(self, local_id: str) -> bool:
        """
        Drop a confirmed order from the queue.

        Returns:
            True if the entry was present
        """
        with self._lock:
            entry = self._entries.pop(local_id, None)
            if entry is None:
                return False
            self._schedule_write()

        logger.debug(f"Removed order {local_id} from queue")
        return True

    def mark_syncing(self, local_id: str) -> Optional[QueueEntry]:
        return self._update(local_id, lambda entry: entry.mark_syncing())

    def mark_failed(
        self,
        local_id: str,
        error: str,
        needs_attention: bool = False
    ) -> Optional[QueueEntry]:
        """Return an entry to QUEUED after a failed write, recording the error."""
        return self._update(local_id, lambda entry: entry.mark_failed(error, needs_attention))

    def attention_count(self) -> int:
        """Entries needing an operator: rejected by the remote store, or unreadable."""
        with self._lock:
            rejected = sum(1 for entry in self._entries.values() if entry.needs_attention)
            return rejected + len(self._unreadable)

    def unreadable_count(self) -> int:
        with self._lock:
            return len(self._unreadable)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _update(self, local_id: str, change) -> Optional[QueueEntry]:
        with self._lock:
            entry = self._entries.get(local_id)
            if entry is None:
                return None
            updated = change(entry)
            self._entries[local_id] = updated
            self._schedule_write()
            return updated

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def flush_now(self) -> None:
        """
        Write pending changes immediately, bypassing the debounce window.

        Raises:
            StorageError: If the key-value store rejects the write
        """
        with self._lock:
            self._cancel_timer()
            if self._dirty:
                self._write()

    def close(self) -> None:
        """Flush pending changes. Safe to call more than once."""
        try:
            self.flush_now()
        except StorageError as e:
            logger.error(f"Failed to flush order queue at shutdown: {e}")
            raise

    @property
    def has_unwritten_changes(self) -> bool:
        with self._lock:
            return self._dirty

    def _load(self) -> None:
        stored = self._store.get(self._key, [])
        restored = 0
        for data in stored or []:
            try:
                entry = QueueEntry.from_dict(data)
            except (KeyError, ValueError, TypeError, AttributeError, PosTerminalError) as e:
                logger.error(f"Keeping unreadable queue entry aside: {e}")
                self._unreadable.append(data)
                continue

            # A pass interrupted by a restart never got an answer from the store
            if entry.state is not QueueState.QUEUED:
                entry = QueueEntry(
                    order=entry.order,
                    submitted_at=entry.submitted_at,
                    retry_count=entry.retry_count,
                    last_error=entry.last_error,
                    needs_attention=entry.needs_attention,
                )
            self._entries[entry.local_id] = entry
            restored += 1

        if restored:
            logger.info(f"Restored {restored} unsynced orders from local storage")
        if self._unreadable:
            logger.warning(f"{len(self._unreadable)} stored orders could not be read and need attention")

    def _schedule_write(self) -> None:
        # Caller holds self._lock
        self._dirty = True

        if self.debounce_ms <= 0:
            self._write()
            return

        self._cancel_timer()
        self._timer = threading.Timer(self.debounce_ms / 1000.0, self._on_timer)
        self._timer.name = "QueueWriter"
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
            if not self._dirty:
                return
            try:
                self._write()
            except StorageError as e:
                # Data stays dirty; the next mutation or flush_now() retries
                logger.error(f"Debounced queue write failed: {e}")

    def _write(self) -> None:
        snapshot: List[Any] = [entry.to_dict() for entry in self._entries.values()]
        snapshot.extend(self._unreadable)
        self._store.set(self._key, snapshot)
        self._dirty = False
        logger.debug(f"Order queue persisted ({len(snapshot)} entries)")
