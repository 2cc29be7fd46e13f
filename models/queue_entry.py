"""
Local queue entry model.

A QueueEntry wraps one unsynced Order with the bookkeeping the sync
coordinator needs. Entries live in the local durable queue and are removed
once the remote store confirms the write.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

from .order import Order


class QueueState(Enum):
    """
    Sync state of a queued order.

    Lifecycle:
        QUEUED -> SYNCING -> (SYNCED, removed from queue | QUEUED on failure)
    """

    QUEUED = "queued"
    """Waiting for the next flush pass."""

    SYNCING = "syncing"
    """Write to the remote store in progress."""

    SYNCED = "synced"
    """Confirmed by the remote store (transient: entry is removed)."""


@dataclass(frozen=True)
class QueueEntry:
    """One order waiting to reach the remote store."""

    order: Order

    submitted_at: datetime
    """When the order entered the queue."""

    state: QueueState = QueueState.QUEUED

    retry_count: int = 0
    """Number of failed write attempts so far."""

    last_error: str = ""
    """Message of the most recent failure."""

    needs_attention: bool = False
    """Remote store rejected the order as invalid; operator must inspect it."""

    @property
    def local_id(self) -> str:
        return self.order.local_id

    @classmethod
    def create(cls, order: Order) -> "QueueEntry":
        return cls(order=order, submitted_at=datetime.now(timezone.utc))

    def mark_syncing(self) -> "QueueEntry":
        return replace(self, state=QueueState.SYNCING)

    def mark_failed(self, error: str, needs_attention: bool = False) -> "QueueEntry":
        return replace(
            self,
            state=QueueState.QUEUED,
            retry_count=self.retry_count + 1,
            last_error=error,
            needs_attention=needs_attention,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "submitted_at": self.submitted_at.isoformat(),
            "state": self.state.value,
            "retry_count": self.retry_count,
            "last_error": self.last_error,
            "needs_attention": self.needs_attention,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueEntry":
        """Create from a stored dictionary."""
        submitted_at_str = data.get("submitted_at", "")
        submitted_at: Optional[datetime] = None
        if submitted_at_str:
            try:
                submitted_at = datetime.fromisoformat(submitted_at_str)
            except ValueError:
                submitted_at = None

        try:
            state = QueueState(data.get("state", "queued"))
        except ValueError:
            state = QueueState.QUEUED

        return cls(
            order=Order.from_dict(data["order"]),
            submitted_at=submitted_at or datetime.now(timezone.utc),
            state=state,
            retry_count=int(data.get("retry_count", 0)),
            last_error=data.get("last_error", ""),
            needs_attention=bool(data.get("needs_attention", False)),
        )
