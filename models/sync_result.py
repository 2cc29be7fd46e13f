"""
Sync result models.

These models describe the outcome of getting orders to the remote store,
either directly at checkout (SubmitResult) or by a queue flush (SyncReport).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional

from .order import Order
from .queue_entry import QueueEntry


class SyncState(Enum):
    """Sync coordinator activity."""

    IDLE = "IDLE"
    """No flush pass running."""

    SYNCING = "SYNCING"
    """A flush pass is walking the queue."""


class SubmitMode(Enum):
    """Where a confirmed order ended up."""

    ONLINE = "ONLINE"
    """Accepted by the remote store at checkout."""

    OFFLINE = "OFFLINE"
    """Saved to the local queue, will sync when the network returns."""


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of the payment confirmation fast path."""

    mode: SubmitMode
    order: Order
    entry: Optional[QueueEntry] = None
    """Queue entry when mode is OFFLINE."""

    @property
    def message(self) -> str:
        if self.mode is SubmitMode.ONLINE:
            return "Order saved"
        return "Saved offline, will sync"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "message": self.message,
            "order": self.order.to_dict(),
        }


@dataclass
class SyncFailure:
    """A queued order that could not be written during a flush pass."""

    local_id: str
    error: str
    retryable: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"local_id": self.local_id, "error": self.error, "retryable": self.retryable}


@dataclass
class SyncReport:
    """
    Summary of one queue flush pass.

    Built by the sync coordinator while it walks the queue; read by the
    status endpoint and the logs.
    """

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    synced: Dict[str, str] = field(default_factory=dict)
    """local_id -> remote id for every order the store accepted."""

    failures: List[SyncFailure] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.synced) + len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "attempted": self.attempted,
            "synced": dict(self.synced),
            "failures": [f.to_dict() for f in self.failures],
        }
