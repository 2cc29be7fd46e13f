"""
Parked ("save for later") order model.

A parked order is an unpaid cart set aside so the terminal can serve the next
customer. It is not an Order: nothing has been assembled, numbered or paid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Tuple

from .cart import CartLine
from .money import ZERO, money
from .order import DiscountSpec, Fulfillment


@dataclass(frozen=True)
class ParkedOrder:
    """Snapshot of the cart and checkout details at the time it was parked."""

    parked_id: str
    label: str
    """Operator-entered name, e.g. 'Table 4' or the customer's name."""

    lines: Tuple[CartLine, ...]
    parked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    discount: Optional[DiscountSpec] = None
    fulfillment: Fulfillment = field(default_factory=Fulfillment)
    server_id: Optional[str] = None

    @property
    def subtotal(self):
        return money(sum((line.line_total for line in self.lines), ZERO))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.parked_id,
            "label": self.label,
            "parked_at": self.parked_at.isoformat(),
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": str(self.subtotal),
            "discount": self.discount.to_dict() if self.discount else None,
            "fulfillment": self.fulfillment.to_dict(),
            "server_id": self.server_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParkedOrder":
        discount = data.get("discount")
        parked_at = data.get("parked_at")
        return cls(
            parked_id=data["id"],
            label=data.get("label", ""),
            lines=tuple(CartLine.from_dict(line) for line in data.get("lines", [])),
            parked_at=datetime.fromisoformat(parked_at) if parked_at else datetime.now(timezone.utc),
            discount=DiscountSpec.from_dict(discount) if discount else None,
            fulfillment=Fulfillment.from_dict(data.get("fulfillment", {})),
            server_id=data.get("server_id"),
        )
