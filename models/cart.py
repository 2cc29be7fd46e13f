"""
Cart line model.

A cart line is one priced row of the order in progress. Lines are frozen:
a quantity change produces a new line (same line_id) so a line captured in
an Order can never change afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Any, Optional

from .catalog import PricingMode
from .money import money, to_decimal


@dataclass(frozen=True)
class CartLine:
    """
    A single priced row in the cart.

    Invariant:
        FIXED / VARIANT: line_total == unit_price * quantity
        WEIGHTED:        line_total == weight_kg * unit_price (to the centavo)
    """

    line_id: str
    """Random id, unique within the session."""

    item_id: str
    """CatalogItem id this line was priced from."""

    name: str
    """Display name snapshot."""

    pricing_mode: PricingMode

    unit_price: Decimal
    """Price snapshot at add time (rate per kg for WEIGHTED)."""

    quantity: int
    """Number of units (always 1 for WEIGHTED)."""

    line_total: Decimal

    weight_kg: Optional[Decimal] = None
    """Weighed amount (WEIGHTED only)."""

    variant_name: Optional[str] = None
    """Selected variant (VARIANT only)."""

    @property
    def is_weighted(self) -> bool:
        return self.pricing_mode is PricingMode.WEIGHTED

    @property
    def merge_key(self) -> Optional[tuple]:
        """Key under which re-adds merge into this line (None: never merges)."""
        if self.is_weighted:
            return None
        return (self.item_id, self.variant_name)

    def with_quantity(self, quantity: int) -> "CartLine":
        """Return a copy with a new quantity and recomputed total."""
        return replace(self, quantity=quantity, line_total=money(self.unit_price * quantity))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_id": self.line_id,
            "item_id": self.item_id,
            "name": self.name,
            "pricing_mode": self.pricing_mode.value,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "line_total": str(self.line_total),
            "weight_kg": str(self.weight_kg) if self.weight_kg is not None else None,
            "variant_name": self.variant_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLine":
        weight = data.get("weight_kg")
        return cls(
            line_id=data["line_id"],
            item_id=data["item_id"],
            name=data.get("name", ""),
            pricing_mode=PricingMode(data["pricing_mode"]),
            unit_price=money(data["unit_price"]),
            quantity=int(data.get("quantity", 1)),
            line_total=money(data["line_total"]),
            weight_kg=to_decimal(weight) if weight is not None else None,
            variant_name=data.get("variant_name"),
        )
