"""
Catalog data models.

Catalog items are reference data owned by the menu collaborator. The
terminal only reads them; cart lines copy the price they need at add time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional, Tuple

from .money import money


class PricingMode(Enum):
    """
    How a menu item is priced.

    FIXED    -> unit price x quantity
    WEIGHTED -> rate per kg x weight (lechon sold by the kilo)
    VARIANT  -> one of several serving sizes, each with its own price
    """

    FIXED = "FIXED"
    WEIGHTED = "WEIGHTED"
    VARIANT = "VARIANT"


@dataclass(frozen=True)
class Variant:
    """A serving size / option with its own price (e.g. Small, Party Tray)."""

    name: str
    price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "price": str(self.price)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Variant":
        return cls(name=data["name"], price=money(data["price"]))


@dataclass(frozen=True)
class CatalogItem:
    """
    A sellable menu item.

    For WEIGHTED items base_price is the rate per kilogram.
    """

    item_id: str
    """Stable identifier from the menu collaborator."""

    name: str
    """Display name."""

    category: str
    """Menu category (e.g. 'Lechon & Grills')."""

    pricing_mode: PricingMode
    """FIXED, WEIGHTED or VARIANT."""

    base_price: Decimal
    """Unit price, or rate per kg for WEIGHTED items."""

    variants: Tuple[Variant, ...] = field(default_factory=tuple)
    """Available variants (VARIANT mode only)."""

    def find_variant(self, name: Optional[str]) -> Optional[Variant]:
        """Return the variant with the given name (case-insensitive), if any."""
        if not name:
            return None
        wanted = name.strip().lower()
        for variant in self.variants:
            if variant.name.lower() == wanted:
                return variant
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.item_id,
            "name": self.name,
            "category": self.category,
            "pricing_mode": self.pricing_mode.value,
            "price": str(self.base_price),
            "variants": [v.to_dict() for v in self.variants],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogItem":
        """
        Create from a menu record.

        Accepts the hosted menu shape as well: items with 'isWeighted' are
        WEIGHTED, items with a non-empty 'variants' list are VARIANT.
        """
        variants = tuple(Variant.from_dict(v) for v in data.get("variants") or [])

        mode = data.get("pricing_mode")
        if mode:
            pricing_mode = PricingMode(mode)
        elif data.get("isWeighted"):
            pricing_mode = PricingMode.WEIGHTED
        elif variants:
            pricing_mode = PricingMode.VARIANT
        else:
            pricing_mode = PricingMode.FIXED

        return cls(
            item_id=str(data["id"]),
            name=data.get("name", ""),
            category=data.get("category", ""),
            pricing_mode=pricing_mode,
            base_price=money(data.get("price", 0)),
            variants=variants,
        )
