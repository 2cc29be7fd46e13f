"""
Pricing engine and cart.

Turns a catalog item plus operator input into a priced CartLine, and owns
the rules for how repeated adds combine:

    FIXED    re-add of the same item increments the existing line
    VARIANT  re-add of the same (item, variant) increments the existing line
    WEIGHTED every weighing is its own line, never merged

Weighted items can be entered on either axis. The operator types a weight
("0.75 kg") or a price ("500 worth"), and the other is derived from the
per-kg rate so the two always agree.
"""

from __future__ import annotations

import secrets
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from core.exceptions import InvalidInputError
from models.cart import CartLine
from models.catalog import CatalogItem, PricingMode
from models.money import (
    ZERO,
    WEIGHT_DERIVED_STEP,
    WEIGHT_INPUT_STEP,
    money,
    to_decimal,
)
from logging_config import get_logger


logger = get_logger(__name__)


def new_line_id() -> str:
    """Random line id, unique within a session."""
    return secrets.token_hex(6)


def _positive_decimal(value: Any, field: str) -> Decimal:
    try:
        number = to_decimal(value)
    except ValueError:
        raise InvalidInputError(f"{field} must be a number", field=field, value=value)
    if number <= 0:
        raise InvalidInputError(f"{field} must be greater than zero", field=field, value=value)
    return number


def _positive_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError("quantity must be a whole number", field="quantity", value=value)
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError("quantity must be a whole number", field="quantity", value=value)
    if quantity != value and str(quantity) != str(value).strip():
        raise InvalidInputError("quantity must be a whole number", field="quantity", value=value)
    if quantity < 1:
        raise InvalidInputError("quantity must be at least 1", field="quantity", value=value)
    return quantity


class PricingEngine:
    """Prices a single catalog item for the cart."""

    def price_line(
        self,
        item: CatalogItem,
        quantity: Any = 1,
        variant_name: Optional[str] = None,
        weight_kg: Any = None,
        target_price: Any = None,
    ) -> CartLine:
        """
        Build a priced cart line.

        Args:
            item: Catalog item being sold
            quantity: Units (FIXED / VARIANT)
            variant_name: Selected variant (VARIANT, required)
            weight_kg: Weighed amount (WEIGHTED, exclusive with target_price)
            target_price: Amount of money's worth (WEIGHTED, exclusive with weight_kg)

        Returns:
            New CartLine with a fresh line_id

        Raises:
            InvalidInputError: On non-positive input or missing variant
        """
        if item.pricing_mode is PricingMode.WEIGHTED:
            return self._price_weighted(item, weight_kg, target_price)

        count = _positive_quantity(quantity)

        if item.pricing_mode is PricingMode.VARIANT:
            variant = item.find_variant(variant_name)
            if variant is None:
                raise InvalidInputError(
                    f"Select a serving size for {item.name}",
                    field="variant_name",
                    value=variant_name,
                )
            unit_price = variant.price
            selected = variant.name
        else:
            unit_price = item.base_price
            selected = None

        return CartLine(
            line_id=new_line_id(),
            item_id=item.item_id,
            name=item.name,
            pricing_mode=item.pricing_mode,
            unit_price=unit_price,
            quantity=count,
            line_total=money(unit_price * count),
            variant_name=selected,
        )

    def _price_weighted(self, item: CatalogItem, weight_kg: Any, target_price: Any) -> CartLine:
        if (weight_kg is None) == (target_price is None):
            raise InvalidInputError(
                f"Enter either a weight or a price for {item.name}",
                field="weight_kg",
                value=weight_kg,
            )

        rate = item.base_price
        if rate <= 0:
            raise InvalidInputError(f"{item.name} has no price per kg", field="price", value=rate)

        if weight_kg is not None:
            entered = _positive_decimal(weight_kg, "weight_kg")
            weight = entered.quantize(WEIGHT_INPUT_STEP, rounding=ROUND_HALF_UP)
            # Scale resolution is 10 g; finer input is rejected, not rounded
            if weight != entered:
                raise InvalidInputError(
                    "weight_kg allows at most 2 decimal places", field="weight_kg", value=weight_kg
                )
            total = money(weight * rate)
        else:
            total = money(_positive_decimal(target_price, "price"))
            if total <= 0:
                raise InvalidInputError("price must be at least 0.01", field="price", value=target_price)
            weight = (total / rate).quantize(WEIGHT_DERIVED_STEP, rounding=ROUND_HALF_UP)

        logger.debug(f"Weighed {item.name}: {weight} kg @ {rate}/kg = {total}")

        return CartLine(
            line_id=new_line_id(),
            item_id=item.item_id,
            name=item.name,
            pricing_mode=PricingMode.WEIGHTED,
            unit_price=rate,
            quantity=1,
            line_total=total,
            weight_kg=weight,
        )


class Cart:
    """
    Ordered collection of lines for the order in progress.

    Not thread-safe on its own; the terminal session serializes access.
    """

    def __init__(self, engine: Optional[PricingEngine] = None, lines: Iterable[CartLine] = ()):
        self._engine = engine or PricingEngine()
        self._lines: List[CartLine] = list(lines)

    @property
    def engine(self) -> PricingEngine:
        return self._engine

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def subtotal(self) -> Decimal:
        return money(sum((line.line_total for line in self._lines), ZERO))

    def add(self, item: CatalogItem, **pricing_input) -> CartLine:
        """
        Price an item and add it, merging into an existing line where allowed.

        Returns:
            The new or updated line
        """
        line = self._engine.price_line(item, **pricing_input)

        key = line.merge_key
        if key is not None:
            for index, existing in enumerate(self._lines):
                if existing.merge_key == key:
                    merged = existing.with_quantity(existing.quantity + line.quantity)
                    self._lines[index] = merged
                    logger.debug(f"Merged {item.name} into line {existing.line_id} (qty {merged.quantity})")
                    return merged

        self._lines.append(line)
        return line

    def change_quantity(self, line_id: str, delta: int) -> CartLine:
        """
        Adjust a line's quantity by delta.

        Quantity never drops below 1 (use remove() to delete a line).
        Weighted lines keep their weighed amount.
        """
        index = self._index_of(line_id)
        line = self._lines[index]
        if line.is_weighted:
            return line

        new_quantity = max(1, line.quantity + int(delta))
        if new_quantity == line.quantity:
            return line

        updated = line.with_quantity(new_quantity)
        self._lines[index] = updated
        return updated

    def remove(self, line_id: str) -> CartLine:
        index = self._index_of(line_id)
        return self._lines.pop(index)

    def clear(self) -> None:
        self._lines.clear()

    def _index_of(self, line_id: str) -> int:
        for index, line in enumerate(self._lines):
            if line.line_id == line_id:
                return index
        raise InvalidInputError("Cart line not found", field="line_id", value=line_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self._lines],
            "subtotal": str(self.subtotal),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], engine: Optional[PricingEngine] = None) -> "Cart":
        return cls(engine, (CartLine.from_dict(line) for line in data.get("lines", [])))
