"""
Order data models.

These models represent a completed sale as it flows through the terminal:
cart -> payment confirmation -> remote store (or local queue) -> synced.

Immutability:
    - DiscountSpec, Payment and Fulfillment are frozen inputs to assembly
    - Order is frozen once assembled; the only change it ever sees is the
      remote id, applied through with_remote_id() which returns a copy
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional, Tuple

from core.exceptions import InvalidInputError
from .cart import CartLine
from .money import money, to_decimal

STANDARD_DISCOUNT_RATE = Decimal("0.20")


class DiscountType(Enum):
    """Statutory discount categories."""

    SENIOR = "SENIOR"
    PWD = "PWD"
    NONE = "NONE"


@dataclass(frozen=True)
class DiscountSpec:
    """
    Senior citizen / PWD discount applied to part of a party.

    Only the share of the bill attributable to card holders is discounted:
    four diners with one senior card get 20% off one quarter of the bill.

    Validation happens here, at the input boundary, so the allocator can
    rely on 1 <= total_pax and 0 <= eligible_count <= total_pax.
    """

    discount_type: DiscountType
    total_pax: int
    """Total number of diners sharing the bill."""

    eligible_count: int
    """Number of Senior/PWD cards presented."""

    rate: Decimal = STANDARD_DISCOUNT_RATE

    id_number: str = ""
    """Representative card number (for the receipt/audit)."""

    holder_name: str = ""
    """Representative card holder."""

    def __post_init__(self):
        if self.total_pax < 1:
            raise InvalidInputError("Total pax must be at least 1", field="total_pax", value=self.total_pax)
        if self.eligible_count < 0:
            raise InvalidInputError(
                "Number of IDs cannot be negative", field="eligible_count", value=self.eligible_count
            )
        if self.eligible_count > self.total_pax:
            raise InvalidInputError(
                "Number of IDs cannot be greater than total pax",
                field="eligible_count",
                value=self.eligible_count,
            )
        if not (Decimal("0") <= self.rate <= Decimal("1")):
            raise InvalidInputError("Discount rate must be between 0 and 1", field="rate", value=self.rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.discount_type.value,
            "total_pax": self.total_pax,
            "eligible_count": self.eligible_count,
            "rate": str(self.rate),
            "id_number": self.id_number,
            "holder_name": self.holder_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscountSpec":
        """
        Create from a request payload or stored document.

        Raises:
            InvalidInputError: On unknown type or non-integer counts
        """
        try:
            discount_type = DiscountType(str(data.get("type", "SENIOR")).upper())
        except ValueError:
            raise InvalidInputError("Unknown discount type", field="type", value=data.get("type"))

        try:
            total_pax = int(data.get("total_pax", 1))
            eligible_count = int(data.get("eligible_count", 1))
            rate = to_decimal(data.get("rate", STANDARD_DISCOUNT_RATE))
        except (TypeError, ValueError):
            raise InvalidInputError("Discount counts must be whole numbers", field="total_pax",
                                    value=data.get("total_pax"))

        return cls(
            discount_type=discount_type,
            total_pax=total_pax,
            eligible_count=eligible_count,
            rate=rate,
            id_number=data.get("id_number", ""),
            holder_name=data.get("holder_name", ""),
        )


class PaymentMethod(Enum):
    CASH = "CASH"
    DIGITAL = "DIGITAL"


@dataclass(frozen=True)
class Payment:
    """How the customer paid."""

    method: PaymentMethod

    tendered: Decimal = Decimal("0.00")
    """Cash handed over (CASH only)."""

    reference: str = ""
    """Wallet transaction reference (DIGITAL only)."""

    provider: str = ""
    """Wallet name for DIGITAL payments, e.g. 'GCASH' or 'MAYA'."""

    @classmethod
    def cash(cls, tendered) -> "Payment":
        return cls(method=PaymentMethod.CASH, tendered=money(tendered))

    @classmethod
    def digital(cls, reference: str, provider: str = "") -> "Payment":
        return cls(method=PaymentMethod.DIGITAL, reference=reference or "", provider=provider or "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "tendered": str(self.tendered),
            "reference": self.reference,
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Payment":
        method = str(data.get("method", "CASH")).upper()
        # Wallet names are accepted directly as the method
        if method not in ("CASH", "DIGITAL"):
            return cls.digital(data.get("reference", ""), provider=method)
        if method == "CASH":
            return cls.cash(data.get("tendered", 0))
        return cls.digital(data.get("reference", ""), provider=data.get("provider", ""))


class FulfillmentType(Enum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


@dataclass(frozen=True)
class Fulfillment:
    """
    How the order leaves the counter.

    Delivery fields are only kept for DELIVERY orders; the table number only
    for DINE_IN.
    """

    fulfillment_type: FulfillmentType = FulfillmentType.DINE_IN
    table_number: str = ""
    delivery_address: str = ""
    delivery_time: str = ""
    contact_number: str = ""
    server_name: str = ""
    """Name of the serving staff member (from the staff directory)."""

    def normalized(self) -> "Fulfillment":
        """Drop metadata that does not belong to the fulfillment type."""
        if self.fulfillment_type is FulfillmentType.DELIVERY:
            return replace(self, table_number="")
        if self.fulfillment_type is FulfillmentType.DINE_IN:
            return replace(self, delivery_address="", delivery_time="", contact_number="")
        return replace(self, table_number="", delivery_address="", delivery_time="", contact_number="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.fulfillment_type.value,
            "table_number": self.table_number,
            "delivery_address": self.delivery_address,
            "delivery_time": self.delivery_time,
            "contact_number": self.contact_number,
            "server_name": self.server_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fulfillment":
        try:
            fulfillment_type = FulfillmentType(str(data.get("type", "DINE_IN")).upper())
        except ValueError:
            raise InvalidInputError("Unknown order type", field="type", value=data.get("type"))
        return cls(
            fulfillment_type=fulfillment_type,
            table_number=str(data.get("table_number", "") or ""),
            delivery_address=data.get("delivery_address", "") or "",
            delivery_time=data.get("delivery_time", "") or "",
            contact_number=data.get("contact_number", "") or "",
            server_name=data.get("server_name", "") or "",
        )


@dataclass(frozen=True)
class Order:
    """
    A confirmed, paid order. The durable unit of synchronization.

    Lifecycle:
        1. Assembled at payment confirmation (local_id + session order number)
        2. Written to the remote store directly, or queued locally
        3. On remote success: with_remote_id() records the store's id
    """

    local_id: str
    """Terminal-generated id; also the client reference sent to the store."""

    order_number: int
    """Visible order number (session counter until the store assigns one)."""

    created_at: str
    """ISO timestamp of payment confirmation (UTC)."""

    lines: Tuple[CartLine, ...]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    tendered: Decimal
    change: Decimal
    payment: Payment
    discount: Optional[DiscountSpec] = None
    fulfillment: Fulfillment = field(default_factory=Fulfillment)
    terminal_id: str = ""

    remote_id: Optional[str] = None
    """Id assigned by the remote store (None while unsynced)."""

    @property
    def is_synced(self) -> bool:
        return self.remote_id is not None

    def with_remote_id(self, remote_id: str, order_number: Optional[int] = None) -> "Order":
        """Return a copy carrying the id (and number) assigned by the remote store."""
        return replace(
            self,
            remote_id=str(remote_id),
            order_number=order_number if order_number is not None else self.order_number,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary (Decimals as strings)."""
        return {
            "local_id": self.local_id,
            "remote_id": self.remote_id,
            "order_number": self.order_number,
            "created_at": self.created_at,
            "terminal_id": self.terminal_id,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": str(self.subtotal),
            "discount_amount": str(self.discount_amount),
            "total": str(self.total),
            "tendered": str(self.tendered),
            "change": str(self.change),
            "payment": self.payment.to_dict(),
            "discount": self.discount.to_dict() if self.discount else None,
            "fulfillment": self.fulfillment.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        """Create from a stored dictionary (e.g., the local queue)."""
        discount = data.get("discount")
        return cls(
            local_id=data["local_id"],
            remote_id=data.get("remote_id"),
            order_number=int(data.get("order_number", 0)),
            created_at=data.get("created_at", ""),
            terminal_id=data.get("terminal_id", ""),
            lines=tuple(CartLine.from_dict(line) for line in data.get("lines", [])),
            subtotal=money(data["subtotal"]),
            discount_amount=money(data.get("discount_amount", 0)),
            total=money(data["total"]),
            tendered=money(data.get("tendered", 0)),
            change=money(data.get("change", 0)),
            payment=Payment.from_dict(data.get("payment", {})),
            discount=DiscountSpec.from_dict(discount) if discount else None,
            fulfillment=Fulfillment.from_dict(data.get("fulfillment", {})),
        )
