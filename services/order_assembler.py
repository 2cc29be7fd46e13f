"""
Order assembly at payment confirmation.

Combines the cart lines, optional discount and payment into a frozen Order.
Nothing here touches the network or the queue; a failed assembly has no
side effects, not even on the order counter.
"""

from __future__ import annotations

import secrets
import threading
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from core.exceptions import (
    EmptyOrderError,
    MissingReferenceError,
    PaymentInsufficientError,
)
from models.cart import CartLine
from models.money import ZERO, money, to_decimal
from models.order import DiscountSpec, Fulfillment, Order, Payment, PaymentMethod
from logging_config import get_logger
from .discount import allocate


logger = get_logger(__name__)

DEFAULT_CASH_TOLERANCE = Decimal("0.1")


def format_order_number(number: int) -> str:
    """Receipt rendering of an order number (zero padded to 6 digits)."""
    return str(number).zfill(6)


def new_local_order_id() -> str:
    """Placeholder id used until the remote store assigns one."""
    return f"OFFLINE-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class OrderAssembler:
    """
    Builds Orders and numbers them.

    The order counter is scoped to this assembler (one per terminal session)
    and only advances when an order is actually assembled.

    Attributes:
        next_order_number: Number the next successful assembly will receive
    """

    def __init__(
        self,
        cash_tolerance=DEFAULT_CASH_TOLERANCE,
        starting_number: int = 1,
        terminal_id: str = "",
    ):
        self._cash_tolerance = to_decimal(cash_tolerance)
        self._next_number = starting_number
        self._terminal_id = terminal_id
        self._lock = threading.Lock()

    @property
    def next_order_number(self) -> int:
        return self._next_number

    def assemble(
        self,
        lines: Iterable[CartLine],
        discount: Optional[DiscountSpec],
        payment: Payment,
        fulfillment: Optional[Fulfillment] = None,
    ) -> Order:
        """
        Validate payment and freeze the order.

        Raises:
            EmptyOrderError: No lines
            PaymentInsufficientError: Cash below total (beyond tolerance)
            MissingReferenceError: Digital payment without reference
        """
        frozen_lines = tuple(lines)
        if not frozen_lines:
            raise EmptyOrderError()

        subtotal = money(sum((line.line_total for line in frozen_lines), ZERO))
        discount_amount = allocate(subtotal, discount)
        total = max(ZERO, subtotal - discount_amount)

        tendered, change = self._settle(payment, total)

        with self._lock:
            number = self._next_number
            self._next_number += 1

        order = Order(
            local_id=new_local_order_id(),
            order_number=number,
            created_at=datetime.now(timezone.utc).isoformat(),
            lines=frozen_lines,
            subtotal=subtotal,
            discount_amount=discount_amount,
            total=total,
            tendered=tendered,
            change=change,
            payment=payment,
            discount=discount,
            fulfillment=(fulfillment or Fulfillment()).normalized(),
            terminal_id=self._terminal_id,
        )

        logger.info(
            f"Order #{format_order_number(number)} assembled: {len(frozen_lines)} lines, "
            f"subtotal {subtotal}, discount {discount_amount}, total {total} "
            f"({payment.method.value})"
        )
        return order

    def _settle(self, payment: Payment, total: Decimal):
        """Return (tendered, change) or raise if the payment does not cover total."""
        if payment.method is PaymentMethod.CASH:
            tendered = money(payment.tendered)
            if tendered < total - self._cash_tolerance:
                raise PaymentInsufficientError(total=total, tendered=tendered)
            return tendered, max(ZERO, tendered - total)

        if not payment.reference or not payment.reference.strip():
            raise MissingReferenceError(payment.provider or None)
        # Digital wallets collect the exact amount
        return total, ZERO
