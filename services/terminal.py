"""
Terminal session: the order in progress and the payment confirmation boundary.

One PosTerminal per process. It owns the cart, the discount and fulfillment
details the operator has entered, and the selected server. confirm_payment()
is where a cart becomes an Order and leaves the session:

    cart lines + discount + payment
        -> OrderAssembler.assemble()        (raises on bad payment, no side effects)
        -> SyncCoordinator.submit_order()   (remote store, or local queue)
        -> cart reset for the next customer

Thread Safety:
    - Session state is guarded by one RLock; Flask request threads may call
      in concurrently but the session changes one step at a time
    - The remote write in confirm_payment() runs outside the lock; while it
      runs, reads are served and changes raise CheckoutInProgressError
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Dict, Optional

from core.exceptions import CheckoutInProgressError, InvalidInputError
from models.cart import CartLine
from models.money import ZERO
from models.order import DiscountSpec, Fulfillment, Payment
from models.parked_order import ParkedOrder
from models.staff import StaffMember
from models.sync_result import SubmitMode, SubmitResult
from logging_config import get_logger
from .catalog import CatalogProvider, JsonStaffDirectory
from .discount import allocate
from .order_assembler import OrderAssembler, format_order_number
from .parked_orders import ParkedOrderBook
from .pricing import Cart, PricingEngine
from .sync_coordinator import SyncCoordinator


logger = get_logger(__name__)


class PosTerminal:
    """
    Order-taking session for a single terminal.

    Attributes:
        coordinator: Sync coordinator used for confirmed orders
        parked: Parked order book (None disables parking)
    """

    def __init__(
        self,
        catalog: CatalogProvider,
        assembler: OrderAssembler,
        coordinator: SyncCoordinator,
        parked: Optional[ParkedOrderBook] = None,
        staff: Optional[JsonStaffDirectory] = None,
        engine: Optional[PricingEngine] = None,
    ):
        self._catalog = catalog
        self._assembler = assembler
        self.coordinator = coordinator
        self.parked = parked
        self._staff = staff

        self._lock = threading.RLock()
        self._cart = Cart(engine)
        self._discount: Optional[DiscountSpec] = None
        self._fulfillment = Fulfillment()
        self._server: Optional[StaffMember] = None
        self._checkout_in_progress = False

    # =========================================================================
    # CART
    # =========================================================================

    def add_item(self, item_id: str, **pricing_input) -> CartLine:
        """
        Look up a catalog item and add it to the cart.

        Keyword args are passed to the pricing engine (quantity, variant_name,
        weight_kg, target_price).
        """
        item = self._catalog.get_item(item_id)
        with self._lock:
            self._check_idle("add items")
            line = self._cart.add(item, **pricing_input)
        logger.debug(f"Cart: {line.name} x{line.quantity} = {line.line_total}")
        return line

    def change_quantity(self, line_id: str, delta: int) -> CartLine:
        with self._lock:
            self._check_idle("change quantities")
            return self._cart.change_quantity(line_id, delta)

    def remove_line(self, line_id: str) -> CartLine:
        with self._lock:
            self._check_idle("remove lines")
            return self._cart.remove(line_id)

    def clear_cart(self) -> None:
        """Start over: drop lines, discount and fulfillment details (server is kept)."""
        with self._lock:
            self._check_idle("clear the cart")
            self._reset_order()

    # =========================================================================
    # CHECKOUT DETAILS
    # =========================================================================

    def apply_discount(self, spec: DiscountSpec) -> None:
        with self._lock:
            self._check_idle("change the discount")
            self._discount = spec
        logger.info(
            f"Discount set: {spec.discount_type.value} {spec.eligible_count}/{spec.total_pax} pax"
        )

    def clear_discount(self) -> None:
        with self._lock:
            self._check_idle("change the discount")
            self._discount = None

    def set_fulfillment(self, fulfillment: Fulfillment) -> Fulfillment:
        with self._lock:
            self._check_idle("change fulfillment")
            self._fulfillment = fulfillment.normalized()
            return self._fulfillment

    def select_server(self, staff_id: Optional[str]) -> Optional[StaffMember]:
        """Select the serving staff member (None clears the selection)."""
        if staff_id is None:
            member = None
        elif self._staff is None:
            raise InvalidInputError("No staff directory configured", field="staff_id", value=staff_id)
        else:
            member = self._staff.get_staff(staff_id)
            if not member.can_serve:
                raise InvalidInputError(f"{member.name} cannot be assigned as server",
                                        field="staff_id", value=staff_id)

        with self._lock:
            self._check_idle("change the server")
            self._server = member
        return member

    def summary(self) -> Dict[str, Any]:
        """Current cart with totals, as shown on the register screen."""
        with self._lock:
            subtotal = self._cart.subtotal
            discount_amount = allocate(subtotal, self._discount)
            return {
                "lines": [line.to_dict() for line in self._cart.lines],
                "subtotal": str(subtotal),
                "discount_amount": str(discount_amount),
                "total": str(max(ZERO, subtotal - discount_amount)),
                "discount": self._discount.to_dict() if self._discount else None,
                "fulfillment": self._fulfillment.to_dict(),
                "server": self._server.to_dict() if self._server else None,
                "next_order_number": format_order_number(self._assembler.next_order_number),
                "checkout_in_progress": self._checkout_in_progress,
            }

    # =========================================================================
    # PAYMENT CONFIRMATION
    # =========================================================================

    def confirm_payment(self, payment: Payment) -> SubmitResult:
        """
        Assemble the current cart into an Order and hand it to the coordinator.

        The order is assembled under the session lock and submitted outside
        it, so the register screen stays readable during a slow remote write.
        Until submission returns, changes to the session are refused with
        CheckoutInProgressError. The cart is only reset once the order is
        safely with the remote store or in the local queue.

        Raises:
            CheckoutInProgressError: Another confirmation is still running
            EmptyOrderError, PaymentInsufficientError, MissingReferenceError:
                Order not assembled, cart untouched
            RemoteValidationError: Store rejected the order, cart untouched
            StorageError: Offline fallback could not be persisted
        """
        with self._lock:
            self._check_idle("confirm payment")
            fulfillment = self._fulfillment
            if self._server is not None:
                fulfillment = replace(fulfillment, server_name=self._server.name)

            order = self._assembler.assemble(
                self._cart.lines,
                self._discount,
                payment,
                fulfillment,
            )
            self._checkout_in_progress = True

        submitted = False
        try:
            result = self.coordinator.submit_order(order)
            submitted = True
        finally:
            with self._lock:
                self._checkout_in_progress = False
                if submitted:
                    self._reset_order()

        if result.mode is SubmitMode.OFFLINE:
            logger.info(f"Order #{format_order_number(order.order_number)} saved offline")
        return result

    # =========================================================================
    # PARKED ORDERS
    # =========================================================================

    def park(self, label: str) -> ParkedOrder:
        """Save the current cart for later and start a new one."""
        book = self._require_parked()
        with self._lock:
            self._check_idle("park the order")
            parked = book.park(
                label,
                self._cart.lines,
                discount=self._discount,
                fulfillment=self._fulfillment,
                server_id=self._server.staff_id if self._server else None,
            )
            self._reset_order()
        return parked

    def restore_parked(self, parked_id: str) -> ParkedOrder:
        """
        Make a parked order the order in progress.

        Raises:
            InvalidInputError: If the current cart is not empty
            ParkedOrderNotFoundError: Unknown id
        """
        book = self._require_parked()
        with self._lock:
            self._check_idle("restore a parked order")
            if not self._cart.is_empty:
                raise InvalidInputError("Park or clear the current order before restoring another",
                                        field="parked_id", value=parked_id)

            parked = book.restore(parked_id)
            self._cart = Cart(self._cart.engine, parked.lines)
            self._discount = parked.discount
            self._fulfillment = parked.fulfillment
            if parked.server_id and self._staff is not None:
                try:
                    self._server = self._staff.get_staff(parked.server_id)
                except InvalidInputError:
                    logger.warning(f"Server {parked.server_id} of parked order no longer on staff list")
        return parked

    def delete_parked(self, parked_id: str) -> None:
        self._require_parked().delete(parked_id)

    def _require_parked(self) -> ParkedOrderBook:
        if self.parked is None:
            raise InvalidInputError("Parking is not available on this terminal")
        return self.parked

    def _check_idle(self, operation: str) -> None:
        # Caller holds self._lock
        if self._checkout_in_progress:
            raise CheckoutInProgressError(operation)

    def _reset_order(self) -> None:
        # Caller holds self._lock
        self._cart.clear()
        self._discount = None
        self._fulfillment = Fulfillment()
