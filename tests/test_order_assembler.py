"""
Unit tests for order assembly and payment validation.
"""

from decimal import Decimal

import pytest

from core.exceptions import (
    EmptyOrderError,
    MissingReferenceError,
    PaymentInsufficientError,
)
from models.order import (
    DiscountSpec,
    DiscountType,
    Fulfillment,
    FulfillmentType,
    Order,
    Payment,
    PaymentMethod,
)
from services.order_assembler import OrderAssembler, format_order_number


@pytest.fixture
def lechon_line(engine, lechon_plate):
    return engine.price_line(lechon_plate)


class TestCashPayment:
    """Cash must cover the total (within tolerance); change is returned."""

    def test_change_computed(self, assembler, lechon_line):
        """Test 500 tendered on 437.50 gives 62.50 change."""
        order = assembler.assemble([lechon_line], None, Payment.cash("500"))

        assert order.total == Decimal("437.50")
        assert order.tendered == Decimal("500.00")
        assert order.change == Decimal("62.50")
        assert order.payment.method is PaymentMethod.CASH

    def test_insufficient_cash_rejected(self, assembler, lechon_line):
        """Test 400 tendered on 437.50 raises PaymentInsufficientError."""
        with pytest.raises(PaymentInsufficientError) as exc_info:
            assembler.assemble([lechon_line], None, Payment.cash("400"))

        assert exc_info.value.total == Decimal("437.50")
        assert exc_info.value.tendered == Decimal("400.00")

    def test_within_tolerance_accepted(self, assembler, lechon_line):
        order = assembler.assemble([lechon_line], None, Payment.cash("437.40"))
        assert order.change == Decimal("0.00")

    def test_just_outside_tolerance_rejected(self, assembler, lechon_line):
        with pytest.raises(PaymentInsufficientError):
            assembler.assemble([lechon_line], None, Payment.cash("437.39"))

    def test_exact_amount(self, assembler, lechon_line):
        order = assembler.assemble([lechon_line], None, Payment.cash("437.50"))
        assert order.change == Decimal("0.00")


class TestDigitalPayment:
    """Digital wallets need a reference; tendered is recorded as the total."""

    def test_reference_required(self, assembler, lechon_line):
        with pytest.raises(MissingReferenceError) as exc_info:
            assembler.assemble([lechon_line], None, Payment.digital("", provider="GCASH"))
        assert exc_info.value.provider == "GCASH"

    def test_whitespace_reference_rejected(self, assembler, lechon_line):
        with pytest.raises(MissingReferenceError):
            assembler.assemble([lechon_line], None, Payment.digital("   "))

    def test_digital_accepted(self, assembler, lechon_line):
        order = assembler.assemble([lechon_line], None, Payment.digital("REF-998877", provider="MAYA"))

        assert order.tendered == order.total
        assert order.change == Decimal("0.00")
        assert order.payment.reference == "REF-998877"


class TestAssembly:
    """Totals, numbering and failure side effects."""

    def test_empty_order_rejected_first(self, assembler):
        """Test empty cart raises EmptyOrderError even with a bad payment."""
        with pytest.raises(EmptyOrderError):
            assembler.assemble([], None, Payment.cash("0"))

    def test_discount_applied(self, engine, assembler, rice, lechon_plate):
        lines = [
            engine.price_line(lechon_plate, quantity=2),
            engine.price_line(rice, quantity=5),
        ]
        spec = DiscountSpec(DiscountType.SENIOR, total_pax=4, eligible_count=1)

        order = assembler.assemble(lines, spec, Payment.cash("1000"))

        assert order.subtotal == Decimal("950.00")
        assert order.discount_amount == Decimal("47.50")
        assert order.total == Decimal("902.50")
        assert order.total == order.subtotal - order.discount_amount
        assert order.change == Decimal("97.50")

    def test_order_numbers_increment(self, assembler, lechon_line):
        first = assembler.assemble([lechon_line], None, Payment.cash("500"))
        second = assembler.assemble([lechon_line], None, Payment.cash("500"))

        assert second.order_number == first.order_number + 1
        assert first.local_id != second.local_id

    def test_failed_assembly_does_not_consume_number(self, assembler, lechon_line):
        """Test counter only advances on success."""
        before = assembler.next_order_number

        with pytest.raises(PaymentInsufficientError):
            assembler.assemble([lechon_line], None, Payment.cash("1"))
        with pytest.raises(EmptyOrderError):
            assembler.assemble([], None, Payment.cash("500"))

        assert assembler.next_order_number == before
        order = assembler.assemble([lechon_line], None, Payment.cash("500"))
        assert order.order_number == before

    def test_order_is_stamped(self, lechon_line):
        assembler = OrderAssembler(starting_number=41, terminal_id="till-2")
        order = assembler.assemble([lechon_line], None, Payment.cash("500"))

        assert order.order_number == 41
        assert order.terminal_id == "till-2"
        assert order.local_id.startswith("OFFLINE-")
        assert order.remote_id is None
        assert not order.is_synced
        assert order.created_at

    def test_fulfillment_normalized(self, assembler, lechon_line):
        """Test delivery fields are dropped from dine-in orders."""
        fulfillment = Fulfillment(
            fulfillment_type=FulfillmentType.DINE_IN,
            table_number="7",
            delivery_address="Somewhere",
        )

        order = assembler.assemble([lechon_line], None, Payment.cash("500"), fulfillment)

        assert order.fulfillment.table_number == "7"
        assert order.fulfillment.delivery_address == ""

    def test_custom_cash_tolerance(self, lechon_line):
        assembler = OrderAssembler(cash_tolerance="0")
        with pytest.raises(PaymentInsufficientError):
            assembler.assemble([lechon_line], None, Payment.cash("437.49"))


class TestOrderModel:
    """Frozen order and its serialized form."""

    def test_with_remote_id_returns_copy(self, make_order):
        order = make_order()
        synced = order.with_remote_id("abc-123", 5001)

        assert synced.remote_id == "abc-123"
        assert synced.order_number == 5001
        assert synced.is_synced
        assert order.remote_id is None

    def test_with_remote_id_keeps_number_when_not_assigned(self, make_order):
        order = make_order()
        assert order.with_remote_id("abc").order_number == order.order_number

    def test_order_is_frozen(self, make_order):
        order = make_order()
        with pytest.raises(AttributeError):
            order.total = Decimal("0")

    def test_to_dict_from_dict(self, engine, assembler, lechon_by_kilo, coke):
        lines = [
            engine.price_line(lechon_by_kilo, target_price="350"),
            engine.price_line(coke, variant_name="1.5L"),
        ]
        spec = DiscountSpec(DiscountType.PWD, 2, 1, id_number="PWD-1", holder_name="Lola")
        fulfillment = Fulfillment(FulfillmentType.DELIVERY, delivery_address="Lahug", contact_number="0917")
        order = assembler.assemble(lines, spec, Payment.digital("R1", "GCASH"), fulfillment)

        restored = Order.from_dict(order.to_dict())

        assert restored == order


def test_format_order_number():
    assert format_order_number(7) == "000007"
    assert format_order_number(123456) == "123456"
