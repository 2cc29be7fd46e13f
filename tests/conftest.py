"""
Shared fixtures for PosTerminal tests.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from core.connectivity import ConnectivityMonitor
from core.kv_store import MemoryKeyValueStore
from core.remote_store import RemoteOrderStore, RemoteReceipt
from models.catalog import CatalogItem, PricingMode, Variant
from models.order import Payment
from services.catalog import JsonCatalogProvider
from services.order_assembler import OrderAssembler
from services.order_queue import LocalOrderQueue
from services.pricing import PricingEngine
from services.sync_coordinator import SyncCoordinator


# Catalog fixtures

@pytest.fixture
def lechon_plate():
    """Fixed-price lechon plate."""
    return CatalogItem(
        item_id="lp1",
        name="Lechon",
        category="Lechon & Grills",
        pricing_mode=PricingMode.FIXED,
        base_price=Decimal("437.50"),
    )


@pytest.fixture
def lechon_by_kilo():
    """Lechon sold by weight at 700 per kg."""
    return CatalogItem(
        item_id="l1",
        name="Lechon (1 Kilo)",
        category="Lechon & Grills",
        pricing_mode=PricingMode.WEIGHTED,
        base_price=Decimal("700.00"),
    )


@pytest.fixture
def coke():
    """Drink with serving-size variants."""
    return CatalogItem(
        item_id="e3",
        name="Coke",
        category="Extras",
        pricing_mode=PricingMode.VARIANT,
        base_price=Decimal("25.00"),
        variants=(
            Variant("Mismo", Decimal("25.00")),
            Variant("1.5L", Decimal("85.00")),
        ),
    )


@pytest.fixture
def rice():
    return CatalogItem(
        item_id="e1",
        name="Plain Rice",
        category="Extras",
        pricing_mode=PricingMode.FIXED,
        base_price=Decimal("15.00"),
    )


@pytest.fixture
def catalog(lechon_plate, lechon_by_kilo, coke, rice):
    return JsonCatalogProvider([lechon_plate, lechon_by_kilo, coke, rice])


@pytest.fixture
def engine():
    return PricingEngine()


# Order fixtures

@pytest.fixture
def assembler():
    return OrderAssembler(terminal_id="till-test")


@pytest.fixture
def make_order(assembler, engine, lechon_plate):
    """Factory for assembled cash orders of n lechon plates."""

    def _make(quantity=1):
        line = engine.price_line(lechon_plate, quantity=quantity)
        return assembler.assemble([line], None, Payment.cash(line.line_total))

    return _make


# Sync fixtures

@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def queue(kv_store):
    """Queue writing synchronously (no debounce) to the memory store."""
    return LocalOrderQueue(kv_store, debounce_ms=0)


@pytest.fixture
def remote():
    """Remote store mock that accepts every order."""
    store = MagicMock(spec=RemoteOrderStore)
    counter = {"n": 0}

    def _accept(order):
        counter["n"] += 1
        return RemoteReceipt(assigned_id=f"remote-{counter['n']}", assigned_order_number=1000 + counter["n"])

    store.create_order.side_effect = _accept
    store.ping.return_value = True
    return store


@pytest.fixture
def monitor():
    return ConnectivityMonitor(initially_online=True)


@pytest.fixture
def coordinator(queue, remote, monitor):
    return SyncCoordinator(queue, remote, monitor)
