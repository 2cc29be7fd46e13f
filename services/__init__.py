"""
Services layer for PosTerminal.

This module contains the business logic services:
- PricingEngine / Cart: Priced cart lines and merge rules
- allocate: Senior/PWD discount allocation
- OrderAssembler: Cart + payment -> frozen Order
- LocalOrderQueue: Durable queue of unsynced orders (debounced writes)
- SyncCoordinator: Fast-path submission and single-flight queue flush
- ParkedOrderBook: Carts saved for later
- JsonCatalogProvider / JsonStaffDirectory: Read-only reference data
- PosTerminal: The session tying it together

Thread Model:
    Main Thread (Flask request threads)
    ├── Connectivity thread (health probe, runs sync passes on recovery)
    └── QueueWriter timer (debounced queue writes)
"""

from .pricing import Cart, PricingEngine
from .discount import allocate
from .order_assembler import OrderAssembler, format_order_number
from .order_queue import LocalOrderQueue
from .sync_coordinator import SyncCoordinator
from .parked_orders import ParkedOrderBook
from .catalog import CatalogProvider, JsonCatalogProvider, JsonStaffDirectory
from .terminal import PosTerminal

__all__ = [
    "Cart",
    "PricingEngine",
    "allocate",
    "OrderAssembler",
    "format_order_number",
    "LocalOrderQueue",
    "SyncCoordinator",
    "ParkedOrderBook",
    "CatalogProvider",
    "JsonCatalogProvider",
    "JsonStaffDirectory",
    "PosTerminal",
]
