"""
Data models for PosTerminal.

This module contains dataclasses for:
- CatalogItem / Variant: Read-only menu reference data
- CartLine: A priced row of the order in progress
- StaffMember: Server selection at checkout
- DiscountSpec, Payment, Fulfillment: Checkout inputs
- Order: A confirmed sale (frozen)
- ParkedOrder: An unpaid cart saved for later
- QueueEntry: An unsynced order in the local queue
- SubmitResult / SyncReport: Outcomes of getting orders to the remote store

Everything that crosses a thread boundary (orders, lines, queue entries) is
frozen, so the connectivity thread can flush orders while requests read them.
"""

from .catalog import CatalogItem, PricingMode, Variant
from .cart import CartLine
from .staff import StaffMember
from .parked_order import ParkedOrder
from .order import (
    DiscountSpec,
    DiscountType,
    Fulfillment,
    FulfillmentType,
    Order,
    Payment,
    PaymentMethod,
)
from .queue_entry import QueueEntry, QueueState
from .sync_result import SubmitMode, SubmitResult, SyncFailure, SyncReport, SyncState

__all__ = [
    # Catalog models
    "CatalogItem",
    "PricingMode",
    "Variant",
    # Cart / order models
    "CartLine",
    "StaffMember",
    "ParkedOrder",
    "DiscountSpec",
    "DiscountType",
    "Fulfillment",
    "FulfillmentType",
    "Order",
    "Payment",
    "PaymentMethod",
    # Sync models
    "QueueEntry",
    "QueueState",
    "SubmitMode",
    "SubmitResult",
    "SyncFailure",
    "SyncReport",
    "SyncState",
]
