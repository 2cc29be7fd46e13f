"""
Core module for PosTerminal.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- kv_store: Key-value persistence (memory / SQLite)
- connectivity: Network availability events and health probe
- remote_store: HTTP client for the hosted order store

remote_store depends on models, which depend on core.exceptions, so it is
imported from its module (core.remote_store) rather than re-exported here.
"""

from .exceptions import (
    PosTerminalError,
    InvalidInputError,
    CatalogItemNotFoundError,
    ParkedOrderNotFoundError,
    CheckoutInProgressError,
    OrderAssemblyError,
    EmptyOrderError,
    PaymentInsufficientError,
    MissingReferenceError,
    StorageError,
    RemoteStoreError,
    RemoteNetworkError,
    RemoteValidationError,
)
from .kv_store import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore, create_store
from .connectivity import ConnectivityMonitor, HealthProbeMonitor

__all__ = [
    "PosTerminalError",
    "InvalidInputError",
    "CatalogItemNotFoundError",
    "ParkedOrderNotFoundError",
    "CheckoutInProgressError",
    "OrderAssemblyError",
    "EmptyOrderError",
    "PaymentInsufficientError",
    "MissingReferenceError",
    "StorageError",
    "RemoteStoreError",
    "RemoteNetworkError",
    "RemoteValidationError",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "create_store",
    "ConnectivityMonitor",
    "HealthProbeMonitor",
]
