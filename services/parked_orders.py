"""
Parked orders: carts saved for later.

Parking is rare and operator-driven, so every change is written straight
through to the key-value store (no debounce). Restoring a parked order removes
it from the list; the cart becomes the order in progress again.
"""

from __future__ import annotations

import secrets
import threading
from typing import Iterable, List, Optional

from core.exceptions import InvalidInputError, ParkedOrderNotFoundError
from core.kv_store import KeyValueStore
from models.cart import CartLine
from models.order import DiscountSpec, Fulfillment
from models.parked_order import ParkedOrder
from logging_config import get_logger


logger = get_logger(__name__)

PARKED_ORDERS_KEY = "parked_orders"


class ParkedOrderBook:
    """Persistent list of parked orders, oldest first."""

    def __init__(self, store: KeyValueStore, key: str = PARKED_ORDERS_KEY):
        self._store = store
        self._key = key
        self._lock = threading.Lock()

    def park(
        self,
        label: str,
        lines: Iterable[CartLine],
        discount: Optional[DiscountSpec] = None,
        fulfillment: Optional[Fulfillment] = None,
        server_id: Optional[str] = None,
    ) -> ParkedOrder:
        """
        Save a cart for later.

        Raises:
            InvalidInputError: If the cart is empty
            StorageError: If the store rejects the write
        """
        frozen_lines = tuple(lines)
        if not frozen_lines:
            raise InvalidInputError("Cannot park an empty order", field="lines", value=0)

        parked = ParkedOrder(
            parked_id=secrets.token_hex(6),
            label=label.strip() or "Unnamed order",
            lines=frozen_lines,
            discount=discount,
            fulfillment=fulfillment or Fulfillment(),
            server_id=server_id,
        )

        with self._lock:
            orders = self._load()
            orders.append(parked)
            self._save(orders)

        logger.info(f"Parked order '{parked.label}' ({len(frozen_lines)} lines)")
        return parked

    def list(self) -> List[ParkedOrder]:
        with self._lock:
            return self._load()

    def restore(self, parked_id: str) -> ParkedOrder:
        """Remove a parked order from the list and return it."""
        parked = self._pop(parked_id)
        logger.info(f"Restored parked order '{parked.label}'")
        return parked

    def delete(self, parked_id: str) -> None:
        parked = self._pop(parked_id)
        logger.info(f"Deleted parked order '{parked.label}'")

    def _pop(self, parked_id: str) -> ParkedOrder:
        with self._lock:
            orders = self._load()
            for index, parked in enumerate(orders):
                if parked.parked_id == parked_id:
                    del orders[index]
                    self._save(orders)
                    return parked
        raise ParkedOrderNotFoundError(parked_id)

    def _load(self) -> List[ParkedOrder]:
        orders = []
        for data in self._store.get(self._key, []) or []:
            try:
                orders.append(ParkedOrder.from_dict(data))
            except (KeyError, ValueError, InvalidInputError) as e:
                logger.error(f"Skipping unreadable parked order: {e}")
        return orders

    def _save(self, orders: List[ParkedOrder]) -> None:
        self._store.set(self._key, [parked.to_dict() for parked in orders])
