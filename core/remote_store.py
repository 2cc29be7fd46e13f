"""
Remote order store client.

The remote store is the hosted database that holds confirmed orders. The
terminal writes to it from two places with identical semantics:

    - the checkout fast path (network available at payment confirmation)
    - the sync coordinator draining the local queue

Both call RemoteOrderStore.create_order(). Every write carries the order's
local id as client_ref; a store that already holds that client_ref answers
409, and the client then looks up the existing row instead of failing. That
makes a retry after an ambiguous failure (timeout after commit) safe.

STOCK DEDUCTION:
    With deduct_stock enabled, each order whose items were inserted by this
    call also records inventory usage from the recipes table. It runs once,
    after the items insert, and never on the 409 path when the items were
    already there. It is best-effort: a failure is logged and the order
    still counts as accepted.

ERROR CONTRACT:
    RemoteNetworkError    - connection error, timeout, 5xx, 408, 429 (retry later)
    RemoteValidationError - any other 4xx (the data itself was rejected)

Usage:
    store = HttpOrderStore(base_url, api_key, timeout_seconds=15)
    receipt = store.create_order(order)
    order = order.with_remote_id(receipt.assigned_id, receipt.assigned_order_number)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, List, Optional

import requests

from models.money import to_decimal
from models.order import Order, PaymentMethod
from logging_config import get_logger
from .exceptions import RemoteNetworkError, RemoteValidationError


logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = {408, 425, 429}


@dataclass(frozen=True)
class RemoteReceipt:
    """What the remote store assigned to an accepted order."""

    assigned_id: str
    assigned_order_number: Optional[int] = None


class RemoteOrderStore:
    """
    Interface to the hosted order store.

    Implementations must be safe to call twice for the same order.
    """

    def create_order(self, order: Order) -> RemoteReceipt:
        """
        Persist an order remotely.

        Raises:
            RemoteNetworkError: Store unreachable or temporarily failing
            RemoteValidationError: Store rejected the order data
        """
        raise NotImplementedError

    def ping(self) -> bool:
        """Return True if the store is reachable."""
        raise NotImplementedError


class HttpOrderStore(RemoteOrderStore):
    """
    PostgREST-style HTTP client for the orders / order_items tables.

    A create is two inserts: the order header, then its items. If the items
    insert fails the header is deleted again so the store never holds an
    order without lines.

    Attributes:
        deduct_stock: Record recipe usage against inventory for new orders
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 15.0,
        health_path: str = "/rest/v1/",
        session: Optional[requests.Session] = None,
        deduct_stock: bool = False,
    ):
        if not base_url:
            raise ValueError("base_url is required for HttpOrderStore")

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.health_path = health_path
        self.deduct_stock = deduct_stock
        self._session = session or requests.Session()
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def create_order(self, order: Order) -> RemoteReceipt:
        logger.debug(f"Writing order {order.local_id} to remote store")

        response = self._request(
            "POST",
            "/rest/v1/orders",
            order,
            json=[self._order_row(order)],
            headers={"Prefer": "return=representation"},
        )

        if response.status_code == 409:
            existing = self._find_existing(order)
            if existing is not None:
                logger.info(f"Order {order.local_id} already in remote store as {existing.assigned_id}")
                self._ensure_items(existing, order)
                return existing

        self._raise_for_status(response, order, "insert order")
        receipt = self._parse_receipt(response, order)
        self._insert_items(receipt, order)
        self._deduct_stock(order)

        logger.info(f"Remote store accepted order {order.local_id} as {receipt.assigned_id}")
        return receipt

    def ping(self) -> bool:
        try:
            response = self._session.get(
                f"{self.base_url}{self.health_path}",
                headers=self._headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.debug(f"Health probe failed: {e}")
            return False
        return response.status_code < 500

    # =========================================================================
    # PAYLOADS
    # =========================================================================

    @staticmethod
    def _order_row(order: Order) -> Dict[str, Any]:
        payment = order.payment
        if payment.method is PaymentMethod.CASH:
            payment_method = "CASH"
        else:
            payment_method = payment.provider or "DIGITAL"

        fulfillment = order.fulfillment
        return {
            "client_ref": order.local_id,
            "terminal_id": order.terminal_id or None,
            "local_order_number": order.order_number,
            "status": "completed",
            "subtotal": str(order.subtotal),
            "discount_amount": str(order.discount_amount),
            "total_amount": str(order.total),
            "payment_method": payment_method,
            "payment_reference": payment.reference or None,
            "discount_details": order.discount.to_dict() if order.discount else None,
            "cash": str(order.tendered),
            "change": str(order.change),
            "order_type": fulfillment.fulfillment_type.value,
            "table_number": fulfillment.table_number or None,
            "delivery_address": fulfillment.delivery_address or None,
            "delivery_time": fulfillment.delivery_time or None,
            "contact_number": fulfillment.contact_number or None,
            "server_name": fulfillment.server_name or None,
            # Preserve the original sale time for orders synced later
            "created_at": order.created_at,
        }

    @staticmethod
    def _item_rows(order: Order, remote_order_id: str) -> List[Dict[str, Any]]:
        return [
            {
                "order_id": remote_order_id,
                "menu_item_id": line.item_id,
                "quantity": line.quantity,
                "price_at_time": str(line.unit_price),
                "line_total": str(line.line_total),
                "weight": str(line.weight_kg) if line.weight_kg is not None else None,
                "variant_name": line.variant_name,
            }
            for line in order.lines
        ]

    # =========================================================================
    # HTTP HELPERS
    # =========================================================================

    def _request(self, method: str, path: str, order: Order, headers=None, **kwargs) -> requests.Response:
        merged_headers = dict(self._headers)
        if headers:
            merged_headers.update(headers)

        try:
            return self._session.request(
                method,
                f"{self.base_url}{path}",
                headers=merged_headers,
                timeout=self.timeout_seconds,
                **kwargs,
            )
        except requests.Timeout:
            raise RemoteNetworkError(
                f"Remote store timed out after {self.timeout_seconds:.1f}s",
                order_ref=order.local_id,
            )
        except requests.RequestException as e:
            raise RemoteNetworkError(f"Remote store unreachable: {e}", order_ref=order.local_id)

    @staticmethod
    def _raise_for_status(response: requests.Response, order: Order, action: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        body = response.text[:500] if response.text else ""
        message = f"Failed to {action}: HTTP {status} {body}".strip()

        if status >= 500 or status in RETRYABLE_STATUS_CODES:
            raise RemoteNetworkError(message, status_code=status, order_ref=order.local_id)
        raise RemoteValidationError(message, status_code=status, order_ref=order.local_id)

    @staticmethod
    def _parse_receipt(response: requests.Response, order: Order) -> RemoteReceipt:
        try:
            data = response.json()
        except ValueError:
            raise RemoteNetworkError(
                "Remote store returned a non-JSON response",
                status_code=response.status_code,
                order_ref=order.local_id,
            )

        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict) or row.get("id") is None:
            raise RemoteNetworkError(
                "Remote store response did not include an order id",
                status_code=response.status_code,
                order_ref=order.local_id,
            )

        number = row.get("order_number")
        return RemoteReceipt(
            assigned_id=str(row["id"]),
            assigned_order_number=int(number) if number is not None else None,
        )

    def _find_existing(self, order: Order) -> Optional[RemoteReceipt]:
        response = self._request(
            "GET",
            "/rest/v1/orders",
            order,
            params={"client_ref": f"eq.{order.local_id}", "select": "id,order_number"},
        )
        if not response.ok:
            return None
        try:
            rows = response.json()
        except ValueError:
            return None
        if not rows:
            return None
        return self._parse_receipt(response, order)

    def _insert_items(self, receipt: RemoteReceipt, order: Order) -> None:
        response = self._request(
            "POST",
            "/rest/v1/order_items",
            order,
            json=self._item_rows(order, receipt.assigned_id),
        )
        if not response.ok:
            logger.warning(
                f"Items insert failed for order {order.local_id} "
                f"(HTTP {response.status_code}), rolling back header {receipt.assigned_id}"
            )
            self._rollback_header(receipt.assigned_id, order)
            self._raise_for_status(response, order, "insert order items")

    def _ensure_items(self, receipt: RemoteReceipt, order: Order) -> None:
        """Insert the items of an existing header if an earlier attempt lost them."""
        response = self._request(
            "GET",
            "/rest/v1/order_items",
            order,
            params={"order_id": f"eq.{receipt.assigned_id}", "select": "id", "limit": "1"},
        )
        self._raise_for_status(response, order, "look up order items")
        try:
            rows = response.json()
        except ValueError:
            raise RemoteNetworkError(
                "Remote store returned a non-JSON response",
                status_code=response.status_code,
                order_ref=order.local_id,
            )
        if rows:
            return

        logger.warning(f"Order header {receipt.assigned_id} has no items, inserting them")
        self._insert_items(receipt, order)
        self._deduct_stock(order)

    def _rollback_header(self, remote_order_id: str, order: Order) -> None:
        try:
            self._request(
                "DELETE",
                "/rest/v1/orders",
                order,
                params={"id": f"eq.{remote_order_id}"},
            )
        except RemoteNetworkError as e:
            # Header stays orphaned; the client_ref lookup resolves it on retry
            logger.error(f"Rollback of order header {remote_order_id} failed: {e}")

    # =========================================================================
    # INVENTORY
    # =========================================================================

    def _deduct_stock(self, order: Order) -> None:
        """Record recipe usage for every line and lower inventory stock."""
        if not self.deduct_stock:
            return
        try:
            for line in order.lines:
                # Recipes for weighed items are per kg
                amount = line.weight_kg if line.weight_kg is not None else line.quantity
                for recipe in self._recipes_for(line.item_id, order):
                    usage = to_decimal(recipe["quantity_required"]) * amount
                    self._record_usage(str(recipe["inventory_item_id"]), usage, line.item_id, order)
        except (RemoteNetworkError, RemoteValidationError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Stock deduction for order {order.local_id} failed: {e}")

    def _recipes_for(self, menu_item_id: str, order: Order) -> List[Dict[str, Any]]:
        response = self._request(
            "GET",
            "/rest/v1/recipes",
            order,
            params={"menu_item_id": f"eq.{menu_item_id}", "select": "inventory_item_id,quantity_required"},
        )
        self._raise_for_status(response, order, "look up recipes")
        return response.json() or []

    def _record_usage(self, inventory_item_id: str, usage: Decimal, menu_item_id: str, order: Order) -> None:
        response = self._request(
            "POST",
            "/rest/v1/inventory_transactions",
            order,
            json=[{
                "item_id": inventory_item_id,
                "transaction_type": "USAGE",
                "quantity": str(usage),
                "notes": f"Auto-deduct from order {order.order_number}: {menu_item_id}",
                "transaction_date": order.created_at,
            }],
        )
        self._raise_for_status(response, order, "record inventory usage")

        response = self._request(
            "GET",
            "/rest/v1/inventory_items",
            order,
            params={"id": f"eq.{inventory_item_id}", "select": "current_stock"},
        )
        self._raise_for_status(response, order, "read inventory stock")
        rows = response.json()
        current = to_decimal(rows[0].get("current_stock") or 0) if rows else to_decimal(0)

        response = self._request(
            "PATCH",
            "/rest/v1/inventory_items",
            order,
            params={"id": f"eq.{inventory_item_id}"},
            json={"current_stock": str(current - usage)},
        )
        self._raise_for_status(response, order, "update inventory stock")
