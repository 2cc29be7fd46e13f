"""
Custom exceptions for PosTerminal.

Exception Hierarchy:
    PosTerminalError (base)
    ├── InvalidInputError            - Bad pricing/discount input (operator can fix)
    │   ├── CatalogItemNotFoundError - Unknown menu item id
    │   └── ParkedOrderNotFoundError - Unknown parked order id
    ├── CheckoutInProgressError      - Session is busy submitting an order
    ├── OrderAssemblyError           - Order cannot be confirmed
    │   ├── EmptyOrderError          - No lines in the cart
    │   ├── PaymentInsufficientError - Cash tendered is below the total
    │   └── MissingReferenceError    - Digital payment without a reference
    ├── StorageError                 - Local key-value store failure
    └── RemoteStoreError             - Remote order store rejected a write
        ├── RemoteNetworkError       - Retryable (offline, timeout, 5xx)
        └── RemoteValidationError    - Not retryable (data-shape problem)

Usage:
    None of these are fatal to the terminal. Input and assembly errors are
    surfaced to the operator with no side effects. Remote errors decide
    whether an order falls back to (or stays in) the local queue.
"""

from typing import Optional, Dict, Any


class PosTerminalError(Exception):
    """
    Base exception for all PosTerminal errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    #: Short machine-readable code used by the JSON error responses.
    code = "pos_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS - Recovered locally, order is not assembled
# =============================================================================

class InvalidInputError(PosTerminalError):
    """
    Pricing or discount input was rejected.

    Raised for non-positive quantity/weight/price, a VARIANT item priced
    without a variant, an unknown cart line, or an impossible discount
    (more eligible cards than diners).
    """

    code = "invalid_input"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class CatalogItemNotFoundError(InvalidInputError):
    """The catalog provider has no item with the requested id."""

    code = "item_not_found"

    def __init__(self, item_id: str):
        super().__init__(f"Menu item not found: {item_id}", field="item_id", value=item_id)
        self.item_id = item_id


class ParkedOrderNotFoundError(InvalidInputError):
    """No parked order with the requested id (already restored or deleted)."""

    code = "parked_not_found"

    def __init__(self, parked_id: str):
        super().__init__(f"Parked order not found: {parked_id}", field="parked_id", value=parked_id)
        self.parked_id = parked_id


class CheckoutInProgressError(PosTerminalError):
    """The order is being submitted; the session cannot change until it returns."""

    code = "checkout_in_progress"

    def __init__(self, operation: str):
        super().__init__(f"Cannot {operation} while a payment is being confirmed", {"operation": operation})
        self.operation = operation


# =============================================================================
# ASSEMBLY ERRORS - Block confirmation, no side effects
# =============================================================================

class OrderAssemblyError(PosTerminalError):
    """Base class for failures that block order confirmation."""

    code = "order_rejected"


class EmptyOrderError(OrderAssemblyError):
    """Checkout was attempted with no cart lines."""

    code = "empty_order"

    def __init__(self, message: str = "Cannot confirm an order with no items"):
        super().__init__(message)


class PaymentInsufficientError(OrderAssemblyError):
    """
    Cash tendered does not cover the order total.

    A small tolerance is applied before raising so that floating rounding on
    the operator's keypad does not block an exact payment.
    """

    code = "payment_insufficient"

    def __init__(self, total, tendered):
        message = f"Insufficient payment: total {total}, tendered {tendered}"
        details = {
            "total": str(total),
            "tendered": str(tendered),
            "resolution": "Collect the remaining amount or change payment method",
        }
        super().__init__(message, details)
        self.total = total
        self.tendered = tendered


class MissingReferenceError(OrderAssemblyError):
    """A digital payment was confirmed without a payment reference number."""

    code = "missing_reference"

    def __init__(self, provider: Optional[str] = None):
        label = provider or "Digital"
        details = {"resolution": "Enter the reference number shown on the payment receipt"}
        super().__init__(f"{label} payment requires a reference number", details)
        self.provider = provider


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(PosTerminalError):
    """
    Local key-value storage could not be read or written.

    Typical causes:
    - Disk full / storage quota exceeded
    - Database file locked or unreadable
    - Stored value is not valid JSON
    """

    code = "storage_error"

    def __init__(self, key: str, reason: str):
        super().__init__(f"Local storage failure for '{key}': {reason}", {"key": key})
        self.key = key
        self.reason = reason


# =============================================================================
# REMOTE STORE ERRORS - Decide queue fallback / retry
# =============================================================================

class RemoteStoreError(PosTerminalError):
    """
    Base class for remote order store failures.

    Attributes:
        status_code: HTTP status returned by the store (None if no response)
        order_ref: Local id of the order being written
    """

    code = "remote_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        order_ref: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if status_code is not None:
            error_details["status_code"] = status_code
        if order_ref:
            error_details["order_ref"] = order_ref
        super().__init__(message, error_details)
        self.status_code = status_code
        self.order_ref = order_ref


class RemoteNetworkError(RemoteStoreError):
    """
    The remote store could not be reached or is temporarily failing.

    Retryable: on the fast path the order falls back to the local queue,
    during a flush the entry simply stays queued.
    """

    code = "remote_network"


class RemoteValidationError(RemoteStoreError):
    """
    The remote store rejected the order itself (schema, policy, constraint).

    Automatic retry cannot fix this. Queued entries stay queued and are
    flagged for operator inspection rather than dropped.
    """

    code = "remote_validation"
