"""
JSON error responses.

Every PosTerminalError is rendered as
    {"error": <code>, "message": <text>, "details": {...}}
with an HTTP status picked from the exception class. Nothing here is fatal:
the terminal keeps serving after any error.
"""

from flask import Flask
from werkzeug.exceptions import HTTPException

from core.exceptions import (
    PosTerminalError,
    InvalidInputError,
    CatalogItemNotFoundError,
    ParkedOrderNotFoundError,
    CheckoutInProgressError,
    EmptyOrderError,
    PaymentInsufficientError,
    MissingReferenceError,
    StorageError,
    RemoteNetworkError,
    RemoteValidationError,
)
from logging_config import get_logger


logger = get_logger(__name__)

# Most specific class first
STATUS_BY_ERROR = (
    (CatalogItemNotFoundError, 404),
    (ParkedOrderNotFoundError, 404),
    (CheckoutInProgressError, 409),
    (InvalidInputError, 400),
    (EmptyOrderError, 400),
    (PaymentInsufficientError, 402),
    (MissingReferenceError, 402),
    (RemoteValidationError, 422),
    (RemoteNetworkError, 503),
    (StorageError, 500),
)


def status_for(error: PosTerminalError) -> int:
    for error_class, status in STATUS_BY_ERROR:
        if isinstance(error, error_class):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    """Attach JSON error handlers to the app."""

    @app.errorhandler(PosTerminalError)
    def handle_pos_error(e: PosTerminalError):
        status = status_for(e)
        if status >= 500:
            logger.error(f"{e.code}: {e}")
        else:
            logger.info(f"Rejected request ({e.code}): {e.message}")
        return {"error": e.code, "message": e.message, "details": e.details}, status

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"error": e.name.lower().replace(" ", "_"), "message": e.description, "details": {}}, e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "internal_error", "message": "An unexpected error occurred", "details": {}}, 500
