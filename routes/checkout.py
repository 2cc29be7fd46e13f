"""
Checkout route.

POST /api/checkout confirms payment for the current cart. The order is
written to the remote store directly when the network is available, or saved
to the local queue otherwise:

    201 Created   - remote store accepted the order ("Order saved")
    202 Accepted  - saved offline, will sync when the network returns
    402           - payment does not cover the total / missing reference
    422           - remote store rejected the order data
"""

from flask import Blueprint

from core.exceptions import InvalidInputError
from models.order import Payment
from models.sync_result import SubmitMode
from logging_config import get_logger
from services.order_assembler import format_order_number
from .common import json_body, sanitize_text, terminal


# Module logger
logger = get_logger(__name__)

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api")


def _parse_payment(data) -> Payment:
    """
    Build a Payment from the request.

    Accepts {"payment": {...}} or the payment fields at the top level:
        method: CASH, DIGITAL, or a wallet name (GCASH, MAYA)
        tendered: Cash handed over (CASH)
        reference: Wallet reference number (digital)
    """
    payload = data.get("payment", data)
    if not isinstance(payload, dict):
        raise InvalidInputError("payment must be an object", field="payment", value=payload)

    try:
        return Payment.from_dict({
            "method": payload.get("method", "CASH"),
            "tendered": payload.get("tendered", 0),
            "reference": sanitize_text(payload.get("reference"), max_length=64),
            "provider": sanitize_text(payload.get("provider"), max_length=20),
        })
    except ValueError:
        raise InvalidInputError("tendered must be an amount", field="tendered", value=payload.get("tendered"))


@checkout_bp.route("/checkout", methods=["POST"])
def checkout():
    """Confirm payment for the current cart."""
    payment = _parse_payment(json_body())

    result = terminal().confirm_payment(payment)
    order = result.order

    body = result.to_dict()
    body["receipt_number"] = format_order_number(order.order_number)

    if result.mode is SubmitMode.ONLINE:
        return body, 201
    return body, 202
