"""
Cart routes.

Handles:
- /api/cart               - Current cart with totals
- /api/cart/items         - Add a catalog item
- /api/cart/lines/<id>    - Change quantity / remove a line
- /api/cart/clear         - Start over
- /api/cart/discount      - Senior/PWD discount
- /api/cart/fulfillment   - Dine-in / takeout / delivery details
- /api/cart/server        - Serving staff member
"""

from flask import Blueprint, current_app

from core.exceptions import InvalidInputError
from models.order import DiscountSpec, Fulfillment
from logging_config import get_logger
from .common import json_body, sanitize_text, terminal


# Module logger
logger = get_logger(__name__)

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")

# Request field -> pricing engine keyword
PRICING_FIELDS = {
    "quantity": "quantity",
    "variant_name": "variant_name",
    "variant": "variant_name",
    "weight_kg": "weight_kg",
    "price": "target_price",
    "target_price": "target_price",
}


@cart_bp.route("", methods=["GET"])
def get_cart():
    return terminal().summary()


@cart_bp.route("/items", methods=["POST"])
def add_item():
    """
    Add an item to the cart.

    Body:
        item_id: Catalog item id (required)
        quantity: Units for FIXED / VARIANT items
        variant_name: Serving size for VARIANT items
        weight_kg or price: Weighed amount or money's worth for WEIGHTED items
    """
    data = json_body()
    item_id = data.get("item_id")
    if not item_id:
        raise InvalidInputError("item_id is required", field="item_id", value=item_id)

    pricing_input = {}
    for field, keyword in PRICING_FIELDS.items():
        if data.get(field) is not None:
            pricing_input[keyword] = data[field]

    pos = terminal()
    line = pos.add_item(str(item_id), **pricing_input)
    return {"line": line.to_dict(), "cart": pos.summary()}, 201


@cart_bp.route("/lines/<line_id>", methods=["PATCH"])
def change_quantity(line_id: str):
    data = json_body()
    try:
        delta = int(data.get("delta", 0))
    except (TypeError, ValueError):
        raise InvalidInputError("delta must be a whole number", field="delta", value=data.get("delta"))

    pos = terminal()
    line = pos.change_quantity(line_id, delta)
    return {"line": line.to_dict(), "cart": pos.summary()}


@cart_bp.route("/lines/<line_id>", methods=["DELETE"])
def remove_line(line_id: str):
    pos = terminal()
    pos.remove_line(line_id)
    return {"cart": pos.summary()}


@cart_bp.route("/clear", methods=["POST"])
def clear_cart():
    pos = terminal()
    pos.clear_cart()
    return {"cart": pos.summary()}


@cart_bp.route("/discount", methods=["PUT"])
def apply_discount():
    """
    Apply a Senior/PWD discount.

    Body:
        type: SENIOR or PWD
        total_pax: Diners sharing the bill
        eligible_count: Number of cards presented
        id_number, holder_name: Representative card (optional)
    """
    data = json_body()
    payload = {
        "type": data.get("type", "SENIOR"),
        "total_pax": data.get("total_pax", 1),
        "eligible_count": data.get("eligible_count", 1),
        "rate": current_app.config.get("DISCOUNT_RATE", "0.20"),
        "id_number": sanitize_text(data.get("id_number"), max_length=40),
        "holder_name": sanitize_text(data.get("holder_name"), max_length=80),
    }
    spec = DiscountSpec.from_dict(payload)

    pos = terminal()
    pos.apply_discount(spec)
    return {"cart": pos.summary()}


@cart_bp.route("/discount", methods=["DELETE"])
def clear_discount():
    pos = terminal()
    pos.clear_discount()
    return {"cart": pos.summary()}


@cart_bp.route("/fulfillment", methods=["PUT"])
def set_fulfillment():
    data = json_body()
    fulfillment = Fulfillment.from_dict({
        "type": data.get("type", "DINE_IN"),
        "table_number": sanitize_text(data.get("table_number"), max_length=20),
        "delivery_address": sanitize_text(data.get("delivery_address")),
        "delivery_time": sanitize_text(data.get("delivery_time"), max_length=40),
        "contact_number": sanitize_text(data.get("contact_number"), max_length=40),
    })

    pos = terminal()
    pos.set_fulfillment(fulfillment)
    return {"cart": pos.summary()}


@cart_bp.route("/server", methods=["PUT"])
def select_server():
    data = json_body()
    staff_id = data.get("staff_id")
    terminal().select_server(str(staff_id) if staff_id else None)
    return {"cart": terminal().summary()}
