"""
Parked order routes ("save for later").

Handles:
- GET    /api/parked               - List parked orders
- POST   /api/parked               - Park the current cart
- POST   /api/parked/<id>/restore  - Make a parked order current again
- DELETE /api/parked/<id>          - Discard a parked order
"""

from flask import Blueprint

from logging_config import get_logger
from .common import MAX_LABEL_LENGTH, json_body, sanitize_text, terminal


# Module logger
logger = get_logger(__name__)

parked_bp = Blueprint("parked", __name__, url_prefix="/api/parked")


@parked_bp.route("", methods=["GET"])
def list_parked():
    book = terminal().parked
    orders = book.list() if book else []
    return {"parked": [parked.to_dict() for parked in orders]}


@parked_bp.route("", methods=["POST"])
def park_current():
    data = json_body()
    label = sanitize_text(data.get("label"), max_length=MAX_LABEL_LENGTH)

    parked = terminal().park(label)
    return {"parked": parked.to_dict()}, 201


@parked_bp.route("/<parked_id>/restore", methods=["POST"])
def restore(parked_id: str):
    pos = terminal()
    parked = pos.restore_parked(parked_id)
    return {"restored": parked.to_dict(), "cart": pos.summary()}


@parked_bp.route("/<parked_id>", methods=["DELETE"])
def delete(parked_id: str):
    terminal().delete_parked(parked_id)
    return {"deleted": parked_id}
