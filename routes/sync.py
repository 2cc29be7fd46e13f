"""
Sync routes.

Handles:
- /api/sync/status    - Coordinator state, pending / needs-attention counts
- /api/sync/now       - Trigger a flush pass
- /api/sync/pending   - Orders waiting in the local queue
- /api/network/*      - Manual availability override (no probe / testing)
"""

from flask import Blueprint, current_app

from logging_config import get_logger
from .common import coordinator


# Module logger
logger = get_logger(__name__)

sync_bp = Blueprint("sync", __name__, url_prefix="/api")


@sync_bp.route("/sync/status", methods=["GET"])
def sync_status():
    return coordinator().status()


@sync_bp.route("/sync/now", methods=["POST"])
def sync_now():
    """
    Run a flush pass now.

    Returns 409 if a pass is already running; that pass will pick up every
    queued order anyway.
    """
    report = coordinator().sync_now()
    if report is None:
        return {
            "error": "sync_in_progress",
            "message": "A sync pass is already running",
            "details": {},
        }, 409
    return {"report": report.to_dict(), "status": coordinator().status()}


@sync_bp.route("/sync/pending", methods=["GET"])
def pending_orders():
    queue = current_app.config["ORDER_QUEUE"]
    return {"pending": [entry.to_dict() for entry in queue.list_pending()]}


@sync_bp.route("/network/online", methods=["POST"])
def network_online():
    return _set_network(True)


@sync_bp.route("/network/offline", methods=["POST"])
def network_offline():
    return _set_network(False)


def _set_network(online: bool):
    monitor = current_app.config["CONNECTIVITY_MONITOR"]
    logger.info(f"Network manually reported {'online' if online else 'offline'}")
    changed = monitor.set_online(online)
    return {"online": monitor.is_online, "changed": changed, "status": coordinator().status()}
