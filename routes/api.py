"""
API routes (reference data and health).

Handles:
- /health       - Health check endpoint
- /api/catalog  - Menu items, optionally filtered by category
- /api/staff    - Servers that can be assigned to an order
"""

from flask import Blueprint, current_app, request

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/catalog", methods=["GET"])
def catalog():
    provider = current_app.config["CATALOG"]
    category = request.args.get("category")
    return {
        "categories": provider.categories(),
        "items": [item.to_dict() for item in provider.list_items(category)],
    }


@api_bp.route("/api/staff", methods=["GET"])
def staff():
    directory = current_app.config.get("STAFF_DIRECTORY")
    servers = directory.list_servers() if directory else []
    return {"servers": [member.to_dict() for member in servers]}


@api_bp.route("/health", methods=["GET"])
def health():
    """
    Health check endpoint with service status.

    Being offline is not unhealthy: the terminal keeps taking orders and
    queues them. Only orders the remote store rejected degrade the status,
    since those need someone to look at them.
    """
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "terminal_id": current_app.config.get("TERMINAL_ID", ""),
        "checks": {}
    }

    monitor = current_app.config.get("CONNECTIVITY_MONITOR")
    health_status["checks"]["network"] = "online" if monitor and monitor.is_online else "offline"

    probe = current_app.config.get("HEALTH_PROBE")
    health_status["checks"]["probe"] = "running" if probe and probe.is_running else "not_running"

    queue = current_app.config.get("ORDER_QUEUE")
    if queue is not None:
        health_status["checks"]["pending_orders"] = len(queue)
        attention = queue.attention_count()
        health_status["checks"]["needs_attention"] = attention
        if attention:
            health_status["status"] = "degraded"
    else:
        health_status["checks"]["queue"] = "not_available"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
