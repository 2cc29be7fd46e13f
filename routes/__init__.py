"""
Flask route blueprints for PosTerminal.

This module contains all route handlers organized by functionality:
- api: Health check and reference data (catalog, staff)
- cart: Order in progress (items, discount, fulfillment, server)
- checkout: Payment confirmation
- parked: Orders saved for later
- sync: Queue status, manual sync, network override

All routes speak JSON. Errors are rendered by the handlers in errors.py.
"""

from .api import api_bp
from .cart import cart_bp
from .checkout import checkout_bp
from .parked import parked_bp
from .sync import sync_bp
from .errors import register_error_handlers

__all__ = [
    "api_bp",
    "cart_bp",
    "checkout_bp",
    "parked_bp",
    "sync_bp",
    "register_blueprints",
    "register_error_handlers",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(api_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(parked_bp)
    app.register_blueprint(sync_bp)
