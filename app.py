"""
PosTerminal - Flask Application Entry Point.

This is a slim app factory that:
1. Opens the local key-value store and restores the unsynced order queue
2. Creates the remote store client and sync coordinator
3. Starts the connectivity probe (separate thread)
4. Builds the terminal session (catalog, staff, assembler, parked orders)
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (cart, checkout, sync status)
    └── Cleanup on shutdown (flush queue, close store)

    Connectivity Thread (background)
    └── Health probe loop; a recovery runs a sync pass on this thread

    QueueWriter Timer (short-lived)
    └── Debounced physical write of the order queue
"""

from __future__ import annotations

import atexit
import logging
import os
from decimal import Decimal
from typing import Optional

from flask import Flask

from logging_config import setup_logging, get_logger
from core.connectivity import ConnectivityMonitor, HealthProbeMonitor
from core.exceptions import StorageError
from core.kv_store import create_store
from core.remote_store import HttpOrderStore, RemoteOrderStore
from services.catalog import JsonCatalogProvider, JsonStaffDirectory
from services.order_assembler import OrderAssembler
from services.order_queue import LocalOrderQueue
from services.parked_orders import ParkedOrderBook
from services.sync_coordinator import SyncCoordinator
from services.terminal import PosTerminal
from routes import register_blueprints, register_error_handlers


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(
    config_object: str = "config.Config",
    remote_store: Optional[RemoteOrderStore] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        remote_store: Remote store to use instead of the HTTP client (tests)

    Returns:
        Configured Flask application

    Raises:
        StorageError: If the local store cannot be opened
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(
        f"Starting PosTerminal {app.config.get('TERMINAL_ID')} "
        f"in {app.config.get('ENVIRONMENT')} mode"
    )

    # =========================================================================
    # LOCAL PERSISTENCE
    # =========================================================================

    try:
        store = create_store(app.config["QUEUE_DB_PATH"])
    except StorageError as e:
        logger.error(f"FATAL: Cannot open local storage - {e}")
        raise

    queue = LocalOrderQueue(store, debounce_ms=app.config["QUEUE_DEBOUNCE_MS"])
    if len(queue):
        logger.info(f"{len(queue)} orders waiting to sync from a previous session")

    # =========================================================================
    # REMOTE STORE + SYNC
    # =========================================================================

    if remote_store is None:
        remote_store = HttpOrderStore(
            app.config["REMOTE_STORE_URL"],
            api_key=app.config["REMOTE_STORE_API_KEY"],
            timeout_seconds=app.config["REMOTE_WRITE_TIMEOUT_SECONDS"],
            health_path=app.config["HEALTH_PROBE_PATH"],
            deduct_stock=app.config.get("DEDUCT_STOCK_ON_ORDER", False),
        )

    probe_enabled = app.config.get("HEALTH_PROBE_ENABLED", False)

    # With a probe, start offline: the first successful probe is a transition
    # and flushes whatever the previous session left in the queue
    monitor = ConnectivityMonitor(initially_online=not probe_enabled)
    coordinator = SyncCoordinator(queue, remote_store, monitor)

    # =========================================================================
    # TERMINAL SESSION
    # =========================================================================

    catalog = JsonCatalogProvider.from_file(app.config["CATALOG_PATH"])
    staff = JsonStaffDirectory.from_file(app.config["STAFF_PATH"])

    assembler = OrderAssembler(
        cash_tolerance=Decimal(str(app.config["CASH_TOLERANCE"])),
        terminal_id=app.config.get("TERMINAL_ID", ""),
    )

    terminal = PosTerminal(
        catalog=catalog,
        assembler=assembler,
        coordinator=coordinator,
        parked=ParkedOrderBook(store),
        staff=staff,
    )

    app.config["KV_STORE"] = store
    app.config["ORDER_QUEUE"] = queue
    app.config["REMOTE_STORE"] = remote_store
    app.config["CONNECTIVITY_MONITOR"] = monitor
    app.config["SYNC_COORDINATOR"] = coordinator
    app.config["CATALOG"] = catalog
    app.config["STAFF_DIRECTORY"] = staff
    app.config["POS_TERMINAL"] = terminal

    # =========================================================================
    # CONNECTIVITY PROBE
    # =========================================================================

    probe = None
    if probe_enabled:
        probe = HealthProbeMonitor(
            monitor,
            remote_store.ping,
            interval_seconds=app.config["HEALTH_PROBE_INTERVAL_SECONDS"],
        )
        probe.start()
    app.config["HEALTH_PROBE"] = probe

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        if probe:
            probe.stop()

        # Most recent queue mutation may still be inside the debounce window
        try:
            queue.close()
        except StorageError:
            logger.error(f"{len(queue)} queued orders may not have been written to disk")

        store.close()

        logger.info("Shutdown complete")

    atexit.register(cleanup)
    app.config["CLEANUP"] = cleanup

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)
    register_error_handlers(app)

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    # Reloader would start a second probe thread and a second queue
    app.run(debug=debug_mode, use_reloader=False)
