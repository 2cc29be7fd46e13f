"""
Configuration for PosTerminal.

Values come from the environment (optionally a .env file next to the app).
The remote order store is optional at runtime: when it is unreachable the
terminal keeps taking orders and queues them locally.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the terminal service."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    TESTING = False

    # Identifies this till in remote records and logs
    TERMINAL_ID = os.environ.get("TERMINAL_ID", "till-1")

    # ==========================================================================
    # Remote order store (PostgREST-style hosted database)
    # ==========================================================================
    REMOTE_STORE_URL = os.environ.get("REMOTE_STORE_URL", "http://localhost:54321")
    REMOTE_STORE_API_KEY = os.environ.get("REMOTE_STORE_API_KEY", "")

    # Client-side bound on each remote request. A write that hangs past this
    # is treated as a network failure so the sequential flush keeps moving.
    REMOTE_WRITE_TIMEOUT_SECONDS = float(
        os.environ.get("REMOTE_WRITE_TIMEOUT_SECONDS", "15")
    )

    # Record recipe usage in the inventory tables when a new order lands
    DEDUCT_STOCK_ON_ORDER = os.environ.get("DEDUCT_STOCK_ON_ORDER", "1") == "1"

    # Connectivity probe (emits online/offline transitions)
    HEALTH_PROBE_ENABLED = os.environ.get("HEALTH_PROBE_ENABLED", "1") == "1"
    HEALTH_PROBE_PATH = os.environ.get("HEALTH_PROBE_PATH", "/rest/v1/")
    HEALTH_PROBE_INTERVAL_SECONDS = float(
        os.environ.get("HEALTH_PROBE_INTERVAL_SECONDS", "10")
    )

    # ==========================================================================
    # Local durable queue
    # ==========================================================================
    # QUEUE_DB_PATH=":memory:" keeps everything in process memory (tests only)
    QUEUE_DB_PATH = os.environ.get(
        "QUEUE_DB_PATH", str(BASE_DIR / "data" / "terminal.db")
    )
    # Bursts of queue mutations inside this window become one physical write
    QUEUE_DEBOUNCE_MS = int(os.environ.get("QUEUE_DEBOUNCE_MS", "300"))

    # ==========================================================================
    # Reference data (read-only collaborators)
    # ==========================================================================
    CATALOG_PATH = os.environ.get("CATALOG_PATH", str(BASE_DIR / "data" / "catalog.json"))
    STAFF_PATH = os.environ.get("STAFF_PATH", str(BASE_DIR / "data" / "staff.json"))

    # ==========================================================================
    # Pricing rules
    # ==========================================================================
    # Cash payments within this many currency units of the total are accepted
    CASH_TOLERANCE = os.environ.get("CASH_TOLERANCE", "0.1")
    # Senior citizen / PWD statutory discount
    DISCOUNT_RATE = os.environ.get("DISCOUNT_RATE", "0.20")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    QUEUE_DB_PATH = ":memory:"
    QUEUE_DEBOUNCE_MS = 0
    HEALTH_PROBE_ENABLED = False
    REMOTE_STORE_URL = "http://remote.test"
    REMOTE_STORE_API_KEY = "test-key"
