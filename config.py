"""
Configuration for the Inkwell storefront.

Values come from the environment (or a .env file next to this module).
The three collaborator base URLs default to the /api blueprint served by
this same application, so a single process is a complete deployment.
"""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent

DEV_SECRET_KEY = "dev-secret-key"
LOCAL_API_URL = "http://127.0.0.1:5000/api"


def _env_bool(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", DEV_SECRET_KEY)
    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER", str(BASE_DIR / "static" / "uploads")
    )
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16 MB uploads
    SESSION_COOKIE_NAME = "inkwell_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Collaborator services
    # ==========================================================================
    # Each adapter POSTs to {URL}/<endpoint>:
    #   STORY_SERVICE_URL   -> /create-draft           (multipart)
    #   PAYMENT_SERVICE_URL -> /create-payment-intent  (JSON)
    #   ORDER_SERVICE_URL   -> /create-final-order     (JSON)
    # Every call is bounded by COLLABORATOR_TIMEOUT_SECONDS; a timeout is
    # handled like any other failure of that service.
    # ==========================================================================
    STORY_SERVICE_URL = os.environ.get("STORY_SERVICE_URL", LOCAL_API_URL)
    PAYMENT_SERVICE_URL = os.environ.get("PAYMENT_SERVICE_URL", LOCAL_API_URL)
    ORDER_SERVICE_URL = os.environ.get("ORDER_SERVICE_URL", LOCAL_API_URL)
    COLLABORATOR_TIMEOUT_SECONDS = float(
        os.environ.get("COLLABORATOR_TIMEOUT_SECONDS", "30")
    )

    # ==========================================================================
    # Pricing
    # ==========================================================================
    # PRICING_MARGIN_RATE: markup on production cost (0.5 = 50%)
    # MINIMUM_CHARGE_MINOR_UNITS: smallest chargeable total, in cents
    # STRICT_OPTION_KEYS: reject book options missing from the price table
    #   instead of pricing them at 0
    # ==========================================================================
    PRICING_MARGIN_RATE = os.environ.get("PRICING_MARGIN_RATE", "0.5")
    MINIMUM_CHARGE_MINOR_UNITS = int(os.environ.get("MINIMUM_CHARGE_MINOR_UNITS", "50"))
    CURRENCY = os.environ.get("CURRENCY", "usd")
    STRICT_OPTION_KEYS = _env_bool("STRICT_OPTION_KEYS")

    # Order sessions idle longer than this are dropped
    SESSION_TTL_SECONDS = float(os.environ.get("SESSION_TTL_SECONDS", "3600"))

    # ==========================================================================
    # Collaborator backend (/api blueprint)
    # ==========================================================================
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_API_BASE = os.environ.get(
        "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
    )
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
    STRIPE_PUBLISHABLE_KEY = os.environ.get("STRIPE_PUBLISHABLE_KEY", "")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    ENVIRONMENT = "production"
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    SECRET_KEY = "testing-secret-key"
    UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), "inkwell-test-uploads")
    STORY_SERVICE_URL = "http://collaborators.test/api"
    PAYMENT_SERVICE_URL = "http://collaborators.test/api"
    ORDER_SERVICE_URL = "http://collaborators.test/api"
    COLLABORATOR_TIMEOUT_SECONDS = 5.0
    PRICING_MARGIN_RATE = "0.5"
    MINIMUM_CHARGE_MINOR_UNITS = 50
    STRICT_OPTION_KEYS = False
    GEMINI_API_KEY = "test-gemini-key"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_PUBLISHABLE_KEY = "pk_test_dummy"
