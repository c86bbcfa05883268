"""
Inkwell - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration (fail-fast on unsafe production settings)
2. Creates the order session store and pricing engine
3. Creates the collaborator adapters (story, payment, order recording)
4. Creates the collaborator backend served under /api
5. Registers route blueprints and error handlers

ARCHITECTURE:
    Browser
    └── storefront blueprints (draft, preview, finalize, confirmation)
        └── order pipeline (one OrderSession per browser session)
            ├── StoryService   --HTTP--> STORY_SERVICE_URL/create-draft
            ├── PaymentService --HTTP--> PAYMENT_SERVICE_URL/create-payment-intent
            └── OrderService   --HTTP--> ORDER_SERVICE_URL/create-final-order

    /api blueprint (default target of the three URLs)
    ├── Storyteller    (text generation over HTTP)
    └── PaymentGateway (payment provider SDK)

Order sessions live in process memory; nothing is persisted.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

from dotenv import load_dotenv
from flask import Flask, flash, redirect, request, url_for
from werkzeug.exceptions import RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from config import DEV_SECRET_KEY
from core.exceptions import ConfigurationError
from modules.pricing import PricingEngine
from services.session_store import SessionStore
from services.story_service import StoryService
from services.payment_service import PaymentService
from services.order_service import OrderService
from services.storyteller import Storyteller
from services.payment_gateway import PaymentGateway
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _check_production_settings(app: Flask) -> None:
    """Refuse to start production with development secrets."""
    if app.config.get("ENVIRONMENT") != "production":
        return
    if app.config.get("SECRET_KEY") in (None, "", DEV_SECRET_KEY):
        raise ConfigurationError(
            "FLASK_SECRET_KEY", "must be set to a private value in production"
        )


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def create_app(config_object: Union[str, type] = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Configuration class, or its import path

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If production is started with unsafe settings
    """
    load_dotenv()

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging,
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting Inkwell in {app.config.get('ENVIRONMENT')} mode")

    try:
        _check_production_settings(app)
    except ConfigurationError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    # Ensure upload folder exists
    upload_folder = Path(app.config["UPLOAD_FOLDER"])
    upload_folder.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    app.config["SESSION_STORE"] = SessionStore(
        ttl_seconds=app.config.get("SESSION_TTL_SECONDS", 3600.0)
    )
    app.config["PRICING_ENGINE"] = PricingEngine.from_config(app.config)

    # Collaborator adapters
    app.config["STORY_SERVICE"] = StoryService.from_config(app.config)
    app.config["PAYMENT_SERVICE"] = PaymentService.from_config(app.config)
    app.config["ORDER_SERVICE"] = OrderService.from_config(app.config)
    logger.info(
        f"Collaborators: story={app.config['STORY_SERVICE_URL']}, "
        f"payment={app.config['PAYMENT_SERVICE_URL']}, "
        f"order={app.config['ORDER_SERVICE_URL']}"
    )

    # Collaborator backend (/api)
    app.config["STORYTELLER"] = Storyteller.from_config(app.config)
    app.config["PAYMENT_GATEWAY"] = PaymentGateway.from_config(app.config)
    if not app.config.get("GEMINI_API_KEY"):
        logger.warning("GEMINI_API_KEY is not set; /api/create-draft will fail")
    if not app.config.get("STRIPE_SECRET_KEY"):
        logger.warning("STRIPE_SECRET_KEY is not set; /api/create-payment-intent will fail")

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 16 * 1024 * 1024) / (1024 * 1024)
        message = f"File too large. Maximum upload size is {max_mb:.0f} MB."
        if _wants_json():
            return {"error": message}, 413
        flash(message, "error")
        return redirect(url_for("draft.draft"))

    @app.errorhandler(404)
    def handle_not_found(e):
        if _wants_json():
            return {"error": "Not found."}, 404
        flash("Page not found.", "warning")
        return redirect(url_for("main.index"))

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        if _wants_json():
            return {"error": "An unexpected error occurred."}, 500
        flash("An unexpected error occurred. Please try again.", "error")
        return redirect(url_for("main.index"))

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
