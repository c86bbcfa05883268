"""
Main routes (home, health).

Simple landing redirect and liveness probe.
"""

from flask import Blueprint, current_app

from .helpers import current_order_session, redirect_to_current

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def index():
    """Send the user to the page for their session's current state."""
    return redirect_to_current(current_order_session())


@main_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    store = current_app.config.get("SESSION_STORE")
    return {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT"),
        "active_sessions": len(store) if store is not None else 0,
    }
