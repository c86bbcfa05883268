"""
Confirmation route.

Displays the recorded order and lets the user start over.
"""

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    session,
    url_for,
)

from models.pipeline import PipelineState
from modules.order_pipeline import reset
from logging_config import get_logger

from .helpers import SESSION_KEY, current_order_session, redirect_to_current


# Module logger
logger = get_logger(__name__)

confirmation_bp = Blueprint("confirmation", __name__)


@confirmation_bp.route("/confirmation", methods=["GET"])
def confirmation():
    """
    Display order confirmation page.

    Shows the order id returned by the order-recording service.
    """
    order_session = current_order_session()
    if order_session.state is not PipelineState.CONFIRMATION:
        return redirect_to_current(order_session)

    return render_template(
        "confirmation.html",
        order_session=order_session,
        draft=order_session.draft,
        totals=order_session.totals.formatted(),
    )


@confirmation_bp.route("/start-over", methods=["POST"])
def start_over():
    """
    Discard the order session and start a new order.

    Available from any page; nothing from the old session is kept.
    """
    order_session = current_order_session()
    store = current_app.config["SESSION_STORE"]

    fresh = reset(store, order_session)
    session[SESSION_KEY] = fresh.session_id
    session.modified = True
    logger.info(f"Session {order_session.short_id} reset to {fresh.short_id}")

    flash("Session cleared. Start a new order.", "success")
    return redirect(url_for("draft.draft"))
