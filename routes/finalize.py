"""
Finalize routes.

Hosts the payment provider's confirmation UI and receives its completion
callback. The order is only recorded after the payment service confirms
the payment the callback reports.

Handles:
- /finalize - Payment page (or free-order confirmation)
- /finalize/payment-result - JSON callback posted by the payment page
- /finalize/return - Redirect target after off-page payment steps (3-D Secure)
- /finalize/confirm-free - Place an order with nothing to charge
"""

from flask import (
    Blueprint,
    current_app,
    render_template,
    request,
    url_for,
)

from models.pipeline import PipelineState
from modules.order_pipeline import complete_payment, confirm_free_order, view_for
from logging_config import get_logger

from .helpers import current_order_session, flash_result, redirect_to_current


# Module logger
logger = get_logger(__name__)

finalize_bp = Blueprint("finalize", __name__)


@finalize_bp.route("/finalize", methods=["GET"])
def finalize():
    """Display the payment page."""
    order_session = current_order_session()
    if order_session.state is not PipelineState.FINALIZE:
        return redirect_to_current(order_session)

    payment_session = order_session.payment_session
    return render_template(
        "finalize.html",
        order_session=order_session,
        draft=order_session.draft,
        totals=order_session.totals.formatted(),
        client_secret=payment_session.client_secret if payment_session else None,
        publishable_key=current_app.config.get("STRIPE_PUBLISHABLE_KEY", ""),
        return_url=url_for("finalize.payment_return", _external=True),
        error=order_session.error,
    )


@finalize_bp.route("/finalize/payment-result", methods=["POST"])
def payment_result():
    """
    Completion callback from the payment page.

    Body: {"status": "succeeded", "clientSecret": ...} or
          {"status": "failed", "error": {"message": ...}}

    A reported success is checked with the payment service first; the
    order is only recorded once the service confirms the payment.

    Returns JSON with the resulting state and the page to go to next.
    """
    order_session = current_order_session()
    payload = request.get_json(silent=True) or {}

    payment_service = current_app.config["PAYMENT_SERVICE"]
    outcome = payment_service.confirm(payload, order_session.payment_session)

    result = complete_payment(
        order_session, outcome, current_app.config["ORDER_SERVICE"]
    )

    body = {
        "ok": result.ok,
        "state": result.state.value,
        "redirect": url_for(view_for(result.state)),
        "error": result.error.to_dict() if result.error else None,
    }
    if not result.ok:
        logger.info(f"Payment callback did not complete order: {result.error.message}")
        return body, 400
    return body


@finalize_bp.route("/finalize/return", methods=["GET"])
def payment_return():
    """Redirect-based completion callback (payment_intent, redirect_status args)."""
    order_session = current_order_session()

    payment_service = current_app.config["PAYMENT_SERVICE"]
    outcome = payment_service.confirm(request.args, order_session.payment_session)

    result = complete_payment(
        order_session, outcome, current_app.config["ORDER_SERVICE"]
    )
    flash_result(result)
    return redirect_to_current(order_session)


@finalize_bp.route("/finalize/confirm-free", methods=["POST"])
def confirm_free():
    """Place an order whose total is zero."""
    order_session = current_order_session()

    result = confirm_free_order(order_session, current_app.config["ORDER_SERVICE"])
    flash_result(result)
    return redirect_to_current(order_session)
