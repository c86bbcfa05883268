"""
Story preview route.

Shows the generated story for editing, plus the order summary. Posting
saves the edits and moves on to payment.
"""

from flask import (
    Blueprint,
    current_app,
    render_template,
    request,
)

from models.pipeline import PipelineState
from modules.order_pipeline import edit_story, update_draft, proceed_to_finalize

from .helpers import current_order_session, flash_result, redirect_to_current


preview_bp = Blueprint("preview", __name__)


@preview_bp.route("/preview", methods=["GET", "POST"])
def preview():
    """
    Handle story preview.

    GET: Display the story and totals
    POST: Save story edits and shipping fields, then request payment
    """
    order_session = current_order_session()
    if order_session.state is not PipelineState.PREVIEW:
        return redirect_to_current(order_session)

    pricing = current_app.config["PRICING_ENGINE"]

    if request.method == "POST":
        if "story_text" in request.form:
            result = edit_story(order_session, request.form["story_text"])
            if not result.ok:
                flash_result(result)
                return redirect_to_current(order_session)

        update_draft(order_session, request.form, pricing)

        result = proceed_to_finalize(
            order_session, current_app.config["PAYMENT_SERVICE"], pricing
        )
        flash_result(result)
        return redirect_to_current(order_session)

    return render_template(
        "preview.html",
        order_session=order_session,
        draft=order_session.draft,
        story=order_session.story,
        totals=order_session.totals.formatted(),
    )
