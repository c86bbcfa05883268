"""
Draft form route.

Collects title, genre, prompt, cover image, book options and shipping
contact. Submitting the form asks the story service for a story and moves
the session to preview.
"""

from pathlib import Path

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

from models.pipeline import PipelineState
from modules.order_pipeline import update_draft, submit_draft
from modules.uploads import has_upload, validate_image, store_cover_image
from logging_config import get_logger

from .helpers import current_order_session, flash_result, redirect_to_current


# Module logger
logger = get_logger(__name__)

draft_bp = Blueprint("draft", __name__)


def _save_cover_image():
    """
    Validate and store the posted cover image, if any.

    Returns:
        Tuple of (CoverImage or None, error message or "")
    """
    image = request.files.get("coverImage")
    if not has_upload(image):
        return None, ""

    is_valid, error_msg = validate_image(image)
    if not is_valid:
        return None, error_msg

    upload_folder = Path(current_app.config["UPLOAD_FOLDER"])
    cover = store_cover_image(image, upload_folder)
    logger.info(f"Cover image stored: {cover.stored_filename}")
    return cover, ""


@draft_bp.route("/draft", methods=["GET", "POST"])
def draft():
    """
    Handle the order form.

    GET: Display the form with running totals
    POST: Save fields; unless only saving, request the story
    """
    order_session = current_order_session()
    if order_session.state is not PipelineState.FORM:
        return redirect_to_current(order_session)

    pricing = current_app.config["PRICING_ENGINE"]

    if request.method == "POST":
        cover, error_msg = _save_cover_image()
        update_draft(order_session, request.form, pricing, cover_image=cover)

        if error_msg:
            flash(error_msg, "error")
            return redirect(url_for("draft.draft"))

        if request.form.get("action") == "save":
            flash("Your draft has been saved.", "success")
            return redirect(url_for("draft.draft"))

        result = submit_draft(
            order_session, current_app.config["STORY_SERVICE"], pricing
        )
        flash_result(result)
        return redirect_to_current(order_session)

    return render_template(
        "form.html",
        order_session=order_session,
        draft=order_session.draft,
        totals=order_session.totals.formatted(),
        options=pricing.price_table.options(),
    )


@draft_bp.route("/quote", methods=["POST"])
def quote():
    """
    Apply changed form fields and return the recomputed totals.

    Called by the form's JavaScript on every field change.
    """
    order_session = current_order_session()
    pricing = current_app.config["PRICING_ENGINE"]

    result = update_draft(order_session, request.form, pricing)
    if not result.ok:
        return {"error": result.error.message, "state": result.state.value}, 409

    return {
        "totals": order_session.totals.to_dict(),
        "formatted": order_session.totals.formatted(),
        "unknown_options": pricing.unknown_keys(order_session.draft),
    }
