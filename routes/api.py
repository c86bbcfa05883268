"""
Collaborator API routes.

The three services the order pipeline talks to, served by this application
so a single process is a complete deployment. The storefront adapters reach
them over HTTP like any external service (see STORY_SERVICE_URL etc.).

Handles:
- /api/create-draft - Store cover image, generate story (multipart)
- /api/create-payment-intent - Create a payment session (JSON)
- /api/payment-status - Provider status of a payment session (JSON)
- /api/create-final-order - Record the order (JSON; logged, not persisted)
"""

import time
from datetime import datetime, timezone
from pathlib import Path

from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import PaymentBelowMinimumError, PaymentError, StoryGenerationError
from models.order import sanitize_text, FIELD_LIMITS
from modules.print_job import split_descriptor
from modules.uploads import has_upload, allowed_image, unique_upload_name
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")

# Characters of story text written to the order log
STORY_SNIPPET_CHARS = 400


@api_bp.route("/create-draft", methods=["POST"])
def create_draft():
    """
    Generate a story for a draft.

    Form: title, genre, promptText, pageRange; file: coverImage
    Returns: {"story": ..., "coverImageFilename": ...}
    """
    title = sanitize_text(request.form.get("title"), FIELD_LIMITS["title"])
    genre = sanitize_text(request.form.get("genre"), FIELD_LIMITS["genre"])
    prompt_text = sanitize_text(request.form.get("promptText"), FIELD_LIMITS["prompt_text"])
    page_range = sanitize_text(request.form.get("pageRange"), 40)
    cover_image = request.files.get("coverImage")

    if not title or not genre or not prompt_text or not has_upload(cover_image):
        return {
            "error": "A required field is missing. Please fill out the title, genre, "
                     "prompt, and upload a cover image."
        }, 400

    if not allowed_image(cover_image.filename):
        return {"error": "Unsupported cover image type."}, 400

    upload_folder = Path(current_app.config["UPLOAD_FOLDER"])
    upload_folder.mkdir(parents=True, exist_ok=True)
    stored_name = unique_upload_name("coverImage", cover_image.filename)
    cover_image.save(upload_folder / stored_name)

    try:
        story = current_app.config["STORYTELLER"].write_story(
            title, genre, prompt_text, page_range
        )
    except StoryGenerationError as e:
        logger.error(f"Error in /api/create-draft: {e}")
        return {"error": "Failed to create story draft."}, 500

    return {"story": story, "coverImageFilename": stored_name}


@api_bp.route("/create-payment-intent", methods=["POST"])
def create_payment_intent():
    """
    Create a payment session.

    JSON: {"amount": <minor units>, "currency": "usd"}
    Returns: {"clientSecret": ..., "totalAmount": ...}
    """
    payload = request.get_json(silent=True) or {}
    amount = payload.get("amount")

    if isinstance(amount, bool) or not isinstance(amount, int):
        return {"error": "Invalid order options selected."}, 400

    try:
        return current_app.config["PAYMENT_GATEWAY"].create_intent(
            amount, payload.get("currency")
        )
    except PaymentBelowMinimumError as e:
        return {"error": e.message}, 400
    except PaymentError as e:
        logger.error(f"Payment gateway error: {e}")
        return {"error": "Failed to create payment intent."}, 500


@api_bp.route("/payment-status", methods=["POST"])
def payment_status():
    """
    Report the provider's status for a payment session.

    JSON: {"clientSecret": ...}
    Returns: {"status": ..., "amount": ...}
    """
    payload = request.get_json(silent=True) or {}
    client_secret = payload.get("clientSecret")

    if not isinstance(client_secret, str) or not client_secret:
        return {"error": "Missing payment reference."}, 400

    try:
        return current_app.config["PAYMENT_GATEWAY"].retrieve_status(client_secret)
    except PaymentError as e:
        logger.error(f"Payment status lookup failed: {e}")
        return {"error": "Failed to retrieve payment status."}, 500


@api_bp.route("/create-final-order", methods=["POST"])
def create_final_order():
    """
    Record a finished order.

    There is no order database: the order is written to the log and a
    time-based id is returned.
    """
    payload = request.get_json(silent=True) or {}
    shipping = payload.get("shippingDetails")
    descriptor = payload.get("printJobDescriptor")

    if not isinstance(shipping, dict) or not descriptor:
        return {"error": "Failed to process the final order."}, 400

    story_text = payload.get("storyText") or ""
    order_id = f"INK-{time.time_ns() // 1_000_000}"

    logger.info("--- NEW ORDER RECEIVED ---")
    logger.info(f"Order ID: {order_id}")
    logger.info(f"Date: {datetime.now(timezone.utc).isoformat()}")
    logger.info(f"Book Title: {payload.get('bookTitle', '')}")
    logger.info(f"Book Type: {payload.get('bookType', '')}")
    logger.info(f"Print Job: {descriptor} {split_descriptor(str(descriptor))}")
    logger.info(f"Shipping To: {shipping}")
    logger.info(f"Cover Image Filename: {payload.get('coverImageFilename', '')}")
    logger.info(f"Totals: {payload.get('totals', {})}")
    logger.info(f"Story Snippet: {story_text[:STORY_SNIPPET_CHARS]}...")
    logger.info("--- END OF ORDER ---")

    return {"success": True, "orderId": order_id}
