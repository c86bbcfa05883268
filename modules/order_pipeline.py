"""
Order pipeline state machine.

    FORM --submit_draft--> PREVIEW --proceed_to_finalize--> FINALIZE
         --complete_payment / confirm_free_order--> CONFIRMATION

Every transition:
    - marks the session in flight, refusing to run while another transition
      holds the mark
    - then checks the session is in the state it starts from; state only
      changes under the mark, so the check cannot go stale
    - calls at most one collaborator
    - returns a TransitionResult instead of raising; on failure the session
      keeps its state and draft, and carries a PipelineError for the page

No transition retries anything by itself. Moving backwards is not possible;
reset() discards the session and starts a new one in FORM.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from core.exceptions import (
    CollaboratorError,
    DraftValidationError,
    PaymentBelowMinimumError,
)
from models.order import CoverImage, sanitize_text
from models.pipeline import (
    FailureKind,
    OrderSession,
    PaymentOutcome,
    PipelineError,
    PipelineState,
    TransitionResult,
)
from modules.pricing import PricingEngine
from modules.print_job import build_print_job_descriptor
from logging_config import get_session_logger


# Route endpoint that renders each state; must cover every PipelineState
STATE_VIEWS = {
    PipelineState.FORM: "draft.draft",
    PipelineState.PREVIEW: "preview.preview",
    PipelineState.FINALIZE: "finalize.finalize",
    PipelineState.CONFIRMATION: "confirmation.confirmation",
}

_missing_views = set(PipelineState) - set(STATE_VIEWS)
if _missing_views:
    raise RuntimeError(f"No view registered for states: {sorted(s.value for s in _missing_views)}")

MAX_STORY_LENGTH = 20000

PARTIAL_FAILURE_MESSAGE = (
    "Your payment went through, but we could not record your order. "
    "Please contact support with your payment receipt and we will complete it for you."
)
UNPAID_RECORDING_MESSAGE = (
    "We could not record your order. You have not been charged. Please try again."
)
BUSY_MESSAGE = "Your previous request is still being processed. Please wait."


def view_for(state: PipelineState) -> str:
    """Endpoint name of the page for a state."""
    return STATE_VIEWS[state]


# =============================================================================
# HELPERS
# =============================================================================

def _fail(session: OrderSession, kind: FailureKind, message: str) -> TransitionResult:
    session.error = PipelineError(kind, message)
    return TransitionResult(session.state, session.error)


def _wrong_state(session: OrderSession, expected: PipelineState, action: str) -> TransitionResult:
    # Not stored on the session: the page for the real state has nothing to show
    get_session_logger(session.session_id).warning(
        f"{action} attempted in {session.state.value}, expected {expected.value}"
    )
    error = PipelineError(
        FailureKind.VALIDATION,
        "That step is not available right now. Please continue from this page.",
    )
    return TransitionResult(session.state, error)


def _busy(session: OrderSession) -> TransitionResult:
    error = PipelineError(FailureKind.VALIDATION, BUSY_MESSAGE)
    return TransitionResult(session.state, error)


def _collaborator_message(error: CollaboratorError) -> str:
    if isinstance(error, PaymentBelowMinimumError):
        return (
            f"Orders under {error.minimum / 100:.2f} cannot be charged. "
            "Please adjust your book options."
        )
    return error.user_message


# =============================================================================
# DRAFT EDITS (no state change)
# =============================================================================

def update_draft(
    session: OrderSession,
    form: Mapping[str, Any],
    pricing: PricingEngine,
    cover_image: Optional[CoverImage] = None,
) -> TransitionResult:
    """
    Apply form fields to the draft and recompute the totals.

    Allowed in FORM and PREVIEW. Nothing is validated here.
    """
    if session.state not in (PipelineState.FORM, PipelineState.PREVIEW):
        return _wrong_state(session, PipelineState.FORM, "update_draft")

    changed = session.draft.apply_form(form)
    if cover_image is not None and session.state is PipelineState.FORM:
        session.draft.cover_image = cover_image
        changed.append("cover_image")

    session.totals = pricing.quote(session.draft)

    if changed:
        get_session_logger(session.session_id).debug(f"Draft fields updated: {changed}")
    return TransitionResult(session.state)


def edit_story(session: OrderSession, text: str) -> TransitionResult:
    """Replace the story text with the user's edit (PREVIEW only)."""
    if session.state is not PipelineState.PREVIEW or session.story is None:
        return _wrong_state(session, PipelineState.PREVIEW, "edit_story")

    cleaned = sanitize_text(text, max_length=MAX_STORY_LENGTH)
    if not cleaned:
        return _fail(session, FailureKind.VALIDATION, "The story cannot be empty.")

    session.story.text = cleaned
    return TransitionResult(session.state)


# =============================================================================
# TRANSITIONS
# =============================================================================

def submit_draft(
    session: OrderSession,
    story_service,
    pricing: Optional[PricingEngine] = None,
) -> TransitionResult:
    """
    FORM -> PREVIEW.

    Requires title, genre, prompt and cover image. Asks the story service
    for a story; on failure the session stays in FORM with its draft intact.
    """
    if not session.try_begin("submit_draft"):
        return _busy(session)

    log = get_session_logger(session.session_id)
    try:
        if session.state is not PipelineState.FORM:
            return _wrong_state(session, PipelineState.FORM, "submit_draft")
        session.error = None

        missing = session.draft.missing_required_fields()
        if missing:
            error = DraftValidationError(missing)
            log.info(f"Draft incomplete: {missing}")
            return _fail(session, FailureKind.VALIDATION, error.message)

        if pricing is not None and pricing.strict_option_keys:
            unknown = pricing.unknown_keys(session.draft)
            if unknown:
                log.info(f"Draft has unknown options: {unknown}")
                return _fail(
                    session,
                    FailureKind.VALIDATION,
                    f"Please choose valid book options ({', '.join(unknown)}).",
                )

        try:
            story = story_service.generate(session.draft)
        except DraftValidationError as e:
            return _fail(session, FailureKind.VALIDATION, e.message)
        except CollaboratorError as e:
            log.warning(f"Story generation failed: {e}")
            return _fail(session, FailureKind.COLLABORATOR, _collaborator_message(e))

        session.story = story
        session.state = PipelineState.PREVIEW
        log.info("Draft submitted, story ready for preview")
        return TransitionResult(session.state)
    finally:
        session.finish()


def proceed_to_finalize(
    session: OrderSession,
    payment_service,
    pricing: PricingEngine,
) -> TransitionResult:
    """
    PREVIEW -> FINALIZE.

    Recomputes the totals and builds the print job descriptor. When there
    is something to charge, a payment session is requested first and the
    session only advances once it exists.
    """
    if not session.try_begin("proceed_to_finalize"):
        return _busy(session)

    log = get_session_logger(session.session_id)
    try:
        if session.state is not PipelineState.PREVIEW:
            return _wrong_state(session, PipelineState.PREVIEW, "proceed_to_finalize")
        session.error = None
        totals = pricing.quote(session.draft)
        session.totals = totals

        payment_session = None
        if totals.total > 0:
            try:
                payment_session = payment_service.create_session(totals.total)
            except CollaboratorError as e:
                log.warning(f"Payment session request failed: {e}")
                return _fail(session, FailureKind.COLLABORATOR, _collaborator_message(e))

        session.payment_session = payment_session
        session.print_job_descriptor = build_print_job_descriptor(session.draft)
        session.state = PipelineState.FINALIZE
        log.info(
            f"Finalizing order: total={totals.total}, "
            f"payment={'yes' if payment_session else 'none'}, "
            f"descriptor={session.print_job_descriptor}"
        )
        return TransitionResult(session.state)
    finally:
        session.finish()


def complete_payment(
    session: OrderSession,
    outcome: PaymentOutcome,
    order_service,
) -> TransitionResult:
    """
    FINALIZE -> CONFIRMATION, driven by the payment confirmation callback.

    A failed payment keeps FINALIZE with the payment error. A successful
    one records the order; if that fails the user has been charged, so
    the error is PARTIAL and further callbacks are refused.
    """
    if not session.try_begin("complete_payment"):
        return _busy(session)

    log = get_session_logger(session.session_id)
    try:
        if session.state is not PipelineState.FINALIZE:
            return _wrong_state(session, PipelineState.FINALIZE, "complete_payment")
        if session.payment_captured:
            return TransitionResult(session.state, session.error)
        if session.payment_session is None:
            return _fail(
                session, FailureKind.VALIDATION, "There is no payment in progress for this order."
            )
        session.error = None

        if not outcome.success:
            log.info(f"Payment not completed: {outcome.error_message}")
            return _fail(session, FailureKind.COLLABORATOR, outcome.error_message)

        log.info("Payment confirmed, recording order")
        return _record_order(session, order_service, charged=True)
    finally:
        session.finish()


def confirm_free_order(session: OrderSession, order_service) -> TransitionResult:
    """FINALIZE -> CONFIRMATION for orders with nothing to charge."""
    if not session.try_begin("confirm_free_order"):
        return _busy(session)

    try:
        if session.state is not PipelineState.FINALIZE:
            return _wrong_state(session, PipelineState.FINALIZE, "confirm_free_order")
        if session.payment_session is not None:
            return _fail(
                session, FailureKind.VALIDATION, "This order requires payment before it can be placed."
            )
        session.error = None
        return _record_order(session, order_service, charged=False)
    finally:
        session.finish()


def _record_order(session: OrderSession, order_service, charged: bool) -> TransitionResult:
    log = get_session_logger(session.session_id)
    draft = session.draft
    story = session.story

    extra = {
        "bookTitle": draft.title,
        "bookType": draft.book_type,
        "coverImageFilename": story.source_image_reference if story else "",
        "storyText": story.text if story else "",
        "totals": session.totals.to_dict(),
    }

    try:
        order_id = order_service.record(
            draft.shipping_details(), session.print_job_descriptor, extra
        )
    except CollaboratorError as e:
        if charged:
            log.error(f"Order recording failed after payment: {e}")
            return _fail(session, FailureKind.PARTIAL, PARTIAL_FAILURE_MESSAGE)
        log.warning(f"Order recording failed: {e}")
        return _fail(session, FailureKind.COLLABORATOR, UNPAID_RECORDING_MESSAGE)

    session.order_id = order_id
    session.state = PipelineState.CONFIRMATION
    log.info(f"Order {order_id} confirmed")
    return TransitionResult(session.state)


def reset(store, session: Optional[OrderSession]) -> OrderSession:
    """Discard a session and start a new one in FORM."""
    if session is not None:
        store.discard(session.session_id)
    return store.create()
