"""
Unit tests for the order pipeline state machine.

Collaborators are MagicMocks; every test checks both the resulting state
and which collaborators were (or were not) called.
"""

import threading

import pytest

from core.exceptions import (
    OrderRecordingError,
    PaymentBelowMinimumError,
    PaymentError,
    StoryGenerationError,
)
from models.order import CoverImage, PaymentSession
from models.pipeline import (
    FailureKind,
    OrderSession,
    PaymentOutcome,
    PipelineState,
)
from modules.order_pipeline import (
    BUSY_MESSAGE,
    PARTIAL_FAILURE_MESSAGE,
    STATE_VIEWS,
    complete_payment,
    confirm_free_order,
    edit_story,
    proceed_to_finalize,
    reset,
    submit_draft,
    update_draft,
    view_for,
)
from modules.pricing import PriceTable, PricingEngine
from services.session_store import SessionStore


# Fixtures

@pytest.fixture
def preview_session(order_session, story_service, pricing):
    result = submit_draft(order_session, story_service, pricing)
    assert result.ok
    return order_session


@pytest.fixture
def finalize_session(preview_session, payment_service, pricing):
    result = proceed_to_finalize(preview_session, payment_service, pricing)
    assert result.ok
    return preview_session


class TestStateViews:
    """Every state has a page."""

    def test_all_states_mapped(self):
        assert set(STATE_VIEWS) == set(PipelineState)

    def test_view_for(self):
        assert view_for(PipelineState.FINALIZE) == "finalize.finalize"


class TestUpdateDraft:
    """Tests for update_draft()."""

    def test_recomputes_totals(self, pricing):
        session = OrderSession()

        result = update_draft(session, {"book_type": "hardcover"}, pricing)

        assert result.ok
        assert session.state is PipelineState.FORM
        # 800 + 50%
        assert session.totals.subtotal == 1200

    def test_sets_cover_only_in_form(self, preview_session, pricing):
        original = preview_session.draft.cover_image
        replacement = CoverImage(
            stored_path="/tmp/other.png", stored_filename="other.png"
        )

        update_draft(preview_session, {}, pricing, cover_image=replacement)

        assert preview_session.draft.cover_image == original

    def test_refused_after_preview(self, finalize_session, pricing):
        before = finalize_session.totals

        result = update_draft(finalize_session, {"book_type": "hardcover"}, pricing)

        assert not result.ok
        assert finalize_session.draft.book_type == "paperback"
        assert finalize_session.totals == before


class TestSubmitDraft:
    """Tests for FORM -> PREVIEW."""

    def test_success(self, order_session, story_service, pricing):
        result = submit_draft(order_session, story_service, pricing)

        assert result.ok
        assert order_session.state is PipelineState.PREVIEW
        assert order_session.story.text == "Once upon a time..."
        story_service.generate.assert_called_once_with(order_session.draft)

    def test_missing_fields_no_call(self, story_service, pricing):
        session = OrderSession()
        session.draft.title = "Only a title"

        result = submit_draft(session, story_service, pricing)

        assert result.error.kind is FailureKind.VALIDATION
        assert "genre" in result.error.message
        assert "cover image" in result.error.message
        assert session.state is PipelineState.FORM
        story_service.generate.assert_not_called()

    def test_story_failure_keeps_draft(self, order_session, story_service, pricing):
        story_service.generate.side_effect = StoryGenerationError()
        before = order_session.draft.to_dict()

        result = submit_draft(order_session, story_service, pricing)

        assert result.error.kind is FailureKind.COLLABORATOR
        assert result.error.message == StoryGenerationError.user_message
        assert order_session.state is PipelineState.FORM
        assert order_session.story is None
        assert order_session.draft.to_dict() == before
        assert order_session.in_flight is None

    def test_retry_after_failure(self, order_session, story_service, pricing):
        story_service.generate.side_effect = [StoryGenerationError(), story_service.generate.return_value]

        assert not submit_draft(order_session, story_service, pricing).ok
        result = submit_draft(order_session, story_service, pricing)

        assert result.ok
        assert order_session.error is None
        assert story_service.generate.call_count == 2

    def test_busy_session_no_call(self, order_session, story_service, pricing):
        assert order_session.try_begin("submit_draft")

        result = submit_draft(order_session, story_service, pricing)

        assert result.error.message == BUSY_MESSAGE
        story_service.generate.assert_not_called()

    def test_strict_option_keys(self, order_session, story_service):
        strict = PricingEngine(strict_option_keys=True)
        order_session.draft.book_size = "7x10"

        result = submit_draft(order_session, story_service, strict)

        assert result.error.kind is FailureKind.VALIDATION
        assert "book_size=7x10" in result.error.message
        story_service.generate.assert_not_called()

    def test_wrong_state(self, preview_session, story_service, pricing):
        story_service.generate.reset_mock()

        result = submit_draft(preview_session, story_service, pricing)

        assert not result.ok
        assert preview_session.state is PipelineState.PREVIEW
        story_service.generate.assert_not_called()


class TestEditStory:
    """Tests for edit_story()."""

    def test_edit(self, preview_session):
        result = edit_story(preview_session, "A <i>new</i> beginning.")

        assert result.ok
        assert preview_session.story.text == "A new beginning."

    def test_plain_text_kept_as_typed(self, preview_session):
        edit_story(preview_session, "Tom & Jerry said 2 < 3")

        assert preview_session.story.text == "Tom & Jerry said 2 < 3"

    def test_empty_rejected(self, preview_session):
        result = edit_story(preview_session, "   ")

        assert result.error.kind is FailureKind.VALIDATION
        assert preview_session.story.text == "Once upon a time..."

    def test_not_in_form(self, order_session):
        assert not edit_story(order_session, "text").ok


class TestProceedToFinalize:
    """Tests for PREVIEW -> FINALIZE."""

    def test_success(self, preview_session, payment_service, pricing):
        result = proceed_to_finalize(preview_session, payment_service, pricing)

        assert result.ok
        assert preview_session.state is PipelineState.FINALIZE
        payment_service.create_session.assert_called_once_with(1474)
        assert preview_session.payment_session.amount == 1474
        assert preview_session.print_job_descriptor == "0500X0800BWSTDPB060UW444MXX"

    def test_payment_failure_stays_in_preview(self, preview_session, payment_service, pricing):
        payment_service.create_session.side_effect = PaymentError()

        result = proceed_to_finalize(preview_session, payment_service, pricing)

        assert result.error.kind is FailureKind.COLLABORATOR
        assert preview_session.state is PipelineState.PREVIEW
        assert preview_session.payment_session is None

    def test_below_minimum_message(self, preview_session, payment_service, pricing):
        payment_service.create_session.side_effect = PaymentBelowMinimumError(40, 50)

        result = proceed_to_finalize(preview_session, payment_service, pricing)

        assert "0.50" in result.error.message
        assert preview_session.state is PipelineState.PREVIEW

    def test_free_order_skips_payment(self, preview_session, payment_service):
        free = PricingEngine(margin_rate="0", price_table=PriceTable())

        result = proceed_to_finalize(preview_session, payment_service, free)

        assert result.ok
        assert preview_session.totals.total == 0
        assert preview_session.payment_session is None
        payment_service.create_session.assert_not_called()

    def test_not_from_form(self, order_session, payment_service, pricing):
        result = proceed_to_finalize(order_session, payment_service, pricing)

        assert not result.ok
        payment_service.create_session.assert_not_called()


class TestCompletePayment:
    """Tests for FINALIZE -> CONFIRMATION after payment."""

    def test_success(self, finalize_session, order_service):
        result = complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        assert result.ok
        assert finalize_session.state is PipelineState.CONFIRMATION
        assert finalize_session.order_id == "INK-1700000000000"

        shipping, descriptor, extra = order_service.record.call_args.args
        assert shipping.email == "ada@example.com"
        assert descriptor == finalize_session.print_job_descriptor
        assert extra["bookTitle"] == "The Lighthouse Keeper"
        assert extra["storyText"] == "Once upon a time..."
        assert extra["totals"]["total"] == 1474

    def test_payment_declined(self, finalize_session, order_service):
        outcome = PaymentOutcome.failed("Your card was declined.")

        result = complete_payment(finalize_session, outcome, order_service)

        assert result.error.kind is FailureKind.COLLABORATOR
        assert result.error.message == "Your card was declined."
        assert finalize_session.state is PipelineState.FINALIZE
        order_service.record.assert_not_called()

    def test_recording_failure_after_payment_is_partial(self, finalize_session, order_service):
        order_service.record.side_effect = OrderRecordingError()

        result = complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        assert result.error.kind is FailureKind.PARTIAL
        assert result.error.message == PARTIAL_FAILURE_MESSAGE
        assert finalize_session.state is PipelineState.FINALIZE
        assert finalize_session.payment_captured

    def test_no_second_recording_after_partial(self, finalize_session, order_service):
        order_service.record.side_effect = OrderRecordingError()
        complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        result = complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        assert result.error.is_partial
        assert order_service.record.call_count == 1

    def test_wrong_state_no_call(self, preview_session, order_service):
        result = complete_payment(preview_session, PaymentOutcome.succeeded(), order_service)

        assert not result.ok
        order_service.record.assert_not_called()

    def test_busy_no_call(self, finalize_session, order_service):
        finalize_session.try_begin("complete_payment")

        result = complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        assert result.error.message == BUSY_MESSAGE
        order_service.record.assert_not_called()

    def test_state_checked_after_marking(self, finalize_session, order_service):
        # Another request completes the order between this one's arrival
        # and its in-flight mark.
        real_try_begin = finalize_session.try_begin

        def other_request_finishes_first(transition):
            finalize_session.try_begin = real_try_begin
            complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)
            return real_try_begin(transition)

        finalize_session.try_begin = other_request_finishes_first

        result = complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        assert not result.ok
        assert finalize_session.state is PipelineState.CONFIRMATION
        assert order_service.record.call_count == 1
        assert finalize_session.in_flight is None

    def test_concurrent_callbacks_record_once(self, finalize_session, order_service):
        recording = threading.Event()
        release = threading.Event()

        def slow_record(*args):
            recording.set()
            release.wait(5)
            return "INK-1"

        order_service.record.side_effect = slow_record
        results = []

        def callback():
            results.append(
                complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)
            )

        first = threading.Thread(target=callback)
        first.start()
        assert recording.wait(5)

        others = [threading.Thread(target=callback) for _ in range(3)]
        for thread in others:
            thread.start()
        for thread in others:
            thread.join(5)
        release.set()
        first.join(5)

        late = complete_payment(finalize_session, PaymentOutcome.succeeded(), order_service)

        assert order_service.record.call_count == 1
        assert sum(1 for r in results if r.ok) == 1
        assert [r.error.message for r in results if not r.ok] == [BUSY_MESSAGE] * 3
        assert not late.ok
        assert finalize_session.order_id == "INK-1"


class TestConfirmFreeOrder:
    """Tests for FINALIZE -> CONFIRMATION without payment."""

    @pytest.fixture
    def free_finalize_session(self, preview_session, payment_service):
        free = PricingEngine(margin_rate="0", price_table=PriceTable())
        assert proceed_to_finalize(preview_session, payment_service, free).ok
        return preview_session

    def test_success(self, free_finalize_session, order_service):
        result = confirm_free_order(free_finalize_session, order_service)

        assert result.ok
        assert free_finalize_session.state is PipelineState.CONFIRMATION

    def test_recording_failure_is_not_partial(self, free_finalize_session, order_service):
        order_service.record.side_effect = OrderRecordingError()

        result = confirm_free_order(free_finalize_session, order_service)

        assert result.error.kind is FailureKind.COLLABORATOR
        assert not free_finalize_session.payment_captured

    def test_refused_when_payment_required(self, finalize_session, order_service):
        result = confirm_free_order(finalize_session, order_service)

        assert not result.ok
        order_service.record.assert_not_called()


class TestReset:
    """Tests for reset()."""

    def test_reset_discards_everything(self, order_service):
        store = SessionStore()
        old = store.create()
        old.draft.title = "Gone"
        old.state = PipelineState.FINALIZE
        old.payment_session = PaymentSession(client_secret="s", amount=100)

        fresh = reset(store, old)

        assert fresh.session_id != old.session_id
        assert fresh.state is PipelineState.FORM
        assert fresh.draft.title == ""
        assert store.get(old.session_id) is None
        assert store.get(fresh.session_id) is fresh

    def test_reset_from_nothing(self):
        store = SessionStore()

        fresh = reset(store, None)

        assert len(store) == 1
        assert fresh.state is PipelineState.FORM


class TestConcurrentSessions:
    """Sessions never share pipeline state."""

    def test_independent_progress(self, complete_draft, story_service, pricing):
        a = OrderSession(draft=complete_draft)
        b = OrderSession()

        submit_draft(a, story_service, pricing)
        submit_draft(b, story_service, pricing)

        assert a.state is PipelineState.PREVIEW
        assert b.state is PipelineState.FORM
        assert b.story is None
        assert story_service.generate.call_count == 1
