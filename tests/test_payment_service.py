"""Unit tests for the payment adapter."""

import pytest
import requests
from unittest.mock import MagicMock

from core.exceptions import PaymentBelowMinimumError, PaymentError
from models.order import PaymentSession
from services.payment_service import (
    MISMATCH_MESSAGE,
    STATUS_MESSAGES,
    UNVERIFIED_MESSAGE,
    PaymentService,
)

from conftest import http_response


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def service(http):
    return PaymentService("http://svc.test/api", timeout_seconds=5, http=http)


@pytest.fixture
def payment_session():
    return PaymentSession(client_secret="pi_1_secret_a", amount=1474)


class TestCreateSession:
    """Tests for PaymentService.create_session()."""

    def test_success(self, service, http):
        http.post.return_value = http_response(
            200, {"clientSecret": "pi_1_secret_a", "totalAmount": 1474}
        )

        session = service.create_session(1474)

        assert session == PaymentSession(client_secret="pi_1_secret_a", amount=1474, currency="usd")
        args, kwargs = http.post.call_args
        assert args[0] == "http://svc.test/api/create-payment-intent"
        assert kwargs["json"] == {"amount": 1474, "currency": "usd"}

    def test_below_minimum_makes_no_call(self, service, http):
        with pytest.raises(PaymentBelowMinimumError) as exc_info:
            service.create_session(40)

        assert exc_info.value.minimum == 50
        http.post.assert_not_called()

    def test_minimum_is_allowed(self, service, http):
        http.post.return_value = http_response(200, {"clientSecret": "s"})

        service.create_session(50)

        http.post.assert_called_once()

    def test_provider_error(self, service, http):
        http.post.return_value = http_response(500, {"error": "Failed to create payment intent."})

        with pytest.raises(PaymentError) as exc_info:
            service.create_session(1000)

        assert exc_info.value.message == PaymentError.user_message

    def test_timeout(self, service, http):
        http.post.side_effect = requests.Timeout()

        with pytest.raises(PaymentError):
            service.create_session(1000)

    def test_missing_client_secret(self, service, http):
        http.post.return_value = http_response(200, {"totalAmount": 1000})

        with pytest.raises(PaymentError):
            service.create_session(1000)

    def test_from_config(self):
        service = PaymentService.from_config({
            "PAYMENT_SERVICE_URL": "http://pay.test",
            "MINIMUM_CHARGE_MINOR_UNITS": 100,
            "CURRENCY": "EUR",
        })

        assert service.minimum_charge == 100
        assert service.currency == "eur"


class TestParseOutcome:
    """Tests for PaymentService.parse_outcome()."""

    def test_succeeded(self, payment_session):
        outcome = PaymentService.parse_outcome(
            {"status": "succeeded", "clientSecret": "pi_1_secret_a"}, payment_session
        )

        assert outcome.success

    def test_success_without_secret_is_refused(self, payment_session):
        outcome = PaymentService.parse_outcome({"status": "succeeded"}, payment_session)

        assert not outcome.success
        assert outcome.error_message == MISMATCH_MESSAGE

    def test_redirect_parameters(self, payment_session):
        outcome = PaymentService.parse_outcome(
            {"redirect_status": "succeeded", "payment_intent_client_secret": "pi_1_secret_a"},
            payment_session,
        )

        assert outcome.success

    def test_error_message_passed_through(self, payment_session):
        outcome = PaymentService.parse_outcome(
            {"status": "failed", "error": {"message": "Your card was declined."}},
            payment_session,
        )

        assert not outcome.success
        assert outcome.error_message == "Your card was declined."

    def test_known_status_message(self, payment_session):
        outcome = PaymentService.parse_outcome({"status": "processing"}, payment_session)

        assert not outcome.success
        assert outcome.error_message == STATUS_MESSAGES["processing"]

    def test_mismatched_secret(self, payment_session):
        outcome = PaymentService.parse_outcome(
            {"status": "succeeded", "clientSecret": "pi_other_secret"}, payment_session
        )

        assert not outcome.success

    def test_no_payment_session(self):
        outcome = PaymentService.parse_outcome({"status": "succeeded"}, None)

        assert not outcome.success


class TestVerify:
    """Tests for PaymentService.verify()."""

    def test_succeeded(self, service, http, payment_session):
        http.post.return_value = http_response(200, {"status": "succeeded", "amount": 1474})

        outcome = service.verify(payment_session)

        assert outcome.success
        args, kwargs = http.post.call_args
        assert args[0] == "http://svc.test/api/payment-status"
        assert kwargs["json"] == {"clientSecret": "pi_1_secret_a"}

    def test_not_yet_paid(self, service, http, payment_session):
        http.post.return_value = http_response(
            200, {"status": "requires_payment_method", "amount": 1474}
        )

        outcome = service.verify(payment_session)

        assert not outcome.success
        assert outcome.error_message == STATUS_MESSAGES["requires_payment_method"]

    def test_amount_mismatch(self, service, http, payment_session):
        http.post.return_value = http_response(200, {"status": "succeeded", "amount": 50})

        assert not service.verify(payment_session).success

    def test_lookup_failure(self, service, http, payment_session):
        http.post.side_effect = requests.ConnectionError()

        outcome = service.verify(payment_session)

        assert not outcome.success
        assert outcome.error_message == UNVERIFIED_MESSAGE


class TestConfirm:
    """Tests for PaymentService.confirm()."""

    def test_reported_success_is_verified(self, service, http, payment_session):
        http.post.return_value = http_response(200, {"status": "succeeded", "amount": 1474})

        outcome = service.confirm(
            {"status": "succeeded", "clientSecret": "pi_1_secret_a"}, payment_session
        )

        assert outcome.success
        http.post.assert_called_once()

    def test_forged_success_rejected_by_provider(self, service, http, payment_session):
        http.post.return_value = http_response(200, {"status": "requires_payment_method", "amount": 1474})

        outcome = service.confirm(
            {"status": "succeeded", "clientSecret": "pi_1_secret_a"}, payment_session
        )

        assert not outcome.success

    def test_reported_failure_makes_no_call(self, service, http, payment_session):
        outcome = service.confirm(
            {"status": "failed", "error": {"message": "Your card was declined."}}, payment_session
        )

        assert outcome.error_message == "Your card was declined."
        http.post.assert_not_called()
