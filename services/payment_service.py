"""
Payment adapter.

Two jobs:
    1. create_session(amount): ask the payment service for a payment handle
       (client secret) before the confirmation UI is shown. Amounts below the
       minimum charge are refused here without contacting the service.
    2. confirm(payload, payment_session): turn what the payment provider's
       confirmation UI reports back (JSON callback or redirect query string)
       into a PaymentOutcome for the order pipeline. A reported success is
       checked against the payment service before it is believed.

Wire contract:
    POST {PAYMENT_SERVICE_URL}/create-payment-intent
        json: {"amount": <minor units>, "currency": "usd"}
    200 -> {"clientSecret": "...", "totalAmount": <minor units>}

    POST {PAYMENT_SERVICE_URL}/payment-status
        json: {"clientSecret": "..."}
    200 -> {"status": "succeeded" | "processing" | ..., "amount": <minor units>}
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import requests

from core.exceptions import CollaboratorError, PaymentError, PaymentBelowMinimumError
from core.http_client import CollaboratorClient
from models.order import PaymentSession
from models.pipeline import PaymentOutcome
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Smallest amount the payment provider accepts (USD cents)
DEFAULT_MINIMUM_CHARGE = 50

SUCCESS_STATUSES = {"succeeded"}

STATUS_MESSAGES = {
    "processing": "Your payment is still processing. Please refresh in a moment.",
    "requires_payment_method": "Your payment was declined. Please try another payment method.",
    "canceled": "The payment was canceled.",
}

MISMATCH_MESSAGE = "The payment confirmation does not match this order."
UNVERIFIED_MESSAGE = "We could not confirm your payment yet. Please try again in a moment."


class PaymentService:
    """Client for the payment collaborator."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        minimum_charge: int = DEFAULT_MINIMUM_CHARGE,
        currency: str = "usd",
        http: Optional[requests.Session] = None
    ):
        self.minimum_charge = int(minimum_charge)
        self.currency = currency.lower()
        self._client = CollaboratorClient(
            base_url, "payment", timeout_seconds=timeout_seconds, http=http, logger=logger
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PaymentService":
        """Build from a Flask app.config mapping."""
        return cls(
            base_url=config["PAYMENT_SERVICE_URL"],
            timeout_seconds=float(config.get("COLLABORATOR_TIMEOUT_SECONDS", 30.0)),
            minimum_charge=int(config.get("MINIMUM_CHARGE_MINOR_UNITS", DEFAULT_MINIMUM_CHARGE)),
            currency=config.get("CURRENCY", "usd"),
        )

    def create_session(self, amount: int) -> PaymentSession:
        """
        Request a payment session for an amount.

        Args:
            amount: Total in minor units

        Returns:
            PaymentSession holding the opaque client secret

        Raises:
            PaymentBelowMinimumError: amount < minimum_charge (no call made)
            PaymentError: On any collaborator failure
        """
        if amount < self.minimum_charge:
            logger.info(f"Refusing payment of {amount} (minimum {self.minimum_charge})")
            raise PaymentBelowMinimumError(amount, self.minimum_charge)

        logger.info(f"Requesting payment session for {amount} {self.currency}")

        try:
            body = self._client.post(
                "create-payment-intent",
                json={"amount": amount, "currency": self.currency},
            )
        except CollaboratorError as e:
            raise PaymentError(status_code=e.status_code, details={"cause": e.message}) from e

        client_secret = body.get("clientSecret")
        if not isinstance(client_secret, str) or not client_secret:
            logger.warning("Payment service response had no clientSecret")
            raise PaymentError(details={"cause": "response has no clientSecret"})

        return PaymentSession(client_secret=client_secret, amount=amount, currency=self.currency)

    @staticmethod
    def parse_outcome(
        payload: Mapping[str, Any],
        payment_session: Optional[PaymentSession] = None
    ) -> PaymentOutcome:
        """
        Interpret a confirmation callback.

        Accepts the JSON body posted by the payment page
        ({"status": "succeeded", "clientSecret": ...} or
        {"status": "failed", "error": {...}}) and the provider's redirect
        parameters (redirect_status, payment_intent_client_secret).

        A success report must name the session's client secret; a missing
        or different secret is treated as a failure. A success here is only
        the browser's claim: confirm() checks it with the payment service.
        """
        status = payload.get("status") or payload.get("redirect_status") or ""
        client_secret = (
            payload.get("payment_intent_client_secret") or payload.get("clientSecret")
        )

        if payment_session is None:
            return PaymentOutcome.failed("There is no payment in progress for this order.")

        if client_secret and client_secret != payment_session.client_secret:
            logger.warning("Payment callback client secret does not match the session")
            return PaymentOutcome.failed(MISMATCH_MESSAGE)

        if status in SUCCESS_STATUSES:
            if not client_secret:
                logger.warning("Payment success reported without a client secret")
                return PaymentOutcome.failed(MISMATCH_MESSAGE)
            return PaymentOutcome.succeeded()

        error = payload.get("error")
        if isinstance(error, Mapping):
            error = error.get("message")
        if isinstance(error, str) and error.strip():
            return PaymentOutcome.failed(error.strip())

        return PaymentOutcome.failed(
            STATUS_MESSAGES.get(status, "The payment was not completed. Please try again.")
        )

    def verify(self, payment_session: PaymentSession) -> PaymentOutcome:
        """
        Ask the payment service whether a payment session was actually paid.

        Only a "succeeded" status for the full session amount counts as
        success. A failed lookup is reported as an unconfirmed payment, not
        raised: the caller keeps the user on the payment page.
        """
        try:
            body = self._client.post(
                "payment-status",
                json={"clientSecret": payment_session.client_secret},
            )
        except CollaboratorError as e:
            logger.warning(f"Payment status lookup failed: {e}")
            return PaymentOutcome.failed(UNVERIFIED_MESSAGE)

        status = body.get("status")
        amount = body.get("amount")

        if status not in SUCCESS_STATUSES:
            logger.info(f"Payment service reports status {status!r}")
            return PaymentOutcome.failed(
                STATUS_MESSAGES.get(status, "The payment was not completed. Please try again.")
            )

        if amount != payment_session.amount:
            logger.warning(
                f"Paid amount {amount!r} does not match the session amount {payment_session.amount}"
            )
            return PaymentOutcome.failed(MISMATCH_MESSAGE)

        return PaymentOutcome.succeeded()

    def confirm(
        self,
        payload: Mapping[str, Any],
        payment_session: Optional[PaymentSession] = None
    ) -> PaymentOutcome:
        """
        Outcome of a confirmation callback, checked with the payment service.

        Failures reported by the browser are taken as they are; a reported
        success is only accepted once verify() agrees.
        """
        outcome = self.parse_outcome(payload, payment_session)
        if not outcome.success:
            return outcome
        return self.verify(payment_session)
