"""
Stripe gateway behind the /api payment endpoints.

Creates a PaymentIntent with automatic payment methods and hands back its
client secret. Card/wallet confirmation then happens in the browser through
the Stripe Payment Element; this module never sees card data. Afterwards
retrieve_status() reads the intent back so the server, not the browser,
decides whether the payment succeeded.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import stripe

from core.exceptions import PaymentError, PaymentBelowMinimumError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class PaymentGateway:
    """Creates Stripe PaymentIntents and reads their status back."""

    def __init__(
        self,
        secret_key: str,
        minimum_charge: int = 50,
        currency: str = "usd"
    ):
        self._secret_key = secret_key
        self.minimum_charge = int(minimum_charge)
        self.currency = currency.lower()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PaymentGateway":
        """Build from a Flask app.config mapping."""
        return cls(
            secret_key=config.get("STRIPE_SECRET_KEY", ""),
            minimum_charge=int(config.get("MINIMUM_CHARGE_MINOR_UNITS", 50)),
            currency=config.get("CURRENCY", "usd"),
        )

    def create_intent(self, amount: int, currency: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a PaymentIntent.

        Args:
            amount: Amount in minor units
            currency: ISO currency code (defaults to the configured one)

        Returns:
            {"clientSecret": ..., "totalAmount": amount}

        Raises:
            PaymentBelowMinimumError: amount below the minimum charge
            PaymentError: Stripe not configured or the API call failed
        """
        if amount < self.minimum_charge:
            raise PaymentBelowMinimumError(amount, self.minimum_charge)
        if not self._secret_key:
            raise PaymentError(details={"cause": "STRIPE_SECRET_KEY is not set"})

        currency = (currency or self.currency).lower()

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                automatic_payment_methods={"enabled": True},
                api_key=self._secret_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating PaymentIntent for {amount} {currency}: {e}")
            raise PaymentError(details={"cause": str(e)}) from e

        logger.info(f"PaymentIntent {intent.id} created for {amount} {currency}")
        return {"clientSecret": intent.client_secret, "totalAmount": amount}

    def retrieve_status(self, client_secret: str) -> Dict[str, Any]:
        """
        Look up the PaymentIntent behind a client secret.

        The intent id is the part of the secret before "_secret_"; the
        retrieved intent must carry the same secret.

        Returns:
            {"status": intent.status, "amount": intent.amount}

        Raises:
            PaymentError: Stripe not configured, unknown intent, or API failure
        """
        if not self._secret_key:
            raise PaymentError(details={"cause": "STRIPE_SECRET_KEY is not set"})

        intent_id, separator, _ = client_secret.partition("_secret_")
        if not separator or not intent_id:
            raise PaymentError(details={"cause": "malformed client secret"})

        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self._secret_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving PaymentIntent {intent_id}: {e}")
            raise PaymentError(details={"cause": str(e)}) from e

        if intent.client_secret != client_secret:
            logger.warning(f"Client secret does not belong to PaymentIntent {intent_id}")
            raise PaymentError(details={"cause": "client secret mismatch"})

        logger.info(f"PaymentIntent {intent_id} status: {intent.status}")
        return {"status": intent.status, "amount": intent.amount}
