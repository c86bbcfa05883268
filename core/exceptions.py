"""
Custom exceptions for the Inkwell storefront.

Exception Hierarchy:
    StorefrontError (base)
    ├── ConfigurationError          - Missing/unsafe settings (startup failure)
    ├── DraftValidationError        - Required draft fields missing (runtime, no network call)
    └── CollaboratorError           - External service failed (runtime, graceful)
        ├── StoryGenerationError    - Story-generation service failed
        ├── PaymentError            - Payment service failed
        │   └── PaymentBelowMinimumError - Amount refused locally
        ├── OrderRecordingError     - Order-recording service failed
        └── CollaboratorTimeoutError - Any collaborator call timed out

Usage:
    Startup errors (ConfigurationError) cause the app to fail fast.
    Runtime errors are caught by the order pipeline and turned into
    user-facing messages; they never escape a request handler.
"""

from typing import Optional, Dict, Any, List


class StorefrontError(Exception):
    """
    Base exception for all storefront errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ConfigurationError(StorefrontError):
    """
    A required setting is missing or unsafe for the current environment.

    Raised by create_app() in production, e.g. when FLASK_SECRET_KEY is
    still the development default.
    """

    def __init__(self, setting: str, reason: str):
        message = f"Invalid configuration for {setting}: {reason}"
        details = {
            "setting": setting,
            "resolution": f"Set {setting} in the environment or .env file"
        }
        super().__init__(message, details)
        self.setting = setting


# =============================================================================
# VALIDATION ERRORS - Caught before any network call
# =============================================================================

class DraftValidationError(StorefrontError):
    """
    The draft is missing fields required for the attempted transition.

    Never sent to a collaborator; the user stays on the form.
    """

    def __init__(self, missing_fields: List[str], message: Optional[str] = None):
        if message is None:
            labels = ", ".join(missing_fields)
            message = f"Please fill out the following before continuing: {labels}."
        super().__init__(message, {"missing_fields": list(missing_fields)})
        self.missing_fields = list(missing_fields)


# =============================================================================
# COLLABORATOR ERRORS - Operation fails gracefully, user may retry
# =============================================================================

class CollaboratorError(StorefrontError):
    """
    Base class for failures of an external collaborator.

    Network errors, non-success HTTP statuses and malformed bodies are all
    converted to one of these, each carrying a single user-facing message.
    The technical cause goes into details for the log.
    """

    service = "collaborator"
    user_message = "An external service is unavailable. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        error_details["service"] = self.service
        if status_code is not None:
            error_details["status_code"] = status_code
        super().__init__(message or self.user_message, error_details)
        self.status_code = status_code


class StoryGenerationError(CollaboratorError):
    """The story-generation service could not produce a story."""

    service = "story"
    user_message = "We could not generate your story. Please try again."


class PaymentError(CollaboratorError):
    """The payment service refused or failed to create a payment session."""

    service = "payment"
    user_message = "We could not start the payment. Please try again."


class PaymentBelowMinimumError(PaymentError):
    """
    Amount is below the minimum chargeable amount.

    Raised locally, before the payment service is contacted.
    """

    def __init__(self, amount: int, minimum: int):
        message = (
            f"The order total ({amount} minor units) is below the minimum "
            f"charge of {minimum} minor units."
        )
        super().__init__(message, details={"amount": amount, "minimum": minimum})
        self.amount = amount
        self.minimum = minimum


class OrderRecordingError(CollaboratorError):
    """The order-recording service did not confirm the order."""

    service = "orders"
    user_message = "We could not record your order."


class CollaboratorTimeoutError(CollaboratorError):
    """
    A collaborator call exceeded its timeout.

    Adapters re-raise this as their own error type so that the pipeline
    handles a timeout exactly like any other failure of that service.
    """

    def __init__(self, service: str, timeout_seconds: float):
        message = f"{service} service timed out after {timeout_seconds:.1f}s"
        super().__init__(message, details={"timeout_seconds": timeout_seconds})
        self.details["service"] = service
        self.timeout_seconds = timeout_seconds
