"""
Core module for the Inkwell storefront.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- http_client: Shared JSON-over-HTTP helper for collaborator adapters
"""

from .exceptions import (
    StorefrontError,
    ConfigurationError,
    DraftValidationError,
    CollaboratorError,
    StoryGenerationError,
    PaymentError,
    PaymentBelowMinimumError,
    OrderRecordingError,
    CollaboratorTimeoutError,
)
from .http_client import CollaboratorClient

__all__ = [
    "StorefrontError",
    "ConfigurationError",
    "DraftValidationError",
    "CollaboratorError",
    "StoryGenerationError",
    "PaymentError",
    "PaymentBelowMinimumError",
    "OrderRecordingError",
    "CollaboratorTimeoutError",
    "CollaboratorClient",
]
