"""
Data models for the Inkwell storefront.

This module contains dataclasses for:
- OrderDraft: The customer's in-progress order (mutable)
- PricingSelection / CartTotals: Price inputs and computed totals (frozen)
- GeneratedStory: Story text returned by the story service
- PaymentSession / ShippingDetails: Data handed to collaborators (frozen)
- OrderSession: Everything one browser session owns, with its PipelineState
"""

from .order import (
    OrderDraft,
    CoverImage,
    PricingSelection,
    CartTotals,
    GeneratedStory,
    PaymentSession,
    ShippingDetails,
)
from .pipeline import (
    OrderSession,
    PipelineState,
    PipelineError,
    FailureKind,
    TransitionResult,
    PaymentOutcome,
)

__all__ = [
    # Order models
    "OrderDraft",
    "CoverImage",
    "PricingSelection",
    "CartTotals",
    "GeneratedStory",
    "PaymentSession",
    "ShippingDetails",
    # Pipeline models
    "OrderSession",
    "PipelineState",
    "PipelineError",
    "FailureKind",
    "TransitionResult",
    "PaymentOutcome",
]
