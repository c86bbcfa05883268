"""
Services layer for the Inkwell storefront.

This module contains the stateful and collaborator-facing services:
- SessionStore: In-memory order sessions keyed by browser session
- StoryService: Adapter for the story-generation service
- PaymentService: Adapter for the payment-session service
- OrderService: Adapter for the order-recording service
- Storyteller / PaymentGateway: Providers behind the /api backend

Adapters only talk HTTP to a configured base URL; they never know
whether the service is this application's /api blueprint or a remote one.
"""

from .session_store import SessionStore
from .story_service import StoryService
from .payment_service import PaymentService
from .order_service import OrderService
from .storyteller import Storyteller
from .payment_gateway import PaymentGateway

__all__ = [
    "SessionStore",
    "StoryService",
    "PaymentService",
    "OrderService",
    "Storyteller",
    "PaymentGateway",
]
