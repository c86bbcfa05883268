"""
Order pipeline state models.

The storefront walks each session through a fixed, forward-only sequence:

    FORM -> PREVIEW -> FINALIZE -> CONFIRMATION

Failures never move the session; they attach a PipelineError to it and the
user retries from the same page. OrderSession is the single object a browser
session owns: the draft, its derived totals, and whatever the collaborators
returned so far.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

from .order import OrderDraft, CartTotals, GeneratedStory, PaymentSession


class PipelineState(Enum):
    """
    Page a session is on.

    Lifecycle:
        FORM -> PREVIEW -> FINALIZE -> CONFIRMATION
    """

    FORM = "form"
    """Collecting title, genre, prompt, cover image and book options."""

    PREVIEW = "preview"
    """Story generated; user may edit it before paying."""

    FINALIZE = "finalize"
    """Awaiting payment confirmation (or free-order confirmation)."""

    CONFIRMATION = "confirmation"
    """Order recorded."""


class FailureKind(Enum):
    """Category of a failed transition."""

    VALIDATION = "validation"
    """Draft incomplete; no collaborator was contacted."""

    COLLABORATOR = "collaborator"
    """An external service failed; nothing was charged or recorded."""

    PARTIAL = "partial"
    """Payment succeeded but the order could not be recorded."""


@dataclass(frozen=True)
class PipelineError:
    """User-facing error attached to a session after a failed transition."""

    kind: FailureKind
    message: str

    @property
    def is_partial(self) -> bool:
        return self.kind is FailureKind.PARTIAL

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of one transition attempt.

    state is the session's state after the attempt; error is None on
    success.
    """

    state: PipelineState
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PaymentOutcome:
    """Result reported by the payment confirmation UI."""

    success: bool
    error_message: str = ""

    @classmethod
    def succeeded(cls) -> "PaymentOutcome":
        return cls(success=True)

    @classmethod
    def failed(cls, error_message: str) -> "PaymentOutcome":
        return cls(success=False, error_message=error_message)


def _new_session_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderSession:
    """
    Everything one browser session owns.

    Created in FORM by the session store, mutated only by the transition
    functions in modules.order_pipeline, and discarded on reset. Nothing
    here outlives the session.
    """

    session_id: str = field(default_factory=_new_session_id)
    """Random id kept in the signed session cookie."""

    state: PipelineState = PipelineState.FORM
    """Current page."""

    draft: OrderDraft = field(default_factory=OrderDraft)
    """The order being built."""

    totals: CartTotals = field(default_factory=CartTotals)
    """Totals for the current draft (recomputed on every change)."""

    story: Optional[GeneratedStory] = None
    """Set on FORM -> PREVIEW."""

    payment_session: Optional[PaymentSession] = None
    """Set on PREVIEW -> FINALIZE when the total is above zero."""

    print_job_descriptor: str = ""
    """Product code sent with the order; built on PREVIEW -> FINALIZE."""

    order_id: Optional[str] = None
    """Set on FINALIZE -> CONFIRMATION."""

    error: Optional[PipelineError] = None
    """Error from the last failed transition, cleared on the next attempt."""

    in_flight: Optional[str] = None
    """Name of the transition currently calling a collaborator."""

    created_at: datetime = field(default_factory=_utcnow)
    last_seen_at: datetime = field(default_factory=_utcnow)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def short_id(self) -> str:
        return self.session_id[:8]

    def try_begin(self, transition: str) -> bool:
        """
        Mark a transition as in flight.

        Returns False (and changes nothing) if another transition is
        already running for this session, e.g. a double-clicked submit
        served on a second request thread. Callers read self.state only
        after this returns True.
        """
        with self._lock:
            if self.in_flight is not None:
                return False
            self.in_flight = transition
            return True

    def finish(self) -> None:
        """Clear the in-flight marker."""
        with self._lock:
            self.in_flight = None

    @property
    def payment_captured(self) -> bool:
        """Whether the user has been charged but the order is unrecorded."""
        return self.error is not None and self.error.is_partial

    def touch(self) -> None:
        self.last_seen_at = _utcnow()

    def idle_seconds(self) -> float:
        return (_utcnow() - self.last_seen_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot for templates and JSON status responses."""
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "draft": self.draft.to_dict(),
            "totals": self.totals.to_dict(),
            "story": self.story.to_dict() if self.story else None,
            "has_payment_session": self.payment_session is not None,
            "print_job_descriptor": self.print_job_descriptor,
            "order_id": self.order_id,
            "error": self.error.to_dict() if self.error else None,
            "in_flight": self.in_flight,
        }
