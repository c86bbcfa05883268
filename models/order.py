"""
Order data models.

These models represent a customer's book order as it flows through the
storefront: form -> preview -> finalize -> confirmation.

    - OrderDraft is mutable; fields are set incrementally from form posts
    - PricingSelection, CartTotals, PaymentSession and ShippingDetails are
      frozen views derived from the draft
    - GeneratedStory is mutable only in its text (edited on the preview page)
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, asdict, fields
from typing import Dict, Any, List, Optional, Mapping

import bleach


# Maximum stored length per text field (characters)
FIELD_LIMITS = {
    "title": 200,
    "genre": 60,
    "prompt_text": 4000,
}
DEFAULT_FIELD_LIMIT = 200

# Fields the draft must have before a story can be requested, with labels
REQUIRED_DRAFT_FIELDS = {
    "title": "title",
    "genre": "genre",
    "prompt_text": "story prompt",
    "cover_image": "cover image",
}

_RANGE_PATTERN = re.compile(r"^\s*(\d+)\s*(?:-|to)\s*(\d+)\s*$", re.IGNORECASE)


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text to prevent XSS and injection attacks.

    Markup is stripped; the result is plain text (entities decoded), so
    "Tom & Jerry" stays as typed. Templates escape it on output.

    Args:
        text: Raw input text
        max_length: Optional maximum length to enforce

    Returns:
        Plain text safe to store and render through an autoescaping template
    """
    if not text:
        return ""

    text = text.strip()
    text = html.unescape(bleach.clean(text, tags=[], strip=True))

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def parse_page_count(text: Any) -> int:
    """
    Parse a page count from free-text input.

    Accepts "120", " 120 " or a range such as "24-48" (priced at its upper
    bound). Anything unparseable, and negative numbers, give 0.
    """
    if text is None:
        return 0
    if isinstance(text, int) and not isinstance(text, bool):
        return max(text, 0)

    value = str(text).strip()
    match = _RANGE_PATTERN.match(value)
    if match:
        return max(int(match.group(1)), int(match.group(2)))

    try:
        return max(int(value), 0)
    except ValueError:
        return 0


@dataclass(frozen=True)
class CoverImage:
    """
    Reference to the uploaded cover image on disk.

    The file is written once when the user selects it and is never modified
    afterwards; the draft and the story adapter share this reference.
    """

    stored_path: str
    """Full path to the stored image."""

    stored_filename: str
    """Unique filename on disk (with timestamp prefix)."""

    original_filename: str = ""
    """Filename as uploaded by the user."""

    content_type: str = "application/octet-stream"
    """MIME type reported by the browser."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for snapshots."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoverImage":
        """Create from dictionary."""
        return cls(
            stored_path=data.get("stored_path", ""),
            stored_filename=data.get("stored_filename", ""),
            original_filename=data.get("original_filename", ""),
            content_type=data.get("content_type", "application/octet-stream"),
        )


@dataclass(frozen=True)
class PricingSelection:
    """
    The subset of draft fields that affect cost.

    Derived from OrderDraft.pricing_selection(); read-only.
    """

    book_size: str = ""
    book_type: str = ""
    cover_finish: str = ""
    interior_print: str = ""
    paper_type: str = ""
    page_count: int = 0
    shipping_method: str = ""

    def option_keys(self) -> Dict[str, str]:
        """Selected option key per price table (page_count excluded)."""
        return {
            "book_size": self.book_size,
            "book_type": self.book_type,
            "cover_finish": self.cover_finish,
            "interior_print": self.interior_print,
            "paper_type": self.paper_type,
            "shipping_method": self.shipping_method,
        }


@dataclass(frozen=True)
class CartTotals:
    """
    Monetary breakdown of an order, in integer minor units (cents).

    Invariant: total == subtotal + shipping_cost.
    """

    base_cost: int = 0
    """Production cost before margin."""

    subtotal: int = 0
    """base_cost plus margin."""

    shipping_cost: int = 0
    """Shipping charge (0 for e-books)."""

    total: int = 0
    """Amount charged."""

    @property
    def is_free(self) -> bool:
        """Whether nothing needs to be charged."""
        return self.total <= 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for JSON responses."""
        return asdict(self)

    def formatted(self, currency_symbol: str = "$") -> Dict[str, str]:
        """Display strings for templates (e.g. {'total': '$14.74'})."""
        return {
            name: f"{currency_symbol}{value // 100}.{value % 100:02d}"
            for name, value in self.to_dict().items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartTotals":
        """Create from dictionary."""
        return cls(
            base_cost=int(data.get("base_cost", 0)),
            subtotal=int(data.get("subtotal", 0)),
            shipping_cost=int(data.get("shipping_cost", 0)),
            total=int(data.get("total", 0)),
        )


@dataclass
class GeneratedStory:
    """
    Story text returned by the story-generation service.

    Created once per successful draft submission. The user may edit
    the text on the preview page; nothing else changes.
    """

    text: str
    """Story body."""

    source_image_reference: str = ""
    """Cover image filename the story was generated for."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for snapshots."""
        return asdict(self)


@dataclass(frozen=True)
class PaymentSession:
    """
    Handle returned by the payment service for one finalize step.

    The client secret is opaque here; it is only handed to the payment
    provider's confirmation UI.
    """

    client_secret: str
    amount: int
    currency: str = "usd"


@dataclass(frozen=True)
class ShippingDetails:
    """Contact and address fields sent to the order-recording service."""

    name: str
    email: str
    street1: str = ""
    street2: str = ""
    city: str = ""
    state_code: str = ""
    postcode: str = ""
    country_code: str = ""
    phone_number: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Wire format (camelCase keys)."""
        return {
            "name": self.name,
            "email": self.email,
            "street1": self.street1,
            "street2": self.street2,
            "city": self.city,
            "stateCode": self.state_code,
            "postcode": self.postcode,
            "countryCode": self.country_code,
            "phoneNumber": self.phone_number,
        }


@dataclass
class OrderDraft:
    """
    The in-progress, unsubmitted order.

    Lifecycle:
        1. Created empty when the session starts
        2. Updated field by field from form posts (apply_form)
        3. Validated only when a transition is attempted
        4. Read by the adapters (story, payment, orders)

    The draft is never modified by a failed transition.
    """

    # Story request
    title: str = ""
    genre: str = ""
    prompt_text: str = ""
    cover_image: Optional[CoverImage] = None

    # Book configuration
    book_size: str = ""
    book_type: str = ""
    cover_finish: str = ""
    interior_print: str = ""
    paper_type: str = ""
    page_range: str = ""
    shipping_method: str = ""

    # Shipping contact
    recipient_name: str = ""
    recipient_email: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state_code: str = ""
    postcode: str = ""
    country_code: str = ""
    phone_number: str = ""

    @classmethod
    def text_fields(cls) -> List[str]:
        """Names of all plain-text fields settable from a form."""
        return [f.name for f in fields(cls) if f.name != "cover_image"]

    def apply_form(self, form: Mapping[str, Any]) -> List[str]:
        """
        Copy the text fields present in a form post onto the draft.

        Fields absent from the form are left as they are, so partial
        posts (e.g. a single option change) never clear other values.

        Args:
            form: request.form or any mapping of field name -> value

        Returns:
            Names of the fields that changed
        """
        changed = []
        for name in self.text_fields():
            if name not in form:
                continue
            value = sanitize_text(
                form.get(name), max_length=FIELD_LIMITS.get(name, DEFAULT_FIELD_LIMIT)
            )
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed.append(name)
        return changed

    def missing_required_fields(self) -> List[str]:
        """Labels of required fields that are still empty."""
        return [
            label
            for name, label in REQUIRED_DRAFT_FIELDS.items()
            if not getattr(self, name)
        ]

    def pricing_selection(self) -> PricingSelection:
        """Read-only view of the fields that affect cost."""
        return PricingSelection(
            book_size=self.book_size,
            book_type=self.book_type,
            cover_finish=self.cover_finish,
            interior_print=self.interior_print,
            paper_type=self.paper_type,
            page_count=parse_page_count(self.page_range),
            shipping_method=self.shipping_method,
        )

    def shipping_details(self) -> ShippingDetails:
        """Contact and address block for the order-recording service."""
        return ShippingDetails(
            name=self.recipient_name,
            email=self.recipient_email,
            street1=self.address_line1,
            street2=self.address_line2,
            city=self.city,
            state_code=self.state_code,
            postcode=self.postcode,
            country_code=self.country_code,
            phone_number=self.phone_number,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for snapshots and templates."""
        data = {name: getattr(self, name) for name in self.text_fields()}
        data["cover_image"] = self.cover_image.to_dict() if self.cover_image else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderDraft":
        """Create from dictionary (e.g., a snapshot)."""
        draft = cls(**{
            name: data.get(name, "") for name in cls.text_fields()
        })
        if data.get("cover_image"):
            draft.cover_image = CoverImage.from_dict(data["cover_image"])
        return draft
