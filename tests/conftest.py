"""Shared fixtures for the storefront tests."""

import pytest
from unittest.mock import MagicMock

from models.order import OrderDraft, CoverImage, GeneratedStory, PaymentSession
from models.pipeline import OrderSession
from modules.pricing import PricingEngine


@pytest.fixture
def cover_image(tmp_path):
    """A small stored cover image."""
    path = tmp_path / "20250101120000_000001_cover.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake")
    return CoverImage(
        stored_path=str(path),
        stored_filename=path.name,
        original_filename="cover.png",
        content_type="image/png",
    )


@pytest.fixture
def complete_draft(cover_image):
    """Draft with every required field and a priced book configuration."""
    return OrderDraft(
        title="The Lighthouse Keeper",
        genre="Mystery",
        prompt_text="A keeper finds a message in a bottle.",
        cover_image=cover_image,
        book_size="5x8",
        book_type="paperback",
        cover_finish="matte",
        interior_print="bw-standard",
        paper_type="60-white",
        page_range="100",
        shipping_method="standard",
        recipient_name="Ada Lovelace",
        recipient_email="ada@example.com",
        address_line1="1 Analytical Way",
        city="London",
        postcode="N1 1AA",
        country_code="GB",
    )


@pytest.fixture
def pricing():
    return PricingEngine(margin_rate="0.5")


@pytest.fixture
def order_session(complete_draft, pricing):
    """Session in FORM holding a complete draft."""
    session = OrderSession(draft=complete_draft)
    session.totals = pricing.quote(complete_draft)
    return session


@pytest.fixture
def story_service():
    service = MagicMock()
    service.generate.return_value = GeneratedStory(
        text="Once upon a time...", source_image_reference="coverImage-1-2.png"
    )
    return service


@pytest.fixture
def payment_service():
    service = MagicMock()
    service.create_session.side_effect = lambda amount: PaymentSession(
        client_secret="pi_123_secret_abc", amount=amount
    )
    return service


@pytest.fixture
def order_service():
    service = MagicMock()
    service.record.return_value = "INK-1700000000000"
    return service


def http_response(status_code=200, payload=None, text=""):
    """Mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response
