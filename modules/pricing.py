"""Pricing engine for book orders.

All amounts are integer minor units (cents). Intermediate arithmetic runs in
Decimal so per-page prices may carry fractional cents; the subtotal is
rounded once, half-up, after the margin is applied.

Formula:
    base_cost = size + book_type + cover_finish + paper_type
                + page_count x per_page(interior_print)
    subtotal  = base_cost + base_cost x margin_rate
    shipping  = shipping(method), or 0 for book types that do not ship
    total     = subtotal + shipping
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List, Union

from logging_config import get_logger
from models.order import CartTotals, PricingSelection, OrderDraft, parse_page_count


logger = get_logger(__name__)

Number = Union[int, float, str, Decimal]

_ONE_CENT = Decimal("1")

__all__ = [
    "PriceTable",
    "DEFAULT_PRICE_TABLE",
    "PricingEngine",
    "compute_totals",
    "parse_page_count",
]


def _to_decimal(value: Number) -> Decimal:
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class PriceTable:
    """Option prices in minor units, one mapping per selection field."""

    size_base: Dict[str, Number] = field(default_factory=dict)
    book_type: Dict[str, Number] = field(default_factory=dict)
    cover_finish: Dict[str, Number] = field(default_factory=dict)
    paper_type: Dict[str, Number] = field(default_factory=dict)
    per_page: Dict[str, Number] = field(default_factory=dict)
    """Price per page, keyed by interior print option."""
    shipping: Dict[str, Number] = field(default_factory=dict)
    no_shipping_book_types: frozenset = frozenset()
    """Book types delivered digitally; shipping is always 0 for these."""

    def _tables(self) -> Dict[str, Dict[str, Number]]:
        return {
            "book_size": self.size_base,
            "book_type": self.book_type,
            "cover_finish": self.cover_finish,
            "interior_print": self.per_page,
            "paper_type": self.paper_type,
            "shipping_method": self.shipping,
        }

    def unknown_keys(self, selection: PricingSelection) -> List[str]:
        """
        Selected option values with no entry in this table.

        Empty (unselected) values are not reported.

        Returns:
            List like ["book_size=7x10"]
        """
        unknown = []
        tables = self._tables()
        for name, key in selection.option_keys().items():
            if key and key not in tables[name]:
                unknown.append(f"{name}={key}")
        return unknown

    def options(self) -> Dict[str, List[str]]:
        """Selectable keys per field, for rendering form choices."""
        return {name: list(table) for name, table in self._tables().items()}


DEFAULT_PRICE_TABLE = PriceTable(
    size_base={"5x8": 300, "6x9": 350, "8.5x11": 450},
    book_type={"paperback": 150, "hardcover": 800, "ebook": 0},
    cover_finish={"matte": 0, "gloss": 0, "soft-touch": 75},
    paper_type={"60-white": 0, "60-cream": 0, "80-white": 100},
    per_page={
        "bw-standard": 2,
        "bw-premium": 3,
        "color-standard": 5,
        "color-premium": 9,
    },
    shipping={"standard": 499, "express": 1099},
    no_shipping_book_types=frozenset({"ebook"}),
)


def compute_totals(
    selection: PricingSelection,
    margin_rate: Number,
    price_table: PriceTable = DEFAULT_PRICE_TABLE,
) -> CartTotals:
    """Compute the cart totals for a selection.

    Unknown or unselected option keys contribute 0 so partially filled
    forms still show a running total. Pure: no logging, no I/O.

    Args:
        selection: Price-affecting options
        margin_rate: Markup applied to the base cost (0.5 = 50%)
        price_table: Option prices in minor units

    Returns:
        CartTotals in integer minor units
    """
    page_count = max(int(selection.page_count or 0), 0)

    base = (
        _to_decimal(price_table.size_base.get(selection.book_size, 0))
        + _to_decimal(price_table.book_type.get(selection.book_type, 0))
        + _to_decimal(price_table.cover_finish.get(selection.cover_finish, 0))
        + _to_decimal(price_table.paper_type.get(selection.paper_type, 0))
        + page_count * _to_decimal(price_table.per_page.get(selection.interior_print, 0))
    )

    subtotal = (base + base * _to_decimal(margin_rate)).quantize(
        _ONE_CENT, rounding=ROUND_HALF_UP
    )

    if selection.book_type in price_table.no_shipping_book_types:
        shipping = Decimal(0)
    else:
        shipping = _to_decimal(price_table.shipping.get(selection.shipping_method, 0))
    shipping = shipping.quantize(_ONE_CENT, rounding=ROUND_HALF_UP)

    return CartTotals(
        base_cost=int(base.quantize(_ONE_CENT, rounding=ROUND_HALF_UP)),
        subtotal=int(subtotal),
        shipping_cost=int(shipping),
        total=int(subtotal + shipping),
    )


class PricingEngine:
    """Prices drafts with the configured margin and price table."""

    def __init__(
        self,
        margin_rate: Number = "0.5",
        price_table: PriceTable = DEFAULT_PRICE_TABLE,
        strict_option_keys: bool = False,
    ) -> None:
        margin = _to_decimal(margin_rate)
        if margin < 0:
            raise ValueError(f"margin_rate must not be negative (got {margin_rate})")

        self.margin_rate = margin
        self.price_table = price_table
        self.strict_option_keys = strict_option_keys

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PricingEngine":
        """Build from a Flask app.config mapping."""
        return cls(
            margin_rate=config.get("PRICING_MARGIN_RATE", "0.5"),
            strict_option_keys=bool(config.get("STRICT_OPTION_KEYS", False)),
        )

    def quote(self, draft: OrderDraft) -> CartTotals:
        """Totals for a draft; logs option keys missing from the table."""
        selection = draft.pricing_selection()

        unknown = self.price_table.unknown_keys(selection)
        if unknown:
            # Silently priced at 0; surfaced here so configuration typos show up
            logger.warning(f"Unknown option keys priced at 0: {', '.join(unknown)}")

        totals = compute_totals(selection, self.margin_rate, self.price_table)
        logger.debug(f"Quote for {selection}: {totals}")
        return totals

    def unknown_keys(self, draft: OrderDraft) -> List[str]:
        return self.price_table.unknown_keys(draft.pricing_selection())
