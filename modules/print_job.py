"""
Print job descriptor encoding.

The order-recording service receives the physical book specification as
one fixed-width product code, built from the draft at finalize time:

    0600X0900 BWSTD PB 060UW444 M XX
    |         |     |  |        | +- reserved (2)
    |         |     |  |        +--- cover finish (1)
    |         |     |  +------------ paper (8)
    |         |     +--------------- binding (2)
    |         +--------------------- interior print (5)
    +------------------------------- trim size in hundredths of an inch (9)

Segments are concatenated without separators (27 characters). Option keys
without a code encode as a zero-filled segment of the same width.
"""

from __future__ import annotations

from typing import Dict

from models.order import OrderDraft


TRIM_SIZE_CODES: Dict[str, str] = {
    "5x8": "0500X0800",
    "6x9": "0600X0900",
    "8.5x11": "0850X1100",
}

INTERIOR_CODES: Dict[str, str] = {
    "bw-standard": "BWSTD",
    "bw-premium": "BWPRE",
    "color-standard": "FCSTD",
    "color-premium": "FCPRE",
}

BINDING_CODES: Dict[str, str] = {
    "paperback": "PB",
    "hardcover": "CW",
    "ebook": "EB",
}

PAPER_CODES: Dict[str, str] = {
    "60-white": "060UW444",
    "60-cream": "060UC444",
    "80-white": "080CW444",
}

FINISH_CODES: Dict[str, str] = {
    "matte": "M",
    "gloss": "G",
    "soft-touch": "S",
}

RESERVED_SEGMENT = "XX"

SEGMENT_WIDTHS = (9, 5, 2, 8, 1, 2)
DESCRIPTOR_LENGTH = sum(SEGMENT_WIDTHS)


def _segment(codes: Dict[str, str], key: str, width: int) -> str:
    code = codes.get(key, "")
    if len(code) != width:
        return "0" * width
    return code


def build_print_job_descriptor(draft: OrderDraft) -> str:
    """
    Encode the draft's physical book options as a product code.

    Deterministic: the same draft always yields the same string.

    Args:
        draft: Order draft with book options set

    Returns:
        27-character descriptor, e.g. "0600X0900BWSTDPB060UW444MXX"
    """
    descriptor = "".join([
        _segment(TRIM_SIZE_CODES, draft.book_size, 9),
        _segment(INTERIOR_CODES, draft.interior_print, 5),
        _segment(BINDING_CODES, draft.book_type, 2),
        _segment(PAPER_CODES, draft.paper_type, 8),
        _segment(FINISH_CODES, draft.cover_finish, 1),
        RESERVED_SEGMENT,
    ])
    return descriptor


def split_descriptor(descriptor: str) -> Dict[str, str]:
    """Split a descriptor back into its named segments (for logs)."""
    names = ("trim_size", "interior", "binding", "paper", "finish", "reserved")
    parts = {}
    offset = 0
    for name, width in zip(names, SEGMENT_WIDTHS):
        parts[name] = descriptor[offset:offset + width]
        offset += width
    return parts
