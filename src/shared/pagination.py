"""Cursor-based pagination over registry listings.

Cursors are opaque to clients: a base64-encoded JSON integer offset.
"""

import base64
import binascii
import json
from typing import Optional, Sequence, TypeVar

from shared.errors import InvalidCursorError

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50


def encode_cursor(offset: int) -> str:
    return base64.b64encode(json.dumps(offset).encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> int:
    """Decode a cursor into a start offset, raising InvalidCursorError."""
    try:
        offset = json.loads(base64.b64decode(cursor, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise InvalidCursorError(cursor) from e
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise InvalidCursorError(cursor)
    return offset


def paginate_with_cursor(
    items: Sequence[T],
    cursor: Optional[str] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[T], Optional[str]]:
    """
    Slice one page out of ``items``.

    Args:
        items: Full ordered listing
        cursor: Cursor returned by a previous call, or None for the first page
        page_size: Maximum number of items per page

    Returns:
        Tuple of (page items, next cursor or None when exhausted)
    """
    start = decode_cursor(cursor) if cursor else 0
    end = start + page_size
    next_cursor = encode_cursor(end) if end < len(items) else None
    return list(items[start:end]), next_cursor
