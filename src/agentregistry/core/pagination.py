"""
Bounded cursor pagination.

Every list-returning query walks a dense, integer-indexed sequence one
fixed-size window at a time. The window size bounds the number of storage
reads a single page can cost, no matter how much data has accumulated:
callers needing the full sequence carry ``Page.cursor`` into the next call
until it comes back as ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")

# 15 items x 2 reads each = 30 reads, the metered host's read-only ceiling
PAGE_SIZE = 15


@dataclass
class Page(Generic[T]):
    """One window of a paginated sequence."""

    items: list[T] = field(default_factory=list)
    cursor: int | None = None

    @property
    def is_last(self) -> bool:
        return self.cursor is None

    def __len__(self) -> int:
        return len(self.items)


def _window(length: int, cursor: int | None, page_size: int) -> range:
    start = cursor or 0
    if start < 0 or start >= length:
        return range(0)
    return range(start, min(start + page_size, length))


def _next_cursor(window: range, length: int) -> int | None:
    if not window or window.stop >= length:
        return None
    return window.stop


def paginate(
    length: int,
    cursor: int | None,
    fetch: Callable[[int], T],
    page_size: int = PAGE_SIZE,
) -> Page[T]:
    """
    Read up to ``page_size`` entries starting at ``cursor``.

    Args:
        length: Number of entries in the sequence
        cursor: Resume offset, ``None`` for the first page
        fetch: Reads the entry at a logical index
        page_size: Window size

    Returns:
        Page whose cursor is the next offset, or None when exhausted
    """
    window = _window(length, cursor, page_size)
    items = [fetch(i) for i in window]
    return Page(items=items, cursor=_next_cursor(window, length))


def paginate_filtered(
    length: int,
    cursor: int | None,
    fetch: Callable[[int], T],
    keep: Callable[[T], bool],
    page_size: int = PAGE_SIZE,
) -> Page[T]:
    """
    Like paginate(), applying ``keep`` while scanning.

    Filtered-out entries still consume the window, so the cursor always
    advances by the number of entries scanned and the per-page cost stays
    bounded even when nothing matches.
    """
    window = _window(length, cursor, page_size)
    items = []
    for i in window:
        item = fetch(i)
        if keep(item):
            items.append(item)
    return Page(items=items, cursor=_next_cursor(window, length))


__all__ = ["PAGE_SIZE", "Page", "paginate", "paginate_filtered"]
