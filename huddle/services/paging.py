"""Backward cursor paging over an append-only segment list.

The cursor is an exclusive end index. Because segments are only ever added at
the tail, a cursor handed out earlier keeps selecting the same items after
new segments arrive.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_LIMIT = 80
MAX_LIMIT = 300


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def clamp_limit(limit: Any, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """Page size in [1, min(maximum, MAX_LIMIT)]; junk or non-positive input gets ``default``."""
    maximum = max(1, min(maximum, MAX_LIMIT))
    number = _as_number(limit)
    if number is None or number <= 0:
        number = default if default >= 1 else DEFAULT_LIMIT
    return max(1, min(int(number), maximum))


def page_segments(
    segments: Sequence[T],
    cursor: Any = None,
    limit: Any = DEFAULT_LIMIT,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> tuple[list[T], Optional[int]]:
    """
    Return one page of segments ending at ``cursor``.

    Args:
        segments: Snapshot of the room's segments, oldest first
        cursor: Exclusive end index from a previous page; None (or anything
            non-numeric) asks for the newest page
        limit: Page size, clamped to [1, max_limit]

    Returns:
        Tuple of (items oldest first, next cursor or None when the page
        reaches the start of the list)
    """
    total = len(segments)
    if total == 0:
        return [], None

    size = clamp_limit(limit, default_limit, max_limit)
    position = _as_number(cursor)
    if position is None:
        end = total
    else:
        end = max(0, min(int(math.floor(position)), total))

    start = max(0, end - size)
    return list(segments[start:end]), (start if start > 0 else None)
