"""Small helpers shared by the Airtable and Bill.com code."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def chunks(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError("size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def batch_async(
    func: Callable[[List[T]], Awaitable[R]],
    items: Sequence[T],
    size: int,
) -> List[R]:
    """
    Call func with consecutive slices of items, at most size long.

    Each call is awaited before the next one starts.
    """
    results: List[R] = []
    for chunk in chunks(items, size):
        results.append(await func(chunk))
    return results


def get_yyyy_mm_dd(value: Optional[Any]) -> Optional[str]:
    """
    Reduce a Bill.com timestamp (e.g. 2021-03-04T23:10:00.000+0000) to its
    UTC calendar date.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        parsed = None
        for fmt in ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z"):
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d")
