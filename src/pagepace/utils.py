"""Utility functions for pagepace."""

import math
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

Number = Union[int, float]


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime as a fixed-width UTC ISO-8601 string.

    Naive datetimes are assumed to already be in UTC. The fixed width
    (always with microseconds) keeps stored timestamps lexically ordered.

    Example:
        >>> to_iso(datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2025-01-15T10:30:00.000000+00:00'
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO-8601 string back into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_positive_number(value: Any) -> bool:
    """
    Check that a value is a finite number greater than zero.

    Booleans are rejected even though they subclass int.

    Example:
        >>> is_positive_number(0.8)
        True
        >>> is_positive_number(float("inf"))
        False
        >>> is_positive_number(None)
        False
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def is_page_number(value: Any) -> bool:
    """Check that a value is a non-negative integer page number."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def clamp(value: Number, lower: Number, upper: Number) -> Number:
    """
    Clamp a value to the closed range [lower, upper].

    Raises:
        ValueError: If lower is greater than upper

    Example:
        >>> clamp(1.5, 0, 1)
        1
        >>> clamp(-2, 0, 2)
        0
    """
    if lower > upper:
        raise ValueError(f"Invalid range: {lower} > {upper}")
    return max(lower, min(upper, value))


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, with halves rounded up.

    Python's built-in round() rounds halves to even, which would turn
    a recommendation of 22.5 pages into 22.

    Example:
        >>> round_half_up(21.6)
        22
        >>> round_half_up(22.5)
        23
    """
    return int(math.floor(value + 0.5))


def first_present(
    candidates: Iterable[tuple[str, Any]],
    accept: Callable[[Any], bool] = lambda v: v is not None,
) -> tuple[Optional[str], Any]:
    """
    Pick the first acceptable value from an ordered list of named sources.

    Args:
        candidates: (source_name, value) pairs in priority order
        accept: Predicate a value must satisfy to be picked

    Returns:
        (source_name, value) of the winner, or (None, None) if nothing qualifies

    Example:
        >>> first_present([("shelf", None), ("book", 320)])
        ('book', 320)
        >>> first_present([("shelf", 0), ("book", None)], accept=is_positive_number)
        (None, None)
    """
    for name, value in candidates:
        if accept(value):
            return name, value
    return None, None
