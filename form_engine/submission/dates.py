"""Date normalization for backend payloads."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional, Union

DateLike = Union[datetime, date, str]


def to_canonical_datetime(value: DateLike) -> str:
    """ISO-8601 to the second with an explicit offset; naive values are local time.

    Strings are parsed first, so ``"2024-03-01"`` and ``"2024-03-01T08:00:00Z"``
    are both accepted.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.astimezone()
    return value.isoformat(timespec="seconds")


def now_canonical(now: Optional[datetime] = None) -> str:
    return to_canonical_datetime(now or datetime.now(timezone.utc))
