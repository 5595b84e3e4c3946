"""
Schedule helpers for rides.

The estimated duration is stored as an ``HH:MM`` string so clients can
display it without date arithmetic.  Complexity: O(1) per call.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

ZERO_DURATION = "00:00"

Instant = Union[datetime, str, None]


def _parse(value: Instant) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None


def estimated_duration(departure_time: Instant, estimated_arrival: Instant) -> str:
    """Return ``estimated_arrival - departure_time`` as ``HH:MM``.

    Whole minutes only (floored).  Clamped to ``00:00`` when either instant
    is missing or invalid, or when arrival is not after departure.
    """
    departure = _parse(departure_time)
    arrival = _parse(estimated_arrival)
    if departure is None or arrival is None:
        return ZERO_DURATION
    # Mixing naive and aware instants: treat naive as the same zone
    if (departure.tzinfo is None) != (arrival.tzinfo is None):
        departure = departure.replace(tzinfo=None)
        arrival = arrival.replace(tzinfo=None)
    if arrival <= departure:
        return ZERO_DURATION

    minutes = int((arrival - departure).total_seconds() // 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}"
