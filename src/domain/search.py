"""
Ride search matching rules
==========================

1. **Primary query**   -- case-insensitive substring match on the ride's
   ``departure`` / ``destination`` (and an optional +/- tolerance window on
   coordinates), executed in SQL by the repository.
2. **Stop fallback**   -- when the primary query finds nothing, every ride
   is scanned and kept if one point of its route satisfies the departure
   criterion AND one (possibly another) satisfies the destination
   criterion.  The route is the stops plus the ride's own endpoints;
   rides without stops are skipped.  Pagination is a slice of the
   filtered list.

Complexity of the fallback: O(R x S) for R rides with S stops each.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, TypeVar

from .entities import StopPoint
from .exceptions import InvalidArgumentError

T = TypeVar("T")


@dataclass(frozen=True)
class Point:
    lat: float
    lng: float


@dataclass(frozen=True)
class SearchCriterion:
    """One side (departure or destination) of a search query."""

    term: Optional[str] = None
    point: Optional[Point] = None

    @property
    def is_empty(self) -> bool:
        return not self.term and self.point is None

    def matches_stop(self, stop: StopPoint, tolerance: float) -> bool:
        if self.term and self.term.lower() in stop.name.lower():
            return True
        if self.point is not None and stop.lat is not None and stop.lng is not None:
            return within_window(self.point, stop.lat, stop.lng, tolerance)
        return False


def build_criterion(
    term: Optional[str], lat: Optional[float] = None, lng: Optional[float] = None
) -> SearchCriterion:
    term = term.strip() if term else None
    point = Point(lat, lng) if lat is not None and lng is not None else None
    return SearchCriterion(term=term or None, point=point)


def require_any(departure: SearchCriterion, destination: SearchCriterion) -> None:
    if departure.is_empty and destination.is_empty:
        raise InvalidArgumentError("Departure or destination is required (name or coordinates)")


def within_window(point: Point, lat: float, lng: float, tolerance: float) -> bool:
    return abs(lat - point.lat) <= tolerance and abs(lng - point.lng) <= tolerance


def stops_match(
    raw_stops: Optional[Sequence[dict[str, Any]]],
    departure: SearchCriterion,
    destination: SearchCriterion,
    tolerance: float,
    endpoints: Sequence[StopPoint] = (),
) -> bool:
    """True if the route satisfies both criteria (by any point, not necessarily the same).

    The route is *endpoints* plus the parsed stops; a ride without stops
    never matches.
    """
    if not raw_stops or not isinstance(raw_stops, (list, tuple)):
        return False

    stops = [StopPoint.from_dict(s, i) for i, s in enumerate(raw_stops) if isinstance(s, dict)]
    if not stops:
        return False
    stops.extend(endpoints)
    match_dep = departure.is_empty or any(departure.matches_stop(s, tolerance) for s in stops)
    match_dest = destination.is_empty or any(destination.matches_stop(s, tolerance) for s in stops)
    return match_dep and match_dest


def normalise_page(page: int, limit: int, default_limit: int = 10) -> tuple[int, int, int]:
    """Return ``(page, limit, offset)``; page <= 0 reads from the start."""
    limit = limit if limit > 0 else default_limit
    offset = (page - 1) * limit if page > 0 else 0
    return page, limit, offset


def slice_page(items: Sequence[T], page: int, limit: int, default_limit: int = 10) -> list[T]:
    _, limit, offset = normalise_page(page, limit, default_limit)
    return list(items[offset:offset + limit])
