"""
Ride search with fallback to intermediate stops.

The primary query runs in SQL.  Only when it matches nothing at all is
every ride scanned in memory against its stops; see ``src.domain.search``
for the matching rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import StopPoint
from src.domain.search import build_criterion, require_any, slice_page, stops_match
from src.infrastructure.models import RideModel
from src.infrastructure.pagination import Page
from src.infrastructure.repositories import RideRepository
from src.services.store import store_errors

logger = logging.getLogger(__name__)


def _endpoints(ride: RideModel) -> tuple[StopPoint, StopPoint]:
    return (
        StopPoint(ride.departure, ride.departure_lat, ride.departure_lng),
        StopPoint(ride.destination, ride.destination_lat, ride.destination_lng),
    )


@dataclass
class SearchResult:
    page: Page
    via_fallback: bool = False


class RideSearchService:
    def __init__(self, session: AsyncSession, tolerance: Optional[float] = None):
        self.rides = RideRepository(session)
        self.tolerance = (
            settings.search_coordinate_tolerance if tolerance is None else tolerance
        )

    async def search_rides(
        self,
        departure: Optional[str] = None,
        destination: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        *,
        departure_lat: Optional[float] = None,
        departure_lng: Optional[float] = None,
        destination_lat: Optional[float] = None,
        destination_lng: Optional[float] = None,
    ) -> SearchResult:
        dep = build_criterion(departure, departure_lat, departure_lng)
        dest = build_criterion(destination, destination_lat, destination_lng)
        require_any(dep, dest)

        async with store_errors("search_rides"):
            primary = await self.rides.search(dep, dest, self.tolerance, page, limit)
            if primary.total:
                return SearchResult(page=primary)

            logger.info(
                "No direct ride for departure=%r destination=%r, falling back to stops",
                dep.term,
                dest.term,
            )
            candidates = await self.rides.list_all_by_departure()
            matched = [
                ride
                for ride in candidates
                if stops_match(ride.stops, dep, dest, self.tolerance, _endpoints(ride))
            ]
            return SearchResult(
                page=Page(
                    data=slice_page(matched, page, limit),
                    total=len(matched),
                    page=page,
                    limit=limit,
                ),
                via_fallback=True,
            )
