"""
Geospatial router for barrier reports
Assigns each new report to the administrative area whose polygon contains it
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Protocol

from src.core.constants import MATCH_BASIS_GEO_WITHIN
from src.core.geo_utils import Coordinates
from src.reports.models import Area, RoutingAssignment, utcnow

logger = logging.getLogger(__name__)


class AreaSource(Protocol):
    """Anything able to list the areas that may contain a point."""

    def candidate_areas(self, point: Coordinates) -> Iterable[Area]:
        """
        Return areas that may contain ``point``.

        Implementations may prefilter (e.g. with a spatial index) but must
        not drop an active area that covers the point.
        """
        ...


class GeospatialRouter:
    """
    Point-in-polygon router over active areas.

    When several active polygons cover the point, the smallest polygon wins
    and ties are broken by the lowest area id, so identical input always
    yields the same assignment.
    """

    def __init__(
        self,
        area_source: AreaSource,
        clock: Callable[[], datetime] = utcnow
    ):
        """
        Initialize router.

        Args:
            area_source: Provider of candidate areas
            clock: Timestamp source for match times
        """
        self.area_source = area_source
        self.clock = clock

    def matching_areas(self, point: Coordinates) -> List[Area]:
        """All active areas covering the point, in tie-break order."""
        matches = [
            area for area in self.area_source.candidate_areas(point)
            if area.is_active and area.contains(point)
        ]
        matches.sort(key=lambda a: (a.area_km2, a.id))
        return matches

    def find_area(self, point: Coordinates) -> Optional[Area]:
        """Return the area responsible for the point, or None."""
        matches = self.matching_areas(point)
        if not matches:
            return None
        if len(matches) > 1:
            logger.info(
                f"Point ({point.lat}, {point.lng}) covered by {len(matches)} areas, "
                f"choosing {matches[0].id}"
            )
        return matches[0]

    def route(
        self,
        point: Coordinates,
        when: Optional[datetime] = None
    ) -> Optional[RoutingAssignment]:
        """
        Compute the routing assignment for a new report.

        Args:
            point: Report coordinates
            when: Match timestamp (defaults to the router clock)

        Returns:
            RoutingAssignment, or None when no active area covers the point
        """
        area = self.find_area(point)
        if area is None:
            logger.info(f"No area covers ({point.lat}, {point.lng}); report left unrouted")
            return None

        return RoutingAssignment(
            area_id=area.id,
            matched_by=MATCH_BASIS_GEO_WITHIN,
            matched_at=when or self.clock(),
        )
