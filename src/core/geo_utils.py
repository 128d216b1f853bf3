"""
AccessWatch - Geospatial Utilities
Coordinates, polygon rings and the point-in-polygon containment predicate.

In-memory values are latitude-first; shapely geometries and stored
geometries are longitude-first (GeoJSON order).
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from shapely.geometry import Point, Polygon

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """WGS84 position in decimal degrees."""
    lat: float
    lng: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")

    def to_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_tuple_lonlat(self) -> Tuple[float, float]:
        """Return as (longitude, latitude) for GeoJSON compatibility."""
        return (self.lng, self.lat)

    def to_point(self) -> Point:
        return Point(self.lng, self.lat)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinates":
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))

    @classmethod
    def from_lonlat(cls, lon: float, lat: float) -> "Coordinates":
        return cls(lat=lat, lng=lon)


def close_ring(ring: Sequence[Coordinates]) -> Tuple[Coordinates, ...]:
    """
    Return the ring with its first vertex repeated at the end.

    Raises:
        ValueError: if the ring has fewer than three distinct vertices
    """
    vertices = list(ring)
    if vertices and vertices[0] == vertices[-1]:
        vertices = vertices[:-1]
    if len(set(vertices)) < 3:
        raise ValueError("A polygon ring needs at least three distinct vertices")
    vertices.append(vertices[0])
    return tuple(vertices)


def ring_to_polygon(ring: Sequence[Coordinates]) -> Polygon:
    """Build a shapely polygon (lon/lat order) from a latitude-first ring."""
    return Polygon([c.to_tuple_lonlat() for c in ring])


def point_in_polygon(point: Coordinates, polygon: Polygon) -> bool:
    """
    Check if a point lies inside a polygon or on its boundary.

    Uses ``covers`` rather than ``contains`` so that points on an edge or
    vertex count as contained, matching a geo-within/intersects query.
    """
    return polygon.covers(point.to_point())


def calculate_polygon_area(polygon: List[Tuple[float, float]]) -> float:
    """
    Calculate the area of a polygon on Earth's surface.
    Uses the shoelace formula with latitude correction.

    Args:
        polygon: List of (latitude, longitude) tuples

    Returns:
        Area in square kilometers (approximate)
    """
    if len(polygon) < 3:
        return 0.0

    n = len(polygon)
    area = 0.0

    for i in range(n):
        j = (i + 1) % n
        lat1, lon1 = polygon[i]
        lat2, lon2 = polygon[j]

        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        lon1_rad = math.radians(lon1)
        lon2_rad = math.radians(lon2)

        # Spherical excess formula (simplified)
        area += (lon2_rad - lon1_rad) * (
            2 + math.sin(lat1_rad) + math.sin(lat2_rad)
        )

    area = abs(area) * EARTH_RADIUS_KM ** 2 / 2
    return area
