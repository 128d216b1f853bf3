"""
AccessWatch - Routing Module
Point-in-polygon assignment of reports to administrative areas.
"""

from src.routing.area_router import AreaSource, GeospatialRouter

__all__ = [
    "AreaSource",
    "GeospatialRouter",
]
