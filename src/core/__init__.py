"""
AccessWatch - Core Utilities
Central configuration, logging, and utility functions.
"""

from src.core.config import settings
from src.core.constants import (
    CATEGORY_LABELS,
    SEVERITY_COLORS,
    MAX_MEDIA_BYTES,
)
from src.core.geo_utils import (
    Coordinates,
    close_ring,
    ring_to_polygon,
    point_in_polygon,
    calculate_polygon_area,
)

__all__ = [
    "settings",
    "CATEGORY_LABELS",
    "SEVERITY_COLORS",
    "MAX_MEDIA_BYTES",
    "Coordinates",
    "close_ring",
    "ring_to_polygon",
    "point_in_polygon",
    "calculate_polygon_area",
]
