"""
Database module for AccessWatch
PostgreSQL + PostGIS for geospatial data persistence
"""

from .connection import DatabaseConnection, get_db
from .models import (
    Base,
    ReportRecord,
    AreaRecord,
)
from .repository import SqlBackend

__all__ = [
    "DatabaseConnection",
    "get_db",
    "Base",
    "ReportRecord",
    "AreaRecord",
    "SqlBackend",
]
