"""
PostGIS storage backend for the report and area stores
Containment queries run in the database with ST_Covers
"""

import logging
from typing import Dict, List, Optional

from geoalchemy2 import WKTElement
from sqlalchemy import func, select

from src.core.geo_utils import Coordinates
from src.reports.models import Area, Report
from .connection import DatabaseConnection, get_db
from .models import AreaRecord, ReportRecord

logger = logging.getLogger(__name__)


class SqlBackend:
    """
    Storage backend on PostgreSQL + PostGIS.

    Each call runs in its own session, so every write is a single-row
    transaction.
    """

    name = "postgis"

    def __init__(self, db: Optional[DatabaseConnection] = None):
        self.db = db or get_db()

    # -- reports -----------------------------------------------------------

    def insert_report(self, report: Report) -> None:
        with self.db.get_session() as session:
            session.add(ReportRecord.from_domain(report))

    def list_reports(self) -> List[Report]:
        with self.db.get_session() as session:
            rows = session.scalars(
                select(ReportRecord).order_by(ReportRecord.created_at.desc())
            ).all()
            return [row.to_domain() for row in rows]

    def get_report(self, report_id: str) -> Optional[Report]:
        with self.db.get_session() as session:
            row = session.get(ReportRecord, report_id)
            return row.to_domain() if row else None

    def update_report(self, report: Report) -> bool:
        # Only status and routing are mutable after creation
        with self.db.get_session() as session:
            row = session.get(ReportRecord, report.id)
            if row is None:
                return False
            row.status = report.status.value
            row.updated_at = report.updated_at
            routing = report.routing
            row.routing_area_id = routing.area_id if routing else None
            row.routing_matched_by = routing.matched_by if routing else None
            row.routing_matched_at = routing.matched_at if routing else None
            return True

    def delete_report(self, report_id: str) -> bool:
        with self.db.get_session() as session:
            deleted = session.query(ReportRecord).filter(ReportRecord.id == report_id).delete()
            return deleted > 0

    # -- areas -------------------------------------------------------------

    def insert_area(self, area: Area) -> None:
        with self.db.get_session() as session:
            session.add(AreaRecord.from_domain(area))

    def get_area(self, area_id: str) -> Optional[Area]:
        with self.db.get_session() as session:
            row = session.get(AreaRecord, area_id)
            return row.to_domain() if row else None

    def list_areas(self) -> List[Area]:
        with self.db.get_session() as session:
            rows = session.scalars(
                select(AreaRecord).order_by(AreaRecord.created_at.desc())
            ).all()
            return [row.to_domain() for row in rows]

    def update_area(self, area: Area) -> bool:
        with self.db.get_session() as session:
            row = session.get(AreaRecord, area.id)
            if row is None:
                return False
            row.is_active = area.is_active
            return True

    def delete_area(self, area_id: str) -> bool:
        with self.db.get_session() as session:
            deleted = session.query(AreaRecord).filter(AreaRecord.id == area_id).delete()
            return deleted > 0

    def candidate_areas(self, point: Coordinates) -> List[Area]:
        """Active areas whose polygon covers the point (boundary included)."""
        geom = WKTElement(f"POINT({point.lng} {point.lat})", srid=4326)
        with self.db.get_session() as session:
            rows = session.scalars(
                select(AreaRecord)
                .where(AreaRecord.is_active.is_(True))
                .where(func.ST_Covers(AreaRecord.polygon, geom))
            ).all()
            return [row.to_domain() for row in rows]

    # -- maintenance -------------------------------------------------------

    def ensure_indexes(self) -> List[str]:
        self.db.enable_postgis()
        return self.db.create_tables()

    def counts(self) -> Dict[str, int]:
        with self.db.get_session() as session:
            return {
                "reports": session.scalar(select(func.count()).select_from(ReportRecord)),
                "areas": session.scalar(select(func.count()).select_from(AreaRecord)),
            }

    def table_names(self) -> List[str]:
        return sorted(self.db.table_names())

    def check_connection(self) -> bool:
        return self.db.check_connection()
