"""
SQLAlchemy models for AccessWatch
Uses GeoAlchemy2 for PostGIS spatial types
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Float, String, Text, Boolean,
    DateTime, Index,
)
from sqlalchemy.orm import declarative_base
from geoalchemy2 import Geometry
from geoalchemy2.shape import to_shape, from_shape
from shapely.geometry import Point, Polygon

from src.core.geo_utils import Coordinates
from src.reports.models import (
    AnalysisResult,
    Area,
    BarrierCategory,
    GeoMethod,
    MediaKind,
    MediaReference,
    Report,
    ReportStatus,
    RoutingAssignment,
    Severity,
)

Base = declarative_base()


def _aware(value: datetime) -> datetime:
    """Treat naive timestamps read back from the database as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReportRecord(Base):
    """
    Barrier report row.

    Location is a PostGIS point in (longitude, latitude) order.
    """
    __tablename__ = "reports"

    id = Column(String(32), primary_key=True)

    # Location (PostGIS point)
    location = Column(Geometry("POINT", srid=4326, spatial_index=False), nullable=False)

    # Media
    media_type = Column(String(10), nullable=False)
    media_url = Column(Text, nullable=False)
    media_file_name = Column(String(255), nullable=False)
    media_file_size = Column(Integer, nullable=False)

    # Classifier judgment
    ai_category = Column(String(50), nullable=False)
    ai_severity = Column(String(10), nullable=False)
    ai_summary = Column(Text, nullable=False)
    ai_confidence = Column(Float, nullable=False)

    geo_method = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default=ReportStatus.OPEN.value)

    # Routing assignment
    routing_area_id = Column(String(32), nullable=True)
    routing_matched_by = Column(String(20), nullable=True)
    routing_matched_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_report_location", location, postgresql_using="gist"),
        Index("idx_report_status", status),
        Index("idx_report_created_at", created_at),
        Index("idx_report_routing_area", routing_area_id),
        Index("idx_report_category_severity", ai_category, ai_severity),
    )

    def __repr__(self):
        return f"<ReportRecord({self.id}, status={self.status}, category={self.ai_category})>"

    @classmethod
    def from_domain(cls, report: Report) -> "ReportRecord":
        """Create a row from a domain report."""
        routing = report.routing
        return cls(
            id=report.id,
            location=from_shape(Point(*report.coordinates.to_tuple_lonlat()), srid=4326),
            media_type=report.media.kind.value,
            media_url=report.media.url,
            media_file_name=report.media.file_name,
            media_file_size=report.media.file_size,
            ai_category=report.analysis.category.value,
            ai_severity=report.analysis.severity.value,
            ai_summary=report.analysis.summary,
            ai_confidence=report.analysis.confidence,
            geo_method=report.geo_method.value,
            status=report.status.value,
            routing_area_id=routing.area_id if routing else None,
            routing_matched_by=routing.matched_by if routing else None,
            routing_matched_at=routing.matched_at if routing else None,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )

    def to_domain(self) -> Report:
        """Convert to a domain report."""
        point = to_shape(self.location)
        routing = None
        if self.routing_area_id:
            routing = RoutingAssignment(
                area_id=self.routing_area_id,
                matched_by=self.routing_matched_by,
                matched_at=_aware(self.routing_matched_at),
            )
        return Report(
            id=self.id,
            created_at=_aware(self.created_at),
            coordinates=Coordinates.from_lonlat(point.x, point.y),
            media=MediaReference(
                kind=MediaKind(self.media_type),
                url=self.media_url,
                file_name=self.media_file_name,
                file_size=self.media_file_size,
            ),
            analysis=AnalysisResult(
                category=BarrierCategory(self.ai_category),
                severity=Severity(self.ai_severity),
                summary=self.ai_summary,
                confidence=self.ai_confidence,
            ),
            geo_method=GeoMethod(self.geo_method),
            status=ReportStatus(self.status),
            routing=routing,
            updated_at=_aware(self.updated_at),
        )


class AreaRecord(Base):
    """
    Administrative area polygon.

    Created and deactivated by administrators; read-only for routing.
    """
    __tablename__ = "areas"

    id = Column(String(32), primary_key=True)
    name = Column(String(200), nullable=False)

    # Boundary (PostGIS polygon)
    polygon = Column(Geometry("POLYGON", srid=4326, spatial_index=False), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_area_polygon", polygon, postgresql_using="gist"),
        Index("idx_area_active", is_active),
    )

    def __repr__(self):
        return f"<AreaRecord({self.id}, name={self.name}, active={self.is_active})>"

    @classmethod
    def from_domain(cls, area: Area) -> "AreaRecord":
        shell = [c.to_tuple_lonlat() for c in area.ring]
        return cls(
            id=area.id,
            name=area.name,
            polygon=from_shape(Polygon(shell), srid=4326),
            is_active=area.is_active,
            created_at=area.created_at,
        )

    def to_domain(self) -> Area:
        shape = to_shape(self.polygon)
        ring = tuple(Coordinates.from_lonlat(x, y) for x, y in shape.exterior.coords)
        return Area(
            id=self.id,
            name=self.name,
            ring=ring,
            is_active=self.is_active,
            created_at=_aware(self.created_at),
        )
