"""
Domain model for barrier reports and administrative areas
Shared by the intake client and the report store
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from shapely.geometry import Polygon

from src.core.constants import (
    CATEGORY_LABELS,
    MATCH_BASIS_GEO_WITHIN,
    SEVERITY_COLORS,
)
from src.core.geo_utils import (
    Coordinates,
    calculate_polygon_area,
    close_ring,
    point_in_polygon,
    ring_to_polygon,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class MediaKind(str, Enum):
    """Renderable kind of the evidence media."""
    IMAGE = "image"
    VIDEO = "video"


class GeoMethod(str, Enum):
    """How the report coordinates were determined."""
    AUTO = "auto"
    MANUAL = "manual"


class Severity(str, Enum):
    """Barrier severity judged by the classifier."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def color(self) -> str:
        return SEVERITY_COLORS[self.value]


class BarrierCategory(str, Enum):
    """Closed set of barrier categories."""
    BLOCKED_SIDEWALK = "blocked_sidewalk"
    BROKEN_PAVEMENT = "broken_pavement"
    MISSING_CURB_RAMP = "missing_curb_ramp"
    STEPS_WITHOUT_RAMP = "steps_without_ramp"
    NARROW_PATH = "narrow_path"
    BROKEN_ELEVATOR = "broken_elevator"
    INACCESSIBLE_ENTRANCE = "inaccessible_entrance"
    MISSING_SIGNAGE = "missing_signage"
    OTHER = "other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self.value]


class ReportStatus(str, Enum):
    """Lifecycle status of a persisted report."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class AnalysisResult:
    """
    Structured judgment produced by the classifier.

    Immutable; re-running the analysis replaces the whole value.
    """
    category: BarrierCategory
    severity: Severity
    summary: str
    confidence: float

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1]: {self.confidence}")

    @property
    def category_label(self) -> str:
        return self.category.label

    @property
    def severity_color(self) -> str:
        return self.severity.color

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "summary": self.summary,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        """
        Build from a classifier payload.

        Raises:
            ValueError: unknown category/severity or confidence out of range
            KeyError: missing field
        """
        return cls(
            category=BarrierCategory(data["category"]),
            severity=Severity(data["severity"]),
            summary=str(data["summary"]),
            confidence=float(data["confidence"]),
        )


@dataclass(frozen=True)
class MediaReference:
    """Stored media of a report."""
    kind: MediaKind
    url: str
    file_name: str
    file_size: int


@dataclass(frozen=True)
class ReportDraft:
    """Everything the intake workflow hands to the report-creation boundary."""
    coordinates: Coordinates
    media: MediaReference
    analysis: AnalysisResult
    geo_method: GeoMethod

    def to_payload(self) -> Dict[str, Any]:
        """Request body of ``POST /api/reports``."""
        return {
            "coordinates": self.coordinates.to_dict(),
            "mediaUrl": self.media.url,
            "mediaType": self.media.kind.value,
            "fileName": self.media.file_name,
            "fileSize": self.media.file_size,
            "analysis": self.analysis.to_dict(),
            "geoMethod": self.geo_method.value,
        }


@dataclass(frozen=True)
class RoutingAssignment:
    """Outcome of matching a report location against area polygons."""
    area_id: str
    matched_at: datetime
    matched_by: str = MATCH_BASIS_GEO_WITHIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignedAreaId": self.area_id,
            "matchedBy": self.matched_by,
            "matchedAt": self.matched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutingAssignment":
        return cls(
            area_id=data["assignedAreaId"],
            matched_by=data.get("matchedBy", MATCH_BASIS_GEO_WITHIN),
            matched_at=parse_timestamp(data["matchedAt"]),
        )


@dataclass(frozen=True)
class Report:
    """
    Persisted barrier report.

    Frozen: media, analysis and coordinates never change after creation.
    Status updates go through ``with_status``, which returns a new value.
    Routing is computed once at creation.
    """
    id: str
    created_at: datetime
    coordinates: Coordinates
    media: MediaReference
    analysis: AnalysisResult
    geo_method: GeoMethod
    status: ReportStatus = ReportStatus.OPEN
    routing: Optional[RoutingAssignment] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_draft(
        cls,
        report_id: str,
        draft: ReportDraft,
        created_at: datetime,
        routing: Optional[RoutingAssignment] = None
    ) -> "Report":
        return cls(
            id=report_id,
            created_at=created_at,
            coordinates=draft.coordinates,
            media=draft.media,
            analysis=draft.analysis,
            geo_method=draft.geo_method,
            status=ReportStatus.OPEN,
            routing=routing,
            updated_at=created_at,
        )

    def with_status(self, status: ReportStatus, when: Optional[datetime] = None) -> "Report":
        return replace(self, status=status, updated_at=when or utcnow())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the public (camelCase, latitude-first) representation."""
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "coordinates": self.coordinates.to_dict(),
            "mediaUrl": self.media.url,
            "mediaType": self.media.kind.value,
            "fileName": self.media.file_name,
            "fileSize": self.media.file_size,
            "analysis": self.analysis.to_dict(),
            "geoMethod": self.geo_method.value,
            "status": self.status.value,
            "routing": self.routing.to_dict() if self.routing else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        routing = data.get("routing")
        return cls(
            id=data["id"],
            created_at=parse_timestamp(data["createdAt"]),
            coordinates=Coordinates.from_dict(data["coordinates"]),
            media=MediaReference(
                kind=MediaKind(data["mediaType"]),
                url=data["mediaUrl"],
                file_name=data["fileName"],
                file_size=int(data["fileSize"]),
            ),
            analysis=AnalysisResult.from_dict(data["analysis"]),
            geo_method=GeoMethod(data["geoMethod"]),
            status=ReportStatus(data.get("status", ReportStatus.OPEN.value)),
            routing=RoutingAssignment.from_dict(routing) if routing else None,
        )


@dataclass(frozen=True)
class Area:
    """
    Administrative region responsible for the reports inside its polygon.

    The ring is stored closed (first vertex repeated last).
    """
    id: str
    name: str
    ring: Tuple[Coordinates, ...]
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        ring = close_ring(self.ring)
        polygon = ring_to_polygon(ring)
        if not polygon.is_valid:
            raise ValueError(f"Area polygon is not a simple ring: {self.name}")
        object.__setattr__(self, "ring", ring)

    @property
    def polygon(self) -> Polygon:
        return ring_to_polygon(self.ring)

    @property
    def area_km2(self) -> float:
        return calculate_polygon_area([c.to_tuple() for c in self.ring[:-1]])

    def contains(self, point: Coordinates) -> bool:
        """Boundary-inclusive containment test."""
        return point_in_polygon(point, self.polygon)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "polygon": [c.to_dict() for c in self.ring],
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
        }
