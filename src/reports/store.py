"""
Report store for crowdsourced barrier reports
Persists reports, routes them to areas on creation and lists them newest first
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from src.core.geo_utils import Coordinates
from src.reports.models import (
    Area,
    Report,
    ReportDraft,
    ReportStatus,
    utcnow,
)
from src.routing.area_router import GeospatialRouter

logger = logging.getLogger(__name__)


class ReportNotFoundError(KeyError):
    """No report with the given id."""


class AreaNotFoundError(KeyError):
    """No area with the given id."""


class ReportCreationError(Exception):
    """Routing or persistence failed; nothing was stored."""


def new_id() -> str:
    """Generate a 32-character hex identifier."""
    return uuid.uuid4().hex


class StorageBackend(Protocol):
    """Geospatial-predicate store used by the report and area stores."""

    name: str

    def insert_report(self, report: Report) -> None: ...
    def list_reports(self) -> List[Report]: ...
    def get_report(self, report_id: str) -> Optional[Report]: ...
    def update_report(self, report: Report) -> bool: ...
    def delete_report(self, report_id: str) -> bool: ...
    def insert_area(self, area: Area) -> None: ...
    def get_area(self, area_id: str) -> Optional[Area]: ...
    def list_areas(self) -> List[Area]: ...
    def update_area(self, area: Area) -> bool: ...
    def delete_area(self, area_id: str) -> bool: ...
    def candidate_areas(self, point: Coordinates) -> List[Area]: ...
    def ensure_indexes(self) -> List[str]: ...
    def counts(self) -> Dict[str, int]: ...
    def table_names(self) -> List[str]: ...
    def check_connection(self) -> bool: ...


class InMemoryBackend:
    """
    Process-local storage backend.

    Each operation touches one record under a lock, mirroring the
    single-document atomicity of the database backend.
    """

    name = "memory"

    def __init__(self):
        self._reports: Dict[str, Report] = {}
        self._areas: Dict[str, Area] = {}
        self._lock = threading.Lock()

    def insert_report(self, report: Report) -> None:
        with self._lock:
            if report.id in self._reports:
                raise ValueError(f"Duplicate report id: {report.id}")
            self._reports[report.id] = report

    def list_reports(self) -> List[Report]:
        with self._lock:
            reports = list(self._reports.values())
        return sorted(reports, key=lambda r: r.created_at, reverse=True)

    def get_report(self, report_id: str) -> Optional[Report]:
        return self._reports.get(report_id)

    def update_report(self, report: Report) -> bool:
        with self._lock:
            if report.id not in self._reports:
                return False
            self._reports[report.id] = report
            return True

    def delete_report(self, report_id: str) -> bool:
        with self._lock:
            return self._reports.pop(report_id, None) is not None

    def insert_area(self, area: Area) -> None:
        with self._lock:
            self._areas[area.id] = area

    def get_area(self, area_id: str) -> Optional[Area]:
        return self._areas.get(area_id)

    def list_areas(self) -> List[Area]:
        with self._lock:
            return sorted(self._areas.values(), key=lambda a: a.created_at, reverse=True)

    def update_area(self, area: Area) -> bool:
        with self._lock:
            if area.id not in self._areas:
                return False
            self._areas[area.id] = area
            return True

    def delete_area(self, area_id: str) -> bool:
        with self._lock:
            return self._areas.pop(area_id, None) is not None

    def candidate_areas(self, point: Coordinates) -> List[Area]:
        # No spatial index here: every active area is a candidate
        with self._lock:
            return [a for a in self._areas.values() if a.is_active]

    def ensure_indexes(self) -> List[str]:
        return []

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {"reports": len(self._reports), "areas": len(self._areas)}

    def table_names(self) -> List[str]:
        return ["areas", "reports"]

    def check_connection(self) -> bool:
        return True


class ReportStore:
    """
    Owns persisted report identity.

    ``create`` routes the draft to an area and inserts it in one synchronous
    sequence. Routing is computed once and never recomputed afterwards.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        router: Optional[GeospatialRouter] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        """
        Initialize report store.

        Args:
            backend: Storage backend (defaults to in-memory)
            router: Area router (defaults to one over the backend's areas)
            clock: Timestamp source
        """
        self.backend = backend or InMemoryBackend()
        self.router = router or GeospatialRouter(self.backend, clock=clock)
        self.clock = clock

        self._last_created_at: Optional[datetime] = None
        self._clock_lock = threading.Lock()

        logger.info(f"ReportStore initialized ({self.backend.name} backend)")

    def _next_timestamp(self) -> datetime:
        """Strictly increasing creation time, so newest-first order is total."""
        with self._clock_lock:
            now = self.clock()
            if self._last_created_at is not None and now <= self._last_created_at:
                now = self._last_created_at + timedelta(microseconds=1)
            self._last_created_at = now
            return now

    def create(self, draft: ReportDraft) -> Report:
        """
        Route and persist a new report.

        Args:
            draft: Submitted report content

        Returns:
            Created Report with generated id, status "open" and routing

        Raises:
            ReportCreationError: routing or insert failed
        """
        created_at = self._next_timestamp()

        try:
            routing = self.router.route(draft.coordinates, when=created_at)
            report = Report.from_draft(new_id(), draft, created_at, routing)
            self.backend.insert_report(report)
        except Exception as e:
            logger.error(f"Failed to create report: {e}")
            raise ReportCreationError("Failed to create report") from e

        area_note = report.routing.area_id if report.routing else "none"
        logger.info(
            f"New report created: {report.id} at "
            f"({draft.coordinates.lat}, {draft.coordinates.lng}), area={area_note}"
        )
        return report

    def list(self) -> List[Report]:
        """All reports, newest first."""
        return self.backend.list_reports()

    def get(self, report_id: str) -> Report:
        report = self.backend.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    def update_status(self, report_id: str, status: ReportStatus) -> Report:
        """
        Change the status of a report.

        Raises:
            ReportNotFoundError: unknown id
        """
        report = self.get(report_id)
        updated = report.with_status(status, self.clock())
        if not self.backend.update_report(updated):
            raise ReportNotFoundError(report_id)

        logger.info(f"Report {report_id} status: {report.status.value} -> {status.value}")
        return updated

    def delete(self, report_id: str) -> None:
        """
        Remove a report.

        Raises:
            ReportNotFoundError: unknown id (including a second delete)
        """
        if not self.backend.delete_report(report_id):
            raise ReportNotFoundError(report_id)
        logger.info(f"Report {report_id} deleted")

    def initialize(self) -> List[str]:
        """Ensure storage indexes exist. Safe to call repeatedly."""
        return self.backend.ensure_indexes()

    def status(self) -> Dict[str, object]:
        """Connectivity, existing collections and record counts."""
        connected = self.backend.check_connection()
        counts = self.backend.counts() if connected else {}
        collections = self.backend.table_names() if connected else []
        return {
            "connected": connected,
            "backend": self.backend.name,
            "collections": collections,
            "counts": counts,
        }


class AreaStore:
    """Registration of administrative areas (read-only for the router)."""

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.backend = backend or InMemoryBackend()
        self.clock = clock

    def create(
        self,
        name: str,
        ring: Sequence[Coordinates],
        is_active: bool = True
    ) -> Area:
        """
        Register a new area.

        Raises:
            ValueError: ring has fewer than three vertices or self-intersects
        """
        area = Area(
            id=new_id(),
            name=name,
            ring=tuple(ring),
            is_active=is_active,
            created_at=self.clock(),
        )
        self.backend.insert_area(area)
        logger.info(f"Area registered: {area.id} ({name})")
        return area

    def list(self) -> List[Area]:
        return self.backend.list_areas()

    def get(self, area_id: str) -> Area:
        area = self.backend.get_area(area_id)
        if area is None:
            raise AreaNotFoundError(area_id)
        return area

    def set_active(self, area_id: str, is_active: bool) -> Area:
        """Activate or deactivate an area; existing routings are untouched."""
        area = self.get(area_id)
        updated = Area(
            id=area.id,
            name=area.name,
            ring=area.ring,
            is_active=is_active,
            created_at=area.created_at,
        )
        if not self.backend.update_area(updated):
            raise AreaNotFoundError(area_id)
        return updated

    def delete(self, area_id: str) -> None:
        if not self.backend.delete_area(area_id):
            raise AreaNotFoundError(area_id)
        logger.info(f"Area {area_id} deleted")
