"""
Tests for the report and area stores
"""
import pytest
import threading
from datetime import datetime, timedelta, timezone

import sys
sys.path.insert(0, '.')

from src.core.geo_utils import Coordinates
from src.reports.models import ReportStatus
from src.reports.store import (
    AreaNotFoundError,
    AreaStore,
    InMemoryBackend,
    ReportCreationError,
    ReportNotFoundError,
    ReportStore,
    new_id,
)


class TestReportStore:
    """Test suite for report persistence."""

    def setup_method(self):
        """Setup test fixtures."""
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.backend = InMemoryBackend()
        self.store = ReportStore(self.backend, clock=lambda: self.now)
        self.areas = AreaStore(self.backend, clock=lambda: self.now)

    def test_create_assigns_identity(self, sample_draft):
        """Test created reports get an id, timestamp and open status."""
        report = self.store.create(sample_draft)

        assert len(report.id) == 32
        assert report.status == ReportStatus.OPEN
        assert report.created_at == self.now
        assert report.coordinates == sample_draft.coordinates

    def test_create_routes_inside_area(self, sample_draft, san_francisco_ring):
        """Test a report inside an active area is routed at creation."""
        area = self.areas.create("San Francisco", san_francisco_ring)

        report = self.store.create(sample_draft)

        assert report.routing is not None
        assert report.routing.area_id == area.id
        assert report.routing.matched_at == report.created_at

    def test_create_outside_areas_unrouted(self, sample_draft, san_francisco_ring):
        """Test a report outside every area has no routing."""
        self.areas.create("San Francisco", san_francisco_ring)
        draft = sample_draft.__class__(
            coordinates=Coordinates(0.0, 0.0),
            media=sample_draft.media,
            analysis=sample_draft.analysis,
            geo_method=sample_draft.geo_method,
        )

        report = self.store.create(draft)

        assert report.routing is None

    def test_routing_not_recomputed(self, sample_draft, san_francisco_ring):
        """Test later area changes leave existing routing alone."""
        area = self.areas.create("San Francisco", san_francisco_ring)
        report = self.store.create(sample_draft)

        self.areas.delete(area.id)

        assert self.store.get(report.id).routing.area_id == area.id

    def test_list_newest_first(self, sample_draft):
        """Test listing order with identical clock readings."""
        first = self.store.create(sample_draft)
        second = self.store.create(sample_draft)
        third = self.store.create(sample_draft)

        reports = self.store.list()

        assert [r.id for r in reports] == [third.id, second.id, first.id]
        assert third.created_at > second.created_at > first.created_at

    def test_timestamps_strictly_increase_across_threads(self, sample_draft):
        """Test concurrent creates still get distinct ordered timestamps."""
        def create_many():
            for _ in range(20):
                self.store.create(sample_draft)

        threads = [threading.Thread(target=create_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stamps = [r.created_at for r in self.store.list()]

        assert len(stamps) == 80
        assert len(set(stamps)) == 80
        assert stamps == sorted(stamps, reverse=True)

    def test_clock_going_backwards(self, sample_draft):
        """Test a clock step back does not break ordering."""
        first = self.store.create(sample_draft)
        self.now = self.now - timedelta(seconds=5)

        second = self.store.create(sample_draft)

        assert second.created_at > first.created_at

    def test_get_missing(self):
        """Test unknown ids raise ReportNotFoundError."""
        with pytest.raises(ReportNotFoundError):
            self.store.get(new_id())

    def test_delete_then_delete_again(self, sample_draft):
        """Test a second delete of the same id reports not found."""
        report = self.store.create(sample_draft)

        self.store.delete(report.id)

        with pytest.raises(ReportNotFoundError):
            self.store.delete(report.id)
        assert self.store.list() == []

    def test_update_status(self, sample_draft):
        """Test status is the mutable field."""
        report = self.store.create(sample_draft)

        updated = self.store.update_status(report.id, ReportStatus.IN_PROGRESS)

        assert updated.status == ReportStatus.IN_PROGRESS
        assert self.store.get(report.id).status == ReportStatus.IN_PROGRESS
        assert updated.analysis == report.analysis

    def test_update_status_missing(self):
        """Test status update of an unknown report."""
        with pytest.raises(ReportNotFoundError):
            self.store.update_status(new_id(), ReportStatus.RESOLVED)

    def test_insert_failure_wrapped(self, sample_draft):
        """Test backend failures surface as ReportCreationError."""

        class BrokenBackend(InMemoryBackend):
            def insert_report(self, report):
                raise RuntimeError("disk full")

        store = ReportStore(BrokenBackend())

        with pytest.raises(ReportCreationError):
            store.create(sample_draft)

    def test_routing_failure_wrapped(self, sample_draft):
        """Test router failures surface as ReportCreationError."""

        class BrokenRouter:
            def route(self, point, when=None):
                raise RuntimeError("index unavailable")

        store = ReportStore(InMemoryBackend(), router=BrokenRouter())

        with pytest.raises(ReportCreationError):
            store.create(sample_draft)
        assert store.list() == []

    def test_status(self, sample_draft):
        """Test connectivity and counts."""
        self.store.create(sample_draft)

        status = self.store.status()

        assert status["connected"] is True
        assert status["backend"] == "memory"
        assert status["collections"] == ["areas", "reports"]
        assert status["counts"] == {"reports": 1, "areas": 0}

    def test_initialize_idempotent(self):
        """Test repeated initialization is harmless."""
        assert self.store.initialize() == self.store.initialize()


class TestAreaStore:
    """Test suite for area registration."""

    def setup_method(self):
        """Setup test fixtures."""
        self.store = AreaStore()

    def test_create_and_list(self, san_francisco_ring):
        """Test registered areas are listed."""
        area = self.store.create("San Francisco", san_francisco_ring)

        assert [a.id for a in self.store.list()] == [area.id]
        assert area.is_active

    def test_create_invalid_ring(self):
        """Test rings with fewer than three vertices are rejected."""
        with pytest.raises(ValueError):
            self.store.create("Line", [Coordinates(0, 0), Coordinates(1, 1)])

    def test_set_active(self, san_francisco_ring):
        """Test deactivation."""
        area = self.store.create("San Francisco", san_francisco_ring)

        updated = self.store.set_active(area.id, False)

        assert updated.is_active is False
        assert self.store.get(area.id).is_active is False

    def test_delete_missing(self):
        """Test deleting an unknown area."""
        with pytest.raises(AreaNotFoundError):
            self.store.delete(new_id())
