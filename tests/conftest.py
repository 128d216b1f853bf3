"""
Pytest configuration and fixtures
"""
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.geo_utils import Coordinates
from src.reports.models import (
    AnalysisResult,
    Area,
    BarrierCategory,
    GeoMethod,
    MediaKind,
    MediaReference,
    ReportDraft,
    Severity,
)


@pytest.fixture
def san_francisco_ring():
    """Rough box around central San Francisco."""
    return [
        Coordinates(37.70, -122.52),
        Coordinates(37.70, -122.35),
        Coordinates(37.83, -122.35),
        Coordinates(37.83, -122.52),
    ]


@pytest.fixture
def mission_ring():
    """Small box inside the San Francisco ring."""
    return [
        Coordinates(37.76, -122.43),
        Coordinates(37.76, -122.40),
        Coordinates(37.79, -122.40),
        Coordinates(37.79, -122.43),
    ]


@pytest.fixture
def san_francisco_area(san_francisco_ring):
    """Active San Francisco area."""
    return Area(
        id="a" * 32,
        name="San Francisco",
        ring=tuple(san_francisco_ring),
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_analysis():
    """Classifier judgment for a blocked sidewalk."""
    return AnalysisResult(
        category=BarrierCategory.BLOCKED_SIDEWALK,
        severity=Severity.HIGH,
        summary="Construction fence blocks the full sidewalk width",
        confidence=0.92,
    )


@pytest.fixture
def sample_media():
    """Media reference for an uploaded photo."""
    return MediaReference(
        kind=MediaKind.IMAGE,
        url="file:///tmp/accesswatch-sidewalk.jpg",
        file_name="sidewalk.jpg",
        file_size=204800,
    )


@pytest.fixture
def sample_draft(sample_media, sample_analysis):
    """Report draft located in San Francisco."""
    return ReportDraft(
        coordinates=Coordinates(37.7749, -122.4194),
        media=sample_media,
        analysis=sample_analysis,
        geo_method=GeoMethod.AUTO,
    )


@pytest.fixture
def sample_payload(sample_draft):
    """JSON body of POST /api/reports."""
    return sample_draft.to_payload()


class FixedClock:
    """Deterministic clock returning the same instant until advanced."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def fixed_clock():
    return FixedClock()
