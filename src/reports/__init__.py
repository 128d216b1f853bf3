"""
AccessWatch - Reports Module
Barrier report model shared by the intake client and the server.

Import the store from ``src.reports.store`` directly.
"""

from src.reports.models import (
    AnalysisResult,
    Area,
    BarrierCategory,
    GeoMethod,
    MediaKind,
    MediaReference,
    Report,
    ReportDraft,
    ReportStatus,
    RoutingAssignment,
    Severity,
)

__all__ = [
    "AnalysisResult",
    "Area",
    "BarrierCategory",
    "GeoMethod",
    "MediaKind",
    "MediaReference",
    "Report",
    "ReportDraft",
    "ReportStatus",
    "RoutingAssignment",
    "Severity",
]
