"""
AccessWatch - Intake Module
Client-side report intake: media, geolocation, analysis and submission.
"""

from src.intake.analysis_client import AnalysisClient, AnalysisError
from src.intake.analytics import Analytics
from src.intake.geolocation import (
    GeoFix,
    GeolocationError,
    GeolocationPolicy,
    StaticPositionProvider,
)
from src.intake.media import (
    MediaAsset,
    MediaFile,
    MediaHandle,
    MediaNormalizer,
    MediaValidationError,
    NormalizationError,
    heif_to_jpeg,
    is_proprietary_format,
    validate_media,
)
from src.intake.reports_client import ReportsClient, ReportSubmissionError
from src.intake.workflow import (
    IntakeTransitionError,
    IntakeWorkflow,
    Step,
    build_workflow,
)

__all__ = [
    "AnalysisClient",
    "AnalysisError",
    "Analytics",
    "GeoFix",
    "GeolocationError",
    "GeolocationPolicy",
    "StaticPositionProvider",
    "MediaAsset",
    "MediaFile",
    "MediaHandle",
    "MediaNormalizer",
    "MediaValidationError",
    "NormalizationError",
    "heif_to_jpeg",
    "is_proprietary_format",
    "validate_media",
    "ReportsClient",
    "ReportSubmissionError",
    "IntakeTransitionError",
    "IntakeWorkflow",
    "Step",
    "build_workflow",
]
