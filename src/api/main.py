"""
AccessWatch - REST API

FastAPI application for accessibility barrier reports: media analysis,
report creation with area routing, and database initialization.

Run with: uvicorn src.api.main:app --reload
"""

import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.analysis.classifier import ClassificationError, RemoteClassifier
from src.core.config import settings
from src.core.geo_utils import Coordinates
from src.core.logging import setup_logging
from src.intake.media import MediaFile, media_kind_of
from src.reports.models import (
    AnalysisResult,
    BarrierCategory,
    GeoMethod,
    MediaKind,
    MediaReference,
    ReportDraft,
    ReportStatus,
    Severity,
)
from src.reports.store import (
    AreaNotFoundError,
    AreaStore,
    InMemoryBackend,
    ReportCreationError,
    ReportNotFoundError,
    ReportStore,
    StorageBackend,
)

VERSION = "0.1.0"
AREA_ID_PATTERN = re.compile(r"[0-9a-f]{32}")

logger = setup_logging()

# FastAPI app
app = FastAPI(
    title="AccessWatch",
    description="Accessibility barrier reporting API with automated classification and area routing",
    version=VERSION,
    debug=settings.debug,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pydantic Models
# ============================================================================

class ApiModel(BaseModel):
    """Base model with camelCase field names on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CoordinatesModel(ApiModel):
    """Latitude-first coordinate pair."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class AnalysisModel(ApiModel):
    """Classifier judgment."""
    category: BarrierCategory
    severity: Severity
    summary: str
    confidence: float = Field(..., ge=0, le=1)


class RoutingModel(ApiModel):
    """Area assignment of a report."""
    assigned_area_id: str
    matched_by: str
    matched_at: str


class ReportCreateRequest(ApiModel):
    """Request to create a barrier report."""
    coordinates: CoordinatesModel
    media_url: str
    media_type: MediaKind
    file_name: str
    file_size: int = Field(..., ge=0)
    analysis: AnalysisModel
    geo_method: GeoMethod

    def to_draft(self) -> ReportDraft:
        return ReportDraft(
            coordinates=Coordinates(self.coordinates.lat, self.coordinates.lng),
            media=MediaReference(
                kind=self.media_type,
                url=self.media_url,
                file_name=self.file_name,
                file_size=self.file_size,
            ),
            analysis=AnalysisResult(
                category=self.analysis.category,
                severity=self.analysis.severity,
                summary=self.analysis.summary,
                confidence=self.analysis.confidence,
            ),
            geo_method=self.geo_method,
        )


class ReportResponse(ApiModel):
    """Barrier report."""
    id: str
    created_at: str
    coordinates: CoordinatesModel
    media_url: str
    media_type: MediaKind
    file_name: str
    file_size: int
    analysis: AnalysisModel
    geo_method: GeoMethod
    status: ReportStatus
    routing: Optional[RoutingModel] = None


class ReportStatusRequest(ApiModel):
    """Request to change a report's status."""
    status: ReportStatus


class AreaCreateRequest(ApiModel):
    """Request to register an administrative area."""
    name: str = Field(..., min_length=1)
    polygon: List[CoordinatesModel] = Field(..., min_length=3)
    is_active: bool = True


class AreaResponse(ApiModel):
    """Administrative area."""
    id: str
    name: str
    polygon: List[CoordinatesModel]
    is_active: bool
    created_at: str


class SuccessResponse(ApiModel):
    success: bool


class HealthResponse(ApiModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    backend: str


# ============================================================================
# Dependencies
# ============================================================================

@lru_cache()
def get_backend() -> StorageBackend:
    """Shared storage backend: PostGIS when a database URL is set."""
    if settings.database_url:
        from src.database.connection import get_db
        from src.database.repository import SqlBackend

        return SqlBackend(get_db())
    return InMemoryBackend()


@lru_cache()
def get_report_store() -> ReportStore:
    return ReportStore(get_backend())


@lru_cache()
def get_area_store() -> AreaStore:
    return AreaStore(get_backend())


@lru_cache()
def get_classifier() -> Optional[RemoteClassifier]:
    """Remote classifier, or None when no endpoint is configured."""
    if not settings.classifier_url:
        return None
    return RemoteClassifier(
        settings.classifier_url,
        api_key=settings.classifier_api_key,
        timeout=settings.classifier_timeout_seconds,
    )


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(backend: StorageBackend = Depends(get_backend)):
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        backend=backend.name,
    )


@app.post("/api/db/init", tags=["System"])
def initialize_database(store: ReportStore = Depends(get_report_store)):
    """Ensure required indexes exist. Safe to call repeatedly."""
    try:
        indexes = store.initialize()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to initialize database")

    return {
        "success": True,
        "backend": store.backend.name,
        "indexes": indexes,
    }


@app.get("/api/db/init", tags=["System"])
def database_status(store: ReportStore = Depends(get_report_store)):
    """Report connectivity and record counts for reports and areas."""
    status = store.status()
    if not status["connected"]:
        return JSONResponse(status_code=503, content=status)
    return status


# ============================================================================
# Analysis Routes
# ============================================================================

@app.post("/api/analyze", response_model=AnalysisModel, tags=["Analysis"])
async def analyze_media(
    file: UploadFile = File(...),
    classifier: Optional[RemoteClassifier] = Depends(get_classifier),
):
    """
    Classify an uploaded photo or video.

    Returns the barrier category, severity, summary and confidence.
    """
    if classifier is None:
        raise HTTPException(status_code=503, detail="Classifier not configured")

    name = file.filename or "upload"
    content_type = file.content_type or ""
    if media_kind_of(MediaFile(name, content_type, b"")) is None:
        raise HTTPException(status_code=400, detail="File must be an image or video")

    limit = settings.max_upload_bytes
    if file.size is not None and file.size > limit:
        raise HTTPException(status_code=413, detail="File too large")

    # One byte past the limit is enough to detect an oversized body
    media = MediaFile(name=name, content_type=content_type, content=await file.read(limit + 1))
    if media.size > limit:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        result = await classifier.classify(media.content, media.name, media.content_type)
    except ClassificationError as e:
        logger.error(f"Analysis failed for {media.name}: {e}")
        raise HTTPException(status_code=502, detail="Failed to analyze media")

    return result.to_dict()


# ============================================================================
# Report Routes
# ============================================================================

@app.get("/api/reports", response_model=List[ReportResponse], tags=["Reports"])
def list_reports(store: ReportStore = Depends(get_report_store)):
    """List all reports, newest first."""
    return [report.to_dict() for report in store.list()]


@app.post("/api/reports", response_model=ReportResponse, status_code=201, tags=["Reports"])
def create_report(
    request: ReportCreateRequest,
    store: ReportStore = Depends(get_report_store),
):
    """
    Create a barrier report.

    The report is routed to the smallest active area containing its
    location; ``routing`` is null when no area matches.
    """
    try:
        report = store.create(request.to_draft())
    except ReportCreationError:
        raise HTTPException(status_code=500, detail="Failed to create report")

    return report.to_dict()


@app.get("/api/reports/{report_id}", response_model=ReportResponse, tags=["Reports"])
def get_report(report_id: str, store: ReportStore = Depends(get_report_store)):
    """Get a single report."""
    try:
        return store.get(report_id).to_dict()
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")


@app.put("/api/reports/{report_id}/status", response_model=ReportResponse, tags=["Reports"])
def update_report_status(
    report_id: str,
    request: ReportStatusRequest,
    store: ReportStore = Depends(get_report_store),
):
    """Update report status (open, in_progress, resolved)."""
    try:
        return store.update_status(report_id, request.status).to_dict()
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")


@app.delete("/api/reports/{report_id}", response_model=SuccessResponse, tags=["Reports"])
def delete_report(report_id: str, store: ReportStore = Depends(get_report_store)):
    """Delete a report."""
    try:
        store.delete(report_id)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")

    return SuccessResponse(success=True)


# ============================================================================
# Area Routes
# ============================================================================

@app.get("/api/areas", response_model=List[AreaResponse], tags=["Areas"])
def list_areas(store: AreaStore = Depends(get_area_store)):
    """List registered administrative areas."""
    return [area.to_dict() for area in store.list()]


@app.post("/api/areas", response_model=AreaResponse, status_code=201, tags=["Areas"])
def create_area(
    request: AreaCreateRequest,
    store: AreaStore = Depends(get_area_store),
):
    """Register an administrative area from its boundary ring."""
    ring = [Coordinates(point.lat, point.lng) for point in request.polygon]
    try:
        area = store.create(request.name, ring, is_active=request.is_active)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid area polygon: {e}")

    return area.to_dict()


@app.delete("/api/areas/{area_id}", response_model=SuccessResponse, tags=["Areas"])
def delete_area(area_id: str, store: AreaStore = Depends(get_area_store)):
    """Delete an area. Reports already routed to it keep their assignment."""
    if not AREA_ID_PATTERN.fullmatch(area_id):
        raise HTTPException(status_code=400, detail="Invalid area ID")

    try:
        store.delete(area_id)
    except AreaNotFoundError:
        raise HTTPException(status_code=404, detail="Area not found")

    return SuccessResponse(success=True)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
