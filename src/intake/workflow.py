"""
Intake workflow for barrier reports

Drives one draft report through media selection, HEIC conversion,
geolocation, automated analysis and review. The current step and the data
valid for it are a single tagged state value, so combinations such as
"analyzing without media" cannot be represented.

Steps: select -> [converting] -> location -> analyzing -> review -> closed

Async calls (conversion, geolocation, analysis, submission) are tied to a
draft generation. Selecting a new file, going back to select or cancelling
starts a new generation, and results of calls from an older generation are
dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, ClassVar, Optional, Union

from src.core.config import settings
from src.core.constants import (
    MSG_ANALYSIS_FAILED,
    MSG_CONVERSION_FAILED,
    MSG_SUBMISSION_FAILED,
)
from src.core.geo_utils import Coordinates
from src.intake.analysis_client import AnalysisClient, MediaAnalyzer
from src.intake.analytics import Analytics
from src.intake.geolocation import GeoFix, GeolocationPolicy, PositionProvider
from src.intake.media import (
    MediaAsset,
    MediaFile,
    MediaNormalizer,
    MediaValidationError,
    NormalizationError,
)
from src.intake.reports_client import ReportsClient
from src.reports.models import AnalysisResult, GeoMethod, Report, ReportDraft

logger = logging.getLogger(__name__)

SubmitReport = Callable[[ReportDraft], Awaitable[Report]]


class Step(str, Enum):
    """Named workflow steps."""
    SELECT = "select"
    CONVERTING = "converting"
    LOCATION = "location"
    ANALYZING = "analyzing"
    REVIEW = "review"
    CLOSED = "closed"


class IntakeTransitionError(Exception):
    """The requested transition is not allowed from the current state."""


@dataclass(frozen=True)
class Selecting:
    step: ClassVar[Step] = Step.SELECT


@dataclass(frozen=True)
class Converting:
    source: MediaFile
    step: ClassVar[Step] = Step.CONVERTING


@dataclass(frozen=True)
class Locating:
    """
    Reporter is positioning the barrier on the map.

    ``fix_pending`` is set while the automatic fix is outstanding.
    ``pending_initial_fix`` is set after a successful fix until the map
    reports the recenter that the fix itself caused.
    """
    media: MediaAsset
    coordinates: Optional[Coordinates] = None
    geo_method: GeoMethod = GeoMethod.AUTO
    geo_warning: Optional[str] = None
    fix_pending: bool = False
    pending_initial_fix: bool = False
    step: ClassVar[Step] = Step.LOCATION

    @property
    def can_confirm(self) -> bool:
        return self.coordinates is not None


@dataclass(frozen=True)
class Analyzing:
    media: MediaAsset
    coordinates: Coordinates
    geo_method: GeoMethod
    step: ClassVar[Step] = Step.ANALYZING


@dataclass(frozen=True)
class Reviewing:
    media: MediaAsset
    coordinates: Coordinates
    geo_method: GeoMethod
    analysis: AnalysisResult
    step: ClassVar[Step] = Step.REVIEW

    def to_draft(self) -> ReportDraft:
        return ReportDraft(
            coordinates=self.coordinates,
            media=self.media.to_reference(),
            analysis=self.analysis,
            geo_method=self.geo_method,
        )


@dataclass(frozen=True)
class Closed:
    step: ClassVar[Step] = Step.CLOSED


IntakeState = Union[Selecting, Converting, Locating, Analyzing, Reviewing, Closed]


class IntakeWorkflow:
    """
    State machine for one report draft.

    All adapter failures are turned into an advisory (``error`` or the
    location warning) and every failure path ends on a named state.
    """

    def __init__(
        self,
        analyzer: MediaAnalyzer,
        submit_report: SubmitReport,
        normalizer: Optional[MediaNormalizer] = None,
        geolocation: Optional[GeolocationPolicy] = None,
        analytics: Optional[Analytics] = None
    ):
        """
        Initialize workflow.

        Args:
            analyzer: Classifier capability for normalized media
            submit_report: Report-creation boundary
            normalizer: Media validation and conversion
            geolocation: Automatic position policy
            analytics: Event side channel
        """
        self.analyzer = analyzer
        self.submit_report = submit_report
        self.normalizer = normalizer or MediaNormalizer()
        self.geolocation = geolocation or GeolocationPolicy()
        self.analytics = analytics or Analytics()

        self.error: Optional[str] = None
        self._state: IntakeState = Selecting()
        self._generation = 0
        self._submitting = False

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> IntakeState:
        return self._state

    @property
    def step(self) -> Step:
        return self._state.step

    @property
    def can_confirm_location(self) -> bool:
        return isinstance(self._state, Locating) and self._state.can_confirm

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def _set_state(self, state: IntakeState) -> None:
        if state.step is not self._state.step:
            logger.debug(f"Intake step {self._state.step.value} -> {state.step.value}")
        self._state = state

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _reset(self) -> None:
        """Drop the draft, release its media and ignore in-flight calls."""
        media = getattr(self._state, "media", None)
        if media is not None:
            media.release()
        self._generation += 1
        self.error = None
        self._set_state(Selecting())

    # -- transitions -------------------------------------------------------

    def open(self) -> IntakeState:
        """Start a new draft after the workflow was closed."""
        if isinstance(self._state, Closed):
            self.error = None
            self._set_state(Selecting())
        return self._state

    async def select_file(self, file: MediaFile) -> IntakeState:
        """
        Take a new media selection.

        Invalid files leave the state untouched and set ``error``. A valid
        file replaces any draft in progress, is converted when needed and
        moves the workflow to the location step, where one automatic
        position fix is attempted.
        """
        if isinstance(self._state, Closed):
            raise IntakeTransitionError("Workflow is closed")

        try:
            kind = self.normalizer.validate(file)
        except MediaValidationError as e:
            logger.info(f"Rejected {file.name}: {e}")
            self.error = str(e)
            return self._state

        self._reset()
        generation = self._generation
        normalized = False

        if self.normalizer.needs_conversion(file):
            self._set_state(Converting(source=file))
            try:
                file = await asyncio.to_thread(self.normalizer.normalize, file)
            except NormalizationError:
                if not self._is_stale(generation):
                    self.error = MSG_CONVERSION_FAILED
                    self._set_state(Selecting())
                return self._state
            if self._is_stale(generation):
                return self._state
            normalized = True

        asset = self.normalizer.prepare(file, normalized=normalized)
        self.analytics.media_selected(kind.value)
        self._set_state(Locating(media=asset, fix_pending=True))

        fix = await self.geolocation.resolve()
        if self._is_stale(generation):
            return self._state

        self._apply_fix(fix)
        return self._state

    def _apply_fix(self, fix: GeoFix) -> None:
        state = self._state
        if not isinstance(state, Locating):
            return

        if state.geo_method is GeoMethod.MANUAL and state.coordinates is not None:
            # The reporter placed the pin before the fix arrived
            self._set_state(replace(state, fix_pending=False))
            return

        if fix.succeeded:
            self._set_state(replace(
                state,
                coordinates=fix.coordinates,
                geo_method=GeoMethod.AUTO,
                geo_warning=None,
                fix_pending=False,
                pending_initial_fix=True,
            ))
        else:
            self._set_state(replace(
                state,
                geo_method=GeoMethod.MANUAL,
                geo_warning=fix.advisory,
                fix_pending=False,
                pending_initial_fix=False,
            ))

    def reposition(self, coordinates: Coordinates) -> IntakeState:
        """
        Handle a map recenter while on the location step.

        The first recenter after a successful automatic fix is the map
        following that fix and keeps the method auto. Every other recenter
        is a manual edit.
        """
        state = self._state
        if not isinstance(state, Locating):
            logger.debug(f"Ignoring reposition during {state.step.value}")
            return state

        if state.pending_initial_fix:
            self._set_state(replace(
                state,
                coordinates=coordinates,
                geo_warning=None,
                pending_initial_fix=False,
            ))
        else:
            self._set_state(replace(
                state,
                coordinates=coordinates,
                geo_method=GeoMethod.MANUAL,
                geo_warning=None,
            ))
        return self._state

    async def confirm_location(self) -> IntakeState:
        """
        Run the analysis for the current media and location.

        On failure the workflow returns to the location step with media and
        coordinates intact so the reporter can retry.

        Raises:
            IntakeTransitionError: not on the location step or no coordinates
        """
        state = self._state
        if not isinstance(state, Locating):
            raise IntakeTransitionError(f"Cannot confirm location during {state.step.value}")
        if not state.can_confirm:
            raise IntakeTransitionError("Set a location before confirming")

        generation = self._generation
        media, coordinates, geo_method = state.media, state.coordinates, state.geo_method

        self.error = None
        self._set_state(Analyzing(media=media, coordinates=coordinates, geo_method=geo_method))

        try:
            analysis = await self.analyzer.analyze(media.file)
        except Exception as e:
            if self._is_stale(generation):
                return self._state
            logger.warning(f"Analysis of {media.file.name} failed: {e}")
            self.error = MSG_ANALYSIS_FAILED
            self._set_state(Locating(media=media, coordinates=coordinates, geo_method=geo_method))
            return self._state

        if self._is_stale(generation):
            return self._state

        self._set_state(Reviewing(
            media=media,
            coordinates=coordinates,
            geo_method=geo_method,
            analysis=analysis,
        ))
        self.analytics.ai_result_shown(
            analysis.category.value,
            analysis.severity.value,
            analysis.confidence,
            geo_method.value,
        )
        return self._state

    def back_to_location(self) -> IntakeState:
        """Return from review to re-pick the location, keeping the media."""
        state = self._state
        if not isinstance(state, Reviewing):
            raise IntakeTransitionError(f"Cannot go back to location during {state.step.value}")

        self.error = None
        self._set_state(Locating(
            media=state.media,
            coordinates=state.coordinates,
            geo_method=state.geo_method,
        ))
        return self._state

    def back_to_select(self) -> IntakeState:
        """Leave the location step, discarding the media and coordinates."""
        state = self._state
        if not isinstance(state, Locating):
            raise IntakeTransitionError(f"Cannot go back to select during {state.step.value}")

        self._reset()
        return self._state

    async def submit(self) -> Optional[Report]:
        """
        Hand the reviewed draft to the report-creation boundary and close.

        Returns:
            The created Report, or None if the submission failed (the
            workflow then stays on review with ``error`` set)

        Raises:
            IntakeTransitionError: not on review, or a submission is in flight
        """
        state = self._state
        if not isinstance(state, Reviewing):
            raise IntakeTransitionError(f"Cannot submit during {state.step.value}")
        if self._submitting:
            raise IntakeTransitionError("A submission is already in progress")

        generation = self._generation
        draft = state.to_draft()

        self.error = None
        self._submitting = True
        try:
            report = await self.submit_report(draft)
        except Exception as e:
            logger.warning(f"Report submission failed: {e}")
            if not self._is_stale(generation):
                self.error = MSG_SUBMISSION_FAILED
            return None
        finally:
            self._submitting = False

        if not self._is_stale(generation):
            self._reset()
            self._set_state(Closed())

        logger.info(f"Report {report.id} submitted")
        return report

    def cancel(self) -> IntakeState:
        """Dismiss the workflow from any step, releasing held media."""
        self._reset()
        self._set_state(Closed())
        return self._state


def build_workflow(
    analysis_client: Optional[AnalysisClient] = None,
    reports_client: Optional[ReportsClient] = None,
    position_provider: Optional[PositionProvider] = None,
    analytics: Optional[Analytics] = None
) -> IntakeWorkflow:
    """
    Wire a workflow to the HTTP clients using application settings.

    Clients that are not passed in are created against ``api_base_url``.
    """
    if analysis_client is None:
        analysis_client = AnalysisClient(
            settings.api_base_url, timeout=settings.analysis_timeout_seconds
        )
    if reports_client is None:
        reports_client = ReportsClient(settings.api_base_url)

    return IntakeWorkflow(
        analyzer=analysis_client,
        submit_report=reports_client.add_report,
        normalizer=MediaNormalizer(
            quality=settings.jpeg_quality,
            max_bytes=settings.max_upload_bytes,
        ),
        geolocation=GeolocationPolicy(
            provider=position_provider,
            timeout=settings.geolocation_timeout_seconds,
        ),
        analytics=analytics,
    )
