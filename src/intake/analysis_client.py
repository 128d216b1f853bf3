"""
Client for the AccessWatch analysis endpoint
Uploads normalized media and returns the classifier judgment
"""

import logging
from typing import Optional, Protocol

import httpx

from src.intake.media import MediaFile
from src.reports.models import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Analysis request failed; there is no partial result."""


class MediaAnalyzer(Protocol):
    """Submit-and-classify capability used by the intake workflow."""

    async def analyze(self, media: MediaFile) -> AnalysisResult:
        ...


class AnalysisClient:
    """
    Uploads media to ``POST /api/analyze``.

    Any transport error, non-2xx status or malformed body is reported as
    AnalysisError. No retries; the reporter retries by confirming again.
    """

    ANALYZE_PATH = "/api/analyze"

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize analysis client.

        Args:
            base_url: AccessWatch API base URL
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def analyze(self, media: MediaFile) -> AnalysisResult:
        """
        Classify one media file.

        Raises:
            AnalysisError: the request failed in any way
        """
        try:
            response = await self._client.post(
                self.ANALYZE_PATH,
                files={"file": (media.name, media.content, media.content_type)},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Analysis request failed: {e}")
            raise AnalysisError("Analysis failed") from e

        if not response.is_success:
            logger.warning(f"Analysis returned HTTP {response.status_code}")
            raise AnalysisError("Analysis failed")

        try:
            return AnalysisResult.from_dict(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Analysis returned an invalid body: {e}")
            raise AnalysisError("Analysis failed") from e
