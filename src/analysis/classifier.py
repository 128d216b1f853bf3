"""
Barrier classifier client for AccessWatch

Forwards uploaded evidence media to the remote vision model that judges
barrier category and severity. The model itself is external; this module
only validates its answer against the AnalysisResult shape.
"""

import logging
from typing import Optional, Protocol

import httpx

from src.reports.models import AnalysisResult

logger = logging.getLogger(__name__)


class ClassificationError(Exception):
    """The remote model failed or returned an unusable judgment."""


class BarrierClassifier(Protocol):
    """Submit-and-classify capability used by ``POST /api/analyze``."""

    async def classify(
        self,
        content: bytes,
        file_name: str,
        content_type: str
    ) -> AnalysisResult:
        ...


class RemoteClassifier:
    """
    HTTP client for the remote barrier classification model.

    Usage:
        async with RemoteClassifier("https://model.example/classify") as classifier:
            result = await classifier.classify(data, "ramp.jpg", "image/jpeg")
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize classifier client.

        Args:
            endpoint: URL accepting a multipart ``file`` upload
            api_key: Bearer token for the model endpoint
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        if not endpoint:
            raise ValueError("Classifier endpoint is required")

        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    async def classify(
        self,
        content: bytes,
        file_name: str,
        content_type: str
    ) -> AnalysisResult:
        """
        Classify one media file.

        Args:
            content: Media bytes
            file_name: Original file name
            content_type: MIME type of the media

        Returns:
            AnalysisResult

        Raises:
            ClassificationError: transport failure, non-2xx answer or bad payload
        """
        logger.info(f"Classifying {file_name} ({content_type}, {len(content)} bytes)")

        try:
            response = await self._client.post(
                self.endpoint,
                files={"file": (file_name, content, content_type)},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Classifier request failed: {e}")
            raise ClassificationError("Classifier unreachable") from e

        if not response.is_success:
            logger.warning(f"Classifier returned HTTP {response.status_code}")
            raise ClassificationError(f"Classifier returned HTTP {response.status_code}")

        try:
            result = AnalysisResult.from_dict(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Classifier returned an invalid judgment: {e}")
            raise ClassificationError("Invalid classifier response") from e

        logger.info(
            f"Classified {file_name}: {result.category.value}/{result.severity.value} "
            f"({result.confidence:.2f})"
        )
        return result
