"""
Client for the AccessWatch reports API
Keeps a local newest-first list of reports in sync with the server
"""

import logging
from typing import List, Optional

import httpx

from src.reports.models import Report, ReportDraft

logger = logging.getLogger(__name__)


class ReportSubmissionError(Exception):
    """The server did not create the report."""


class ReportsClient:
    """
    Report list, creation and removal against ``/api/reports``.

    Usage:
        async with ReportsClient("http://localhost:8000") as client:
            await client.load()
            report = await client.add_report(draft)
    """

    REPORTS_PATH = "/api/reports"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize reports client.

        Args:
            base_url: AccessWatch API base URL
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

        self.reports: List[Report] = []
        self.is_loaded = False
        self.is_submitting = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _fetch(self) -> Optional[List[Report]]:
        try:
            response = await self._client.get(self.REPORTS_PATH)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch reports: {e}")
            return None

        if not response.is_success:
            logger.error(f"Failed to fetch reports: HTTP {response.status_code}")
            return None

        try:
            return [Report.from_dict(item) for item in response.json()]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to fetch reports: invalid body: {e}")
            return None

    async def load(self) -> List[Report]:
        """Initial load; marks the client loaded even when the fetch fails."""
        try:
            reports = await self._fetch()
            if reports is not None:
                self.reports = reports
        finally:
            self.is_loaded = True
        return self.reports

    async def refresh(self) -> List[Report]:
        """Replace the local list with the server's, keeping it on failure."""
        reports = await self._fetch()
        if reports is not None:
            self.reports = reports
        return self.reports

    async def add_report(self, draft: ReportDraft) -> Report:
        """
        Create a report and prepend it to the local list.

        Raises:
            ReportSubmissionError: request failed or the server refused it
        """
        self.is_submitting = True
        try:
            try:
                response = await self._client.post(self.REPORTS_PATH, json=draft.to_payload())
            except httpx.HTTPError as e:
                logger.error(f"Failed to add report: {e}")
                raise ReportSubmissionError("Failed to create report") from e

            if not response.is_success:
                logger.error(f"Failed to add report: HTTP {response.status_code}")
                raise ReportSubmissionError("Failed to create report")

            try:
                report = Report.from_dict(response.json())
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Failed to add report: invalid body: {e}")
                raise ReportSubmissionError("Failed to create report") from e
        finally:
            self.is_submitting = False

        self.reports = [report] + self.reports
        return report

    async def remove_report(self, report_id: str) -> bool:
        """
        Delete a report on the server and drop it locally.

        Returns:
            True if the server deleted it
        """
        try:
            response = await self._client.delete(f"{self.REPORTS_PATH}/{report_id}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to remove report: {e}")
            return False

        if not response.is_success:
            logger.warning(f"Report {report_id} not removed: HTTP {response.status_code}")
            return False

        self.reports = [r for r in self.reports if r.id != report_id]
        return True

    def clear(self) -> None:
        """Clear the local list only; nothing is deleted on the server."""
        self.reports = []
