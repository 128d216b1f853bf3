"""
Tests for the analysis client and the remote classifier
"""
import asyncio
import pytest

import httpx

import sys
sys.path.insert(0, '.')

from src.analysis.classifier import ClassificationError, RemoteClassifier
from src.intake.analysis_client import AnalysisClient, AnalysisError
from src.intake.media import MediaFile
from src.reports.models import BarrierCategory, Severity

VALID_BODY = {
    "category": "missing_curb_ramp",
    "severity": "medium",
    "summary": "Corner has a raised curb with no ramp",
    "confidence": 0.81,
}


def analyze(handler):
    async def run():
        async with AnalysisClient("http://api.test", transport=httpx.MockTransport(handler)) as client:
            return await client.analyze(MediaFile("corner.jpg", "image/jpeg", b"jpeg"))

    return asyncio.run(run())


class TestAnalysisClient:
    """Test suite for the /api/analyze client."""

    def test_success(self):
        """Test a valid answer becomes an AnalysisResult."""
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, json=VALID_BODY)

        result = analyze(handler)

        assert seen["path"] == "/api/analyze"
        assert b'name="file"' in seen["body"]
        assert b"corner.jpg" in seen["body"]
        assert result.category == BarrierCategory.MISSING_CURB_RAMP
        assert result.severity == Severity.MEDIUM
        assert result.confidence == 0.81

    def test_server_error(self):
        """Test non-2xx answers raise AnalysisError."""
        with pytest.raises(AnalysisError):
            analyze(lambda request: httpx.Response(500, json={"error": "boom"}))

    def test_transport_error(self):
        """Test network failures raise AnalysisError."""
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(AnalysisError):
            analyze(handler)

    def test_malformed_body(self):
        """Test bodies outside the schema raise AnalysisError."""
        with pytest.raises(AnalysisError):
            analyze(lambda request: httpx.Response(200, json={"category": "other"}))

    def test_not_json(self):
        """Test non-JSON bodies raise AnalysisError."""
        with pytest.raises(AnalysisError):
            analyze(lambda request: httpx.Response(200, text="<html>"))


class TestRemoteClassifier:
    """Test suite for the server-side classifier proxy."""

    def classify(self, handler, api_key=None):
        async def run():
            async with RemoteClassifier(
                "http://model.test/classify",
                api_key=api_key,
                transport=httpx.MockTransport(handler),
            ) as classifier:
                return await classifier.classify(b"jpeg", "ramp.jpg", "image/jpeg")

        return asyncio.run(run())

    def test_requires_endpoint(self):
        """Test an empty endpoint is rejected."""
        with pytest.raises(ValueError):
            RemoteClassifier("")

    def test_success_with_auth(self):
        """Test the bearer token is sent and the answer parsed."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=VALID_BODY)

        result = self.classify(handler, api_key="secret")

        assert seen["auth"] == "Bearer secret"
        assert result.category == BarrierCategory.MISSING_CURB_RAMP

    def test_no_auth_header_without_key(self):
        """Test no Authorization header when no key is configured."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=VALID_BODY)

        self.classify(handler)

        assert seen["auth"] is None

    def test_upstream_failure(self):
        """Test upstream errors raise ClassificationError."""
        with pytest.raises(ClassificationError):
            self.classify(lambda request: httpx.Response(503))

    def test_confidence_out_of_range(self):
        """Test invalid confidence raises ClassificationError."""
        body = dict(VALID_BODY, confidence=3)

        with pytest.raises(ClassificationError):
            self.classify(lambda request: httpx.Response(200, json=body))
