"""Pytest configuration.

Settings are read from the environment at import time, so safe defaults are
set here before anything from `analyst` is imported. No test talks to the
real LLM provider: generators are replaced with fakes.
"""
import os

os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("ANALYSIS_MAX_WORKERS", "4")
os.environ.setdefault("JOB_RETENTION_HOURS", "24")
os.environ.pop("GROQ_API_KEY", None)

import threading
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from analyst.models.incident import IncidentSnapshot
from analyst.services import audit_service
from analyst.services.report_generator import GeneratedReport, ReportGenerationError


SAMPLE_LOG = (
    "2024-05-01T10:00:01Z ERROR payment-api charge failed for user jane.doe@example.com\n"
    "2024-05-01T10:00:02Z WARN  upstream 10.20.30.40 timed out after 30000ms\n"
    "2024-05-01T10:00:03Z ERROR card 4111111111111111 declined, callback 555-123-4567\n"
)


def build_snapshot(**overrides) -> IncidentSnapshot:
    now = datetime.now(timezone.utc)
    data = {
        "incidentId": str(uuid4()),
        "title": "Checkout failures in payment-api",
        "description": "Customers could not complete checkout for 20 minutes.",
        "severity": "SEV2",
        "logContent": SAMPLE_LOG,
        "incidentStartTime": (now - timedelta(hours=1)).isoformat(),
        "createdAt": now.isoformat(),
        "serviceName": "payment-api",
        "environment": "production",
        "region": "eu-west-1",
    }
    data.update(overrides)
    return IncidentSnapshot.model_validate(data)


@pytest.fixture
def make_snapshot():
    return build_snapshot


class FakeReportGenerator:
    """Stands in for ReportGenerator. Records what it was sent."""

    def __init__(self, markdown: str = "# Postmortem\n\nAll good.", error: Exception | None = None):
        self.markdown = markdown
        self.error = error
        self.calls: list[tuple[IncidentSnapshot, str]] = []
        self._lock = threading.Lock()

    def generate(self, snapshot: IncidentSnapshot, sanitized_logs: str) -> GeneratedReport:
        with self._lock:
            self.calls.append((snapshot, sanitized_logs))
        if self.error is not None:
            raise self.error
        return GeneratedReport(markdown=self.markdown, model="fake-model", usage={"total_tokens": 42})


@pytest.fixture
def fake_generator():
    return FakeReportGenerator()


@pytest.fixture
def failing_generator():
    return FakeReportGenerator(error=ReportGenerationError("Report generation request failed: APITimeoutError: Request timed out."))


@pytest.fixture(autouse=True)
def _clean_audit_trail():
    audit_service.clear()
    yield
    audit_service.clear()


@pytest.fixture
def make_generator():
    return FakeReportGenerator


@pytest.fixture
def make_payload():
    """camelCase request body, as a client would post it."""
    def _build(**overrides) -> dict:
        payload = build_snapshot().model_dump(mode="json", by_alias=True)
        payload.update(overrides)
        return payload
    return _build
