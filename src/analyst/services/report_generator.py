"""
Report generator client. One chat-completions call per analysis job.
Groq exposes an OpenAI-compatible API, so ChatOpenAI is pointed at its base URL.

Every failure mode (missing key, network error, timeout, non-2xx, empty or
non-text body) surfaces as ReportGenerationError. No retry here: a failed
job is terminal and the caller resubmits.
"""
import logging
import threading
import time
from dataclasses import dataclass, field

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from analyst.config import settings
from analyst.models.incident import IncidentSnapshot
from analyst.postmortem_prompt import POSTMORTEM_SYSTEM_PROMPT, POSTMORTEM_USER_TEMPLATE

logger = logging.getLogger(__name__)

_POSTMORTEM_PROMPT = ChatPromptTemplate.from_messages([
    ("system", POSTMORTEM_SYSTEM_PROMPT),
    ("human", POSTMORTEM_USER_TEMPLATE),
])


class ReportGenerationError(Exception):
    """The provider could not produce a report for this request."""


@dataclass(frozen=True)
class GeneratedReport:
    markdown: str
    model: str
    usage: dict = field(default_factory=dict)   # input_tokens / output_tokens / total_tokens


def build_messages(snapshot: IncidentSnapshot, sanitized_logs: str) -> list:
    return _POSTMORTEM_PROMPT.format_messages(
        title=snapshot.title,
        severity=snapshot.severity.value,
        service_name=snapshot.service_name or "N/A",
        environment=snapshot.environment or "N/A",
        region=snapshot.region or "N/A",
        incident_start_time=snapshot.incident_start_time.isoformat(),
        description=snapshot.description,
        sanitized_logs=sanitized_logs,
    )


class ReportGenerator:
    """Wraps the chat model. The model is built on first use so a missing API key fails jobs, not startup."""

    def __init__(self, llm=None, model_name: str | None = None):
        self._llm = llm
        self._model_name = model_name or settings.groq_model
        self._lock = threading.Lock()

    def _get_llm(self):
        with self._lock:
            if self._llm is None:
                if not settings.groq_api_key:
                    raise ReportGenerationError("Report generator is not configured: GROQ_API_KEY is missing")
                self._llm = ChatOpenAI(
                    model=self._model_name,
                    temperature=settings.groq_temperature,
                    max_tokens=settings.groq_max_tokens,
                    timeout=settings.groq_timeout_seconds,
                    max_retries=settings.groq_max_retries,
                    api_key=settings.groq_api_key,
                    base_url=settings.groq_base_url,
                )
            return self._llm

    def generate(self, snapshot: IncidentSnapshot, sanitized_logs: str) -> GeneratedReport:
        """Generate the markdown postmortem. `sanitized_logs` must already be masked."""
        llm = self._get_llm()
        messages = build_messages(snapshot, sanitized_logs)

        started = time.perf_counter()
        try:
            response = llm.invoke(messages)
        except Exception as e:
            logger.error("Report generation call failed for incident %s: %s", snapshot.incident_id, type(e).__name__)
            raise ReportGenerationError(f"Report generation request failed: {type(e).__name__}: {e}") from e
        elapsed_ms = (time.perf_counter() - started) * 1000

        content = getattr(response, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise ReportGenerationError("Report generator returned an empty or malformed response")

        usage = dict(getattr(response, "usage_metadata", None) or {})
        logger.info(
            "Report generated for incident %s: model=%s latency=%.0fms tokens=%s",
            snapshot.incident_id, self._model_name, elapsed_ms, usage.get("total_tokens", "n/a"),
        )
        return GeneratedReport(markdown=content.strip(), model=self._model_name, usage=usage)


_generator: ReportGenerator | None = None


def get_report_generator() -> ReportGenerator:
    """Process-wide generator, built on first use."""
    global _generator
    if _generator is None:
        _generator = ReportGenerator()
    return _generator
