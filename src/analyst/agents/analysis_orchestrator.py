"""
Analysis orchestrator: submission, background execution and polling.

    submit(snapshot) ─► JobStore.create (QUEUED) ─► worker pool
                                                      │
        mark_processing ─► sanitize(log) ─► ReportGenerator.generate
                                                      │
                          mark_completed  /  mark_failed (any exception)

The pool is bounded: at most `max_workers` jobs run at once and the rest wait
in the executor queue. A job is owned end-to-end by the one task that runs
it, and every failure inside that task is folded into a FAILED record.
"""
import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import timedelta
from typing import Callable

from analyst.config import settings
from analyst.dao.job_store import JobStore
from analyst.models.incident import IncidentSnapshot
from analyst.models.job import AnalysisJob
from analyst.services.audit_service import log_event
from analyst.services.pii_sanitizer import SanitizationResult, sanitize
from analyst.services.report_generator import ReportGenerationError, ReportGenerator, get_report_generator

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


class JobSnapshotMissingError(RuntimeError):
    """A worker owns a job whose input snapshot is gone."""


def _failure_message(exc: Exception) -> str:
    text = str(exc).strip()
    if isinstance(exc, ReportGenerationError):
        message = text
    elif isinstance(exc, JobSnapshotMissingError):
        message = f"Internal error: {text}"
    else:
        message = f"{type(exc).__name__}: {text}" if text else type(exc).__name__
    return message[:MAX_ERROR_LENGTH]


class AnalysisOrchestrator:

    def __init__(
            self,
            store: JobStore | None = None,
            generator: ReportGenerator | None = None,
            sanitizer: Callable[[str], SanitizationResult] = sanitize,
            max_workers: int | None = None,
            retention: timedelta | None = None,
    ):
        self.store = store or JobStore()
        self._generator = generator
        self._sanitize = sanitizer
        self._retention = retention if retention is not None else timedelta(hours=settings.job_retention_hours)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.analysis_max_workers,
            thread_name_prefix="analysis-worker",
        )

    @property
    def generator(self) -> ReportGenerator:
        if self._generator is None:
            self._generator = get_report_generator()
        return self._generator

    # ── Entry point ───────────────────────────────────────────────────────────

    def submit(self, snapshot: IncidentSnapshot) -> uuid.UUID:
        """Create the job and hand it to the pool. Returns at once with the job id."""
        job_id = self.store.create(snapshot)
        log_event("ANALYSIS_SUBMITTED", "job", str(job_id),
                  detail={"incident_id": str(snapshot.incident_id), "severity": snapshot.severity.value})
        try:
            future = self._executor.submit(self._process_job, job_id)
        except RuntimeError as e:
            # Pool already shut down; the job must still end up terminal.
            logger.error("Could not schedule job %s: %s", job_id, e)
            self.store.mark_failed(job_id, "Analysis worker pool is not accepting jobs")
            return job_id
        future.add_done_callback(lambda f: self._on_task_done(job_id, f))
        return job_id

    # ── Background task ───────────────────────────────────────────────────────

    def _process_job(self, job_id: uuid.UUID) -> None:
        logger.info("Starting async analysis for job %s", job_id)
        try:
            self.store.mark_processing(job_id)

            snapshot = self.store.get_snapshot(job_id)
            if snapshot is None:
                raise JobSnapshotMissingError(f"input snapshot missing for job {job_id}")

            logger.debug("Sanitizing PII for job %s", job_id)
            result = self._sanitize(snapshot.log_content)

            logger.debug("Generating postmortem for job %s", job_id)
            report = self.generator.generate(snapshot, result.sanitized_text)

            self.store.mark_completed(job_id, report.markdown, result.total_masked_entities)
        except Exception as e:
            logger.exception("Analysis failed for job %s", job_id)
            message = _failure_message(e)
            self.store.mark_failed(job_id, message)
            self._audit("ANALYSIS_FAILED", job_id, {"error": message[:256]})
            return

        logger.info("Analysis completed for job %s. PII entities masked: %d", job_id, result.total_masked_entities)
        self._audit("ANALYSIS_COMPLETED", job_id, {
            "pii_entities_masked": result.total_masked_entities,
            "pii_categories"     : [c.value for c in result.detected_categories],
            "model"              : report.model,
        })

    def _audit(self, event_type: str, job_id: uuid.UUID, detail: dict) -> None:
        try:
            log_event(event_type, "job", str(job_id), detail=detail)
        except Exception as e:
            logger.error("Audit write %s failed for job %s: %s", event_type, job_id, e)

    def _on_task_done(self, job_id: uuid.UUID, future: Future) -> None:
        if future.cancelled():
            logger.warning("Analysis task for job %s was cancelled", job_id)
            self.store.mark_failed(job_id, "Analysis was cancelled before it started")
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Analysis task for job %s escaped with %s", job_id, type(exc).__name__)
            self.store.mark_failed(job_id, _failure_message(exc))

    # ── Polling / health / retention ──────────────────────────────────────────

    def get_result(self, job_id: uuid.UUID) -> AnalysisJob | None:
        return self.store.get(job_id)

    def health(self) -> dict:
        return {
            "status"    : "UP",
            "activeJobs": self.store.active_count(),
            "totalJobs" : self.store.total_count(),
        }

    def sweep_expired(self) -> int:
        removed = self.store.sweep_expired(self._retention)
        if removed:
            self._audit_sweep(removed)
        return removed

    def _audit_sweep(self, removed: int) -> None:
        try:
            log_event("JOBS_SWEPT", "retention", detail={"removed": removed,
                                                         "retention_hours": self._retention.total_seconds() / 3600})
        except Exception as e:
            logger.error("Audit write for retention sweep failed: %s", e)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting work. Queued jobs run to completion unless cancel_pending."""
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)


_orchestrator: AnalysisOrchestrator | None = None


def get_orchestrator() -> AnalysisOrchestrator:
    """Process-wide orchestrator. Also used as the FastAPI dependency."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator()
    return _orchestrator


def shutdown_orchestrator(wait: bool = True) -> None:
    global _orchestrator
    if _orchestrator is not None:
        _orchestrator.shutdown(wait=wait)
        _orchestrator = None
