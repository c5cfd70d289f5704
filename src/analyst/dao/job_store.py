"""
In-memory job store for analysis jobs.

Polling is by id, so this is a flat dict rather than a queue. Every transition
reads the current record, builds a new frozen AnalysisJob and stores it under
the same key while holding the lock, so a reader sees either the old or the
new record and never a partial one. Each job has exactly one writer (the
worker task that owns it); the lock only makes the dict operations atomic.
"""
import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable

from analyst.models.incident import IncidentSnapshot
from analyst.models.job import AnalysisJob, JobStatus, utcnow

logger = logging.getLogger(__name__)


class JobStore:

    def __init__(self):
        self._jobs: dict[uuid.UUID, AnalysisJob] = {}
        self._lock = threading.Lock()

    # ── Writes ────────────────────────────────────────────────────────────────

    def create(self, snapshot: IncidentSnapshot) -> uuid.UUID:
        """Insert a QUEUED job for `snapshot` and return its fresh id."""
        job = AnalysisJob(incident_id=snapshot.incident_id, snapshot=snapshot)
        with self._lock:
            while job.job_id in self._jobs:
                job = job.model_copy(update={"job_id": uuid.uuid4()})
            self._jobs[job.job_id] = job
        logger.info("Created analysis job %s for incident %s", job.job_id, job.incident_id)
        return job.job_id

    def mark_processing(self, job_id: uuid.UUID) -> None:
        def _apply(job: AnalysisJob) -> AnalysisJob:
            logger.info("Job %s status changed: %s -> PROCESSING", job_id, job.status.value)
            return job.model_copy(update={"status": JobStatus.PROCESSING})
        self._replace(job_id, _apply)

    def mark_completed(self, job_id: uuid.UUID, markdown_report: str, pii_entities_masked: int) -> None:
        def _apply(job: AnalysisJob) -> AnalysisJob:
            logger.info("Job %s completed successfully for incident %s", job_id, job.incident_id)
            return job.model_copy(update={
                "status"             : JobStatus.COMPLETED,
                "markdown_report"    : markdown_report,
                "error_message"      : None,
                "completed_at"       : utcnow(),
                "pii_entities_masked": pii_entities_masked,
            })
        self._replace(job_id, _apply)

    def mark_failed(self, job_id: uuid.UUID, error_message: str) -> None:
        def _apply(job: AnalysisJob) -> AnalysisJob:
            logger.error("Job %s failed for incident %s: %s", job_id, job.incident_id, error_message)
            return job.model_copy(update={
                "status"             : JobStatus.FAILED,
                "markdown_report"    : None,
                "error_message"      : error_message,
                "completed_at"       : utcnow(),
                "pii_entities_masked": 0,
            })
        self._replace(job_id, _apply)

    def _replace(self, job_id: uuid.UUID, apply: Callable[[AnalysisJob], AnalysisJob]) -> None:
        """Read-modify-write under the lock. Unknown ids and terminal jobs are a no-op."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.warning("Transition requested for unknown job %s, ignoring", job_id)
                return
            if job.status.is_terminal:
                logger.warning("Job %s is already %s, ignoring transition", job_id, job.status.value)
                return
            self._jobs[job_id] = apply(job)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get(self, job_id: uuid.UUID) -> AnalysisJob | None:
        return self._jobs.get(job_id)

    def get_snapshot(self, job_id: uuid.UUID) -> IncidentSnapshot | None:
        job = self._jobs.get(job_id)
        return job.snapshot if job is not None else None

    def exists(self, job_id: uuid.UUID) -> bool:
        return job_id in self._jobs

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for job in self._jobs.values() if not job.status.is_terminal)

    def total_count(self) -> int:
        return len(self._jobs)

    # ── Retention ─────────────────────────────────────────────────────────────

    def sweep_expired(self, retention: timedelta, now: datetime | None = None) -> int:
        """
        Drop terminal jobs created before now - retention. QUEUED and
        PROCESSING jobs stay regardless of age. Returns the number removed.
        """
        cutoff = (now or utcnow()) - retention
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.status.is_terminal and job.created_at < cutoff
            ]
            for job_id in expired:
                del self._jobs[job_id]

        if expired:
            logger.info("Cleanup: removed %d old jobs (retention: %s)", len(expired), retention)
        return len(expired)
