# analyst/models/job.py
import enum
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from analyst.models.incident import IncidentSnapshot


class JobStatus(str, enum.Enum):
    QUEUED     = "QUEUED"       # accepted, not started
    PROCESSING = "PROCESSING"   # sanitizing / waiting on the report generator
    COMPLETED  = "COMPLETED"    # report ready
    FAILED     = "FAILED"       # permanent failure, resubmit to retry

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisJob(BaseModel):
    """
    One analysis request and its lifecycle.
    Frozen: every transition publishes a new record via model_copy(update=...),
    readers never observe a half-built job.
    """
    model_config = ConfigDict(frozen=True)

    job_id             : uuid.UUID = Field(default_factory=uuid.uuid4)
    incident_id        : uuid.UUID
    snapshot           : IncidentSnapshot
    status             : JobStatus = JobStatus.QUEUED
    markdown_report    : str | None = None
    error_message      : str | None = None
    created_at         : datetime = Field(default_factory=utcnow)
    completed_at       : datetime | None = None
    pii_entities_masked: int = 0
