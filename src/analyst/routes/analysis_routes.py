"""
Analysis API routes.
POST /api/analysis/jobs           submit an incident for analysis (202, returns job id)
GET  /api/analysis/jobs/{job_id}  poll status / fetch the markdown report
GET  /api/analysis/health         active and total job counts
"""
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException

from analyst.agents.analysis_orchestrator import AnalysisOrchestrator, get_orchestrator
from analyst.models.incident import IncidentSnapshot
from analyst.models.job import AnalysisJob, JobStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analysis", tags=["Analysis"])


def _serialize_job(job: AnalysisJob) -> dict:
    return {
        "jobId"            : str(job.job_id),
        "incidentId"       : str(job.incident_id),
        "status"           : job.status.value,
        "markdownReport"   : job.markdown_report,
        "errorMessage"     : job.error_message,
        "createdAt"        : job.created_at.isoformat(),
        "completedAt"      : job.completed_at.isoformat() if job.completed_at else None,
        "piiEntitiesMasked": job.pii_entities_masked,
    }


@router.post("/jobs", status_code=202)
def submit_analysis_job(
    snapshot    : IncidentSnapshot,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Queue the analysis and return immediately. Validation errors never create a job."""
    logger.info("Received analysis request for incident %s", snapshot.incident_id)
    job_id = orchestrator.submit(snapshot)
    return {
        "jobId"  : str(job_id),
        "status" : JobStatus.QUEUED.value,
        "message": f"Analysis job queued successfully. Poll /api/analysis/jobs/{job_id} for results.",
    }


@router.get("/jobs/{job_id}")
def get_job_result(job_id: str, orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    """Poll job progress. Cheap and idempotent; callers poll every few seconds."""
    try:
        parsed_id = uuid.UUID(job_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Job not found")

    job = orchestrator.get_result(parsed_id)
    if job is None:
        logger.warning("Job not found: %s", job_id)
        raise HTTPException(status_code=404, detail="Job not found")
    return _serialize_job(job)


@router.get("/health")
def analysis_health(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return orchestrator.health()
