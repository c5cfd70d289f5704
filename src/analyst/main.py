import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from apscheduler.schedulers.background import BackgroundScheduler
from analyst.config import settings
from analyst.agents.analysis_orchestrator import get_orchestrator, shutdown_orchestrator
from analyst.routes.analysis_routes import router as analysis_router
from analyst.routes.audit_routes import router as audit_router
import uvicorn

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _sweep_expired_jobs():
    """Retention sweep, run by APScheduler on a fixed interval."""
    try:
        removed = get_orchestrator().sweep_expired()
        logger.debug("[Scheduler] Retention sweep removed %d jobs", removed)
    except Exception as e:
        logger.error("[Scheduler] Retention sweep failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    get_orchestrator()
    logger.info("Analysis worker pool ready (%d workers)", settings.analysis_max_workers)
    scheduler.add_job(
        _sweep_expired_jobs,
        trigger="interval",
        minutes=settings.job_sweep_interval_minutes,
        id="sweep_expired_jobs",
        name="Analysis job retention sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("APScheduler started, %d jobs registered", len(scheduler.get_jobs()))
    yield
    # Shutdown
    scheduler.shutdown(wait=False)
    logger.info("APScheduler stopped")
    shutdown_orchestrator(wait=True)
    logger.info("Analysis worker pool stopped")


app = FastAPI(
    title="Incident Analyst",
    description="PII-safe AI postmortem generation for incident logs",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(analysis_router)
app.include_router(audit_router)


@app.get("/health")
def health():
    return {"status": "ok", "scheduler_jobs": len(scheduler.get_jobs())}


def start():
    """Entry point for the `analyst` console script"""
    uvicorn.run("analyst.main:app", host=settings.app_host, port=settings.app_port, reload=settings.debug)
