# GET /api/analysis/audit-log: privacy shield and job lifecycle audit trail
from fastapi import APIRouter, Query

from analyst.services.audit_service import list_events

router = APIRouter(prefix="/api/analysis", tags=["Audit"])


@router.get("/audit-log")
def get_audit_log(
    event_type: str | None = None,
    entity_id : str | None = None,
    limit     : int        = Query(50, ge=1, le=500),
):
    return [
        {
            "id"         : e.id,
            "timestamp"  : e.created_at.isoformat(),
            "actor"      : e.actor,
            "event_type" : e.event_type,
            "entity_type": e.entity_type,
            "entity_id"  : e.entity_id,
            "detail"     : e.detail,
        }
        for e in list_events(event_type=event_type, entity_id=entity_id, limit=limit)
    ]
