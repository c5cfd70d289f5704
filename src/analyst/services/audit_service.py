import itertools
import logging
import threading
from collections import deque

from analyst.config import settings
from analyst.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_ids = itertools.count(1)
_trail: deque[AuditLog] = deque(maxlen=settings.audit_log_capacity)


def log_event(
        event_type: str,
        entity_type: str | None = None,
        entity_id: str | None = None,
        actor: str = "system",
        detail: dict | None = None,
) -> AuditLog:
    """
    Central audit logging utility.
    Call this everywhere instead of building AuditLog() records inline.
    The trail is insert-only and bounded; the oldest entries fall off first.

    Usage:
        log_event("PII_MASKED", "sanitizer", detail={"categories": ["EMAIL"], "count": 2})
    """
    with _lock:
        entry = AuditLog(
            id=next(_ids),
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            detail=detail,
        )
        _trail.append(entry)
    logger.info("AUDIT [%s] entity=%s/%s actor=%s", event_type, entity_type, entity_id, actor)
    return entry


def list_events(
        event_type: str | None = None,
        entity_id: str | None = None,
        limit: int = 50,
) -> list[AuditLog]:
    """Newest first, optionally filtered."""
    with _lock:
        entries = list(_trail)
    entries.reverse()
    if event_type:
        entries = [e for e in entries if e.event_type == event_type]
    if entity_id:
        entries = [e for e in entries if e.entity_id == entity_id]
    return entries[:limit]


def clear() -> None:
    with _lock:
        _trail.clear()
