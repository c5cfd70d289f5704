from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditLog(BaseModel):
    """
    Insert-only audit record. Frozen so entries handed out by the
    audit trail cannot be altered after the fact.
    """
    model_config = ConfigDict(frozen=True)

    id         : int
    event_type : str                        # PII_MASKED, ANALYSIS_COMPLETED, etc.
    entity_type: str | None = None          # job | sanitizer | retention
    entity_id  : str | None = None
    actor      : str = "system"
    detail     : dict[str, Any] | None = None
    created_at : datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
