# analyst/models/incident.py
import enum
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class Severity(str, enum.Enum):
    SEV1 = "SEV1"   # critical outage
    SEV2 = "SEV2"   # major degradation
    SEV3 = "SEV3"   # partial impact
    SEV4 = "SEV4"   # minor issue
    SEV5 = "SEV5"   # informational


class IncidentSnapshot(BaseModel):
    """
    Immutable copy of the incident submitted for analysis.
    Wire format is camelCase (incidentId, logContent, ...); Python code uses snake_case.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    incident_id        : UUID
    title              : str
    description        : str
    severity           : Severity = Severity.SEV3
    log_content        : str
    incident_start_time: datetime
    created_at         : datetime

    # Optional context, improves RCA quality
    service_name: str | None = None
    environment : str | None = None   # production | staging | dev
    region      : str | None = None

    @field_validator("title", "description", "log_content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value):
        if isinstance(value, Severity):
            return value
        try:
            return Severity(str(value).strip().upper())
        except ValueError:
            return Severity.SEV3
