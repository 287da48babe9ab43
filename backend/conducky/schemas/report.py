import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ReportCreate(BaseModel):
    title: str
    description: str
    type: str
    location: str | None = None
    contact_preference: str | None = None
    incident_at: datetime | None = None
    parties: str | None = None


class ReportRead(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    reporter_id: uuid.UUID | None
    title: str
    description: str
    type: str
    state: str
    severity: str | None
    assigned_responder_id: uuid.UUID | None
    resolution: str | None
    location: str | None
    contact_preference: str
    incident_at: datetime | None
    parties: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportStateChange(BaseModel):
    state: str
    notes: str | None = None
    assigned_responder_id: uuid.UUID | None = None


class ReportAssignment(BaseModel):
    assigned_responder_id: uuid.UUID | None = None


class ReportTriageUpdate(BaseModel):
    severity: str | None = None
    resolution: str | None = None


class ReportFieldsUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    type: str | None = None
    location: str | None = None
    contact_preference: str | None = None
    incident_at: datetime | None = None
    parties: str | None = None


class StateHistoryRead(BaseModel):
    id: uuid.UUID
    report_id: uuid.UUID
    from_state: str
    to_state: str
    changed_by: uuid.UUID | None
    changed_at: datetime
    notes: str | None

    model_config = ConfigDict(from_attributes=True)


class TransitionRead(BaseModel):
    report: ReportRead
    history_entry: StateHistoryRead
    allowed_transitions: list[str]


class WorkflowRead(BaseModel):
    state: str
    allowed_transitions: list[str]
    requirements: dict[str, dict[str, bool]]
