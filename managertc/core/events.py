"""
Domain events published to Kafka after successful mutations.

Every message is an ``EventEnvelope`` whose ``data`` is one of the payload
models below, dumped in JSON mode.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from managertc.models.common import utcnow


class EventType(str, Enum):
    """All event types produced by the backend."""

    # Department Events
    DEPARTMENT_CREATED = "department.created"
    DEPARTMENT_UPDATED = "department.updated"
    DEPARTMENT_DELETED = "department.deleted"
    DEPARTMENT_REASSIGNED = "department.reassigned"

    # Policy Events
    POLICY_CREATED = "policy.created"
    POLICY_UPDATED = "policy.updated"
    POLICY_DELETED = "policy.deleted"

    # Job Events
    JOB_CREATED = "job.created"
    JOB_DELETED = "job.deleted"


class EventMetadata(BaseModel):
    """Metadata attached to every event for tracing and correlation."""

    source_service: str = "managertc-backend"
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))
    company_id: Optional[str] = None
    actor_user_id: Optional[str] = None
    actor_role: Optional[str] = None


class EventEnvelope(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())
    version: str = "1.0"
    data: dict[str, Any]
    metadata: EventMetadata = Field(default_factory=EventMetadata)


# Department Event Data Models


class DepartmentCreatedEvent(BaseModel):
    """Data for department.created event."""

    company_id: str
    department_id: int
    department: str
    status: str
    created_by: Optional[str] = None


class DepartmentUpdatedEvent(BaseModel):
    """Data for department.updated event."""

    company_id: str
    department_id: int
    department: str
    status: str
    previous_name: Optional[str] = None
    employees_renamed: int = 0
    updated_by: Optional[str] = None


class DepartmentDeletedEvent(BaseModel):
    company_id: str
    department_id: int
    department: str


class DepartmentReassignedEvent(BaseModel):
    """Data for department.reassigned event (source is deleted afterwards)."""

    company_id: str
    source_department_id: int
    target_department_id: int
    employees_reassigned: int
    designations_reassigned: int
    policies_reassigned: int


# Policy Event Data Models


class PolicyEvent(BaseModel):
    """Data for policy.created / policy.updated / policy.deleted events."""

    company_id: str
    policy_id: int
    policy_name: str
    apply_to_all: bool
    effective_date: Optional[datetime] = None
    department_ids: list[int] = Field(default_factory=list)


# Job Event Data Models


class JobEvent(BaseModel):
    """Data for job.created / job.deleted events."""

    company_id: str
    job_id: str
    title: str
    status: str
    category: Optional[str] = None


def create_event(
    event_type: EventType,
    data: BaseModel,
    actor_user_id: Optional[str] = None,
    actor_role: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> EventEnvelope:
    """Wrap ``data`` in an envelope; the tenant is lifted into metadata when present."""
    metadata = EventMetadata(
        company_id=getattr(data, "company_id", None),
        actor_user_id=actor_user_id,
        actor_role=actor_role,
    )
    if correlation_id:
        metadata.correlation_id = correlation_id
    return EventEnvelope(event_type=event_type, data=data.model_dump(mode="json"), metadata=metadata)
