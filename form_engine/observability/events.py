"""Structured events for submission telemetry."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of submission events."""

    PERSIST_START = "persist_start"
    PERSIST_SUCCESS = "persist_success"
    PERSIST_ERROR = "persist_error"
    PERSIST_CANCELLED = "persist_cancelled"
    ENCOUNTER_ASSEMBLED = "encounter_assembled"
    ENROLLMENT_PLANNED = "enrollment_planned"


class ResourceKind(str, Enum):
    """Backend resources a submission writes."""

    ENCOUNTER = "encounter"
    ATTACHMENT = "attachment"
    PATIENT_IDENTIFIER = "patient_identifier"
    PROGRAM_ENROLLMENT = "program_enrollment"


class SubmissionEvent(BaseModel):
    """One telemetry record for a submission step."""

    event_type: EventType
    resource: ResourceKind
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None
    request_id: Optional[str] = None
    patient_uuid: Optional[str] = None
    resource_uuid: Optional[str] = None
    duration_ms: Optional[float] = None

    # Error fields (populated on error)
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    metadata: dict[str, Any] = Field(default_factory=dict)
