"""Payload models produced by assembly and returned by the record backend.

Every model tolerates extra keys: existing encounters and enrollments arrive
as full server representations and must survive a copy-and-resubmit intact.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ConfigDict, Field

from form_engine.models.base import CamelModel, Reference, ResourceRef, ref_uuid


# ── Encounter graph ──────────────────────────────────────────────────────────


class Observation(CamelModel):
    """A single clinical data point, or a group of them."""

    model_config = ConfigDict(extra="allow")

    uuid: Optional[str] = None
    concept: Optional[Reference] = None
    value: Any = None
    obs_datetime: Optional[str] = None
    form_field_namespace: Optional[str] = None
    form_field_path: Optional[str] = None
    group_members: Optional[list[Observation]] = None
    voided: Optional[bool] = None

    @property
    def is_void(self) -> bool:
        return bool(self.voided)


class Order(CamelModel):
    """A test order; voided orders are identified by uuid."""

    model_config = ConfigDict(extra="allow")

    uuid: Optional[str] = None
    type: str = "testorder"
    action: Optional[str] = None
    concept: Optional[Reference] = None
    patient: Optional[Reference] = None
    encounter: Optional[Reference] = None
    orderer: Optional[Reference] = None
    care_setting: Optional[Reference] = None
    order_number: Optional[str] = None
    previous_order: Optional[Reference] = None
    voided: Optional[bool] = None


class EncounterProvider(CamelModel):
    model_config = ConfigDict(extra="allow")

    provider: Reference
    encounter_role: Optional[Reference] = None

    @property
    def provider_uuid(self) -> Optional[str]:
        return ref_uuid(self.provider)


class Encounter(CamelModel):
    """Encounter payload, or an existing encounter loaded from the backend."""

    model_config = ConfigDict(extra="allow")

    uuid: Optional[str] = None
    patient: Optional[Reference] = None
    encounter_datetime: Optional[str] = None
    location: Optional[Reference] = None
    encounter_type: Optional[Reference] = None
    encounter_providers: list[EncounterProvider] = Field(default_factory=list)
    obs: list[Observation] = Field(default_factory=list)
    orders: list[Order] = Field(default_factory=list)
    form: Optional[Reference] = None
    visit: Optional[Reference] = None

    @property
    def patient_uuid(self) -> Optional[str]:
        return ref_uuid(self.patient)

    def has_provider(self, provider_uuid: str) -> bool:
        return any(ep.provider_uuid == provider_uuid for ep in self.encounter_providers)


class Attachment(CamelModel):
    """A file stored against a patient (and optionally an encounter)."""

    model_config = ConfigDict(extra="allow")

    uuid: Optional[str] = None
    file_caption: Optional[str] = None
    bytes_content_family: Optional[str] = None
    date_time: Optional[str] = None


class AttachmentFile(CamelModel):
    """Value held by a file-rendered field before upload."""

    file_name: str
    content: bytes
    content_type: str = "application/octet-stream"
    caption: Optional[str] = None


# ── Patient identity ─────────────────────────────────────────────────────────


class PatientIdentifier(CamelModel):
    model_config = ConfigDict(extra="allow")

    uuid: Optional[str] = None
    identifier: Optional[str] = None
    identifier_type: Optional[Reference] = None
    location: Optional[Reference] = None
    preferred: Optional[bool] = None


# ── Program enrollment ───────────────────────────────────────────────────────


class ProgramState(CamelModel):
    model_config = ConfigDict(extra="allow")

    state: Optional[Reference] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ProgramEnrollment(CamelModel):
    """Enrollment payload built from a form submission."""

    uuid: Optional[str] = None
    patient: Optional[str] = None
    program: Optional[str] = None
    states: list[ProgramState] = Field(default_factory=list)
    date_enrolled: Optional[str] = None
    location: Optional[str] = None


class PatientProgram(CamelModel):
    """An existing enrollment as reported by the backend."""

    model_config = ConfigDict(extra="allow")

    uuid: str
    display: Optional[str] = None
    program: ResourceRef
    date_enrolled: Optional[str] = None
    date_completed: Optional[str] = None
    location: Optional[Reference] = None
    states: list[ProgramState] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.date_completed is None
