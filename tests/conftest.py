"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from form_engine.models import (
    Attachment,
    Encounter,
    EncounterContext,
    Patient,
    PatientProgram,
    ResourceRef,
    SessionMode,
)
from form_engine.observability import SubmissionLogger

PATIENT_UUID = "pat-0001"
PROVIDER_UUID = "prov-0001"
LOCATION_UUID = "loc-0001"
PROGRAM_UUID = "prog-hiv"


@pytest.fixture
def submission_logger(tmp_path):
    """Submission logger writing to a temp directory."""
    return SubmissionLogger(log_dir=tmp_path / "logs", enabled=True)


@pytest.fixture
def patient():
    return Patient(id=PATIENT_UUID)


@pytest.fixture
def encounter_context(patient):
    """Context for a brand-new encounter."""
    return EncounterContext(
        patient=patient,
        encounter=None,
        encounter_date=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
        encounter_provider=PROVIDER_UUID,
        location=ResourceRef(uuid=LOCATION_UUID),
        session_mode=SessionMode.ENTER,
    )


@pytest.fixture
def existing_encounter():
    """An encounter as loaded from the backend for editing."""
    return Encounter.model_validate(
        {
            "uuid": "enc-0001",
            "patient": {"uuid": PATIENT_UUID, "display": "Jane Doe"},
            "encounterDatetime": "2024-02-01T08:00:00+00:00",
            "location": {"uuid": "loc-old"},
            "encounterType": {"uuid": "type-adult-return"},
            "encounterProviders": [
                {"provider": {"uuid": "prov-other"}, "encounterRole": {"uuid": "role-clinician"}},
            ],
            "obs": [{"uuid": "obs-old", "value": 1}],
            "form": {"uuid": "form-old"},
            "visit": {"uuid": "visit-old"},
        }
    )


@pytest.fixture
def mock_backend():
    """Record backend whose save calls echo back a uuid-stamped payload."""
    backend = MagicMock()

    async def _save_encounter(cancellation, encounter, encounter_uuid=None):
        return encounter.model_copy(update={"uuid": encounter_uuid or "enc-new"})

    async def _save_program_enrollment(enrollment, cancellation):
        return PatientProgram(
            uuid=enrollment.uuid or "enr-new",
            program=ResourceRef(uuid=enrollment.program),
            date_enrolled=enrollment.date_enrolled,
            states=enrollment.states,
        )

    async def _save_patient_identifier(identifier, patient_uuid):
        return identifier.model_copy(update={"uuid": identifier.uuid or f"id-{identifier.identifier}"})

    async def _save_attachment(patient_uuid, field, concept_uuid, timestamp, encounter_uuid, cancellation):
        return Attachment(uuid=f"att-{field.id}", file_caption=field.id)

    backend.save_encounter = AsyncMock(side_effect=_save_encounter)
    backend.save_program_enrollment = AsyncMock(side_effect=_save_program_enrollment)
    backend.save_patient_identifier = AsyncMock(side_effect=_save_patient_identifier)
    backend.save_attachment = AsyncMock(side_effect=_save_attachment)
    backend.get_patient_enrolled_programs = AsyncMock(return_value=[])
    return backend
