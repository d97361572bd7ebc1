"""Record backend interface and its error hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

from form_engine.models.fields import BaseFormField
from form_engine.models.payloads import (
    Attachment,
    Encounter,
    PatientIdentifier,
    PatientProgram,
    ProgramEnrollment,
)

if TYPE_CHECKING:
    from form_engine.api.cancellation import CancellationToken


class BackendError(Exception):
    """Base exception for record backend errors."""

    pass


class BackendConnectionError(BackendError):
    """Connection to the backend failed."""

    pass


class BackendTimeoutError(BackendError):
    """Backend request timed out."""

    pass


class BackendResponseError(BackendError):
    """Backend rejected the request."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Backend responded {status_code}: {body[:200]}")


class RequestCancelledError(BackendError):
    """The caller's cancellation handle fired before the request finished."""

    pass


class RecordBackend(Protocol):
    """Persistence collaborator for assembled payloads.

    Each call is one cancellable unit of work scoped to the handle passed in.
    """

    async def save_encounter(
        self,
        cancellation: CancellationToken,
        encounter: Encounter,
        encounter_uuid: Optional[str] = None,
    ) -> Encounter: ...

    async def save_attachment(
        self,
        patient_uuid: str,
        field: BaseFormField,
        concept_uuid: Optional[str],
        timestamp: str,
        encounter_uuid: Optional[str],
        cancellation: CancellationToken,
    ) -> Attachment: ...

    async def save_patient_identifier(
        self,
        identifier: PatientIdentifier,
        patient_uuid: str,
    ) -> PatientIdentifier: ...

    async def save_program_enrollment(
        self,
        enrollment: ProgramEnrollment,
        cancellation: CancellationToken,
    ) -> PatientProgram: ...

    async def get_patient_enrolled_programs(self, patient_uuid: str) -> list[PatientProgram]: ...
