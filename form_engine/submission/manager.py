"""Root of form submission: prepares payloads and dispatches them to the backend."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from form_engine.api.base import RecordBackend
from form_engine.api.cancellation import CancellationToken
from form_engine.models.base import Reference, ref_uuid
from form_engine.models.context import EncounterContext, Patient, SessionMode
from form_engine.models.fields import FILE_RENDERING, BaseFormField
from form_engine.models.payloads import (
    Attachment,
    Encounter,
    PatientIdentifier,
    PatientProgram,
    ProgramEnrollment,
)
from form_engine.observability import ResourceKind, SubmissionLogger, get_submission_logger
from form_engine.submission.encounter import prepare_encounter
from form_engine.submission.identifiers import prepare_patient_identifiers
from form_engine.submission.programs import (
    ProgramEnrollmentReconciler,
    prepare_program_enrollment,
)

logger = logging.getLogger(__name__)


class SubmissionResult(BaseModel):
    """Everything the backend returned for one form submission."""

    encounter: Optional[Encounter] = None
    attachments: list[Attachment] = Field(default_factory=list)
    identifiers: list[PatientIdentifier] = Field(default_factory=list)
    enrollments: list[PatientProgram] = Field(default_factory=list)


class EncounterFormManager:
    """Prepares submission payloads from a field tree and saves them.

    The ``prepare_*`` methods are pure; the ``save_*`` methods each issue
    independent backend calls and surface failures to the caller unchanged.
    """

    def __init__(
        self,
        backend: RecordBackend,
        submission_logger: Optional[SubmissionLogger] = None,
    ) -> None:
        self.backend = backend
        self.submission_logger = submission_logger or get_submission_logger()
        self.reconciler = ProgramEnrollmentReconciler(backend, self.submission_logger)

    # ------------------------------------------------------------------
    # Payload preparation
    # ------------------------------------------------------------------

    @staticmethod
    def prepare_patient_identifiers(fields: Sequence[BaseFormField]) -> list[PatientIdentifier]:
        return prepare_patient_identifiers(fields)

    @staticmethod
    def prepare_encounter(
        fields: Sequence[BaseFormField],
        context: EncounterContext,
        encounter_role: Optional[Reference],
        visit: Optional[Reference],
        encounter_type: str,
        form_uuid: str,
    ) -> Encounter:
        return prepare_encounter(fields, context, encounter_role, visit, encounter_type, form_uuid)

    @staticmethod
    def prepare_program_enrollment(
        fields: Sequence[BaseFormField],
        encounter_location: str,
        patient: Patient,
        context: EncounterContext,
    ) -> ProgramEnrollment:
        return prepare_program_enrollment(fields, encounter_location, patient, context)

    # ------------------------------------------------------------------
    # Persistence dispatch
    # ------------------------------------------------------------------

    async def save_encounter(
        self, encounter: Encounter, cancellation: CancellationToken
    ) -> Encounter:
        with self.submission_logger.persist_call(
            ResourceKind.ENCOUNTER,
            patient_uuid=encounter.patient_uuid,
            resource_uuid=encounter.uuid,
        ) as event:
            saved = await self.backend.save_encounter(cancellation, encounter, encounter.uuid)
            event.resource_uuid = saved.uuid
        return saved

    async def save_attachments(
        self,
        fields: Sequence[BaseFormField],
        encounter: Encounter,
        cancellation: CancellationToken,
    ) -> list[Attachment]:
        """Upload every file field's value concurrently, one call per field.

        File-rendered fields without a value (nothing picked) are skipped and
        produce no backend call.
        """
        file_fields = [
            field for field in fields if field.has_rendering(FILE_RENDERING) and field.value
        ]
        if not file_fields:
            return []

        patient_uuid = encounter.patient_uuid
        timestamp = datetime.now(timezone.utc).isoformat()
        return list(
            await asyncio.gather(
                *(
                    self._save_attachment(field, patient_uuid, timestamp, encounter.uuid, cancellation)
                    for field in file_fields
                )
            )
        )

    async def _save_attachment(
        self,
        field: BaseFormField,
        patient_uuid: str,
        timestamp: str,
        encounter_uuid: Optional[str],
        cancellation: CancellationToken,
    ) -> Attachment:
        with self.submission_logger.persist_call(
            ResourceKind.ATTACHMENT, patient_uuid=patient_uuid, field_id=field.id
        ) as event:
            saved = await self.backend.save_attachment(
                patient_uuid,
                field,
                ref_uuid(field.question_options.concept),
                timestamp,
                encounter_uuid,
                cancellation,
            )
            event.resource_uuid = saved.uuid
        return saved

    async def save_patient_identifiers(
        self, patient: Patient, identifiers: Sequence[PatientIdentifier]
    ) -> list[PatientIdentifier]:
        return list(
            await asyncio.gather(
                *(self._save_identifier(patient.id, identifier) for identifier in identifiers)
            )
        )

    async def _save_identifier(
        self, patient_uuid: str, identifier: PatientIdentifier
    ) -> PatientIdentifier:
        with self.submission_logger.persist_call(
            ResourceKind.PATIENT_IDENTIFIER,
            patient_uuid=patient_uuid,
            resource_uuid=identifier.uuid,
        ) as event:
            saved = await self.backend.save_patient_identifier(identifier, patient_uuid)
            event.resource_uuid = saved.uuid
        return saved

    async def save_program_enrollments(
        self,
        payload: ProgramEnrollment,
        session_mode: SessionMode,
        patient_programs: Sequence[PatientProgram],
        cancellation: Optional[CancellationToken] = None,
    ) -> list[PatientProgram]:
        return await self.reconciler.reconcile(payload, session_mode, patient_programs, cancellation)

    # ------------------------------------------------------------------
    # Full submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        fields: Sequence[BaseFormField],
        context: EncounterContext,
        encounter_role: Optional[Reference],
        visit: Optional[Reference],
        encounter_type: str,
        form_uuid: str,
        patient_programs: Sequence[PatientProgram] = (),
        cancellation: Optional[CancellationToken] = None,
    ) -> SubmissionResult:
        """Persist a whole form: identifiers, enrollment, encounter, then attachments.

        Steps run in order and stop at the first failure; earlier steps are
        not rolled back.
        """
        result = SubmissionResult()
        if context.session_mode == SessionMode.VIEW:
            logger.info("Form opened in view mode; nothing to submit")
            return result

        cancellation = cancellation or CancellationToken()

        identifiers = self.prepare_patient_identifiers(fields)
        if identifiers:
            result.identifiers = await self.save_patient_identifiers(context.patient, identifiers)

        if context.program_uuid:
            enrollment = self.prepare_program_enrollment(
                fields, context.location.uuid, context.patient, context
            )
            result.enrollments = await self.save_program_enrollments(
                enrollment, context.session_mode, patient_programs, cancellation
            )

        encounter = self.prepare_encounter(
            fields, context, encounter_role, visit, encounter_type, form_uuid
        )
        self.submission_logger.log_encounter_assembled(
            patient_uuid=context.patient.id,
            encounter_uuid=encounter.uuid,
            obs_count=len(encounter.obs),
            order_count=len(encounter.orders),
            voided_count=sum(1 for obs in encounter.obs if obs.is_void),
        )
        result.encounter = await self.save_encounter(encounter, cancellation)
        result.attachments = await self.save_attachments(fields, result.encounter, cancellation)

        logger.info(
            f"Submitted encounter {result.encounter.uuid} for patient {context.patient.id}: "
            f"{len(encounter.obs)} obs, {len(encounter.orders)} orders, "
            f"{len(result.attachments)} attachments"
        )
        return result
