"""Program enrollment reconciliation.

Builds the enrollment payload from program-state fields and decides, from the
session mode and the patient's existing enrollments, what to persist:

    mode   active enrollment   action
    enter  yes                 AlreadyEnrolledError, nothing persisted
    enter  no                  enroll
    edit   yes                 transition: close out the active one, then enroll
    edit   no                  enroll
    view   any                 nothing

The edit transition is two sequential backend calls with no transaction
around them. If the second fails the first has already taken effect; the
caller gets an EnrollmentTransitionError carrying the close-out result and
owns any compensation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from form_engine.api.base import RecordBackend
from form_engine.api.cancellation import CancellationToken
from form_engine.models.context import EncounterContext, Patient, SessionMode
from form_engine.models.fields import BaseFormField, ProgramStateField
from form_engine.models.payloads import PatientProgram, ProgramEnrollment
from form_engine.observability import ResourceKind, SubmissionLogger, get_submission_logger
from form_engine.submission.dates import now_canonical, to_canonical_datetime
from form_engine.submission.errors import (
    AlreadyEnrolledError,
    EnrollmentTransitionError,
    MultipleActiveEnrollmentsError,
)

logger = logging.getLogger(__name__)


class EnrollmentAction(str, Enum):
    NONE = "none"
    ENROLL = "enroll"
    TRANSITION = "transition"


@dataclass(frozen=True)
class EnrollmentPlan:
    """What to persist, in order."""

    action: EnrollmentAction
    payloads: tuple[ProgramEnrollment, ...] = ()


def get_patient_programs(
    patient_programs: Sequence[PatientProgram], program_uuid: str
) -> list[PatientProgram]:
    """All enrollments, active or completed, in one program."""
    return [p for p in patient_programs if p.program.uuid == program_uuid]


def find_active_enrollment(
    patient_programs: Sequence[PatientProgram], program_uuid: str
) -> Optional[PatientProgram]:
    active = [p for p in get_patient_programs(patient_programs, program_uuid) if p.is_active]
    if len(active) > 1:
        raise MultipleActiveEnrollmentsError(program_uuid, [p.uuid for p in active])
    return active[0] if active else None


def prepare_program_enrollment(
    fields: Sequence[BaseFormField],
    encounter_location: str,
    patient: Patient,
    context: EncounterContext,
) -> ProgramEnrollment:
    states = [
        field.meta.submission.new_value
        for field in fields
        if isinstance(field, ProgramStateField)
        and field.has_submission
        and field.meta.submission.new_value is not None
    ]
    completion_field = next(
        (field for field in fields if field.question_options.is_program_completion), None
    )
    completion_date = completion_field.value if completion_field is not None else None

    date_enrolled = None
    if completion_date:
        try:
            date_enrolled = to_canonical_datetime(completion_date)
        except (TypeError, ValueError):
            logger.warning(
                f"Ignoring unparseable completion date {completion_date!r} on field {completion_field.id}"
            )

    return ProgramEnrollment(
        patient=patient.id,
        program=context.program_uuid,
        states=states,
        date_enrolled=date_enrolled,
        location=encounter_location,
    )


def plan_program_enrollment(
    payload: ProgramEnrollment,
    session_mode: SessionMode,
    patient_programs: Sequence[PatientProgram],
    now: Optional[datetime] = None,
) -> EnrollmentPlan:
    """Decide what to persist for *payload*. Pure; the payload is not mutated."""
    if session_mode == SessionMode.VIEW or not payload.program:
        return EnrollmentPlan(EnrollmentAction.NONE)

    active = find_active_enrollment(patient_programs, payload.program)

    if active is None:
        enrollment = payload.model_copy(deep=True)
        if enrollment.date_enrolled is None:
            enrollment.date_enrolled = now_canonical(now)
        return EnrollmentPlan(EnrollmentAction.ENROLL, (enrollment,))

    if session_mode == SessionMode.ENTER:
        raise AlreadyEnrolledError(payload.program)

    transition_at = payload.date_enrolled or now_canonical(now)

    close_out = payload.model_copy(deep=True)
    close_out.uuid = active.uuid
    if close_out.date_enrolled is None:
        close_out.date_enrolled = active.date_enrolled
    # only the first state is closed; further entries ride along unchanged
    if close_out.states:
        close_out.states[0].end_date = transition_at

    new_enrollment = ProgramEnrollment(
        patient=payload.patient,
        program=payload.program,
        states=[state.model_copy(update={"end_date": None}) for state in payload.states],
        date_enrolled=transition_at,
        location=payload.location,
    )
    return EnrollmentPlan(EnrollmentAction.TRANSITION, (close_out, new_enrollment))


class ProgramEnrollmentReconciler:
    """Plans and commits program enrollment for one submission."""

    def __init__(
        self,
        backend: RecordBackend,
        submission_logger: Optional[SubmissionLogger] = None,
        clock: Callable[[], Optional[datetime]] = lambda: None,
    ) -> None:
        self.backend = backend
        self.submission_logger = submission_logger or get_submission_logger()
        self.clock = clock

    async def reconcile(
        self,
        payload: ProgramEnrollment,
        session_mode: SessionMode,
        patient_programs: Sequence[PatientProgram],
        cancellation: Optional[CancellationToken] = None,
    ) -> list[PatientProgram]:
        """Persist whatever the plan calls for and return the saved enrollments."""
        try:
            plan = plan_program_enrollment(payload, session_mode, patient_programs, self.clock())
        except AlreadyEnrolledError:
            logger.warning(
                f"Patient {payload.patient} already enrolled in {payload.program}; not enrolling"
            )
            raise

        self.submission_logger.log_enrollment_planned(
            patient_uuid=payload.patient,
            program_uuid=payload.program,
            action=plan.action.value,
            session_mode=session_mode.value,
        )

        if plan.action == EnrollmentAction.NONE:
            return []

        cancellation = cancellation or CancellationToken()

        if plan.action == EnrollmentAction.ENROLL:
            return [await self._save(plan.payloads[0], cancellation, step="enroll")]

        close_out, new_enrollment = plan.payloads
        closed = await self._save(close_out, cancellation, step="close_out")
        try:
            opened = await self._save(new_enrollment, cancellation, step="re_enroll")
        except Exception as e:
            logger.error(
                f"Enrollment {close_out.uuid} was closed out but re-enrollment in "
                f"{payload.program} failed: {e}"
            )
            raise EnrollmentTransitionError(payload.program, closed_out=closed) from e
        return [closed, opened]

    async def _save(
        self,
        enrollment: ProgramEnrollment,
        cancellation: CancellationToken,
        step: str,
    ) -> PatientProgram:
        with self.submission_logger.persist_call(
            ResourceKind.PROGRAM_ENROLLMENT,
            patient_uuid=enrollment.patient,
            resource_uuid=enrollment.uuid,
            step=step,
        ) as event:
            saved = await self.backend.save_program_enrollment(enrollment, cancellation)
            event.resource_uuid = getattr(saved, "uuid", None)
        return saved
