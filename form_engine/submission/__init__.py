"""Form submission assembly and dispatch."""

from form_engine.submission.encounter import prepare_encounter
from form_engine.submission.errors import (
    AlreadyEnrolledError,
    EnrollmentTransitionError,
    MultipleActiveEnrollmentsError,
    ProgramEnrollmentError,
    SubmissionError,
)
from form_engine.submission.identifiers import prepare_patient_identifiers
from form_engine.submission.manager import EncounterFormManager, SubmissionResult
from form_engine.submission.obs import construct_obs, prepare_obs, void_obs
from form_engine.submission.orders import prepare_orders
from form_engine.submission.programs import (
    EnrollmentAction,
    EnrollmentPlan,
    ProgramEnrollmentReconciler,
    find_active_enrollment,
    get_patient_programs,
    plan_program_enrollment,
    prepare_program_enrollment,
)

__all__ = [
    "AlreadyEnrolledError",
    "EncounterFormManager",
    "EnrollmentAction",
    "EnrollmentPlan",
    "EnrollmentTransitionError",
    "MultipleActiveEnrollmentsError",
    "ProgramEnrollmentError",
    "ProgramEnrollmentReconciler",
    "SubmissionError",
    "SubmissionResult",
    "construct_obs",
    "find_active_enrollment",
    "get_patient_programs",
    "plan_program_enrollment",
    "prepare_encounter",
    "prepare_obs",
    "prepare_orders",
    "prepare_patient_identifiers",
    "prepare_program_enrollment",
    "void_obs",
]
