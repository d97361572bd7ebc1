"""Errors raised while committing a submission."""

from __future__ import annotations

from typing import Any, Optional


class SubmissionError(Exception):
    """Base exception for submission errors."""

    pass


class ProgramEnrollmentError(SubmissionError):
    """Program enrollment could not be reconciled."""

    pass


class AlreadyEnrolledError(ProgramEnrollmentError):
    """New-encounter form tried to enroll a patient already actively enrolled."""

    def __init__(self, program_uuid: str):
        self.program_uuid = program_uuid
        super().__init__(f"Patient is already enrolled in program {program_uuid}")


class MultipleActiveEnrollmentsError(ProgramEnrollmentError):
    """More than one open enrollment exists for the same program."""

    def __init__(self, program_uuid: str, enrollment_uuids: list[str]):
        self.program_uuid = program_uuid
        self.enrollment_uuids = enrollment_uuids
        super().__init__(
            f"Found {len(enrollment_uuids)} active enrollments in program {program_uuid}: "
            f"{', '.join(enrollment_uuids)}"
        )


class EnrollmentTransitionError(ProgramEnrollmentError):
    """The new enrollment failed after the previous one was already closed out.

    The close-out is not rolled back; ``closed_out`` holds what the backend
    returned for it so the caller can reconcile.
    """

    def __init__(self, program_uuid: str, closed_out: Optional[Any] = None):
        self.program_uuid = program_uuid
        self.closed_out = closed_out
        super().__init__(
            f"Closed out the previous enrollment in program {program_uuid} "
            "but failed to save the new enrollment"
        )
