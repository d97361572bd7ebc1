"""Patient identifier assembly."""

from __future__ import annotations

from typing import Sequence

from form_engine.models.fields import BaseFormField, PatientIdentifierField
from form_engine.models.payloads import PatientIdentifier


def prepare_patient_identifiers(fields: Sequence[BaseFormField]) -> list[PatientIdentifier]:
    """Submitted identifier values; identifiers are never voided from a form."""
    return [
        field.meta.submission.new_value
        for field in fields
        if isinstance(field, PatientIdentifierField)
        and field.has_submission
        and field.meta.submission.new_value is not None
    ]
