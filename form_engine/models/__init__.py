"""Data models for form submission."""

from form_engine.models.base import CamelModel, Reference, ResourceRef, ref_uuid
from form_engine.models.context import EncounterContext, Patient, SessionMode
from form_engine.models.fields import (
    BaseFormField,
    ContextField,
    FieldMeta,
    FormField,
    ObsField,
    ObsGroupField,
    OrderField,
    OtherField,
    PatientIdentifierField,
    ProgramStateField,
    QuestionOptions,
    Submission,
    parse_fields,
)
from form_engine.models.payloads import (
    Attachment,
    AttachmentFile,
    Encounter,
    EncounterProvider,
    Observation,
    Order,
    PatientIdentifier,
    PatientProgram,
    ProgramEnrollment,
    ProgramState,
)

__all__ = [
    "Attachment",
    "AttachmentFile",
    "BaseFormField",
    "CamelModel",
    "ContextField",
    "Encounter",
    "EncounterContext",
    "EncounterProvider",
    "FieldMeta",
    "FormField",
    "ObsField",
    "ObsGroupField",
    "Observation",
    "Order",
    "OrderField",
    "OtherField",
    "Patient",
    "PatientIdentifier",
    "PatientIdentifierField",
    "PatientProgram",
    "ProgramEnrollment",
    "ProgramState",
    "ProgramStateField",
    "QuestionOptions",
    "Reference",
    "ResourceRef",
    "SessionMode",
    "Submission",
    "parse_fields",
    "ref_uuid",
]
