"""Form field tree as produced by the binding layer.

Fields form a tagged union keyed on ``type``. Assemblers select the variants
they handle by class; any type they do not read parses as ``OtherField`` and
contributes nothing to the submission.
"""

from __future__ import annotations

from typing import Annotated, Any, Generic, Literal, Optional, TypeVar, Union, get_args

from pydantic import ConfigDict, Discriminator, Field, Tag, TypeAdapter

from form_engine.models.base import CamelModel, Reference
from form_engine.models.payloads import Observation, Order, PatientIdentifier, ProgramState

ValueT = TypeVar("ValueT")

ObsValue = Union[Observation, list[Observation]]
OrderValue = Union[Order, list[Order]]

FILE_RENDERING = "file"


def is_present(value: Any) -> bool:
    """A value counts as present unless it is None or an empty list."""
    if value is None:
        return False
    if isinstance(value, list):
        return len(value) > 0
    return True


def as_list(value: Any) -> list:
    """Normalize an absent, single or list value to a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


class Submission(CamelModel, Generic[ValueT]):
    """Pending change written by the binding layer."""

    new_value: Optional[ValueT] = None
    voided_value: Optional[ValueT] = None

    @property
    def is_pending(self) -> bool:
        return is_present(self.new_value) or is_present(self.voided_value)


class FieldMeta(CamelModel, Generic[ValueT]):
    model_config = ConfigDict(extra="allow")

    submission: Optional[Submission[ValueT]] = None
    previous_value: Optional[ValueT] = None


class QuestionOptions(CamelModel):
    model_config = ConfigDict(extra="allow")

    rendering: Optional[str] = None
    concept: Optional[Reference] = None
    is_transient: bool = False
    is_program_completion: bool = False


class BaseFormField(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str
    label: Optional[str] = None
    is_hidden: bool = False
    is_parent_hidden: bool = False
    question_options: QuestionOptions = Field(default_factory=QuestionOptions)
    value: Any = None
    group_id: Optional[str] = None
    meta: FieldMeta[Any] = Field(default_factory=FieldMeta)

    @property
    def is_effectively_hidden(self) -> bool:
        return self.is_hidden or self.is_parent_hidden

    @property
    def is_group_member(self) -> bool:
        return self.group_id is not None

    @property
    def has_submission(self) -> bool:
        return self.meta.submission is not None and self.meta.submission.is_pending

    def has_rendering(self, rendering: str) -> bool:
        return self.question_options.rendering == rendering

    def previous_values(self) -> list:
        return as_list(self.meta.previous_value)


class ObsField(BaseFormField):
    type: Literal["obs"] = "obs"
    meta: FieldMeta[ObsValue] = Field(default_factory=FieldMeta[ObsValue])


class ObsGroupField(BaseFormField):
    type: Literal["obsGroup"] = "obsGroup"
    questions: list[FormField] = Field(default_factory=list)
    meta: FieldMeta[ObsValue] = Field(default_factory=FieldMeta[ObsValue])


class OrderField(BaseFormField):
    type: Literal["testOrder"] = "testOrder"
    meta: FieldMeta[OrderValue] = Field(default_factory=FieldMeta[OrderValue])


class PatientIdentifierField(BaseFormField):
    type: Literal["patientIdentifier"] = "patientIdentifier"
    meta: FieldMeta[PatientIdentifier] = Field(default_factory=FieldMeta[PatientIdentifier])


class ProgramStateField(BaseFormField):
    type: Literal["programState"] = "programState"
    meta: FieldMeta[ProgramState] = Field(default_factory=FieldMeta[ProgramState])


ContextFieldType = Literal[
    "encounterDatetime",
    "encounterLocation",
    "encounterProvider",
    "encounterRole",
    "markdown",
    "fixedValue",
]
CONTEXT_FIELD_TYPES = get_args(ContextFieldType)


class ContextField(BaseFormField):
    """Fields that feed the encounter context or only render."""

    type: ContextFieldType


class OtherField(BaseFormField):
    """Any field type the assemblers do not read (controls, diagnoses, launchers)."""

    type: str


_SUBMITTABLE_FIELD_TYPES = ("obs", "obsGroup", "testOrder", "patientIdentifier", "programState")


def _field_tag(value: Any) -> Optional[str]:
    field_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if field_type is None:
        return None
    if field_type in _SUBMITTABLE_FIELD_TYPES:
        return field_type
    if field_type in CONTEXT_FIELD_TYPES:
        return "context"
    return "other"


FormField = Annotated[
    Union[
        Annotated[ObsField, Tag("obs")],
        Annotated[ObsGroupField, Tag("obsGroup")],
        Annotated[OrderField, Tag("testOrder")],
        Annotated[PatientIdentifierField, Tag("patientIdentifier")],
        Annotated[ProgramStateField, Tag("programState")],
        Annotated[ContextField, Tag("context")],
        Annotated[OtherField, Tag("other")],
    ],
    Discriminator(_field_tag),
]

ObsGroupField.model_rebuild()

_FIELD_LIST_ADAPTER = TypeAdapter(list[FormField])


def parse_fields(raw_fields: list[dict[str, Any]]) -> list[FormField]:
    """Validate a raw (camelCase) field list into typed fields."""
    return _FIELD_LIST_ADAPTER.validate_python(raw_fields)
