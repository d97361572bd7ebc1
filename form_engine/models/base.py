"""Shared pydantic base for payloads exchanged with the record backend."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the backend: camelCase keys, absent values omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ResourceRef(CamelModel):
    """Reference to a backend resource.

    Server responses embed full representations, so unknown keys are kept.
    """

    model_config = ConfigDict(extra="allow")

    uuid: Optional[str] = None
    display: Optional[str] = None


# The backend accepts a bare uuid wherever it accepts a reference object.
Reference = Union[str, ResourceRef]


def ref_uuid(ref: Optional[Reference]) -> Optional[str]:
    """Return the uuid behind a reference, whichever form it takes."""
    if ref is None:
        return None
    if isinstance(ref, str):
        return ref
    return ref.uuid
