"""Inbound context for a form session."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict

from form_engine.models.base import CamelModel, ResourceRef
from form_engine.models.payloads import Encounter


class SessionMode(str, Enum):
    """Operating mode of the form session."""

    ENTER = "enter"
    EDIT = "edit"
    VIEW = "view"

    @classmethod
    def _missing_(cls, value):
        # "create" is the older name for "enter"
        if isinstance(value, str) and value.lower() == "create":
            return cls.ENTER
        return None


class Patient(CamelModel):
    """The patient the form is filled for; only the id is required."""

    model_config = ConfigDict(extra="allow")

    id: str


class EncounterContext(CamelModel):
    """Who, where and when of the submission, plus the encounter being edited."""

    patient: Patient
    encounter: Optional[Encounter] = None
    encounter_date: datetime
    encounter_provider: str
    location: ResourceRef
    session_mode: SessionMode = SessionMode.ENTER
    program_uuid: Optional[str] = None

    @property
    def is_update(self) -> bool:
        return self.encounter is not None
