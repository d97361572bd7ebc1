"""Observation assembly.

Walks the flat field list and produces the observations to submit: fresh
values, voids for edited answers, tombstones for answers whose field became
hidden, and observation groups with their members.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from form_engine.models.fields import (
    FILE_RENDERING,
    BaseFormField,
    ObsField,
    ObsGroupField,
    ObsValue,
    as_list,
    is_present,
)
from form_engine.models.payloads import Observation

logger = logging.getLogger(__name__)

FORM_FIELD_NAMESPACE = "rfe-forms"


def construct_obs(field: BaseFormField, value: object = None) -> Observation:
    """Build a fresh observation for *field*; groups start with no members."""
    obs = Observation(
        concept=field.question_options.concept,
        form_field_namespace=FORM_FIELD_NAMESPACE,
        form_field_path=f"{FORM_FIELD_NAMESPACE}-{field.id}",
        value=value,
    )
    if isinstance(field, ObsGroupField):
        obs.group_members = []
    return obs


def void_obs(obs: Observation) -> Observation:
    """Retraction of a persisted observation: only its uuid and the void flag."""
    return Observation(uuid=obs.uuid, voided=True)


def add_obs_to_list(
    obs_list: list[Observation],
    obs: Optional[Union[Observation, Sequence[Observation]]],
) -> None:
    """Append one observation or spread a list of them; absent or empty is a no-op."""
    obs_list.extend(as_list(obs))


def has_submittable_obs(field: BaseFormField) -> bool:
    if not isinstance(field, (ObsField, ObsGroupField)):
        return False
    if (
        field.question_options.is_transient
        or field.has_rendering(FILE_RENDERING)
        or field.is_group_member
    ):
        return False
    if field.is_effectively_hidden:
        return field.meta.previous_value is not None
    return isinstance(field, ObsGroupField) or field.has_submission


def prepare_obs(fields: Sequence[BaseFormField]) -> list[Observation]:
    """Assemble the observations to submit, in field order."""
    obs_for_submission: list[Observation] = []

    for field in fields:
        if not has_submittable_obs(field):
            continue

        if field.is_effectively_hidden:
            add_obs_to_list(obs_for_submission, _tombstones(field))
            continue

        match field:
            case ObsGroupField():
                add_obs_to_list(obs_for_submission, _prepare_group(field))
            case ObsField():
                submission = field.meta.submission
                add_obs_to_list(obs_for_submission, submission.new_value)
                add_obs_to_list(obs_for_submission, submission.voided_value)

    logger.debug(f"Assembled {len(obs_for_submission)} observations from {len(fields)} fields")
    return obs_for_submission


def _tombstones(field: BaseFormField) -> list[Observation]:
    voids = []
    for previous in field.previous_values():
        if previous.uuid is None:
            logger.debug(f"Field {field.id} has a previous value without uuid; nothing to void")
            continue
        voids.append(void_obs(previous))
    if voids:
        logger.debug(f"Voiding {len(voids)} observations of hidden field {field.id}")
    return voids


def _prepare_group(field: ObsGroupField) -> Optional[ObsValue]:
    submission = field.meta.submission
    if submission is not None and is_present(submission.voided_value):
        return submission.voided_value

    group = construct_obs(field)
    previous = field.previous_values()
    if previous:
        group.uuid = previous[0].uuid

    for member in field.questions:
        if member.has_submission:
            add_obs_to_list(group.group_members, member.meta.submission.new_value)
            add_obs_to_list(group.group_members, member.meta.submission.voided_value)

    if not group.group_members and not group.is_void:
        logger.debug(f"Dropping empty group {field.id}")
        return None
    return group
