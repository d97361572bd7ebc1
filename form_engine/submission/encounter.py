"""Encounter assembly: merges observations and orders into a new or existing encounter."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from form_engine.models.base import Reference, ResourceRef, ref_uuid
from form_engine.models.context import EncounterContext
from form_engine.models.fields import BaseFormField
from form_engine.models.payloads import Encounter, EncounterProvider
from form_engine.submission.dates import to_canonical_datetime
from form_engine.submission.obs import prepare_obs
from form_engine.submission.orders import prepare_orders

logger = logging.getLogger(__name__)


def prepare_encounter(
    fields: Sequence[BaseFormField],
    context: EncounterContext,
    encounter_role: Optional[Reference],
    visit: Optional[Reference],
    encounter_type: str,
    form_uuid: str,
) -> Encounter:
    """Build the encounter payload for *fields*.

    With no existing encounter a fresh payload is built. Otherwise the existing
    encounter is copied, its location overwritten, and the current provider
    appended if absent (restamping form and visit in that case only).

    In both cases ``obs`` and ``orders`` are replaced, not merged, with what
    the field tree yields.
    """
    obs = prepare_obs(fields)
    orders = prepare_orders(fields)
    provider_entry = EncounterProvider(
        provider=context.encounter_provider,
        encounter_role=ref_uuid(encounter_role),
    )

    if context.encounter is None:
        return Encounter(
            patient=context.patient.id,
            encounter_datetime=to_canonical_datetime(context.encounter_date),
            location=context.location.uuid,
            encounter_type=encounter_type,
            encounter_providers=[provider_entry],
            obs=obs,
            orders=orders,
            form=ResourceRef(uuid=form_uuid),
            visit=_visit_ref(visit),
        )

    encounter = context.encounter.model_copy(deep=True)
    encounter.location = context.location.uuid

    if not encounter.has_provider(context.encounter_provider):
        logger.debug(
            f"Adding provider {context.encounter_provider} to encounter {encounter.uuid}"
        )
        encounter.encounter_providers = [*encounter.encounter_providers, provider_entry]
        encounter.form = ResourceRef(uuid=form_uuid)
        if visit is not None:
            encounter.visit = _visit_ref(visit)

    encounter.obs = obs
    encounter.orders = orders
    return encounter


def _visit_ref(visit: Optional[Reference]) -> Optional[ResourceRef]:
    visit_uuid = ref_uuid(visit)
    return ResourceRef(uuid=visit_uuid) if visit_uuid else None
