"""Test order assembly."""

from __future__ import annotations

import logging
from typing import Sequence

from form_engine.models.fields import BaseFormField, OrderField, as_list
from form_engine.models.payloads import Order

logger = logging.getLogger(__name__)


def prepare_orders(fields: Sequence[BaseFormField]) -> list[Order]:
    """New and voided test orders from every order field with a pending submission."""
    orders: list[Order] = []
    for field in fields:
        if not isinstance(field, OrderField) or not field.has_submission:
            continue
        submission = field.meta.submission
        orders.extend(as_list(submission.new_value))
        orders.extend(as_list(submission.voided_value))

    logger.debug(f"Assembled {len(orders)} orders")
    return orders
