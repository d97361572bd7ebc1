"""Observability module for submission telemetry."""

from form_engine.observability.events import EventType, ResourceKind, SubmissionEvent
from form_engine.observability.logger import SubmissionLogger, get_submission_logger

__all__ = [
    "EventType",
    "ResourceKind",
    "SubmissionEvent",
    "SubmissionLogger",
    "get_submission_logger",
]
