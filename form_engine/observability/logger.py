"""Submission logger for structured telemetry."""

import asyncio
import json
import logging
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Optional

from form_engine.api.base import RequestCancelledError
from form_engine.config import get_settings
from form_engine.observability.events import EventType, ResourceKind, SubmissionEvent

logger = logging.getLogger(__name__)


class SubmissionLogger:
    """Records every persistence call and assembly outcome of a submission.

    Writes structured events to a JSON Lines file for later analysis. A failing
    sink or callback is logged and never interrupts the submission itself.
    """

    _instance: Optional["SubmissionLogger"] = None

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        enabled: bool = True,
    ):
        """Initialize submission logger.

        Args:
            log_dir: Directory for log files (default: data/logs)
            enabled: Whether logging is enabled
        """
        self.enabled = enabled

        if log_dir is None:
            log_dir = Path("data/logs")
        self.log_dir = log_dir
        if self.enabled:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / "submissions.jsonl"

        # Event callbacks for real-time monitoring
        self._callbacks: list[Callable[[SubmissionEvent], None]] = []

        self._current_session_id: Optional[str] = None

    @classmethod
    def get_instance(cls) -> "SubmissionLogger":
        """Get or create singleton instance from settings."""
        if cls._instance is None:
            settings = get_settings()
            cls._instance = cls(
                log_dir=settings.submission_log_dir,
                enabled=settings.submission_log_enabled,
            )
        return cls._instance

    def set_session_id(self, session_id: str) -> None:
        """Set current form session ID for event correlation."""
        self._current_session_id = session_id

    def generate_request_id(self) -> str:
        """Generate a unique request ID."""
        return str(uuid.uuid4())[:8]

    def add_callback(self, callback: Callable[[SubmissionEvent], None]) -> None:
        """Add callback for real-time event monitoring."""
        self._callbacks.append(callback)

    def _write_event(self, event: SubmissionEvent) -> None:
        if not self.enabled:
            return

        if self._current_session_id and not event.session_id:
            event.session_id = self._current_session_id

        try:
            with open(self.log_file, "a") as f:
                f.write(event.model_dump_json() + "\n")

            for callback in self._callbacks:
                try:
                    callback(event)
                except Exception as e:
                    logger.warning(f"Submission event callback failed: {e}")

        except Exception as e:
            logger.warning(f"Failed to write submission event: {e}")

    @contextmanager
    def persist_call(
        self,
        resource: ResourceKind,
        patient_uuid: Optional[str] = None,
        resource_uuid: Optional[str] = None,
        request_id: Optional[str] = None,
        **metadata: Any,
    ):
        """Context manager for logging one persistence call.

        Usage:
            with submission_logger.persist_call(ResourceKind.ENCOUNTER, patient_uuid=p) as event:
                saved = await backend.save_encounter(...)
                event.resource_uuid = saved.uuid
        """
        start_time = time.time()

        event = SubmissionEvent(
            event_type=EventType.PERSIST_START,
            resource=resource,
            patient_uuid=patient_uuid,
            resource_uuid=resource_uuid,
            request_id=request_id or self.generate_request_id(),
            metadata=metadata,
        )

        try:
            yield event
            event.event_type = EventType.PERSIST_SUCCESS

        except (RequestCancelledError, asyncio.CancelledError) as e:
            event.event_type = EventType.PERSIST_CANCELLED
            event.error_message = str(e)[:200]
            raise

        except Exception as e:
            event.event_type = EventType.PERSIST_ERROR
            event.error_type = type(e).__name__
            event.error_message = str(e)[:200]
            raise

        finally:
            event.duration_ms = (time.time() - start_time) * 1000
            self._write_event(event)

    def log_encounter_assembled(
        self,
        patient_uuid: Optional[str],
        encounter_uuid: Optional[str],
        obs_count: int,
        order_count: int,
        voided_count: int = 0,
    ) -> None:
        """Log the shape of an assembled encounter payload."""
        event = SubmissionEvent(
            event_type=EventType.ENCOUNTER_ASSEMBLED,
            resource=ResourceKind.ENCOUNTER,
            patient_uuid=patient_uuid,
            resource_uuid=encounter_uuid,
            metadata={
                "is_update": encounter_uuid is not None,
                "obs_count": obs_count,
                "order_count": order_count,
                "voided_count": voided_count,
            },
        )
        self._write_event(event)

    def log_enrollment_planned(
        self,
        patient_uuid: Optional[str],
        program_uuid: Optional[str],
        action: str,
        session_mode: str,
    ) -> None:
        """Log which enrollment action the reconciler chose."""
        event = SubmissionEvent(
            event_type=EventType.ENROLLMENT_PLANNED,
            resource=ResourceKind.PROGRAM_ENROLLMENT,
            patient_uuid=patient_uuid,
            metadata={
                "program_uuid": program_uuid,
                "action": action,
                "session_mode": session_mode,
            },
        )
        self._write_event(event)

    def get_recent_events(self, limit: int = 100) -> list[dict[str, Any]]:
        """Read recent events from the log file."""
        if not self.log_file.exists():
            return []

        events = []
        with open(self.log_file) as f:
            for line in f:
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue

        return events[-limit:]


def get_submission_logger() -> SubmissionLogger:
    """Get the global submission logger instance."""
    return SubmissionLogger.get_instance()
