"""Record backend interface and the OpenMRS REST client."""

from form_engine.api.base import (
    BackendConnectionError,
    BackendError,
    BackendResponseError,
    BackendTimeoutError,
    RecordBackend,
    RequestCancelledError,
)
from form_engine.api.cancellation import CancellationToken
from form_engine.api.client import OpenMRSClient

__all__ = [
    "BackendConnectionError",
    "BackendError",
    "BackendResponseError",
    "BackendTimeoutError",
    "CancellationToken",
    "OpenMRSClient",
    "RecordBackend",
    "RequestCancelledError",
]
