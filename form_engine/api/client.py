"""OpenMRS REST client implementing the record backend."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from form_engine.api.base import (
    BackendConnectionError,
    BackendResponseError,
    BackendTimeoutError,
)
from form_engine.api.cancellation import CancellationToken
from form_engine.config import Settings, get_settings
from form_engine.models.fields import BaseFormField
from form_engine.models.payloads import (
    Attachment,
    AttachmentFile,
    Encounter,
    PatientIdentifier,
    PatientProgram,
    ProgramEnrollment,
)

logger = logging.getLogger(__name__)

PROGRAM_ENROLLMENT_REPRESENTATION = (
    "custom:(uuid,display,program:(uuid,name),dateEnrolled,dateCompleted,"
    "location:(uuid,display),states:(uuid,startDate,endDate,state:(uuid,name)))"
)


class OpenMRSClient:
    """Async client for the OpenMRS REST web services.

    Persists encounters, attachments, identifiers and program enrollments, and
    fetches a patient's existing enrollments.
    """

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: REST root, e.g. http://host/openmrs/ws/rest/v1
            username: Basic auth user
            password: Basic auth password
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        auth = httpx.BasicAuth(username, password) if username and password else None
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/",
            auth=auth,
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "OpenMRSClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.openmrs_rest_url,
            username=settings.openmrs_username,
            password=settings.openmrs_password,
            timeout=settings.request_timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "OpenMRSClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        cancellation: Optional[CancellationToken] = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        request = self._client.request(method, path, **kwargs)
        try:
            if cancellation is not None:
                response = await cancellation.run(request)
            else:
                response = await request
        except httpx.TimeoutException as e:
            logger.error(f"OpenMRS timeout on {method} {path}: {e}")
            raise BackendTimeoutError(
                f"OpenMRS request {method} {path} timed out after {self.timeout}s"
            ) from e
        except httpx.TransportError as e:
            logger.error(f"OpenMRS connection error on {method} {path}: {e}")
            raise BackendConnectionError(f"Failed to connect to OpenMRS at {self.base_url}") from e

        if response.is_error:
            logger.error(f"OpenMRS rejected {method} {path}: {response.status_code}")
            raise BackendResponseError(response.status_code, response.text)

        if not response.content:
            return {}
        return response.json()

    # ------------------------------------------------------------------
    # Record backend
    # ------------------------------------------------------------------

    async def save_encounter(
        self,
        cancellation: CancellationToken,
        encounter: Encounter,
        encounter_uuid: Optional[str] = None,
    ) -> Encounter:
        path = f"encounter/{encounter_uuid}" if encounter_uuid else "encounter"
        data = await self._request("POST", path, cancellation, json=encounter.to_payload())
        return Encounter.model_validate(data)

    async def save_attachment(
        self,
        patient_uuid: str,
        field: BaseFormField,
        concept_uuid: Optional[str],
        timestamp: str,
        encounter_uuid: Optional[str],
        cancellation: CancellationToken,
    ) -> Attachment:
        upload = AttachmentFile.model_validate(field.value)
        form_data = {
            "patient": patient_uuid,
            "fileCaption": upload.caption or field.id,
            "obsDatetime": timestamp,
        }
        if encounter_uuid:
            form_data["encounter"] = encounter_uuid

        logger.debug(f"Uploading {upload.file_name} for field {field.id} (concept {concept_uuid})")
        data = await self._request(
            "POST",
            "attachment",
            cancellation,
            data=form_data,
            files={"file": (upload.file_name, upload.content, upload.content_type)},
        )
        return Attachment.model_validate(data)

    async def save_patient_identifier(
        self,
        identifier: PatientIdentifier,
        patient_uuid: str,
    ) -> PatientIdentifier:
        path = f"patient/{patient_uuid}/identifier"
        if identifier.uuid:
            path = f"{path}/{identifier.uuid}"
        data = await self._request("POST", path, json=identifier.to_payload())
        return PatientIdentifier.model_validate(data)

    async def save_program_enrollment(
        self,
        enrollment: ProgramEnrollment,
        cancellation: CancellationToken,
    ) -> PatientProgram:
        path = f"programenrollment/{enrollment.uuid}" if enrollment.uuid else "programenrollment"
        data = await self._request("POST", path, cancellation, json=enrollment.to_payload())
        return PatientProgram.model_validate(data)

    async def get_patient_enrolled_programs(self, patient_uuid: str) -> list[PatientProgram]:
        data = await self._request(
            "GET",
            "programenrollment",
            params={"patient": patient_uuid, "v": PROGRAM_ENROLLMENT_REPRESENTATION},
        )
        return [PatientProgram.model_validate(item) for item in data.get("results", [])]
