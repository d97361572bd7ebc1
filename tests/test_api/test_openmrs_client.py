"""Tests for the OpenMRS REST client."""

import json

import httpx
import pytest

from form_engine.api import (
    BackendConnectionError,
    BackendResponseError,
    BackendTimeoutError,
    CancellationToken,
    OpenMRSClient,
    RequestCancelledError,
)
from form_engine.config import Settings
from form_engine.models import (
    Encounter,
    ObsField,
    PatientIdentifier,
    ProgramEnrollment,
    ProgramState,
)

BASE_URL = "http://openmrs.test/openmrs/ws/rest/v1"


def _client(handler):
    return OpenMRSClient(
        base_url=BASE_URL,
        username="admin",
        password="Admin123",
        transport=httpx.MockTransport(handler),
    )


class TestSaveEncounter:
    @pytest.mark.asyncio
    async def test_new_encounter_posted_to_collection(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(201, json={"uuid": "enc-new", **seen["body"]})

        async with _client(handler) as client:
            saved = await client.save_encounter(
                CancellationToken(), Encounter(patient="pat-1", location="loc-1")
            )

        assert seen["url"] == f"{BASE_URL}/encounter"
        assert seen["body"] == {
            "patient": "pat-1",
            "location": "loc-1",
            "encounterProviders": [],
            "obs": [],
            "orders": [],
        }
        assert seen["auth"].startswith("Basic ")
        assert saved.uuid == "enc-new"

    @pytest.mark.asyncio
    async def test_existing_encounter_posted_by_uuid(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/encounter/enc-1")
            return httpx.Response(200, json={"uuid": "enc-1"})

        async with _client(handler) as client:
            saved = await client.save_encounter(CancellationToken(), Encounter(uuid="enc-1"), "enc-1")
        assert saved.uuid == "enc-1"


class TestErrors:
    @pytest.mark.asyncio
    async def test_rejected_request(self):
        def handler(request):
            return httpx.Response(400, text='{"error": "Invalid location"}')

        async with _client(handler) as client:
            with pytest.raises(BackendResponseError) as exc_info:
                await client.save_encounter(CancellationToken(), Encounter())
        assert exc_info.value.status_code == 400
        assert "Invalid location" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(BackendConnectionError):
                await client.save_encounter(CancellationToken(), Encounter())

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler) as client:
            with pytest.raises(BackendTimeoutError):
                await client.save_encounter(CancellationToken(), Encounter())

    @pytest.mark.asyncio
    async def test_cancelled_token_sends_nothing(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        token = CancellationToken()
        token.cancel()
        async with _client(handler) as client:
            with pytest.raises(RequestCancelledError):
                await client.save_encounter(token, Encounter())
        assert calls == []


class TestOtherResources:
    @pytest.mark.asyncio
    async def test_save_attachment_uploads_multipart(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.read()
            return httpx.Response(201, json={"uuid": "att-1", "fileCaption": "consent_scan"})

        field = ObsField(
            id="consent_scan",
            value={"fileName": "consent.png", "content": b"\x89PNG", "contentType": "image/png"},
        )
        async with _client(handler) as client:
            attachment = await client.save_attachment(
                "pat-1", field, "c-consent", "2024-03-01T09:30:00+00:00", "enc-1", CancellationToken()
            )

        assert seen["path"].endswith("/attachment")
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'name="patient"' in seen["body"]
        assert b'filename="consent.png"' in seen["body"]
        assert b"enc-1" in seen["body"]
        assert attachment.uuid == "att-1"

    @pytest.mark.asyncio
    async def test_save_patient_identifier(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/patient/pat-1/identifier")
            body = json.loads(request.content)
            return httpx.Response(201, json={"uuid": "pid-1", **body})

        async with _client(handler) as client:
            saved = await client.save_patient_identifier(
                PatientIdentifier(identifier="NID-1", identifier_type="type-nid"), "pat-1"
            )
        assert saved.uuid == "pid-1"
        assert saved.identifier == "NID-1"

    @pytest.mark.asyncio
    async def test_save_program_enrollment_by_uuid(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"uuid": "enr-1", "program": {"uuid": "prog-hiv"}})

        enrollment = ProgramEnrollment(
            uuid="enr-1",
            patient="pat-1",
            program="prog-hiv",
            states=[ProgramState(state="state-on-art", end_date="2024-03-01T00:00:00+00:00")],
        )
        async with _client(handler) as client:
            saved = await client.save_program_enrollment(enrollment, CancellationToken())

        assert seen["path"].endswith("/programenrollment/enr-1")
        assert seen["body"]["states"] == [{"state": "state-on-art", "endDate": "2024-03-01T00:00:00+00:00"}]
        assert saved.program.uuid == "prog-hiv"

    @pytest.mark.asyncio
    async def test_get_patient_enrolled_programs(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["patient"] == "pat-1"
            assert request.url.params["v"].startswith("custom:")
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"uuid": "e1", "program": {"uuid": "prog-hiv"}, "dateCompleted": None},
                        {"uuid": "e2", "program": {"uuid": "prog-tb"}, "dateCompleted": "2023-01-01"},
                    ]
                },
            )

        async with _client(handler) as client:
            programs = await client.get_patient_enrolled_programs("pat-1")
        assert [p.is_active for p in programs] == [True, False]


class TestFromSettings:
    def test_reads_backend_settings(self):
        settings = Settings(openmrs_rest_url="http://emr.local/ws/rest/v1/", request_timeout=5)
        client = OpenMRSClient.from_settings(settings)
        assert client.base_url == "http://emr.local/ws/rest/v1"
        assert client.timeout == 5
