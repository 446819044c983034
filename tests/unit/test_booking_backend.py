"""Tests for the booking REST API client."""
import pytest
import requests
from unittest.mock import Mock, patch

from booking_workflow.circuit_breaker import CircuitBreaker
from booking_workflow.http_client import create_http_session
from booking_workflow.services import HttpBookingBackend, RemoteServiceError, describe_error


def json_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def breaker():
    return CircuitBreaker(failure_threshold=3, timeout=60)


@pytest.fixture
def backend(breaker):
    return HttpBookingBackend(
        base_url="http://booking.test/",
        session=create_http_session(max_retries=1, backoff_factor=0),
        breaker=breaker,
    )


class TestDirectorySearch:

    @pytest.mark.asyncio
    async def test_maps_value_to_candidate_id(self, backend):
        payload = {"success": True, "results": [
            {"value": "pat-001", "label": "John Smith"},
            {"value": "pat-002", "label": "Johanna Berg"},
        ]}
        with patch('requests.Session.request', return_value=json_response(payload)) as mock_request:
            results = await backend.patients.search("joh")

        assert [(r.id, r.label) for r in results] == [
            ("pat-001", "John Smith"),
            ("pat-002", "Johanna Berg"),
        ]
        args, kwargs = mock_request.call_args
        assert args[:2] == ("GET", "http://booking.test/patients/search")
        assert kwargs["params"] == {"term": "joh"}

    @pytest.mark.asyncio
    async def test_doctor_endpoint(self, backend):
        payload = {"success": True, "results": []}
        with patch('requests.Session.request', return_value=json_response(payload)) as mock_request:
            assert await backend.doctors.search("ga") == []

        assert mock_request.call_args.args[1] == "http://booking.test/doctors/search"

    @pytest.mark.asyncio
    async def test_sends_request_id_header(self, backend):
        payload = {"success": True, "results": []}
        with patch('requests.Session.request', return_value=json_response(payload)) as mock_request:
            await backend.patients.search("joh")

        request_id = mock_request.call_args.kwargs["headers"]["X-Request-ID"]
        assert request_id.startswith("req-")

    @pytest.mark.asyncio
    async def test_malformed_item_raises(self, backend):
        payload = {"success": True, "results": [{"label": "No id"}]}
        with patch('requests.Session.request', return_value=json_response(payload)):
            with pytest.raises(RemoteServiceError, match="Malformed results"):
                await backend.patients.search("joh")


class TestReferenceLists:

    @pytest.mark.asyncio
    async def test_services_in_source_order(self, backend):
        payload = {"success": True, "services": [
            {"value": "srv-002", "label": "Follow-up Visit"},
            {"value": "srv-001", "label": "General Consultation"},
        ]}
        with patch('requests.Session.request', return_value=json_response(payload)):
            services = await backend.list_services()

        assert [s.value for s in services] == ["srv-002", "srv-001"]

    @pytest.mark.asyncio
    async def test_reasons(self, backend):
        payload = {"success": True, "reasons": [{"value": "checkup", "label": "Routine Checkup"}]}
        with patch('requests.Session.request', return_value=json_response(payload)):
            reasons = await backend.list_reasons()

        assert reasons[0].label == "Routine Checkup"


class TestScheduling:

    @pytest.mark.asyncio
    async def test_availability_query(self, backend):
        payload = {"success": True, "available": False}
        with patch('requests.Session.request', return_value=json_response(payload)) as mock_request:
            available = await backend.check_availability("doc-001", "2030-01-15 10:30:00")

        assert available is False
        assert mock_request.call_args.kwargs["params"] == {
            "doctor_id": "doc-001",
            "datetime": "2030-01-15 10:30:00",
        }

    @pytest.mark.asyncio
    async def test_availability_must_be_boolean(self, backend):
        payload = {"success": True, "available": "yes"}
        with patch('requests.Session.request', return_value=json_response(payload)):
            with pytest.raises(RemoteServiceError, match="Malformed availability response"):
                await backend.check_availability("doc-001", "2030-01-15 10:30:00")

    @pytest.mark.asyncio
    async def test_create_posts_body_once(self, backend):
        payload = {"success": True, "appointment": {"id": "APPT-1001", "status": "confirmed"}}
        with patch('requests.Session.request', return_value=json_response(payload, 201)) as mock_request:
            appointment = await backend.create_appointment(
                "pat-001", "doc-001", "2030-01-15 10:30:00", "srv-001", "checkup"
            )

        assert appointment["id"] == "APPT-1001"
        assert mock_request.call_count == 1
        args, kwargs = mock_request.call_args
        assert args[:2] == ("POST", "http://booking.test/appointments")
        assert kwargs["json"] == {
            "patient_id": "pat-001",
            "doctor_id": "doc-001",
            "datetime": "2030-01-15 10:30:00",
            "service_id": "srv-001",
            "reason": "checkup",
        }

    @pytest.mark.asyncio
    async def test_conflict_uses_server_message(self, backend):
        payload = {"success": False, "error": "This time slot is no longer available"}
        with patch('requests.Session.request', return_value=json_response(payload, 409)) as mock_request:
            with pytest.raises(RemoteServiceError) as exc_info:
                await backend.create_appointment(
                    "pat-001", "doc-001", "2030-01-15 10:30:00", "srv-001", "checkup"
                )

        assert exc_info.value.message == "This time slot is no longer available"
        assert exc_info.value.status_code == 409
        assert mock_request.call_count == 1

    @pytest.mark.asyncio
    async def test_non_canonical_time_never_sent(self, backend):
        with patch('requests.Session.request') as mock_request:
            with pytest.raises(ValueError):
                await backend.check_availability("doc-001", "2030-01-15T10:30")

        mock_request.assert_not_called()


class TestFailures:

    @pytest.mark.asyncio
    async def test_connection_error(self, backend):
        with patch('requests.Session.request', side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(RemoteServiceError) as exc_info:
                await backend.list_services()

        assert exc_info.value.message.startswith("Could not connect to booking service")
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_not_found_lookup_sent_once(self, breaker):
        backend = HttpBookingBackend(
            base_url="http://booking.test",
            session=create_http_session(max_retries=3, backoff_factor=0),
            breaker=breaker,
        )
        payload = {"success": False, "error": "Doctor not found"}
        with patch('requests.Session.request', return_value=json_response(payload, 404)) as mock_request:
            with pytest.raises(RemoteServiceError) as exc_info:
                await backend.check_availability("doc-999", "2030-01-15 10:30:00")

        assert mock_request.call_count == 1
        assert exc_info.value.message == "Doctor not found"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_application_failure_envelope(self, backend):
        payload = {"success": False, "error": "Search term too short"}
        with patch('requests.Session.request', return_value=json_response(payload)):
            with pytest.raises(RemoteServiceError, match="Search term too short"):
                await backend.patients.search("j")

    @pytest.mark.asyncio
    async def test_failure_without_text(self, backend):
        with patch('requests.Session.request', return_value=json_response({"success": False})):
            with pytest.raises(RemoteServiceError, match="Unknown error"):
                await backend.list_reasons()

    @pytest.mark.asyncio
    async def test_invalid_json(self, backend):
        response = json_response(None)
        response.json.side_effect = ValueError("No JSON object could be decoded")
        with patch('requests.Session.request', return_value=response):
            with pytest.raises(RemoteServiceError, match="invalid response"):
                await backend.list_reasons()

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self, backend, breaker):
        with patch('requests.Session.request', side_effect=requests.exceptions.ConnectionError("refused")):
            for _ in range(3):
                with pytest.raises(RemoteServiceError):
                    await backend.list_services()

        assert breaker.state == "open"

        with patch('requests.Session.request') as mock_request:
            with pytest.raises(RemoteServiceError, match="Booking service unavailable"):
                await backend.list_services()

        mock_request.assert_not_called()


class TestDescribeError:

    def test_remote_error_message(self):
        assert describe_error(RemoteServiceError("Doctor not found", 404)) == "Doctor not found"

    def test_unexpected_error(self):
        assert describe_error(KeyError("x")) == "Unexpected error: 'x'"

    def test_blank_error(self):
        assert describe_error(RuntimeError()) == "Unknown error"
