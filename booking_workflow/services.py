"""Remote collaborators of the booking workflow.

The workflow only depends on the abstract ports below. HttpBookingBackend
implements all of them against the booking REST API (see mock_api.py for the
reference server).
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from booking_workflow import config
from booking_workflow.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from booking_workflow.http_client import (
    api_call_with_protection,
    api_circuit_breaker,
    create_http_session,
)
from booking_workflow.logging_config import generate_request_id, get_logger
from booking_workflow.models import (
    AppointmentRequest,
    AvailabilityRequest,
    CandidateOption,
    ReferenceOption,
)

logger = get_logger(__name__)


class RemoteServiceError(Exception):
    """Transport or application failure reported by a remote collaborator."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def describe_error(error: BaseException) -> str:
    """Human-readable text for a failed remote call."""
    if isinstance(error, RemoteServiceError):
        return error.message or "Unknown error"
    text = str(error)
    return f"Unexpected error: {text}" if text else "Unknown error"


class PatientDirectory(ABC):
    """Patient lookup."""

    @abstractmethod
    async def search(self, term: str) -> List[CandidateOption]:
        """Search patients by free text.

        Raises:
            RemoteServiceError: If the directory is unreachable or rejects the query.
        """


class DoctorDirectory(ABC):
    """Doctor lookup."""

    @abstractmethod
    async def search(self, term: str) -> List[CandidateOption]:
        """Search doctors by free text.

        Raises:
            RemoteServiceError: If the directory is unreachable or rejects the query.
        """


class ReferenceData(ABC):
    """Picklists that do not depend on the user."""

    @abstractmethod
    async def list_services(self) -> List[ReferenceOption]:
        """Bookable services, in display order."""

    @abstractmethod
    async def list_reasons(self) -> List[ReferenceOption]:
        """Reasons for visit, in display order."""


class Scheduling(ABC):
    """Availability check and appointment creation."""

    @abstractmethod
    async def check_availability(self, doctor_id: str, utc_datetime: str) -> bool:
        """Return True when the doctor is free at the canonical UTC time.

        Raises:
            RemoteServiceError: If the check itself could not be performed.
        """

    @abstractmethod
    async def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        utc_datetime: str,
        service_id: str,
        reason_value: str,
    ) -> Dict[str, Any]:
        """Create the appointment and return the stored record.

        Raises:
            RemoteServiceError: If the appointment could not be created.
        """


class _DirectoryEndpoint(PatientDirectory, DoctorDirectory):
    """Directory port bound to one search path of the backend."""

    def __init__(self, backend: "HttpBookingBackend", path: str):
        self._backend = backend
        self._path = path

    async def search(self, term: str) -> List[CandidateOption]:
        data = await self._backend.fetch("GET", self._path, params={"term": term})
        return self._backend.parse_list(data, "results", CandidateOption)


class HttpBookingBackend(ReferenceData, Scheduling):
    """
    Booking REST API client.

    Blocking requests calls run in worker threads (asyncio.to_thread) so the
    event loop keeps dispatching keystrokes while lookups are in flight.

    Attributes:
        patients: PatientDirectory bound to /patients/search
        doctors: DoctorDirectory bound to /doctors/search
    """

    def __init__(
        self,
        base_url: str = config.BOOKING_API_BASE_URL,
        session: Optional[requests.Session] = None,
        breaker: CircuitBreaker = api_circuit_breaker,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or create_http_session()
        self.breaker = breaker
        self.patients = _DirectoryEndpoint(self, "/patients/search")
        self.doctors = _DirectoryEndpoint(self, "/doctors/search")

    async def list_services(self) -> List[ReferenceOption]:
        data = await self.fetch("GET", "/services")
        return self.parse_list(data, "services", ReferenceOption)

    async def list_reasons(self) -> List[ReferenceOption]:
        data = await self.fetch("GET", "/reasons")
        return self.parse_list(data, "reasons", ReferenceOption)

    async def check_availability(self, doctor_id: str, utc_datetime: str) -> bool:
        query = AvailabilityRequest(doctor_id=doctor_id, datetime=utc_datetime)
        data = await self.fetch(
            "GET", "/availability/check", params={
                "doctor_id": query.doctor_id,
                "datetime": query.datetime,
            }
        )
        available = data.get("available")
        if not isinstance(available, bool):
            raise RemoteServiceError("Malformed availability response")
        return available

    async def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        utc_datetime: str,
        service_id: str,
        reason_value: str,
    ) -> Dict[str, Any]:
        body = AppointmentRequest(
            patient_id=patient_id,
            doctor_id=doctor_id,
            datetime=utc_datetime,
            service_id=service_id,
            reason=reason_value,
        )
        data = await self.fetch("POST", "/appointments", json=body.model_dump())
        return data.get("appointment", {})

    async def fetch(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Run one API call off the event loop and return its JSON envelope."""
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        request_id = generate_request_id()
        headers = kwargs.pop("headers", {})
        headers["X-Request-ID"] = request_id
        log = logger.bind(request_id=request_id, method=method, path=path)
        log.debug("booking_api_request")

        try:
            response = api_call_with_protection(
                method,
                f"{self.base_url}{path}",
                session=self.session,
                breaker=self.breaker,
                headers=headers,
                **kwargs
            )
        except CircuitBreakerOpen as e:
            log.warning("booking_api_circuit_open")
            raise RemoteServiceError(str(e))
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            log.warning("booking_api_http_error", status_code=status)
            raise RemoteServiceError(_error_from_response(e), status_code=status)
        except requests.exceptions.RequestException as e:
            log.warning("booking_api_unreachable", error=str(e))
            raise RemoteServiceError(f"Could not connect to booking service: {e}")

        try:
            data = response.json()
        except ValueError:
            raise RemoteServiceError("Booking service returned an invalid response")

        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            raise RemoteServiceError(error or "Unknown error")

        return data

    @staticmethod
    def parse_list(data: Dict[str, Any], key: str, model) -> list:
        try:
            return [model.model_validate(item) for item in data.get(key, [])]
        except ValidationError as e:
            raise RemoteServiceError(f"Malformed {key} in response: {e.error_count()} invalid item(s)")


def _error_from_response(error: requests.exceptions.HTTPError) -> str:
    """Prefer the server's error text over the generic HTTP reason."""
    response = error.response
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            if message:
                return message
    return str(error) or "Unknown error"
