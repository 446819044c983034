"""Shared test fixtures."""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from booking_workflow.models import CandidateOption, ReferenceOption
from booking_workflow.notifications import RecordingNotifier
from booking_workflow.services import DoctorDirectory, PatientDirectory
from booking_workflow.time_validation import TimeValidator
from booking_workflow.workflow import BookingWorkflow

# Short debounce so timing tests stay fast
TEST_DEBOUNCE_MS = 20
SETTLE_SECONDS = 0.08

FIXED_NOW = datetime(2030, 1, 15, 8, 45, 37, tzinfo=timezone.utc)


class StubDirectory(PatientDirectory, DoctorDirectory):
    """
    In-memory directory.

    gates: term -> asyncio.Event; a search for that term waits until the
    event is set, so tests control the order in which responses arrive.
    """

    def __init__(self, records=None):
        self.records = records or []
        self.calls = []
        self.gates = {}
        self.error = None

    def hold(self, term: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[term] = gate
        return gate

    async def search(self, term: str):
        self.calls.append(term)
        gate = self.gates.get(term)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        needle = term.lower()
        return [
            CandidateOption(id=record_id, label=label)
            for record_id, label in self.records
            if needle in label.lower()
        ]


@pytest.fixture
def patients() -> StubDirectory:
    return StubDirectory([
        ("pat-001", "John Smith"),
        ("pat-002", "Johanna Berg"),
        ("pat-003", "Maria Lopez"),
    ])


@pytest.fixture
def doctors() -> StubDirectory:
    return StubDirectory([
        ("doc-001", "Dr. Garcia"),
        ("doc-002", "Dr. Gallagher"),
    ])


@pytest.fixture
def reference_data():
    """Picklist port with two services and two reasons."""
    ref = Mock()
    ref.list_services = AsyncMock(return_value=[
        ReferenceOption(value="srv-001", label="General Consultation"),
        ReferenceOption(value="srv-002", label="Specialized Consultation"),
    ])
    ref.list_reasons = AsyncMock(return_value=[
        ReferenceOption(value="checkup", label="Routine Checkup"),
        ReferenceOption(value="follow_up", label="Follow-up"),
    ])
    return ref


@pytest.fixture
def scheduling():
    """Scheduling port that accepts every booking."""
    sched = Mock()
    sched.check_availability = AsyncMock(return_value=True)
    sched.create_appointment = AsyncMock(return_value={"id": "APPT-1001"})
    return sched


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def time_validator() -> TimeValidator:
    return TimeValidator(tz="UTC", clock=lambda: FIXED_NOW)


@pytest.fixture
def workflow(patients, doctors, reference_data, scheduling, notifier, time_validator):
    return BookingWorkflow(
        patients,
        doctors,
        reference_data,
        scheduling,
        notifier=notifier,
        time_validator=time_validator,
        debounce_ms=TEST_DEBOUNCE_MS,
    )


async def wait_for_lookups(*controllers):
    """Let debounce timers fire and dispatched lookups finish."""
    await asyncio.sleep(SETTLE_SECONDS)
    for controller in controllers:
        await controller.settle()
