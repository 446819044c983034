"""New-appointment workflow: the object a host UI binds to.

Wires the two typeahead fields, the picklist loader, the time rules and the
submission chain around one WorkflowState, and exposes plain handler methods
for every user action.

Usage:
    backend = HttpBookingBackend()
    workflow = BookingWorkflow.from_backend(backend)
    await workflow.start()
    workflow.on_patient_input_changed("Joh")
    workflow.on_patient_input_settled()
"""
from typing import Callable, Optional

from booking_workflow import config
from booking_workflow.notifications import LoggingNotifier, Notifier
from booking_workflow.reference_data import ReferenceDataLoader
from booking_workflow.services import (
    DoctorDirectory,
    HttpBookingBackend,
    PatientDirectory,
    ReferenceData,
    Scheduling,
)
from booking_workflow.state import Listener, WorkflowState
from booking_workflow.submission import SubmissionOrchestrator, SubmissionOutcome
from booking_workflow.time_validation import TimeValidator
from booking_workflow.typeahead import TypeaheadController


class BookingWorkflow:
    """Handlers and observable state of one booking form."""

    def __init__(
        self,
        patients: PatientDirectory,
        doctors: DoctorDirectory,
        reference_data: ReferenceData,
        scheduling: Scheduling,
        notifier: Optional[Notifier] = None,
        time_validator: Optional[TimeValidator] = None,
        debounce_ms: int = config.SEARCH_DEBOUNCE_MS,
    ):
        self.state = WorkflowState()
        self.notifier = notifier or LoggingNotifier()
        self.time_validator = time_validator or TimeValidator()

        self.patient_search = TypeaheadController(
            "patient", self.state, patients.search, self.notifier, delay_ms=debounce_ms
        )
        self.doctor_search = TypeaheadController(
            "doctor", self.state, doctors.search, self.notifier, delay_ms=debounce_ms
        )
        self.reference_loader = ReferenceDataLoader(self.state, reference_data, self.notifier)
        self.orchestrator = SubmissionOrchestrator(
            self.state,
            scheduling,
            self.time_validator,
            self.notifier,
            on_success=self.reset,
        )

    @classmethod
    def from_backend(cls, backend: HttpBookingBackend, **kwargs) -> "BookingWorkflow":
        """Build a workflow whose collaborators are all served by one backend."""
        return cls(backend.patients, backend.doctors, backend, backend, **kwargs)

    async def start(self):
        """Load the service and reason picklists."""
        await self.reference_loader.load()

    # Patient field
    def on_patient_input_changed(self, text: str):
        self.patient_search.on_input_changed(text)

    def on_patient_input_settled(self, text: Optional[str] = None):
        self.patient_search.on_input_settled(text)

    def on_patient_selected(self, patient_id: str) -> bool:
        return self.patient_search.on_candidate_selected(patient_id)

    # Doctor field
    def on_doctor_input_changed(self, text: str):
        self.doctor_search.on_input_changed(text)

    def on_doctor_input_settled(self, text: Optional[str] = None):
        self.doctor_search.on_input_settled(text)

    def on_doctor_selected(self, doctor_id: str) -> bool:
        return self.doctor_search.on_candidate_selected(doctor_id)

    # Plain fields
    def on_date_time_changed(self, value: str):
        self.state.local_date_time = value
        self.state.time_validation_error = self.time_validator.validate(value)
        self.state.changed("draft")

    def on_service_changed(self, service_id: str):
        self.state.service_id = service_id
        self.state.changed("draft")

    def on_reason_changed(self, reason_value: str):
        self.state.reason_value = reason_value
        self.state.changed("draft")

    @property
    def minimum_date_time(self) -> str:
        """Earliest value the date/time picker should offer."""
        return self.time_validator.minimum_allowed()

    async def submit(self) -> SubmissionOutcome:
        return await self.orchestrator.submit(self.state.snapshot())

    def reset(self):
        """Clear every user entry; picklists stay loaded."""
        self.patient_search.clear()
        self.doctor_search.clear()
        self.state.reset()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.state.subscribe(listener)

    async def settle(self):
        """Wait for lookups already dispatched on both fields."""
        await self.patient_search.settle()
        await self.doctor_search.settle()
