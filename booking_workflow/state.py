"""State schema for the appointment booking workflow.

- Dataclasses for the mutable field state a presentation layer binds to
- Enum for the discrete submission phases
- Explicit transition map so an out-of-order step fails loudly
- Subscribers are told which part of the state changed
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List

from booking_workflow.logging_config import get_logger
from booking_workflow.models import CandidateOption, ReferenceOption

logger = get_logger(__name__)


class SubmissionPhase(str, Enum):
    """Discrete steps of one submission chain."""
    IDLE = "idle"
    VALIDATING = "validating"
    CHECKING_AVAILABILITY = "checking_availability"
    CREATING = "creating"

    # Terminal phases
    INVALID = "invalid"
    REJECTED = "rejected"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


TERMINAL_PHASES = frozenset({
    SubmissionPhase.INVALID,
    SubmissionPhase.REJECTED,
    SubmissionPhase.FAILED,
    SubmissionPhase.SUCCEEDED,
})


# Current phase → [allowed next phases]
VALID_TRANSITIONS: Dict[SubmissionPhase, List[SubmissionPhase]] = {
    SubmissionPhase.IDLE: [
        SubmissionPhase.VALIDATING,
    ],
    SubmissionPhase.VALIDATING: [
        SubmissionPhase.CHECKING_AVAILABILITY,
        SubmissionPhase.INVALID,
    ],
    SubmissionPhase.CHECKING_AVAILABILITY: [
        SubmissionPhase.CREATING,
        SubmissionPhase.REJECTED,  # Clean "not available" answer
        SubmissionPhase.FAILED,  # Check itself failed
    ],
    SubmissionPhase.CREATING: [
        SubmissionPhase.SUCCEEDED,
        SubmissionPhase.FAILED,
    ],
    SubmissionPhase.INVALID: [SubmissionPhase.IDLE],
    SubmissionPhase.REJECTED: [SubmissionPhase.IDLE],
    SubmissionPhase.FAILED: [SubmissionPhase.IDLE],
    SubmissionPhase.SUCCEEDED: [SubmissionPhase.IDLE],
}


class InvalidTransition(Exception):
    """Raised when a submission step is attempted out of order."""
    pass


def validate_transition(current: SubmissionPhase, intended: SubmissionPhase) -> bool:
    """
    Validate phase transition.

    Example:
        >>> validate_transition(SubmissionPhase.IDLE, SubmissionPhase.VALIDATING)
        True
        >>> validate_transition(SubmissionPhase.IDLE, SubmissionPhase.CREATING)
        False
    """
    return intended in VALID_TRANSITIONS.get(current, [])


@dataclass
class SearchField:
    """
    Typeahead field state.

    Invariant: a non-empty selected_entity_id means candidate_list is empty
    and is_loading is False.
    """
    name: str
    raw_input_text: str = ""
    selected_entity_id: str = ""
    selected_entity_label: str = ""
    candidate_list: List[CandidateOption] = field(default_factory=list)
    is_loading: bool = False

    @property
    def has_selection(self) -> bool:
        return bool(self.selected_entity_id)

    def clear_selection(self):
        self.selected_entity_id = ""
        self.selected_entity_label = ""

    def clear(self):
        self.raw_input_text = ""
        self.clear_selection()
        self.candidate_list = []
        self.is_loading = False


@dataclass(frozen=True)
class BookingDraft:
    """Snapshot of everything a submission needs."""
    patient_id: str = ""
    doctor_id: str = ""
    local_date_time: str = ""
    service_id: str = ""
    reason_value: str = ""
    time_validation_error: str = ""


Listener = Callable[[str, "WorkflowState"], None]


class WorkflowState:
    """
    All state of one booking form.

    Events passed to listeners: "patient", "doctor", "draft", "reference",
    "submission", "reset".
    """

    def __init__(self):
        self.patient = SearchField("patient")
        self.doctor = SearchField("doctor")

        self.local_date_time = ""
        self.service_id = ""
        self.reason_value = ""
        self.time_validation_error = ""

        self.service_options: List[ReferenceOption] = []
        self.reason_options: List[ReferenceOption] = []
        self.is_service_loading = False
        self.is_reason_loading = False

        self.submission_phase = SubmissionPhase.IDLE

        self._listeners: List[Listener] = []

    @property
    def is_submitting(self) -> bool:
        return (
            self.submission_phase != SubmissionPhase.IDLE
            and self.submission_phase not in TERMINAL_PHASES
        )

    def search_field(self, name: str) -> SearchField:
        if name == "patient":
            return self.patient
        if name == "doctor":
            return self.doctor
        raise KeyError(f"Unknown search field: {name}")

    def snapshot(self) -> BookingDraft:
        return BookingDraft(
            patient_id=self.patient.selected_entity_id,
            doctor_id=self.doctor.selected_entity_id,
            local_date_time=self.local_date_time,
            service_id=self.service_id,
            reason_value=self.reason_value,
            time_validation_error=self.time_validation_error,
        )

    def advance(self, phase: SubmissionPhase):
        """Move the submission chain to phase."""
        if not validate_transition(self.submission_phase, phase):
            raise InvalidTransition(
                f"Cannot move submission from {self.submission_phase.value} to {phase.value}"
            )
        logger.debug("submission_phase", previous=self.submission_phase.value, phase=phase.value)
        self.submission_phase = phase
        self.changed("submission")

    def reset(self):
        """Clear every user entry in one step; picklists are kept."""
        self.patient.clear()
        self.doctor.clear()
        self.local_date_time = ""
        self.service_id = ""
        self.reason_value = ""
        self.time_validation_error = ""
        self.changed("reset")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register listener(event, state).

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def changed(self, event: str):
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception("state_listener_failed", event_name=event)
