"""Appointment booking workflow: typeahead lookups, time rules and submission chain."""
from booking_workflow.notifications import Severity
from booking_workflow.services import HttpBookingBackend, RemoteServiceError
from booking_workflow.submission import OutcomeStatus, SubmissionOutcome
from booking_workflow.workflow import BookingWorkflow

__all__ = [
    "BookingWorkflow",
    "HttpBookingBackend",
    "OutcomeStatus",
    "RemoteServiceError",
    "Severity",
    "SubmissionOutcome",
]
