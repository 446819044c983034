"""Booking submission chain.

validate → check availability → create. Each step is a SubmissionPhase
transition on the workflow state, so only one chain can be in flight and an
out-of-order step raises instead of silently booking.

Nothing here retries: every failure is reported once and the user's entries
are kept so they can correct them and submit again.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from booking_workflow import config
from booking_workflow.logging_config import get_logger
from booking_workflow.notifications import Notifier, Severity
from booking_workflow.services import Scheduling, describe_error
from booking_workflow.state import (
    TERMINAL_PHASES,
    BookingDraft,
    SubmissionPhase,
    WorkflowState,
)
from booking_workflow.time_validation import TimeValidator

logger = get_logger(__name__)

AVAILABILITY_CONFLICT = "availability_conflict"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of one submit() call."""
    status: OutcomeStatus
    message: str = ""
    reason: Optional[str] = None
    errors: Tuple[str, ...] = ()
    appointment: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @classmethod
    def success(cls, appointment: Optional[Dict[str, Any]] = None) -> "SubmissionOutcome":
        return cls(OutcomeStatus.SUCCESS, config.MESSAGES["created"], appointment=appointment)

    @classmethod
    def rejected(cls) -> "SubmissionOutcome":
        return cls(
            OutcomeStatus.REJECTED,
            config.MESSAGES["slot_unavailable"],
            reason=AVAILABILITY_CONFLICT,
        )

    @classmethod
    def failed(cls, message: str, errors: Tuple[str, ...] = ()) -> "SubmissionOutcome":
        return cls(OutcomeStatus.FAILED, message, errors=errors)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


class SubmissionOrchestrator:
    """Runs the validate / availability / create chain for one workflow."""

    def __init__(
        self,
        state: WorkflowState,
        scheduling: Scheduling,
        time_validator: TimeValidator,
        notifier: Notifier,
        on_success: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            state: Workflow state (phase tracking, default snapshot source)
            scheduling: Availability and creation port
            time_validator: Canonicalizes the picker value for the wire
            notifier: Receives every user-visible outcome
            on_success: Called after a booking is created (defaults to state.reset)
        """
        self.state = state
        self.scheduling = scheduling
        self.time_validator = time_validator
        self.notifier = notifier
        self.on_success = on_success or state.reset

    def validate(self, draft: BookingDraft) -> List[str]:
        """
        Structural validation; every violated rule is reported.

        Returns:
            Error messages in display order (empty when the draft is complete)
        """
        messages = config.MESSAGES
        errors = []
        if not draft.patient_id:
            errors.append(messages["patient_required"])
        if not draft.doctor_id:
            errors.append(messages["doctor_required"])
        if not draft.local_date_time:
            errors.append(messages["datetime_required"])
        else:
            time_error = draft.time_validation_error or self.time_validator.validate(
                draft.local_date_time
            )
            if time_error:
                errors.append(time_error)
        if not draft.service_id:
            errors.append(messages["service_required"])
        if not draft.reason_value:
            errors.append(messages["reason_required"])
        return errors

    async def submit(self, draft: Optional[BookingDraft] = None) -> SubmissionOutcome:
        """
        Submit a booking.

        Args:
            draft: Snapshot to submit (defaults to the current state)

        Returns:
            SubmissionOutcome; the user has already been notified
        """
        if self.state.is_submitting:
            message = config.MESSAGES["already_submitting"]
            self.notifier.notify("Error", message, Severity.ERROR)
            return SubmissionOutcome.failed(message)

        if draft is None:
            draft = self.state.snapshot()

        self.state.advance(SubmissionPhase.VALIDATING)
        try:
            return await self._run(draft)
        finally:
            self._finish()

    async def _run(self, draft: BookingDraft) -> SubmissionOutcome:
        errors = self.validate(draft)
        if errors:
            for message in errors:
                self.notifier.notify("Error", message, Severity.ERROR)
            self.state.advance(SubmissionPhase.INVALID)
            logger.info("submission_invalid", error_count=len(errors))
            return SubmissionOutcome.failed("; ".join(errors), errors=tuple(errors))

        utc_datetime = self.time_validator.to_canonical_utc_string(draft.local_date_time)
        log = logger.bind(doctor_id=draft.doctor_id, datetime=utc_datetime)

        self.state.advance(SubmissionPhase.CHECKING_AVAILABILITY)
        try:
            available = await self.scheduling.check_availability(draft.doctor_id, utc_datetime)
        except Exception as e:
            message = config.MESSAGES["availability_error"].format(message=describe_error(e))
            log.warning("availability_check_failed", error=str(e))
            self.state.advance(SubmissionPhase.FAILED)
            self.notifier.notify("Error", message, Severity.ERROR)
            return SubmissionOutcome.failed(message)

        if not available:
            log.info("slot_unavailable")
            self.state.advance(SubmissionPhase.REJECTED)
            outcome = SubmissionOutcome.rejected()
            self.notifier.notify("Error", outcome.message, Severity.ERROR)
            return outcome

        self.state.advance(SubmissionPhase.CREATING)
        try:
            appointment = await self.scheduling.create_appointment(
                draft.patient_id,
                draft.doctor_id,
                utc_datetime,
                draft.service_id,
                draft.reason_value,
            )
        except Exception as e:
            message = describe_error(e)
            log.warning("appointment_creation_failed", error=str(e))
            self.state.advance(SubmissionPhase.FAILED)
            self.notifier.notify("Error", message, Severity.ERROR)
            return SubmissionOutcome.failed(message)

        log.info("appointment_created", patient_id=draft.patient_id)
        self.state.advance(SubmissionPhase.SUCCEEDED)
        outcome = SubmissionOutcome.success(appointment)
        self.notifier.notify("Success", outcome.message, Severity.SUCCESS)
        self.on_success()
        return outcome

    def _finish(self):
        if self.state.submission_phase in TERMINAL_PHASES:
            self.state.advance(SubmissionPhase.IDLE)
        else:
            # Chain aborted by an unexpected exception
            self.state.submission_phase = SubmissionPhase.IDLE
            self.state.changed("submission")
