"""Tests for the booking submission chain."""
import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, Mock

import pytest

from booking_workflow import config
from booking_workflow.notifications import Severity
from booking_workflow.services import RemoteServiceError
from booking_workflow.state import BookingDraft, SubmissionPhase, WorkflowState
from booking_workflow.submission import (
    AVAILABILITY_CONFLICT,
    OutcomeStatus,
    SubmissionOrchestrator,
    SubmissionOutcome,
)


@pytest.fixture
def state():
    return WorkflowState()


@pytest.fixture
def on_success():
    return Mock()


@pytest.fixture
def orchestrator(state, scheduling, time_validator, notifier, on_success):
    return SubmissionOrchestrator(
        state, scheduling, time_validator, notifier, on_success=on_success
    )


@pytest.fixture
def draft():
    return BookingDraft(
        patient_id="pat-001",
        doctor_id="doc-001",
        local_date_time="2030-01-15T10:30",
        service_id="srv-001",
        reason_value="checkup",
    )


class TestStructuralValidation:
    """Incomplete drafts never reach the scheduling service."""

    @pytest.mark.asyncio
    async def test_missing_doctor_blocks_submission(
        self, orchestrator, draft, scheduling, notifier
    ):
        outcome = await orchestrator.submit(replace(draft, doctor_id=""))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.errors == (config.MESSAGES["doctor_required"],)
        assert notifier.messages(Severity.ERROR) == [config.MESSAGES["doctor_required"]]
        scheduling.check_availability.assert_not_called()
        scheduling.create_appointment.assert_not_called()

    @pytest.mark.asyncio
    async def test_every_violation_is_reported(self, orchestrator, scheduling, notifier):
        """Validation is not fail-fast: one notification per rule."""
        outcome = await orchestrator.submit(BookingDraft())

        expected = [
            config.MESSAGES["patient_required"],
            config.MESSAGES["doctor_required"],
            config.MESSAGES["datetime_required"],
            config.MESSAGES["service_required"],
            config.MESSAGES["reason_required"],
        ]
        assert list(outcome.errors) == expected
        assert notifier.messages(Severity.ERROR) == expected
        scheduling.check_availability.assert_not_called()

    @pytest.mark.asyncio
    async def test_time_error_blocks_submission(self, orchestrator, draft, scheduling, notifier):
        blocked = replace(draft, time_validation_error=config.MESSAGES["outside_hours"])

        outcome = await orchestrator.submit(blocked)

        assert outcome.errors == (config.MESSAGES["outside_hours"],)
        scheduling.check_availability.assert_not_called()

    @pytest.mark.asyncio
    async def test_out_of_hours_time_is_rechecked(self, orchestrator, draft, scheduling):
        """A draft without a recorded error is still checked against the window."""
        late = replace(draft, local_date_time="2030-01-15T18:00")

        outcome = await orchestrator.submit(late)

        assert outcome.errors == (config.MESSAGES["outside_hours"],)
        scheduling.check_availability.assert_not_called()

    @pytest.mark.asyncio
    async def test_phase_returns_to_idle(self, orchestrator, state):
        await orchestrator.submit(BookingDraft())

        assert state.submission_phase == SubmissionPhase.IDLE
        assert state.is_submitting is False


class TestAvailabilityCheck:

    @pytest.mark.asyncio
    async def test_sends_canonical_utc_time(self, orchestrator, draft, scheduling):
        await orchestrator.submit(draft)

        scheduling.check_availability.assert_awaited_once_with("doc-001", "2030-01-15 10:30:00")

    @pytest.mark.asyncio
    async def test_unavailable_slot_is_rejected(
        self, orchestrator, draft, scheduling, notifier, on_success
    ):
        scheduling.check_availability = AsyncMock(return_value=False)

        outcome = await orchestrator.submit(draft)

        assert outcome.status == OutcomeStatus.REJECTED
        assert outcome.reason == AVAILABILITY_CONFLICT
        assert notifier.messages(Severity.ERROR) == [config.MESSAGES["slot_unavailable"]]
        scheduling.create_appointment.assert_not_called()
        on_success.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_failure_is_distinct_from_rejection(
        self, orchestrator, draft, scheduling, notifier, on_success
    ):
        scheduling.check_availability = AsyncMock(
            side_effect=RemoteServiceError("Read timed out")
        )

        outcome = await orchestrator.submit(draft)

        expected = config.MESSAGES["availability_error"].format(message="Read timed out")
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.message == expected
        assert outcome.reason is None
        assert notifier.messages(Severity.ERROR) == [expected]
        scheduling.create_appointment.assert_not_called()
        on_success.assert_not_called()


class TestCreation:

    @pytest.mark.asyncio
    async def test_success_creates_notifies_and_resets(
        self, orchestrator, draft, scheduling, notifier, on_success
    ):
        outcome = await orchestrator.submit(draft)

        assert outcome == SubmissionOutcome.success()
        assert outcome.ok
        assert outcome.appointment == {"id": "APPT-1001"}
        scheduling.create_appointment.assert_awaited_once_with(
            "pat-001", "doc-001", "2030-01-15 10:30:00", "srv-001", "checkup"
        )
        assert notifier.notifications[-1].severity == Severity.SUCCESS
        assert notifier.notifications[-1].message == config.MESSAGES["created"]
        on_success.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_failure_preserves_state(
        self, orchestrator, draft, scheduling, notifier, on_success
    ):
        scheduling.create_appointment = AsyncMock(
            side_effect=RemoteServiceError("This time slot is no longer available", 409)
        )

        outcome = await orchestrator.submit(draft)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.message == "This time slot is no longer available"
        assert notifier.messages(Severity.ERROR) == ["This time slot is no longer available"]
        on_success.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_automatic_retry(self, orchestrator, draft, scheduling):
        scheduling.create_appointment = AsyncMock(side_effect=RemoteServiceError("boom"))

        await orchestrator.submit(draft)

        assert scheduling.check_availability.await_count == 1
        assert scheduling.create_appointment.await_count == 1

    @pytest.mark.asyncio
    async def test_phases_follow_the_chain(self, orchestrator, draft, state):
        phases = []
        state.subscribe(
            lambda event, s: phases.append(s.submission_phase) if event == "submission" else None
        )

        await orchestrator.submit(draft)

        assert phases == [
            SubmissionPhase.VALIDATING,
            SubmissionPhase.CHECKING_AVAILABILITY,
            SubmissionPhase.CREATING,
            SubmissionPhase.SUCCEEDED,
            SubmissionPhase.IDLE,
        ]


class TestSingleChain:

    @pytest.mark.asyncio
    async def test_second_submit_while_in_flight_is_refused(
        self, orchestrator, draft, scheduling, notifier, state
    ):
        release = asyncio.Event()

        async def slow_check(doctor_id, utc_datetime):
            await release.wait()
            return True

        scheduling.check_availability = slow_check

        first = asyncio.ensure_future(orchestrator.submit(draft))
        await asyncio.sleep(0.01)
        assert state.is_submitting is True

        second = await orchestrator.submit(draft)

        assert second.status == OutcomeStatus.FAILED
        assert second.message == config.MESSAGES["already_submitting"]

        release.set()
        result = await first

        assert result.status == OutcomeStatus.SUCCESS
        assert scheduling.create_appointment.await_count == 1
        assert state.is_submitting is False

    @pytest.mark.asyncio
    async def test_submit_defaults_to_state_snapshot(self, orchestrator, state, scheduling):
        state.patient.selected_entity_id = "pat-002"
        state.doctor.selected_entity_id = "doc-002"
        state.local_date_time = "2030-01-15T11:00"
        state.service_id = "srv-002"
        state.reason_value = "follow_up"

        outcome = await orchestrator.submit()

        assert outcome.ok
        scheduling.create_appointment.assert_awaited_once_with(
            "pat-002", "doc-002", "2030-01-15 11:00:00", "srv-002", "follow_up"
        )
