"""Unit tests for CommitmentEngine - assignment state machine.

These tests verify the stateless transition rules without any Home Assistant
mocking.

Test Categories:
- Transition table and terminal statuses
- Submission / resolution planning
- Read-time expiry detection
- Planning owed assignments
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest

from custom_components.growpromise import const
from custom_components.growpromise.engines.commitment_engine import CommitmentEngine
from custom_components.growpromise.engines.schedule_engine import RecurrenceEngine
from custom_components.growpromise.exceptions import (
    InvalidTransitionError,
    ValidationError,
)

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=UTC)


def make_assignment(status: str = const.ASSIGNMENT_STATUS_PENDING, **overrides: Any):
    """Build a minimal assignment row for engine tests."""
    assignment = {
        const.DATA_ID: "assignment-1",
        const.DATA_ASSIGNMENT_COMMITMENT_ID: "commitment-1",
        const.DATA_ASSIGNMENT_DEPENDENT_ID: "dependent-1",
        const.DATA_ASSIGNMENT_DUE_DATE: "2025-03-10T23:59:59.999999+00:00",
        const.DATA_ASSIGNMENT_STATUS: status,
        const.DATA_ASSIGNMENT_VERIFICATION_IMAGE_REF: None,
        const.DATA_ASSIGNMENT_VERIFICATION_NOTE: None,
        const.DATA_ASSIGNMENT_VERIFICATION_TIME: None,
        const.DATA_ASSIGNMENT_REJECTION_REASON: None,
        const.DATA_ASSIGNMENT_COMPLETED_AT: None,
        const.DATA_CREATED_AT: "2025-03-10T00:00:00+00:00",
    }
    assignment.update(overrides)
    return assignment


def make_commitment(**overrides: Any):
    """Build a minimal commitment row for engine tests."""
    commitment = {
        const.DATA_ID: "commitment-1",
        const.DATA_COMMITMENT_TITLE: "Brush teeth",
        const.DATA_COMMITMENT_DESCRIPTION: "",
        const.DATA_COMMITMENT_RECURRENCE: const.RECURRENCE_DAILY,
        const.DATA_COMMITMENT_START_DATE: "2025-03-08",
        const.DATA_COMMITMENT_END_DATE: None,
        const.DATA_COMMITMENT_IS_ACTIVE: True,
        const.DATA_COMMITMENT_GUARDIAN_ID: "guardian-1",
        const.DATA_COMMITMENT_DEPENDENT_IDS: ["dependent-1", "dependent-2"],
        const.DATA_CREATED_AT: "2025-03-08T00:00:00+00:00",
    }
    commitment.update(overrides)
    return commitment


# =============================================================================
# Test: transition table
# =============================================================================


class TestTransitions:
    """Tests for the assignment transition table."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (const.ASSIGNMENT_STATUS_PENDING, const.ASSIGNMENT_STATUS_SUBMITTED),
            (const.ASSIGNMENT_STATUS_PENDING, const.ASSIGNMENT_STATUS_EXPIRED),
            (const.ASSIGNMENT_STATUS_SUBMITTED, const.ASSIGNMENT_STATUS_APPROVED),
            (const.ASSIGNMENT_STATUS_SUBMITTED, const.ASSIGNMENT_STATUS_REJECTED),
            (const.ASSIGNMENT_STATUS_REJECTED, const.ASSIGNMENT_STATUS_SUBMITTED),
        ],
    )
    def test_allowed(self, current: str, target: str) -> None:
        """Legal edges of the lifecycle."""
        assert CommitmentEngine.can_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (const.ASSIGNMENT_STATUS_PENDING, const.ASSIGNMENT_STATUS_APPROVED),
            (const.ASSIGNMENT_STATUS_SUBMITTED, const.ASSIGNMENT_STATUS_EXPIRED),
            (const.ASSIGNMENT_STATUS_REJECTED, const.ASSIGNMENT_STATUS_APPROVED),
            (const.ASSIGNMENT_STATUS_SUBMITTED, const.ASSIGNMENT_STATUS_SUBMITTED),
        ],
    )
    def test_refused(self, current: str, target: str) -> None:
        """Edges outside the lifecycle are refused."""
        assert not CommitmentEngine.can_transition(current, target)

    @pytest.mark.parametrize(
        "terminal", [const.ASSIGNMENT_STATUS_APPROVED, const.ASSIGNMENT_STATUS_EXPIRED]
    )
    def test_terminal_statuses_never_move(self, terminal: str) -> None:
        """APPROVED and EXPIRED have no outgoing transitions."""
        for target in const.ASSIGNMENT_STATUSES:
            assert not CommitmentEngine.can_transition(terminal, target)

    def test_every_status_is_in_the_table(self) -> None:
        """The table covers exactly the five statuses."""
        assert set(CommitmentEngine.VALID_TRANSITIONS) == set(
            const.ASSIGNMENT_STATUSES
        )


# =============================================================================
# Test: submission
# =============================================================================


class TestSubmission:
    """Tests for plan_submission."""

    @pytest.mark.parametrize(
        "status", [const.ASSIGNMENT_STATUS_PENDING, const.ASSIGNMENT_STATUS_REJECTED]
    )
    def test_plan_from_open_statuses(self, status: str) -> None:
        """PENDING and REJECTED both accept proof."""
        plan = CommitmentEngine.plan_submission(
            make_assignment(status, rejection_reason="blurry"),
            "photos/teeth.jpg",
            "  done  ",
            NOW,
        )
        assert plan.expected_status == status
        assert plan.new_status == const.ASSIGNMENT_STATUS_SUBMITTED
        assert plan.changes[const.DATA_ASSIGNMENT_VERIFICATION_IMAGE_REF] == (
            "photos/teeth.jpg"
        )
        assert plan.changes[const.DATA_ASSIGNMENT_VERIFICATION_NOTE] == "done"
        assert plan.changes[const.DATA_ASSIGNMENT_VERIFICATION_TIME] == NOW.isoformat()
        assert plan.changes[const.DATA_ASSIGNMENT_REJECTION_REASON] is None

    @pytest.mark.parametrize(
        "status",
        [
            const.ASSIGNMENT_STATUS_SUBMITTED,
            const.ASSIGNMENT_STATUS_APPROVED,
            const.ASSIGNMENT_STATUS_EXPIRED,
        ],
    )
    def test_refused_from_other_statuses(self, status: str) -> None:
        """Submitting twice or after a terminal status is an invalid transition."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            CommitmentEngine.plan_submission(make_assignment(status), "img", None, NOW)
        assert exc_info.value.current == status

    def test_image_is_required(self) -> None:
        """Blank image references are rejected before the state check."""
        with pytest.raises(ValidationError) as exc_info:
            CommitmentEngine.plan_submission(make_assignment(), "   ", None, NOW)
        assert exc_info.value.field == const.FIELD_IMAGE_REF


# =============================================================================
# Test: resolution
# =============================================================================


class TestResolution:
    """Tests for plan_resolution."""

    def test_approve_sets_completed_at(self) -> None:
        """Approval records the completion time."""
        plan = CommitmentEngine.plan_resolution(
            make_assignment(const.ASSIGNMENT_STATUS_SUBMITTED), True, None, NOW
        )
        assert plan.new_status == const.ASSIGNMENT_STATUS_APPROVED
        assert plan.changes[const.DATA_ASSIGNMENT_COMPLETED_AT] == NOW.isoformat()

    def test_reject_requires_reason(self) -> None:
        """A rejection without a reason is a validation error."""
        for reason in (None, "", "   "):
            with pytest.raises(ValidationError):
                CommitmentEngine.plan_resolution(
                    make_assignment(const.ASSIGNMENT_STATUS_SUBMITTED),
                    False,
                    reason,
                    NOW,
                )

    def test_reject_stores_reason(self) -> None:
        """The stripped reason is recorded on the assignment."""
        plan = CommitmentEngine.plan_resolution(
            make_assignment(const.ASSIGNMENT_STATUS_SUBMITTED),
            False,
            " photo is blurry ",
            NOW,
        )
        assert plan.new_status == const.ASSIGNMENT_STATUS_REJECTED
        assert plan.changes[const.DATA_ASSIGNMENT_REJECTION_REASON] == "photo is blurry"

    @pytest.mark.parametrize(
        "status",
        [
            const.ASSIGNMENT_STATUS_PENDING,
            const.ASSIGNMENT_STATUS_APPROVED,
            const.ASSIGNMENT_STATUS_REJECTED,
            const.ASSIGNMENT_STATUS_EXPIRED,
        ],
    )
    def test_only_submitted_can_be_resolved(self, status: str) -> None:
        """Resolving anything but SUBMITTED is an invalid transition."""
        with pytest.raises(InvalidTransitionError):
            CommitmentEngine.plan_resolution(make_assignment(status), True, None, NOW)


# =============================================================================
# Test: expiry
# =============================================================================


class TestExpiry:
    """Tests for is_expired / plan_expiry."""

    def test_pending_past_deadline_is_expired(self) -> None:
        """A PENDING assignment expires once now passes its deadline."""
        assignment = make_assignment()
        deadline = datetime(2025, 3, 10, 23, 59, 59, 999999, tzinfo=UTC)
        assert not CommitmentEngine.is_expired(assignment, deadline)
        assert CommitmentEngine.is_expired(
            assignment, deadline + timedelta(microseconds=1)
        )

    def test_submitted_never_expires(self) -> None:
        """Only PENDING assignments expire."""
        assignment = make_assignment(const.ASSIGNMENT_STATUS_SUBMITTED)
        assert not CommitmentEngine.is_expired(assignment, NOW + timedelta(days=30))

    def test_plan_expiry(self) -> None:
        """The expiry plan is guarded on PENDING."""
        plan = CommitmentEngine.plan_expiry(make_assignment())
        assert plan.expected_status == const.ASSIGNMENT_STATUS_PENDING
        assert plan.changes == {
            const.DATA_ASSIGNMENT_STATUS: const.ASSIGNMENT_STATUS_EXPIRED
        }


# =============================================================================
# Test: instantiation planning
# =============================================================================


class TestPlanDueAssignments:
    """Tests for plan_due_assignments."""

    def test_one_per_dependent_per_due_date(self) -> None:
        """Three days for two dependents owe six assignments."""
        owed = CommitmentEngine.plan_due_assignments(
            make_commitment(), set(), date(2025, 3, 10), UTC
        )
        assert len(owed) == 6
        assert {due.dependent_id for due in owed} == {"dependent-1", "dependent-2"}
        assert owed[0].due_date == RecurrenceEngine.deadline_for(date(2025, 3, 8), UTC)

    def test_existing_keys_are_skipped(self) -> None:
        """Instantiation is idempotent on the natural key."""
        existing = {
            CommitmentEngine.assignment_key("commitment-1", "dependent-1", day)
            for day in (date(2025, 3, 8), date(2025, 3, 9), date(2025, 3, 10))
        }
        owed = CommitmentEngine.plan_due_assignments(
            make_commitment(), existing, date(2025, 3, 10), UTC
        )
        assert [due.dependent_id for due in owed] == ["dependent-2"] * 3

    def test_inactive_commitment_owes_nothing(self) -> None:
        """Deactivated commitments are not instantiated."""
        assert (
            CommitmentEngine.plan_due_assignments(
                make_commitment(is_active=False), set(), date(2025, 3, 10), UTC
            )
            == []
        )

    def test_existing_keys_use_local_due_date(self) -> None:
        """Stored deadlines map back to their local calendar day."""
        assignment = make_assignment(
            due_date=RecurrenceEngine.deadline_for(date(2025, 3, 10), UTC).isoformat()
        )
        assert CommitmentEngine.existing_keys([assignment], UTC) == {
            ("commitment-1", "dependent-1", date(2025, 3, 10))
        }
