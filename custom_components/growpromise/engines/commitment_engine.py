"""Commitment Engine - Pure logic for the assignment state machine.

This engine provides stateless, pure Python functions for:
- Assignment state transition validation
- Planning the field changes of submit / approve / reject / expire
- Read-time expiry detection
- Planning which assignments a commitment still owes

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
State management (and the compare-and-set against the authoritative store)
belongs in CommitmentManager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .. import const
from ..exceptions import InvalidTransitionError, ValidationError
from ..utils.dt_utils import as_local, dt_parse_date, dt_to_iso, dt_to_utc
from .schedule_engine import RecurrenceEngine

if TYPE_CHECKING:
    from datetime import date, datetime

    from ..type_defs import AssignmentData, CommitmentData


# =============================================================================
# TRANSITION PLAN DATA STRUCTURE
# =============================================================================


@dataclass
class TransitionPlan:
    """Guarded update describing one assignment transition.

    Returned by the plan_* helpers and handed to the remote store, which
    applies `changes` only while the stored status is still `expected_status`.

    Attributes:
        assignment_id: Assignment being transitioned
        expected_status: Status that must still be current in the store
        new_status: Target status (also present in changes)
        changes: Field updates to apply atomically
    """

    assignment_id: str
    expected_status: str
    new_status: str
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DueAssignment:
    """An assignment a commitment owes but which does not exist yet."""

    commitment_id: str
    dependent_id: str
    due_date: datetime


# =============================================================================
# COMMITMENT ENGINE
# =============================================================================


class CommitmentEngine:
    """Pure logic engine for the assignment lifecycle.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        const.ASSIGNMENT_STATUS_PENDING: [
            const.ASSIGNMENT_STATUS_SUBMITTED,
            const.ASSIGNMENT_STATUS_EXPIRED,
        ],
        const.ASSIGNMENT_STATUS_SUBMITTED: [
            const.ASSIGNMENT_STATUS_APPROVED,
            const.ASSIGNMENT_STATUS_REJECTED,
        ],
        # Re-openable by resubmission
        const.ASSIGNMENT_STATUS_REJECTED: [
            const.ASSIGNMENT_STATUS_SUBMITTED,
        ],
        const.ASSIGNMENT_STATUS_APPROVED: [],
        const.ASSIGNMENT_STATUS_EXPIRED: [],
    }

    # =========================================================================
    # STATE TRANSITION LOGIC
    # =========================================================================

    @staticmethod
    def can_transition(current: str, target: str) -> bool:
        """Check whether a status transition is allowed."""
        return target in CommitmentEngine.VALID_TRANSITIONS.get(current, [])

    @staticmethod
    def _require_transition(assignment: AssignmentData, target: str) -> str:
        current = assignment[const.DATA_ASSIGNMENT_STATUS]
        if not CommitmentEngine.can_transition(current, target):
            raise InvalidTransitionError(assignment[const.DATA_ID], current, target)
        return current

    # =========================================================================
    # EXPIRY
    # =========================================================================

    @staticmethod
    def is_expired(assignment: AssignmentData, now: datetime) -> bool:
        """Return True when a PENDING assignment is past its deadline."""
        if assignment[const.DATA_ASSIGNMENT_STATUS] != const.ASSIGNMENT_STATUS_PENDING:
            return False
        due = dt_to_utc(assignment[const.DATA_ASSIGNMENT_DUE_DATE])
        return due is not None and now > due

    @staticmethod
    def plan_expiry(assignment: AssignmentData) -> TransitionPlan:
        """Plan PENDING → EXPIRED."""
        current = CommitmentEngine._require_transition(
            assignment, const.ASSIGNMENT_STATUS_EXPIRED
        )
        return TransitionPlan(
            assignment_id=assignment[const.DATA_ID],
            expected_status=current,
            new_status=const.ASSIGNMENT_STATUS_EXPIRED,
            changes={const.DATA_ASSIGNMENT_STATUS: const.ASSIGNMENT_STATUS_EXPIRED},
        )

    # =========================================================================
    # VERIFICATION
    # =========================================================================

    @staticmethod
    def plan_submission(
        assignment: AssignmentData,
        image_ref: str,
        note: str | None,
        now: datetime,
    ) -> TransitionPlan:
        """Plan {PENDING, REJECTED} → SUBMITTED.

        Raises:
            ValidationError: image_ref is empty
            InvalidTransitionError: status is SUBMITTED, APPROVED or EXPIRED
        """
        if not image_ref or not image_ref.strip():
            raise ValidationError(
                "A verification image is required", const.FIELD_IMAGE_REF
            )
        current = CommitmentEngine._require_transition(
            assignment, const.ASSIGNMENT_STATUS_SUBMITTED
        )
        return TransitionPlan(
            assignment_id=assignment[const.DATA_ID],
            expected_status=current,
            new_status=const.ASSIGNMENT_STATUS_SUBMITTED,
            changes={
                const.DATA_ASSIGNMENT_STATUS: const.ASSIGNMENT_STATUS_SUBMITTED,
                const.DATA_ASSIGNMENT_VERIFICATION_IMAGE_REF: image_ref.strip(),
                const.DATA_ASSIGNMENT_VERIFICATION_NOTE: (
                    note.strip() if note and note.strip() else None
                ),
                const.DATA_ASSIGNMENT_VERIFICATION_TIME: dt_to_iso(now),
                # A resubmission clears the previous rejection
                const.DATA_ASSIGNMENT_REJECTION_REASON: None,
            },
        )

    @staticmethod
    def plan_resolution(
        assignment: AssignmentData,
        approved: bool,
        rejection_reason: str | None,
        now: datetime,
    ) -> TransitionPlan:
        """Plan SUBMITTED → APPROVED or SUBMITTED → REJECTED.

        Raises:
            ValidationError: rejecting without a non-empty reason
            InvalidTransitionError: status is not SUBMITTED
        """
        if approved:
            current = CommitmentEngine._require_transition(
                assignment, const.ASSIGNMENT_STATUS_APPROVED
            )
            return TransitionPlan(
                assignment_id=assignment[const.DATA_ID],
                expected_status=current,
                new_status=const.ASSIGNMENT_STATUS_APPROVED,
                changes={
                    const.DATA_ASSIGNMENT_STATUS: const.ASSIGNMENT_STATUS_APPROVED,
                    const.DATA_ASSIGNMENT_COMPLETED_AT: dt_to_iso(now),
                },
            )

        if not rejection_reason or not rejection_reason.strip():
            raise ValidationError(
                "A rejection reason is required", const.FIELD_REJECTION_REASON
            )
        current = CommitmentEngine._require_transition(
            assignment, const.ASSIGNMENT_STATUS_REJECTED
        )
        return TransitionPlan(
            assignment_id=assignment[const.DATA_ID],
            expected_status=current,
            new_status=const.ASSIGNMENT_STATUS_REJECTED,
            changes={
                const.DATA_ASSIGNMENT_STATUS: const.ASSIGNMENT_STATUS_REJECTED,
                const.DATA_ASSIGNMENT_REJECTION_REASON: rejection_reason.strip(),
            },
        )

    # =========================================================================
    # INSTANTIATION
    # =========================================================================

    @staticmethod
    def assignment_key(
        commitment_id: str, dependent_id: str, due_date: date
    ) -> tuple[str, str, date]:
        """Return the natural key identifying one owed assignment."""
        return (commitment_id, dependent_id, due_date)

    @staticmethod
    def local_due_date(assignment: AssignmentData, tz=None) -> date | None:
        """Return the local calendar day an assignment is due on."""
        due = dt_to_utc(assignment[const.DATA_ASSIGNMENT_DUE_DATE])
        return as_local(due, tz).date() if due else None

    @staticmethod
    def existing_keys(
        assignments: list[AssignmentData], tz=None
    ) -> set[tuple[str, str, date]]:
        """Build the natural keys of stored assignments."""
        keys: set[tuple[str, str, date]] = set()
        for assignment in assignments:
            due = CommitmentEngine.local_due_date(assignment, tz)
            if due is None:
                continue
            keys.add(
                CommitmentEngine.assignment_key(
                    assignment[const.DATA_ASSIGNMENT_COMMITMENT_ID],
                    assignment[const.DATA_ASSIGNMENT_DEPENDENT_ID],
                    due,
                )
            )
        return keys

    @staticmethod
    def plan_due_assignments(
        commitment: CommitmentData,
        existing_keys: set[tuple[str, str, date]],
        today: date,
        tz=None,
    ) -> list[DueAssignment]:
        """Return the assignments a commitment owes up to today that are missing.

        Args:
            commitment: Commitment definition (inactive ones owe nothing)
            existing_keys: Keys of assignments already in the store, built with
                assignment_key() from each assignment's local due date
            today: Local date of "now"
            tz: Timezone used for the end-of-day deadline
        """
        if not commitment[const.DATA_COMMITMENT_IS_ACTIVE]:
            return []
        start = dt_parse_date(commitment[const.DATA_COMMITMENT_START_DATE])
        if start is None:
            return []
        end = dt_parse_date(commitment[const.DATA_COMMITMENT_END_DATE])

        commitment_id = commitment[const.DATA_ID]
        owed: list[DueAssignment] = []
        for due in RecurrenceEngine.due_dates(
            commitment[const.DATA_COMMITMENT_RECURRENCE], start, end, today
        ):
            for dependent_id in commitment[const.DATA_COMMITMENT_DEPENDENT_IDS]:
                key = CommitmentEngine.assignment_key(commitment_id, dependent_id, due)
                if key in existing_keys:
                    continue
                owed.append(
                    DueAssignment(
                        commitment_id=commitment_id,
                        dependent_id=dependent_id,
                        due_date=RecurrenceEngine.deadline_for(due, tz),
                    )
                )
        return owed
