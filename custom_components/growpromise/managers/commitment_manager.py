"""Commitment Manager - Commitment definitions and the assignment lifecycle.

This manager handles the complete commitment workflow:
- Definitions: guardians create, edit, activate/deactivate and delete
- Instantiation: one assignment per dependent per due date, idempotently
- Submit: dependent submits proof (PENDING/REJECTED → SUBMITTED)
- Resolve: guardian approves (→ APPROVED, mint sticker, grant experience)
  or rejects with a reason (→ REJECTED)
- Reads materialize expiry: a PENDING assignment past its deadline is
  persisted as EXPIRED before it is returned

ARCHITECTURE:
- Transition rules live in CommitmentEngine; every transition is applied as
  a compare-and-set by the store, so a lost race raises InvalidTransitionError
- Work that hits a TransportError after the caller acted is queued on the
  pending-action queue instead of being retried inline
- Emits ASSIGNMENT_SUBMITTED / ASSIGNMENT_APPROVED / ASSIGNMENT_REJECTED

Event Flow:
    resolve(approved) -> EconomyManager.async_mint()
                      -> GrowthManager.async_grant_experience_to_active()
                      -> emit(ASSIGNMENT_APPROVED) -> NotificationManager
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import auth, const, data_builders as db
from ..engines.commitment_engine import CommitmentEngine
from ..engines.statistics_engine import StatisticsEngine
from ..exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    TransportError,
    ValidationError,
)
from ..pending_queue import (
    GrantExperienceAction,
    MintStickerAction,
    SubmitVerificationAction,
)
from ..store import cache_key
from ..utils.dt_utils import dt_to_iso, dt_today_local
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from ..auth import Identity
    from ..type_defs import (
        AssignmentData,
        CommitmentData,
        DependentStats,
        PlantData,
        StickerData,
    )


class CommitmentManager(BaseManager):
    """Manager for commitments and their assignments.

    NOT responsible for:
    - Sticker balance rules (EconomyManager / EconomyEngine)
    - Plant rules (GrowthManager / GrowthEngine)
    - Replaying queued actions (SyncManager calls back into this manager)
    """

    async def async_setup(self) -> None:
        """Set up the CommitmentManager."""
        const.LOGGER.debug(
            "CommitmentManager initialized for entry %s", self.entry_id
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _async_owned_commitment(
        self, identity: Identity, commitment_id: str, action: str
    ) -> CommitmentData:
        auth.require_guardian(identity, action)
        commitment = await self.remote.async_get_commitment(commitment_id)
        if commitment[const.DATA_COMMITMENT_GUARDIAN_ID] != identity.profile_id:
            raise AuthorizationError(f"{action}: commitment belongs to another guardian")
        return commitment

    async def _async_validate_dependents(
        self, identity: Identity, dependent_ids: list[str]
    ) -> None:
        if not dependent_ids:
            raise ValidationError(
                "A commitment needs at least one dependent", const.FIELD_DEPENDENT_IDS
            )
        for dependent_id in dependent_ids:
            dependent = await self.coordinator.profile_manager.async_get_dependent(
                dependent_id
            )
            auth.require_guardian_of(identity, dependent, const.SERVICE_CREATE_COMMITMENT)

    async def _async_commitment_ids_of(self, guardian_id: str) -> set[str]:
        return {
            commitment[const.DATA_ID]
            for commitment in await self.remote.async_list_commitments(
                guardian_id=guardian_id
            )
        }

    async def _async_authorize_assignment(
        self, identity: Identity, assignment: AssignmentData, action: str
    ) -> None:
        if identity.is_dependent:
            if assignment[const.DATA_ASSIGNMENT_DEPENDENT_ID] != identity.profile_id:
                raise AuthorizationError(f"{action}: assignment belongs to someone else")
            return
        commitment = await self.remote.async_get_commitment(
            assignment[const.DATA_ASSIGNMENT_COMMITMENT_ID]
        )
        if commitment[const.DATA_COMMITMENT_GUARDIAN_ID] != identity.profile_id:
            raise AuthorizationError(f"{action}: commitment belongs to another guardian")

    async def _async_materialize(
        self, assignment: AssignmentData, now: datetime, honor_queued: bool = True
    ) -> AssignmentData:
        """Persist PENDING → EXPIRED when the deadline has passed.

        With honor_queued, an assignment whose submission is still queued from
        before its deadline is left PENDING for the replay to submit.
        """
        if not CommitmentEngine.is_expired(assignment, now):
            return assignment
        if honor_queued:
            captured = self.coordinator.pending_queue.submission_captured_at(
                assignment[const.DATA_ID]
            )
            if captured is not None and not CommitmentEngine.is_expired(
                assignment, captured
            ):
                return assignment
        plan = CommitmentEngine.plan_expiry(assignment)
        try:
            expired = await self.remote.async_transition_assignment(plan)
        except InvalidTransitionError as err:
            # Another caller moved it on first; return the current state
            const.LOGGER.debug(
                "DEBUG: Expiry of assignment %s lost a race: %s",
                assignment[const.DATA_ID],
                err,
            )
            return await self.remote.async_get_assignment(assignment[const.DATA_ID])
        const.LOGGER.debug("DEBUG: Assignment %s expired", assignment[const.DATA_ID])
        return expired

    # =========================================================================
    # Commitment definitions
    # =========================================================================

    async def async_create_commitment(
        self,
        identity: Identity,
        title: str,
        recurrence: str,
        start_date: Any,
        dependent_ids: list[str],
        description: str | None = None,
        end_date: Any = None,
        is_active: bool = True,
        now_utc: datetime | None = None,
    ) -> CommitmentData:
        """Create a commitment and instantiate the assignments it already owes."""
        auth.require_guardian(identity, const.SERVICE_CREATE_COMMITMENT)
        await self._async_validate_dependents(identity, dependent_ids)
        now = self._now(now_utc)
        commitment = db.build_commitment(
            identity.profile_id,
            title,
            recurrence,
            start_date,
            dependent_ids,
            now,
            description=description,
            end_date=end_date,
            is_active=is_active,
        )
        created = await self.remote.async_add_commitment(commitment)
        const.LOGGER.info(
            "INFO: Created %s commitment '%s' for %s dependent(s)",
            created[const.DATA_COMMITMENT_RECURRENCE],
            created[const.DATA_COMMITMENT_TITLE],
            len(created[const.DATA_COMMITMENT_DEPENDENT_IDS]),
        )
        await self.async_instantiate_due_assignments(now, [created])
        return created

    async def async_update_commitment(
        self,
        identity: Identity,
        commitment_id: str,
        title: str | None = None,
        description: str | None = None,
        recurrence: str | None = None,
        start_date: Any = None,
        end_date: Any = None,
        dependent_ids: list[str] | None = None,
        now_utc: datetime | None = None,
    ) -> CommitmentData:
        """Edit a commitment definition.

        Existing assignments are kept; new due dates are instantiated.
        """
        current = await self._async_owned_commitment(
            identity, commitment_id, const.SERVICE_UPDATE_COMMITMENT
        )
        changes: dict[str, Any] = {}
        if title is not None:
            changes[const.DATA_COMMITMENT_TITLE] = db.require_text(
                title, const.FIELD_TITLE
            )
        if description is not None:
            changes[const.DATA_COMMITMENT_DESCRIPTION] = description
        if dependent_ids is not None:
            await self._async_validate_dependents(identity, dependent_ids)
            changes[const.DATA_COMMITMENT_DEPENDENT_IDS] = list(
                dict.fromkeys(dependent_ids)
            )
        if recurrence is not None or start_date is not None or end_date is not None:
            start, end = db.validate_commitment_schedule(
                recurrence or current[const.DATA_COMMITMENT_RECURRENCE],
                start_date or current[const.DATA_COMMITMENT_START_DATE],
                end_date or current[const.DATA_COMMITMENT_END_DATE],
            )
            changes[const.DATA_COMMITMENT_RECURRENCE] = (
                recurrence or current[const.DATA_COMMITMENT_RECURRENCE]
            )
            changes[const.DATA_COMMITMENT_START_DATE] = start.isoformat()
            changes[const.DATA_COMMITMENT_END_DATE] = end.isoformat() if end else None
        updated = await self.remote.async_update_commitment(commitment_id, changes)
        await self.async_instantiate_due_assignments(self._now(now_utc), [updated])
        return updated

    async def async_set_commitment_active(
        self,
        identity: Identity,
        commitment_id: str,
        is_active: bool,
        now_utc: datetime | None = None,
    ) -> CommitmentData:
        """Activate or deactivate a commitment."""
        await self._async_owned_commitment(
            identity, commitment_id, const.SERVICE_SET_COMMITMENT_ACTIVE
        )
        updated = await self.remote.async_update_commitment(
            commitment_id, {const.DATA_COMMITMENT_IS_ACTIVE: is_active}
        )
        if is_active:
            await self.async_instantiate_due_assignments(self._now(now_utc), [updated])
        return updated

    async def async_delete_commitment(
        self, identity: Identity, commitment_id: str
    ) -> int:
        """Delete a commitment and its assignments; minted stickers remain."""
        await self._async_owned_commitment(
            identity, commitment_id, const.SERVICE_DELETE_COMMITMENT
        )
        removed = await self.remote.async_delete_commitment(commitment_id)
        const.LOGGER.info(
            "INFO: Deleted commitment %s and %s assignment(s)", commitment_id, removed
        )
        return removed

    async def async_list_commitments(self, identity: Identity) -> list[CommitmentData]:
        """Return the commitments owned by a guardian or owed by a dependent."""
        if identity.is_guardian:
            return await self.remote.async_list_commitments(
                guardian_id=identity.profile_id
            )
        return await self.remote.async_list_commitments(
            dependent_id=identity.profile_id
        )

    async def async_instantiate_due_assignments(
        self,
        now_utc: datetime | None = None,
        commitments: list[CommitmentData] | None = None,
    ) -> list[AssignmentData]:
        """Create every owed assignment up to today that does not exist yet.

        Idempotent on (commitment, dependent, due date).
        """
        now = self._now(now_utc)
        today = dt_today_local(now=now)
        if commitments is None:
            commitments = await self.remote.async_list_commitments()
        existing = CommitmentEngine.existing_keys(
            await self.remote.async_list_assignments(
                commitment_ids={c[const.DATA_ID] for c in commitments}
            )
        )
        owed = [
            db.build_assignment(
                due.commitment_id, due.dependent_id, due.due_date, now
            )
            for commitment in commitments
            for due in CommitmentEngine.plan_due_assignments(
                commitment, existing, today
            )
        ]
        if not owed:
            return []
        created = await self.remote.async_add_assignments(owed)
        const.LOGGER.debug("DEBUG: Instantiated %s assignment(s)", len(created))
        return created

    # =========================================================================
    # Assignment queries (materialize expiry on read)
    # =========================================================================

    async def async_get_assignment(
        self,
        identity: Identity,
        assignment_id: str,
        now_utc: datetime | None = None,
    ) -> AssignmentData:
        """Return one assignment, expiring it first when overdue."""
        now = self._now(now_utc)

        async def _fetch() -> AssignmentData:
            found = await self.remote.async_get_assignment(assignment_id)
            await self._async_authorize_assignment(
                identity, found, const.SERVICE_GET_ASSIGNMENT
            )
            return await self._async_materialize(found, now)

        return await self._async_read_through(
            cache_key(const.CACHE_KEY_ASSIGNMENT, assignment_id, identity.profile_id),
            _fetch,
        )

    async def async_list_assignments(
        self,
        identity: Identity,
        status: str | None = None,
        dependent_id: str | None = None,
        now_utc: datetime | None = None,
    ) -> list[AssignmentData]:
        """Return a dependent's own assignments, or all of a guardian's.

        Expiry is materialized before the status filter applies.
        """
        now = self._now(now_utc)
        if identity.is_dependent:
            if dependent_id not in (None, identity.profile_id):
                raise AuthorizationError("Dependents may only list their own assignments")
            rows = await self.remote.async_list_assignments(
                dependent_id=identity.profile_id
            )
        else:
            rows = await self.remote.async_list_assignments(
                dependent_id=dependent_id,
                commitment_ids=await self._async_commitment_ids_of(
                    identity.profile_id
                ),
            )
        result = [await self._async_materialize(row, now) for row in rows]
        if status is not None:
            result = [
                row for row in result if row[const.DATA_ASSIGNMENT_STATUS] == status
            ]
        return result

    async def async_list_pending_verifications(
        self, identity: Identity, now_utc: datetime | None = None
    ) -> list[AssignmentData]:
        """Return the submissions awaiting a guardian's decision."""
        auth.require_guardian(identity, const.SERVICE_LIST_PENDING_VERIFICATIONS)
        return await self.async_list_assignments(
            identity, status=const.ASSIGNMENT_STATUS_SUBMITTED, now_utc=now_utc
        )

    # =========================================================================
    # Verification Handler
    # =========================================================================

    async def async_submit_verification(
        self,
        identity: Identity,
        assignment_id: str,
        image_ref: str,
        note: str | None = None,
        now_utc: datetime | None = None,
        queue_on_failure: bool = True,
    ) -> dict[str, Any]:
        """Submit proof for an assignment (PENDING or REJECTED → SUBMITTED).

        When the authority is unreachable and queue_on_failure is set, the
        submission is queued and {"queued": True, ...} is returned.

        Raises:
            InvalidTransitionError: assignment is SUBMITTED, APPROVED or EXPIRED
            ValidationError: missing image reference
        """
        auth.require_dependent(identity, const.SERVICE_SUBMIT_VERIFICATION)
        now = self._now(now_utc)
        try:
            assignment = await self.remote.async_get_assignment(assignment_id)
            await self._async_authorize_assignment(
                identity, assignment, const.SERVICE_SUBMIT_VERIFICATION
            )
            assignment = await self._async_materialize(
                assignment, now, honor_queued=False
            )
            plan = CommitmentEngine.plan_submission(assignment, image_ref, note, now)
            submitted = await self.remote.async_transition_assignment(plan)
        except TransportError as err:
            if not queue_on_failure:
                raise
            const.LOGGER.warning(
                "WARNING: Submission of assignment %s queued, authority unreachable: %s",
                assignment_id,
                err,
            )
            entry = await self.coordinator.pending_queue.async_enqueue(
                SubmitVerificationAction(
                    identity_id=identity.profile_id,
                    identity_role=identity.role,
                    assignment_id=assignment_id,
                    image_ref=image_ref,
                    note=note,
                    submitted_at=dt_to_iso(now),
                ),
                now,
            )
            return {"queued": True, "pending_action_id": entry[const.DATA_ID]}

        await self.coordinator.client_store.async_invalidate(
            cache_key(const.CACHE_KEY_ASSIGNMENT, assignment_id)
        )
        const.LOGGER.info("INFO: Assignment %s submitted for verification", assignment_id)
        self.emit(
            const.SIGNAL_SUFFIX_ASSIGNMENT_SUBMITTED,
            assignment_id=assignment_id,
            commitment_id=submitted[const.DATA_ASSIGNMENT_COMMITMENT_ID],
            dependent_id=submitted[const.DATA_ASSIGNMENT_DEPENDENT_ID],
            image_ref=submitted[const.DATA_ASSIGNMENT_VERIFICATION_IMAGE_REF],
        )
        return {"queued": False, "assignment": submitted}

    # =========================================================================
    # Approval Resolver
    # =========================================================================

    async def async_resolve_verification(
        self,
        identity: Identity,
        assignment_id: str,
        approved: bool,
        rejection_reason: str | None = None,
        now_utc: datetime | None = None,
    ) -> dict[str, Any]:
        """Approve or reject a submitted assignment.

        Approval mints exactly one sticker and grants the configured experience
        to the dependent's active plant (no-op without one). Either step that
        hits an unreachable authority is queued; the approval itself stands.

        Returns:
            {"assignment": ..., "sticker": sticker or None, "plant": plant or None,
             "mint_queued": bool, "experience_queued": bool}

        Raises:
            InvalidTransitionError: assignment is not SUBMITTED (incl. lost races)
            ValidationError: rejection without a reason
        """
        auth.require_guardian(identity, const.SERVICE_RESOLVE_VERIFICATION)
        now = self._now(now_utc)
        assignment = await self.remote.async_get_assignment(assignment_id)
        await self._async_authorize_assignment(
            identity, assignment, const.SERVICE_RESOLVE_VERIFICATION
        )
        plan = CommitmentEngine.plan_resolution(
            assignment, approved, rejection_reason, now
        )
        resolved = await self.remote.async_transition_assignment(plan)
        await self.coordinator.client_store.async_invalidate(
            cache_key(const.CACHE_KEY_ASSIGNMENT, assignment_id)
        )
        dependent_id = resolved[const.DATA_ASSIGNMENT_DEPENDENT_ID]

        if not approved:
            const.LOGGER.info("INFO: Assignment %s rejected", assignment_id)
            self.emit(
                const.SIGNAL_SUFFIX_ASSIGNMENT_REJECTED,
                assignment_id=assignment_id,
                commitment_id=resolved[const.DATA_ASSIGNMENT_COMMITMENT_ID],
                dependent_id=dependent_id,
                rejection_reason=resolved[const.DATA_ASSIGNMENT_REJECTION_REASON],
            )
            return {
                "assignment": resolved,
                "sticker": None,
                "plant": None,
                "mint_queued": False,
                "experience_queued": False,
            }

        sticker: StickerData | None = None
        mint_queued = False
        try:
            sticker = await self.async_mint_for(resolved, now)
        except TransportError as err:
            const.LOGGER.warning(
                "WARNING: Sticker mint for assignment %s queued, authority unreachable: %s",
                assignment_id,
                err,
            )
            await self.coordinator.pending_queue.async_enqueue(
                MintStickerAction(assignment_id=assignment_id), now
            )
            mint_queued = True

        experience = self.coordinator.growth_config.approval_experience
        plant: PlantData | None = None
        experience_queued = False
        growth = self.coordinator.growth_manager
        try:
            plant = await growth.async_grant_experience_to_active(
                dependent_id, experience, source_id=assignment_id
            )
        except TransportError as err:
            const.LOGGER.warning(
                "WARNING: Experience grant for assignment %s queued, "
                "authority unreachable: %s",
                assignment_id,
                err,
            )
            await self.coordinator.pending_queue.async_enqueue(
                GrantExperienceAction(
                    assignment_id=assignment_id,
                    dependent_id=dependent_id,
                    amount=experience,
                ),
                now,
            )
            experience_queued = True

        const.LOGGER.info("INFO: Assignment %s approved", assignment_id)
        self.emit(
            const.SIGNAL_SUFFIX_ASSIGNMENT_APPROVED,
            assignment_id=assignment_id,
            commitment_id=resolved[const.DATA_ASSIGNMENT_COMMITMENT_ID],
            dependent_id=dependent_id,
            sticker_id=sticker[const.DATA_ID] if sticker else None,
            experience_granted=experience if plant else 0,
            experience_queued=experience_queued,
        )
        return {
            "assignment": resolved,
            "sticker": sticker,
            "plant": plant,
            "mint_queued": mint_queued,
            "experience_queued": experience_queued,
        }

    async def async_mint_for(
        self, assignment: AssignmentData, now_utc: datetime | None = None
    ) -> StickerData:
        """Mint the sticker of an APPROVED assignment (idempotent)."""
        if assignment[const.DATA_ASSIGNMENT_STATUS] != const.ASSIGNMENT_STATUS_APPROVED:
            raise ValidationError(
                f"Assignment {assignment[const.DATA_ID]} is not approved",
                const.FIELD_ASSIGNMENT_ID,
            )
        commitment = await self.remote.async_get_commitment(
            assignment[const.DATA_ASSIGNMENT_COMMITMENT_ID]
        )
        sticker, _created = await self.coordinator.economy_manager.async_mint(
            assignment[const.DATA_ASSIGNMENT_DEPENDENT_ID],
            assignment[const.DATA_ID],
            commitment[const.DATA_COMMITMENT_TITLE],
            now_utc,
        )
        await self.coordinator.client_store.async_invalidate(
            cache_key(
                const.CACHE_KEY_STICKER_COUNTS,
                assignment[const.DATA_ASSIGNMENT_DEPENDENT_ID],
            )
        )
        return sticker

    async def async_replay_mint(self, assignment_id: str) -> StickerData:
        """Replay a queued mint for an approved assignment."""
        assignment = await self.remote.async_get_assignment(assignment_id)
        return await self.async_mint_for(assignment)

    # =========================================================================
    # Statistics
    # =========================================================================

    async def async_get_dependent_stats(
        self,
        identity: Identity,
        dependent_id: str | None = None,
        now_utc: datetime | None = None,
    ) -> DependentStats:
        """Summarize a dependent's assignments, stickers and plants."""
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_GET_DEPENDENT_STATS
        )
        return await self.async_stats_for(dependent[const.DATA_ID], now_utc)

    async def async_stats_for(
        self, dependent_id: str, now_utc: datetime | None = None
    ) -> DependentStats:
        """Summarize a dependent without an authorization check."""
        now = self._now(now_utc)
        assignments = [
            await self._async_materialize(row, now)
            for row in await self.remote.async_list_assignments(
                dependent_id=dependent_id
            )
        ]
        stats = StatisticsEngine.summarize(
            dependent_id,
            assignments,
            await self.remote.async_list_stickers(dependent_id),
            await self.remote.async_list_plants(dependent_id),
        )
        active = await self.remote.async_get_active_plant(dependent_id)
        if active is not None:
            stats["watering_streak"] = (
                await self.coordinator.growth_manager.async_watering_streak(
                    active[const.DATA_ID]
                )
            )
        return stats
