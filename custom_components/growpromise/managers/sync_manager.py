"""Sync Manager - Replays the pending-action queue.

Each queued variant is dispatched in one place (_async_replay). A replayed
submission re-enters CommitmentManager with queueing disabled and as of its
capture time, so a still unreachable authority leaves the entry queued
instead of queueing it twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const
from ..auth import Identity
from ..exceptions import ValidationError
from ..pending_queue import (
    GrantExperienceAction,
    MintStickerAction,
    SubmitVerificationAction,
)
from ..utils.dt_utils import dt_to_utc
from .base_manager import BaseManager

if TYPE_CHECKING:
    from ..pending_queue import DrainResult, PendingAction


class SyncManager(BaseManager):
    """Drains the pending-action queue against the authority."""

    async def async_setup(self) -> None:
        """Set up the SyncManager."""
        const.LOGGER.debug("SyncManager initialized for entry %s", self.entry_id)

    async def async_drain(self) -> list[DrainResult]:
        """Replay every queued action in order and report per-entry results."""
        queue = self.coordinator.pending_queue
        if not len(queue):
            return []
        results = await queue.async_drain(self._async_replay)
        replayed = sum(1 for result in results if result.success)
        dead = sum(1 for result in results if result.dead_lettered)
        const.LOGGER.info(
            "INFO: Pending-action drain: %s replayed, %s still queued, %s dead-lettered",
            replayed,
            len(results) - replayed - dead,
            dead,
        )
        return results

    async def async_discard(self, entry_id: str) -> None:
        """Drop a queued action that can never succeed."""
        await self.coordinator.pending_queue.async_discard(entry_id)

    async def _async_replay(self, action: PendingAction) -> None:
        match action:
            case SubmitVerificationAction():
                await self.coordinator.commitment_manager.async_submit_verification(
                    Identity(action.identity_id, action.identity_role),
                    action.assignment_id,
                    action.image_ref,
                    action.note,
                    now_utc=dt_to_utc(action.submitted_at),
                    queue_on_failure=False,
                )
            case MintStickerAction():
                await self.coordinator.commitment_manager.async_replay_mint(
                    action.assignment_id
                )
            case GrantExperienceAction():
                await self.coordinator.growth_manager.async_grant_experience_to_active(
                    action.dependent_id, action.amount, source_id=action.assignment_id
                )
            case _:
                raise ValidationError(f"No replay handler for {action!r}")
