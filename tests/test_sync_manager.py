"""Tests for SyncManager - replaying the pending-action queue."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

from homeassistant.util import dt as dt_util

from custom_components.growpromise import const
from custom_components.growpromise.auth import Identity
from custom_components.growpromise.coordinator import GrowPromiseCoordinator
from custom_components.growpromise.exceptions import TransportError
from custom_components.growpromise.utils.dt_utils import dt_today_local


async def _queued_submission(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> dict[str, Any]:
    """Create today's assignment and queue its submission while offline."""
    now = dt_util.utcnow()
    await coordinator.commitment_manager.async_create_commitment(
        household["guardian"],
        "Read a book",
        const.RECURRENCE_DAILY,
        dt_today_local(now=now),
        [household["dependent"].profile_id],
        now_utc=now,
    )
    assignment = (
        await coordinator.remote_store.async_list_assignments(
            dependent_id=household["dependent"].profile_id
        )
    )[0]
    with patch.object(
        coordinator.remote_store,
        "async_get_assignment",
        new=AsyncMock(side_effect=TransportError("offline")),
    ):
        result = await coordinator.commitment_manager.async_submit_verification(
            household["dependent"], assignment[const.DATA_ID], "photos/book.jpg"
        )
    assert result["queued"] is True
    return assignment


async def test_drain_empty_queue(coordinator: GrowPromiseCoordinator) -> None:
    """Nothing queued, nothing replayed."""
    assert await coordinator.sync_manager.async_drain() == []


async def test_still_offline_keeps_single_entry(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """A replay that fails again stays queued and is not queued twice."""
    await _queued_submission(coordinator, household)

    with patch.object(
        coordinator.remote_store,
        "async_transition_assignment",
        new=AsyncMock(side_effect=TransportError("still offline")),
    ):
        results = await coordinator.sync_manager.async_drain()

    assert [r.success for r in results] == [False]
    assert results[0].error == "still offline"
    assert results[0].action_type == const.ACTION_SUBMIT_VERIFICATION
    assert len(coordinator.pending_queue) == 1


async def test_rejected_replay_is_dead_lettered(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """A replay the authority refuses is parked, never retried, then discarded."""
    assignment = await _queued_submission(coordinator, household)
    # The same submission arrived through another device first
    await coordinator.commitment_manager.async_submit_verification(
        household["dependent"], assignment[const.DATA_ID], "photos/book.jpg"
    )
    queue = coordinator.pending_queue

    results = await coordinator.sync_manager.async_drain()

    assert [r.success for r in results] == [False]
    assert results[0].dead_lettered is True
    assert len(queue) == 0
    assert [entry[const.DATA_ID] for entry in queue.dead_letters] == [
        results[0].entry_id
    ]
    assert queue.dead_letters[0][const.DATA_PENDING_DEAD_LETTER] == results[0].error

    with patch.object(
        coordinator.sync_manager, "_async_replay", new=AsyncMock()
    ) as replay:
        assert await coordinator.sync_manager.async_drain() == []
    replay.assert_not_called()

    await coordinator.sync_manager.async_discard(results[0].entry_id)
    assert queue.entries == []


async def test_refresh_drains_queue(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """The periodic sync pass replays queued actions."""
    assignment = await _queued_submission(coordinator, household)

    await coordinator.async_refresh()

    assert coordinator.last_update_success is True
    assert coordinator.data["pending_actions"] == 0
    assert coordinator.data["dead_letters"] == 0
    assert [entry["success"] for entry in coordinator.data["last_drain"]] == [True]
    stored = await coordinator.remote_store.async_get_assignment(
        assignment[const.DATA_ID]
    )
    assert stored[const.DATA_ASSIGNMENT_STATUS] == const.ASSIGNMENT_STATUS_SUBMITTED
