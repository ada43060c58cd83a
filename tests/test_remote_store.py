"""Tests for StorageRemoteStore, the authoritative household store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from homeassistant.core import HomeAssistant
from homeassistant.util.file import WriteError

from custom_components.growpromise import const, data_builders as db
from custom_components.growpromise.engines.commitment_engine import CommitmentEngine
from custom_components.growpromise.engines.growth_engine import GrowthConfig
from custom_components.growpromise.exceptions import (
    EntityNotFoundError,
    InsufficientBalanceError,
    InvalidTransitionError,
    PlantCompletedError,
    ValidationError,
)
from custom_components.growpromise.remote_store import StorageRemoteStore

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)
STORAGE_KEY = "growpromise_test_data"


@pytest.fixture
async def remote(hass: HomeAssistant) -> StorageRemoteStore:
    """Return an empty, initialized store."""
    store = StorageRemoteStore(hass, STORAGE_KEY)
    await store.async_initialize()
    return store


async def _mint(
    remote: StorageRemoteStore, assignment_id: str, minted_at: datetime
) -> dict[str, Any]:
    sticker, _created = await remote.async_mint_sticker(
        db.build_sticker("dep-1", assignment_id, "Brush teeth", "sticker", minted_at)
    )
    return sticker


async def _assignment(remote: StorageRemoteStore) -> dict[str, Any]:
    created = await remote.async_add_assignments(
        [db.build_assignment("c1", "dep-1", NOW + timedelta(hours=11), NOW)]
    )
    return created[0]


# =============================================================================
# Profiles
# =============================================================================


async def test_profile_user_is_unique(remote: StorageRemoteStore) -> None:
    """An HA user is linked to at most one profile."""
    await remote.async_add_profile(
        db.build_profile("Guardian", const.ROLE_GUARDIAN, "user-1", NOW)
    )
    with pytest.raises(ValidationError):
        await remote.async_add_profile(
            db.build_profile("Again", const.ROLE_GUARDIAN, "user-1", NOW)
        )
    found = await remote.async_find_profile_by_user("user-1")
    assert found is not None
    assert found[const.DATA_PROFILE_NAME] == "Guardian"


async def test_missing_entity(remote: StorageRemoteStore) -> None:
    """Unknown ids raise EntityNotFoundError."""
    with pytest.raises(EntityNotFoundError):
        await remote.async_get_assignment("nope")


# =============================================================================
# Assignments
# =============================================================================


async def test_add_assignments_skips_existing_keys(remote: StorageRemoteStore) -> None:
    """The same (commitment, dependent, due date) is only stored once."""
    due = NOW + timedelta(hours=11)
    await remote.async_add_assignments([db.build_assignment("c1", "dep-1", due, NOW)])
    added = await remote.async_add_assignments(
        [
            db.build_assignment("c1", "dep-1", due, NOW),
            db.build_assignment("c1", "dep-2", due, NOW),
        ]
    )
    assert [a[const.DATA_ASSIGNMENT_DEPENDENT_ID] for a in added] == ["dep-2"]
    assert len(await remote.async_list_assignments()) == 2


async def test_transition_is_compare_and_set(remote: StorageRemoteStore) -> None:
    """A plan built from a stale read loses against the stored status."""
    assignment = await _assignment(remote)
    plan = CommitmentEngine.plan_submission(assignment, "img", None, NOW)

    await remote.async_transition_assignment(plan)
    with pytest.raises(InvalidTransitionError) as exc_info:
        await remote.async_transition_assignment(plan)
    assert exc_info.value.current == const.ASSIGNMENT_STATUS_SUBMITTED


async def test_returned_rows_are_copies(remote: StorageRemoteStore) -> None:
    """Mutating a returned row never touches the store."""
    assignment = await _assignment(remote)
    assignment[const.DATA_ASSIGNMENT_STATUS] = const.ASSIGNMENT_STATUS_APPROVED
    stored = await remote.async_get_assignment(assignment[const.DATA_ID])
    assert stored[const.DATA_ASSIGNMENT_STATUS] == const.ASSIGNMENT_STATUS_PENDING


async def test_delete_commitment_cascades(remote: StorageRemoteStore) -> None:
    """Deleting a commitment removes its assignments."""
    commitment = await remote.async_add_commitment(
        db.build_commitment(
            "g1", "Brush teeth", const.RECURRENCE_DAILY, "2025-03-09", ["dep-1"], NOW
        )
    )
    await remote.async_add_assignments(
        [
            db.build_assignment(commitment[const.DATA_ID], "dep-1", NOW, NOW),
            db.build_assignment(
                commitment[const.DATA_ID], "dep-1", NOW - timedelta(days=1), NOW
            ),
        ]
    )
    assert await remote.async_delete_commitment(commitment[const.DATA_ID]) == 2
    assert await remote.async_list_assignments() == []


# =============================================================================
# Stickers & redemption
# =============================================================================


async def test_mint_is_idempotent_by_assignment(remote: StorageRemoteStore) -> None:
    """A second mint for the same assignment returns the first sticker."""
    first, created = await remote.async_mint_sticker(
        db.build_sticker("dep-1", "a1", "Brush teeth", "sticker", NOW)
    )
    second, created_again = await remote.async_mint_sticker(
        db.build_sticker("dep-1", "a1", "Brush teeth", "sticker", NOW)
    )

    assert created is True
    assert created_again is False
    assert second[const.DATA_ID] == first[const.DATA_ID]
    assert len(await remote.async_list_stickers("dep-1")) == 1


async def test_redeem_consumes_oldest_stickers(remote: StorageRemoteStore) -> None:
    """Redeeming two of three stickers marks the two oldest."""
    newest = await _mint(remote, "a3", NOW)
    oldest = await _mint(remote, "a1", NOW - timedelta(days=2))
    middle = await _mint(remote, "a2", NOW - timedelta(days=1))
    reward = await remote.async_add_reward(
        db.build_reward("g1", "Movie night", 2, NOW)
    )

    redemption = await remote.async_redeem_reward(
        "dep-1", reward[const.DATA_ID], NOW
    )

    assert redemption[const.DATA_REDEMPTION_STICKER_IDS] == [
        oldest[const.DATA_ID],
        middle[const.DATA_ID],
    ]
    assert redemption[const.DATA_REDEMPTION_REWARD_TITLE] == "Movie night"
    stickers = {s[const.DATA_ID]: s for s in await remote.async_list_stickers("dep-1")}
    assert stickers[newest[const.DATA_ID]][
        const.DATA_STICKER_REDEEMED_BY_REWARD_ID
    ] is None
    assert stickers[oldest[const.DATA_ID]][
        const.DATA_STICKER_REDEEMED_BY_REWARD_ID
    ] == reward[const.DATA_ID]


async def test_redeem_short_balance_changes_nothing(
    remote: StorageRemoteStore,
) -> None:
    """A failed redemption leaves every sticker available."""
    await _mint(remote, "a1", NOW)
    await _mint(remote, "a2", NOW + timedelta(minutes=1))
    reward = await remote.async_add_reward(db.build_reward("g1", "Ice cream", 3, NOW))

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await remote.async_redeem_reward("dep-1", reward[const.DATA_ID], NOW)

    assert exc_info.value.shortfall == 1
    assert all(
        s[const.DATA_STICKER_REDEEMED_BY_REWARD_ID] is None
        for s in await remote.async_list_stickers("dep-1")
    )
    assert await remote.async_list_redemptions() == []


async def test_inactive_reward_cannot_be_redeemed(remote: StorageRemoteStore) -> None:
    """Only active rewards are redeemable."""
    await _mint(remote, "a1", NOW)
    reward = await remote.async_add_reward(
        db.build_reward("g1", "Ice cream", 1, NOW, is_active=False)
    )
    with pytest.raises(ValidationError):
        await remote.async_redeem_reward("dep-1", reward[const.DATA_ID], NOW)


# =============================================================================
# Plants
# =============================================================================


async def test_one_active_plant_per_dependent(remote: StorageRemoteStore) -> None:
    """A second plant is refused while the first is incomplete."""
    plant_type = await remote.async_add_plant_type(
        db.build_plant_type("Sunflower", 3, "sunflower")
    )
    await remote.async_add_plant(
        db.build_plant("dep-1", plant_type, GrowthConfig(), NOW)
    )
    with pytest.raises(InvalidTransitionError):
        await remote.async_add_plant(
            db.build_plant("dep-1", plant_type, GrowthConfig(), NOW)
        )


async def test_update_plant_is_guarded(remote: StorageRemoteStore) -> None:
    """Stale expectations and completed plants are refused."""
    plant_type = await remote.async_add_plant_type(
        db.build_plant_type("Sunflower", 3, "sunflower")
    )
    plant = await remote.async_add_plant(
        db.build_plant("dep-1", plant_type, GrowthConfig(), NOW)
    )
    plant_id = plant[const.DATA_ID]

    with pytest.raises(InvalidTransitionError):
        await remote.async_update_plant(
            plant_id, {const.DATA_PLANT_EXPERIENCE: 50}, {const.DATA_PLANT_EXPERIENCE: 60}
        )

    await remote.async_update_plant(
        plant_id, {}, {const.DATA_PLANT_COMPLETED: True}
    )
    with pytest.raises(PlantCompletedError):
        await remote.async_update_plant(plant_id, {}, {const.DATA_PLANT_HEALTH: 90})
    assert await remote.async_get_active_plant("dep-1") is None


# =============================================================================
# Persistence
# =============================================================================


async def test_failed_disk_write_keeps_the_transition(
    remote: StorageRemoteStore,
) -> None:
    """Store logs a failed write itself; the in-memory authority stays applied."""
    assignment = await _assignment(remote)
    plan = CommitmentEngine.plan_submission(assignment, "img", None, NOW)

    with patch.object(
        remote._store,  # pylint: disable=protected-access
        "_async_write_data",
        new=AsyncMock(side_effect=WriteError("disk gone")),
    ) as write:
        submitted = await remote.async_transition_assignment(plan)

    write.assert_awaited()
    assert submitted[const.DATA_ASSIGNMENT_STATUS] == const.ASSIGNMENT_STATUS_SUBMITTED
    stored = await remote.async_get_assignment(assignment[const.DATA_ID])
    assert stored[const.DATA_ASSIGNMENT_STATUS] == const.ASSIGNMENT_STATUS_SUBMITTED


async def test_initialize_normalizes_stored_payloads(
    hass: HomeAssistant, hass_storage: dict[str, Any]
) -> None:
    """Stored rows in the mobile API shape are normalized on load."""
    hass_storage[STORAGE_KEY] = {
        "version": const.STORAGE_VERSION,
        "minor_version": 1,
        "key": STORAGE_KEY,
        "data": {
            const.DATA_REWARDS: {
                "r1": {"title": "Ice cream", "requiredStickers": 3, "parentId": "g1"}
            },
        },
    }
    store = StorageRemoteStore(hass, STORAGE_KEY)
    await store.async_initialize()

    reward = await store.async_get_reward("r1")
    assert reward[const.DATA_ID] == "r1"
    assert reward[const.DATA_REWARD_REQUIRED_STICKER_COUNT] == 3
    assert reward[const.DATA_REWARD_GUARDIAN_ID] == "g1"
    assert reward[const.DATA_REWARD_IS_ACTIVE] is True
    assert await store.async_list_plants() == []
