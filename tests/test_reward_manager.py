"""Tests for RewardManager and the sticker ledger behind it."""

from __future__ import annotations

from datetime import timedelta

import pytest
from homeassistant.util import dt as dt_util

from custom_components.growpromise import const
from custom_components.growpromise.auth import Identity
from custom_components.growpromise.coordinator import GrowPromiseCoordinator
from custom_components.growpromise.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    ValidationError,
)


async def _mint_stickers(
    coordinator: GrowPromiseCoordinator, dependent: Identity, count: int
) -> list[str]:
    """Mint stickers one minute apart and return their ids, oldest first."""
    start = dt_util.utcnow() - timedelta(hours=1)
    ids = []
    for index in range(count):
        sticker, created = await coordinator.economy_manager.async_mint(
            dependent.profile_id,
            f"assignment-{index}",
            "Brush teeth",
            start + timedelta(minutes=index),
        )
        assert created is True
        ids.append(sticker[const.DATA_ID])
    return ids


async def test_redeem_spends_oldest_stickers(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Three stickers, a two-sticker reward: the two oldest are spent."""
    dependent = household["dependent"]
    sticker_ids = await _mint_stickers(coordinator, dependent, 3)
    reward = await coordinator.reward_manager.async_create_reward(
        household["guardian"], "Movie night", 2
    )

    redemption = await coordinator.reward_manager.async_redeem_reward(
        dependent, reward[const.DATA_ID]
    )

    assert redemption[const.DATA_REDEMPTION_STICKER_IDS] == sticker_ids[:2]
    counts = await coordinator.economy_manager.async_get_sticker_counts(dependent)
    assert counts["total"] == 3
    assert counts["available"] == 1
    assert counts["redeemed"] == 2

    history = await coordinator.reward_manager.async_list_redemptions(dependent)
    assert [r[const.DATA_ID] for r in history] == [redemption[const.DATA_ID]]


async def test_redeem_reports_shortfall(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Two stickers against a three-sticker reward is one short, nothing spent."""
    dependent = household["dependent"]
    await _mint_stickers(coordinator, dependent, 2)
    reward = await coordinator.reward_manager.async_create_reward(
        household["guardian"], "Ice cream", 3
    )

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await coordinator.reward_manager.async_redeem_reward(
            dependent, reward[const.DATA_ID]
        )

    assert exc_info.value.shortfall == 1
    counts = await coordinator.economy_manager.async_get_sticker_counts(dependent)
    assert counts["available"] == 2


async def test_guardian_redeems_on_behalf_of_dependent(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """A linked guardian names the dependent explicitly."""
    dependent = household["dependent"]
    await _mint_stickers(coordinator, dependent, 1)
    reward = await coordinator.reward_manager.async_create_reward(
        household["guardian"], "Sticker book", 1
    )

    redemption = await coordinator.reward_manager.async_redeem_reward(
        household["guardian"], reward[const.DATA_ID], dependent.profile_id
    )

    assert redemption[const.DATA_REDEMPTION_DEPENDENT_ID] == dependent.profile_id


async def test_reward_of_unrelated_guardian_is_refused(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Dependents only redeem rewards their own guardians offer."""
    await _mint_stickers(coordinator, household["dependent"], 1)
    reward = await coordinator.reward_manager.async_create_reward(
        household["guardian2"], "Pizza", 1
    )

    with pytest.raises(AuthorizationError):
        await coordinator.reward_manager.async_redeem_reward(
            household["dependent"], reward[const.DATA_ID]
        )


async def test_dependent_cannot_create_reward(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Only guardians manage the catalog."""
    with pytest.raises(AuthorizationError):
        await coordinator.reward_manager.async_create_reward(
            household["dependent"], "Free candy", 1
        )


async def test_reward_progress(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Progress is computed from available stickers and capped at 100."""
    dependent = household["dependent"]
    await _mint_stickers(coordinator, dependent, 2)
    guardian = household["guardian"]
    await coordinator.reward_manager.async_create_reward(guardian, "Ice cream", 3)
    await coordinator.reward_manager.async_create_reward(guardian, "Stickers", 1)
    await coordinator.reward_manager.async_create_reward(
        guardian, "Hidden", 1, is_active=False
    )

    progress = {
        item["reward"][const.DATA_REWARD_TITLE]: item
        for item in await coordinator.reward_manager.async_get_reward_progress(
            dependent
        )
    }

    assert set(progress) == {"Ice cream", "Stickers"}
    assert progress["Ice cream"]["progress"] == pytest.approx(66.67, abs=0.01)
    assert progress["Ice cream"]["can_redeem"] is False
    assert progress["Stickers"]["progress"] == 100.0
    assert progress["Stickers"]["can_redeem"] is True


async def test_dependent_sees_guardian_catalog(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Dependents list their guardians' rewards and nobody else's."""
    await coordinator.reward_manager.async_create_reward(
        household["guardian"], "Movie night", 2
    )
    await coordinator.reward_manager.async_create_reward(
        household["guardian2"], "Pizza", 1
    )

    rewards = await coordinator.reward_manager.async_list_rewards(
        household["dependent"]
    )

    assert [r[const.DATA_REWARD_TITLE] for r in rewards] == ["Movie night"]


async def test_update_and_delete_reward(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Only the owning guardian edits or deletes a reward."""
    manager = coordinator.reward_manager
    reward = await manager.async_create_reward(household["guardian"], "Park trip", 5)

    with pytest.raises(AuthorizationError):
        await manager.async_update_reward(
            household["guardian2"], reward[const.DATA_ID], required_sticker_count=1
        )

    updated = await manager.async_update_reward(
        household["guardian"], reward[const.DATA_ID], required_sticker_count=4
    )
    assert updated[const.DATA_REWARD_REQUIRED_STICKER_COUNT] == 4

    await manager.async_delete_reward(household["guardian"], reward[const.DATA_ID])
    assert await manager.async_list_rewards(household["guardian"]) == []


async def test_deactivated_reward_cannot_be_redeemed(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Inactive rewards drop out of the active catalog and refuse redemption."""
    manager = coordinator.reward_manager
    await _mint_stickers(coordinator, household["dependent"], 2)
    reward = await manager.async_create_reward(household["guardian"], "Cinema", 1)

    with pytest.raises(AuthorizationError):
        await manager.async_set_reward_active(
            household["dependent"], reward[const.DATA_ID], False
        )

    updated = await manager.async_set_reward_active(
        household["guardian"], reward[const.DATA_ID], False
    )
    assert updated[const.DATA_REWARD_IS_ACTIVE] is False
    assert (
        await manager.async_list_rewards(household["dependent"], active_only=True)
        == []
    )
    with pytest.raises(ValidationError):
        await manager.async_redeem_reward(household["dependent"], reward[const.DATA_ID])

    await manager.async_set_reward_active(
        household["guardian"], reward[const.DATA_ID], True
    )
    redemption = await manager.async_redeem_reward(
        household["dependent"], reward[const.DATA_ID]
    )
    assert len(redemption[const.DATA_REDEMPTION_STICKER_IDS]) == 1
