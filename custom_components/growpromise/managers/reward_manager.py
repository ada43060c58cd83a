"""Reward Manager - Reward catalog and redemption.

This manager handles the reward lifecycle:
- Catalog: guardians create, edit, activate/deactivate and delete rewards
- Progress: per-reward progress of a dependent's available stickers
- Redeem: dependent spends the oldest N stickers (one atomic store operation)

ARCHITECTURE:
- Balances come from EconomyEngine over the sticker rows (never stored)
- The check-then-act of a redemption happens inside the store; the per
  dependent lock only keeps local callers from interleaving
- Emits REWARD_REDEEMED for NotificationManager
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from .. import auth, const, data_builders as db
from ..engines.economy_engine import EconomyEngine
from ..exceptions import AuthorizationError
from ..store import cache_key
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from ..auth import Identity
    from ..coordinator import GrowPromiseCoordinator
    from ..type_defs import RedemptionData, RewardData, RewardProgress


class RewardManager(BaseManager):
    """Manager for the reward catalog and redemptions.

    NOT responsible for:
    - Sticker minting (delegated to EconomyManager)
    - Notification delivery (NotificationManager listens to REWARD_REDEEMED)
    """

    def __init__(self, hass: HomeAssistant, coordinator: GrowPromiseCoordinator) -> None:
        """Initialize the RewardManager."""
        super().__init__(hass, coordinator)
        self._redeem_locks: dict[str, asyncio.Lock] = {}

    async def async_setup(self) -> None:
        """Set up the RewardManager."""
        const.LOGGER.debug("RewardManager initialized for entry %s", self.entry_id)

    def _get_lock(self, dependent_id: str) -> asyncio.Lock:
        """Get or create the redemption lock of a dependent."""
        if dependent_id not in self._redeem_locks:
            self._redeem_locks[dependent_id] = asyncio.Lock()
        return self._redeem_locks[dependent_id]

    async def _async_owned_reward(
        self, identity: Identity, reward_id: str, action: str
    ) -> RewardData:
        auth.require_guardian(identity, action)
        reward = await self.remote.async_get_reward(reward_id)
        if reward[const.DATA_REWARD_GUARDIAN_ID] != identity.profile_id:
            raise AuthorizationError(f"{action}: reward belongs to another guardian")
        return reward

    # =========================================================================
    # Catalog
    # =========================================================================

    async def async_create_reward(
        self,
        identity: Identity,
        title: str,
        required_sticker_count: int,
        description: str | None = None,
        is_active: bool = True,
        now_utc: datetime | None = None,
    ) -> RewardData:
        """Create a reward owned by the calling guardian."""
        auth.require_guardian(identity, const.SERVICE_CREATE_REWARD)
        reward = db.build_reward(
            identity.profile_id,
            title,
            required_sticker_count,
            self._now(now_utc),
            description=description,
            is_active=is_active,
        )
        created = await self.remote.async_add_reward(reward)
        const.LOGGER.info(
            "INFO: Created reward '%s' (%s stickers)",
            created[const.DATA_REWARD_TITLE],
            created[const.DATA_REWARD_REQUIRED_STICKER_COUNT],
        )
        return created

    async def async_update_reward(
        self,
        identity: Identity,
        reward_id: str,
        title: str | None = None,
        description: str | None = None,
        required_sticker_count: int | None = None,
    ) -> RewardData:
        """Edit a reward's title, description or sticker cost."""
        await self._async_owned_reward(identity, reward_id, const.SERVICE_UPDATE_REWARD)
        changes: dict[str, Any] = {}
        if title is not None:
            changes[const.DATA_REWARD_TITLE] = db.require_text(title, const.FIELD_TITLE)
        if description is not None:
            changes[const.DATA_REWARD_DESCRIPTION] = description
        if required_sticker_count is not None:
            changes[const.DATA_REWARD_REQUIRED_STICKER_COUNT] = (
                db.validate_required_sticker_count(required_sticker_count)
            )
        return await self.remote.async_update_reward(reward_id, changes)

    async def async_set_reward_active(
        self, identity: Identity, reward_id: str, is_active: bool
    ) -> RewardData:
        """Activate or deactivate a reward."""
        await self._async_owned_reward(
            identity, reward_id, const.SERVICE_SET_REWARD_ACTIVE
        )
        return await self.remote.async_update_reward(
            reward_id, {const.DATA_REWARD_IS_ACTIVE: is_active}
        )

    async def async_delete_reward(self, identity: Identity, reward_id: str) -> None:
        """Delete a reward; past redemptions keep their copy of the title."""
        await self._async_owned_reward(identity, reward_id, const.SERVICE_DELETE_REWARD)
        await self.remote.async_delete_reward(reward_id)
        const.LOGGER.info("INFO: Deleted reward %s", reward_id)

    async def async_list_rewards(
        self, identity: Identity, active_only: bool = False
    ) -> list[RewardData]:
        """Return the rewards visible to an identity.

        Guardians see their own catalog, dependents see their guardians'.
        """
        guardian_ids = await self.coordinator.profile_manager.async_guardian_ids_for(
            identity
        )

        async def _fetch() -> list[RewardData]:
            return await self.remote.async_list_rewards(guardian_ids, active_only)

        return await self._async_read_through(
            cache_key(
                const.CACHE_KEY_REWARDS,
                identity.profile_id,
                "active" if active_only else "all",
            ),
            _fetch,
        )

    # =========================================================================
    # Progress & Redemption
    # =========================================================================

    async def async_get_reward_progress(
        self, identity: Identity, dependent_id: str | None = None
    ) -> list[RewardProgress]:
        """Return progress toward every active reward of the dependent's guardians."""
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_GET_REWARD_PROGRESS
        )
        rewards = await self.remote.async_list_rewards(
            set(dependent[const.DATA_PROFILE_GUARDIAN_IDS]), active_only=True
        )
        counts = await self.coordinator.economy_manager.async_counts_for(
            dependent[const.DATA_ID]
        )
        return [
            EconomyEngine.reward_progress(reward, counts["available"])
            for reward in rewards
        ]

    async def async_redeem_reward(
        self,
        identity: Identity,
        reward_id: str,
        dependent_id: str | None = None,
        now_utc: datetime | None = None,
    ) -> RedemptionData:
        """Redeem a reward with the dependent's oldest available stickers.

        Raises:
            InsufficientBalanceError: not enough stickers (reports the shortfall)
            AuthorizationError: reward is outside the dependent's guardians
        """
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_REDEEM_REWARD
        )
        dep_id = dependent[const.DATA_ID]
        reward = await self.remote.async_get_reward(reward_id)
        if (
            reward[const.DATA_REWARD_GUARDIAN_ID]
            not in dependent[const.DATA_PROFILE_GUARDIAN_IDS]
        ):
            raise AuthorizationError(
                "Reward is not offered by a guardian of this dependent"
            )

        async with self._get_lock(dep_id):
            redemption = await self.remote.async_redeem_reward(
                dep_id, reward_id, self._now(now_utc)
            )

        await self.coordinator.client_store.async_invalidate(
            cache_key(const.CACHE_KEY_STICKER_COUNTS, dep_id)
        )
        const.LOGGER.info(
            "INFO: Dependent %s redeemed reward '%s' with %s stickers",
            dep_id,
            redemption[const.DATA_REDEMPTION_REWARD_TITLE],
            len(redemption[const.DATA_REDEMPTION_STICKER_IDS]),
        )
        self.emit(
            const.SIGNAL_SUFFIX_REWARD_REDEEMED,
            dependent_id=dep_id,
            reward_id=reward_id,
            reward_title=redemption[const.DATA_REDEMPTION_REWARD_TITLE],
            redemption_id=redemption[const.DATA_ID],
            sticker_ids=list(redemption[const.DATA_REDEMPTION_STICKER_IDS]),
        )
        return redemption

    async def async_list_redemptions(
        self, identity: Identity, dependent_id: str | None = None
    ) -> list[RedemptionData]:
        """Return reward history, newest first.

        Without a dependent, a guardian sees every redemption of their rewards.
        """
        if dependent_id is None and identity.is_guardian:
            return await self.remote.async_list_redemptions(
                guardian_id=identity.profile_id
            )
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_LIST_REDEMPTIONS
        )
        return await self.remote.async_list_redemptions(
            dependent_id=dependent[const.DATA_ID]
        )
