# File: coordinator.py
"""Coordinator for the GrowPromise integration.

Owns the two stores, the pending-action queue and the managers of one config
entry. Its periodic pass drains the pending-action queue, instantiates the
assignments owed so far, and publishes a per-dependent statistics snapshot
as coordinator data.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import const
from .engines.growth_engine import GrowthConfig
from .exceptions import TransportError
from .managers import (
    CommitmentManager,
    EconomyManager,
    GrowthManager,
    NotificationManager,
    ProfileManager,
    RewardManager,
    SyncManager,
)
from .pending_queue import PendingActionQueue

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .remote_store import RemoteStore
    from .store import GrowPromiseStore


class GrowPromiseCoordinator(DataUpdateCoordinator):
    """Coordinator for GrowPromise integration.

    Data shape:
        {
            "dependents": {dependent_id: DependentStats},
            "pending_actions": int,
            "dead_letters": int,
            "last_drain": [DrainResult.as_dict(), ...],
        }
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        remote_store: RemoteStore,
        client_store: GrowPromiseStore,
    ) -> None:
        """Initialize the GrowPromiseCoordinator."""
        # The sync pass is scheduled by async_setup_entry so it runs even
        # without entity listeners.
        super().__init__(
            hass,
            const.LOGGER,
            config_entry=config_entry,
            name=f"{const.DOMAIN}{const.COORDINATOR_SUFFIX}",
            update_interval=None,
        )
        self.config_entry = config_entry
        self.remote_store = remote_store
        self.client_store = client_store
        self.pending_queue = PendingActionQueue(client_store)
        self.growth_config = GrowthConfig.from_options(config_entry.options)

        self.profile_manager = ProfileManager(hass, self)
        self.economy_manager = EconomyManager(hass, self)
        self.reward_manager = RewardManager(hass, self)
        self.growth_manager = GrowthManager(hass, self)
        self.commitment_manager = CommitmentManager(hass, self)
        self.notification_manager = NotificationManager(hass, self)
        self.sync_manager = SyncManager(hass, self)

    @property
    def sync_interval(self) -> timedelta:
        """Return the period of the sync pass from the entry options."""
        return timedelta(
            minutes=self.config_entry.options.get(
                const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
            )
        )

    async def async_setup_managers(self) -> None:
        """Run async_setup on every manager (event subscriptions)."""
        for manager in (
            self.profile_manager,
            self.economy_manager,
            self.reward_manager,
            self.growth_manager,
            self.commitment_manager,
            self.notification_manager,
            self.sync_manager,
        ):
            await manager.async_setup()

    async def _async_update_data(self) -> dict[str, Any]:
        """Periodic sync pass."""
        try:
            drained = await self.sync_manager.async_drain()
            await self.commitment_manager.async_instantiate_due_assignments()
            dependents = {
                profile[const.DATA_ID]: await self.commitment_manager.async_stats_for(
                    profile[const.DATA_ID]
                )
                for profile in await self.remote_store.async_list_profiles(
                    const.ROLE_DEPENDENT
                )
            }
        except TransportError as err:
            raise UpdateFailed(f"Error updating GrowPromise data: {err}") from err

        return {
            "dependents": dependents,
            "pending_actions": len(self.pending_queue),
            "dead_letters": len(self.pending_queue.dead_letters),
            "last_drain": [result.as_dict() for result in drained],
        }
