# File: __init__.py
"""Initialization file for the GrowPromise integration.

Handles setting up the integration, including loading configuration entries,
initializing data storage, and preparing the coordinator for data handling.

Key Features:
- Config entry setup and unload support.
- Coordinator initialization and the periodic sync pass.
- Storage management for persistent data handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.event import async_track_time_interval

from . import const
from .coordinator import GrowPromiseCoordinator
from .remote_store import StorageRemoteStore
from .services import async_setup_services, async_unload_services
from .store import GrowPromiseStore

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for GrowPromise entry: %s", entry.entry_id)

    # Must be done early before any components that use datetime helpers
    const.set_default_timezone(hass)

    remote_store = StorageRemoteStore(hass, const.REMOTE_STORAGE_KEY)
    await remote_store.async_initialize()
    client_store = GrowPromiseStore(hass, const.STORAGE_KEY)
    await client_store.async_initialize()

    coordinator = GrowPromiseCoordinator(hass, entry, remote_store, client_store)
    await coordinator.async_setup_managers()
    entry.runtime_data = coordinator

    await coordinator.async_config_entry_first_refresh()

    async_setup_services(hass)

    async def _async_sync_pass(_now: datetime) -> None:
        await coordinator.async_refresh()

    entry.async_on_unload(
        async_track_time_interval(hass, _async_sync_pass, coordinator.sync_interval)
    )
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("INFO: GrowPromise setup complete for entry: %s", entry.entry_id)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when its options change."""
    const.LOGGER.debug("DEBUG: Options changed, reloading entry %s", entry.entry_id)
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading GrowPromise entry: %s", entry.entry_id)
    async_unload_services(hass)
    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("INFO: Removing GrowPromise entry: %s", entry.entry_id)
    await StorageRemoteStore(hass, const.REMOTE_STORAGE_KEY).async_remove()
    await GrowPromiseStore(hass, const.STORAGE_KEY).async_delete_storage()
    const.LOGGER.info("INFO: GrowPromise entry data cleared: %s", entry.entry_id)
