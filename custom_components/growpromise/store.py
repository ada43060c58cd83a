# File: store.py
"""Handles client-side persistent state for the GrowPromise integration.

Uses Home Assistant's Storage helper to keep the derived, possibly stale cache
(cache-key → last-known snapshot) and the pending-action queue, so both
survive restarts. The authoritative household data lives in remote_store.py.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.storage import Store

from . import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .type_defs import ClientStoreData


class GrowPromiseStore:
    """Thin wrapper around Home Assistant's Store API for client-side state."""

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).
        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: ClientStoreData = GrowPromiseStore.get_default_structure()

    @staticmethod
    def get_default_structure() -> ClientStoreData:
        """Return canonical empty client structure."""
        return {
            const.DATA_CACHE: {},
            const.DATA_PENDING_ACTIONS: [],
            const.DATA_PENDING_SEQUENCE: 0,
        }

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        const.LOGGER.debug("DEBUG: GrowPromiseStore: Loading data from storage")
        existing_data = await self._store.async_load()
        if existing_data is None:
            const.LOGGER.info("INFO: No client storage found. Initializing new data")
            self._data = GrowPromiseStore.get_default_structure()
            return

        self._data = GrowPromiseStore.get_default_structure()
        self._data.update(existing_data)  # type: ignore[typeddict-item]
        const.LOGGER.debug(
            "DEBUG: Loaded client storage: %s cache keys, %s pending actions",
            len(self._data[const.DATA_CACHE]),
            len(self._data[const.DATA_PENDING_ACTIONS]),
        )

    @property
    def data(self) -> ClientStoreData:
        """Retrieve the in-memory data."""
        return self._data

    async def async_save(self) -> None:
        """Save the current data structure to storage asynchronously.

        Raises:
            No exceptions raised - errors are logged but do not stop execution.
            OSError: Logged when file system issues prevent saving.
            TypeError: Logged when data contains non-serializable types.
            ValueError: Logged when data is invalid for JSON serialization.
        """
        try:
            await self._store.async_save(self._data)
            const.LOGGER.debug("DEBUG: Client data saved successfully to storage")
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
        except TypeError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to non-serializable data: %s. "
                "Data contains types that cannot be converted to JSON",
                err,
            )
        except ValueError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to invalid data format: %s. "
                "Data structure may be corrupted",
                err,
            )

    async def async_delete_storage(self) -> None:
        """Clear in-memory data and delete the storage file."""
        self._data = GrowPromiseStore.get_default_structure()
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "INFO: Storage file removed successfully: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )

    # -- Snapshot cache -------------------------------------------------------

    def get_cached(self, cache_key: str) -> Any:
        """Return a copy of the last-known snapshot for a cache key, or None."""
        snapshot = self._data[const.DATA_CACHE].get(cache_key)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    async def async_set_cached(self, cache_key: str, snapshot: Any) -> None:
        """Record the last-known snapshot for a cache key."""
        self._data[const.DATA_CACHE][cache_key] = copy.deepcopy(snapshot)
        await self.async_save()

    async def async_invalidate(self, cache_key: str) -> None:
        """Drop a cache key and every key scoped under it ('<key>:<scope>')."""
        cache = self._data[const.DATA_CACHE]
        stale = [
            key for key in cache if key == cache_key or key.startswith(f"{cache_key}:")
        ]
        for key in stale:
            del cache[key]
        if stale:
            await self.async_save()


def cache_key(kind: str, *parts: str) -> str:
    """Build a cache key such as 'assignment:<id>' or 'sticker_counts:<dep>'."""
    return ":".join((kind, *parts))
