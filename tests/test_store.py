"""Tests for GrowPromiseStore, the client-side snapshot cache."""

from typing import Any

from homeassistant.core import HomeAssistant

from custom_components.growpromise import const
from custom_components.growpromise.store import GrowPromiseStore, cache_key

STORAGE_KEY = "growpromise_test_cache"


def test_cache_key() -> None:
    """Keys join the kind with every part."""
    assert cache_key(const.CACHE_KEY_ASSIGNMENT, "a1") == "assignment:a1"
    assert cache_key(const.CACHE_KEY_REWARDS, "g1", "all") == "rewards:g1:all"


async def test_initialize_empty(hass: HomeAssistant) -> None:
    """A missing file starts from the default structure."""
    store = GrowPromiseStore(hass, STORAGE_KEY)
    await store.async_initialize()

    assert store.data == GrowPromiseStore.get_default_structure()


async def test_snapshot_round_trip(
    hass: HomeAssistant, hass_storage: dict[str, Any]
) -> None:
    """Snapshots persist and are handed out as copies."""
    store = GrowPromiseStore(hass, STORAGE_KEY)
    await store.async_initialize()
    await store.async_set_cached("assignment:a1", {"status": "PENDING"})

    snapshot = store.get_cached("assignment:a1")
    snapshot["status"] = "APPROVED"

    assert store.get_cached("assignment:a1") == {"status": "PENDING"}
    assert hass_storage[STORAGE_KEY]["data"][const.DATA_CACHE] == {
        "assignment:a1": {"status": "PENDING"}
    }


async def test_invalidate(hass: HomeAssistant) -> None:
    """Invalidated keys are gone; unknown keys are ignored."""
    store = GrowPromiseStore(hass, STORAGE_KEY)
    await store.async_initialize()
    await store.async_set_cached("assignment:a1", {"status": "PENDING"})

    await store.async_invalidate("assignment:a1")
    await store.async_invalidate("assignment:missing")

    assert store.get_cached("assignment:a1") is None


async def test_delete_storage(
    hass: HomeAssistant, hass_storage: dict[str, Any]
) -> None:
    """Deleting the storage resets memory and removes the file."""
    store = GrowPromiseStore(hass, STORAGE_KEY)
    await store.async_initialize()
    await store.async_set_cached("assignment:a1", {"status": "PENDING"})

    await store.async_delete_storage()

    assert STORAGE_KEY not in hass_storage
    assert store.get_cached("assignment:a1") is None
