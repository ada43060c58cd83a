"""Base manager class for GrowPromise managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import (
    async_dispatcher_connect,
    async_dispatcher_send,
)
from homeassistant.util import dt as dt_util

from .. import const
from ..exceptions import TransportError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from ..coordinator import GrowPromiseCoordinator
    from ..remote_store import RemoteStore


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Format: 'growpromise_{entry_id}_{suffix}'
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


class BaseManager(ABC):
    """Base class for all GrowPromise managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)
    - Instance-scoped event listening (listen)
    - Automatic cleanup via coordinator's config_entry.async_on_unload
    - Read-through caching of snapshots in the client store

    Subclasses must implement:
    - async_setup(): Subscribe to events, initialize state
    """

    def __init__(self, hass: HomeAssistant, coordinator: GrowPromiseCoordinator) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            coordinator: Parent coordinator managing this integration instance
        """
        self.hass = hass
        self.coordinator = coordinator
        self.entry_id = coordinator.config_entry.entry_id

    @property
    def remote(self) -> RemoteStore:
        """Return the authoritative store."""
        return self.coordinator.remote_store

    @staticmethod
    def _now(now_utc: datetime | None = None) -> datetime:
        return now_utc or dt_util.utcnow()

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to other managers.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_REWARD_REDEEMED)
            **payload: Event data dict passed to listeners (must be JSON-serializable)
        """
        signal = get_event_signal(self.entry_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for instance %s with payload keys: %s",
            suffix,
            self.entry_id,
            list(payload.keys()),
        )
        # Pass payload as single dict argument (dispatcher only supports *args)
        async_dispatcher_send(self.hass, signal, payload)

    def listen(self, suffix: str, callback: Callable[..., Any]) -> None:
        """Subscribe to instance-scoped event with automatic cleanup.

        The subscription is automatically cleaned up when the config entry is unloaded.

        Args:
            suffix: Signal suffix constant to listen for
            callback: Function called when event fires (receives payload dict as arg)
        """
        signal = get_event_signal(self.entry_id, suffix)
        unsub = async_dispatcher_connect(self.hass, signal, callback)
        self.coordinator.config_entry.async_on_unload(unsub)
        const.LOGGER.debug(
            "Manager %s listening to event '%s' for instance %s",
            self.__class__.__name__,
            suffix,
            self.entry_id,
        )

    async def _async_read_through(
        self, cache_key: str, fetch: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Fetch from the authority and cache it, or serve the stale snapshot.

        Reads are never queued: without a cached snapshot the TransportError
        propagates to the caller.
        """
        client_store = self.coordinator.client_store
        try:
            result = await fetch()
        except TransportError:
            cached = client_store.get_cached(cache_key)
            if cached is None:
                raise
            const.LOGGER.warning(
                "WARNING: Authority unreachable, serving cached snapshot '%s'",
                cache_key,
            )
            return cached
        await client_store.async_set_cached(cache_key, result)
        return result

    @abstractmethod
    async def async_setup(self) -> None:
        """Set up the manager (subscribe to events, initialize state).

        Called once during coordinator initialization.
        Subclasses should subscribe to events here using self.listen().
        """
