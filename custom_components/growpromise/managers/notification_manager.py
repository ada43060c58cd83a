"""Notification Manager - Forwards domain events to the Home Assistant bus.

The engine only emits domain events; formatting and delivery belong to
whatever subscribes to `growpromise_event` (automations, a notify service).

Each forwarded event carries:
    type: the domain event (e.g. "assignment_approved")
    entry_id: the config entry that produced it
    ...: the event payload (ids, titles, stage, etc.)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.core import callback

from .. import const
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Callable


class NotificationManager(BaseManager):
    """Subscribes to every domain event and re-fires it on the event bus."""

    async def async_setup(self) -> None:
        """Subscribe to all domain event signals."""
        for suffix in const.DOMAIN_EVENT_SIGNALS:
            self.listen(suffix, self._build_forwarder(suffix))
        const.LOGGER.debug(
            "NotificationManager initialized with %s event subscriptions for entry %s",
            len(const.DOMAIN_EVENT_SIGNALS),
            self.entry_id,
        )

    def _build_forwarder(self, suffix: str) -> Callable[[dict[str, Any]], None]:
        @callback
        def _forward(payload: dict[str, Any]) -> None:
            self.hass.bus.async_fire(
                const.EVENT_GROWPROMISE,
                {
                    **payload,
                    const.EVENT_DATA_TYPE: suffix,
                    const.EVENT_DATA_ENTRY_ID: self.entry_id,
                },
            )
            const.LOGGER.debug(
                "NotificationManager: Forwarded '%s' to the event bus", suffix
            )

        return _forward
