# File: options_flow.py
"""Options Flow for the GrowPromise integration.

Edits the pacing and sync settings; saving the options reloads the entry
through the update listener registered in async_setup_entry.
"""

from __future__ import annotations

from typing import Any

from homeassistant import config_entries

from . import const
from . import flow_helpers as fh


class GrowPromiseOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the growth pacing settings."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Show and save the settings form."""
        errors: dict[str, str] = {}
        if user_input is not None:
            errors = fh.validate_settings_inputs(user_input)
            if not errors:
                const.LOGGER.debug(
                    "DEBUG: Updating settings for entry %s",
                    self.config_entry.entry_id,
                )
                return self.async_create_entry(data=fh.build_settings_data(user_input))

        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=fh.build_settings_schema(
                user_input or dict(self.config_entry.options)
            ),
            errors=errors,
        )
