# File: config_flow.py
"""Config flow for the GrowPromise integration.

A single instance per Home Assistant; households, commitments and plants are
managed through services, so the flow only collects the pacing settings.
"""

from __future__ import annotations

from typing import Any

from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from . import flow_helpers as fh
from .options_flow import GrowPromiseOptionsFlowHandler


class GrowPromiseConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for GrowPromise."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Collect the settings and create the single entry."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            errors = fh.validate_settings_inputs(user_input)
            if not errors:
                const.LOGGER.info("INFO: Creating GrowPromise config entry")
                return self.async_create_entry(
                    title=const.GROWPROMISE_TITLE,
                    data={},
                    options=fh.build_settings_data(user_input),
                )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER,
            data_schema=fh.build_settings_schema(user_input),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return GrowPromiseOptionsFlowHandler()
