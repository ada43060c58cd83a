# File: flow_helpers.py
"""Helpers for the GrowPromise integration's Config and Options flow.

Provides the settings schema shared by both flows and the validation that
turns selector output into option values.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant.helpers import selector

from . import const


def _number(min_value: int, max_value: int | None = None) -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            mode=selector.NumberSelectorMode.BOX,
            min=min_value,
            max=max_value,
            step=1,
        )
    )


def build_settings_schema(default: dict[str, Any] | None = None) -> vol.Schema:
    """Build schema for the growth pacing and sync settings."""
    default = default or {}
    return vol.Schema(
        {
            vol.Required(
                const.CONF_APPROVAL_EXPERIENCE,
                default=default.get(
                    const.CONF_APPROVAL_EXPERIENCE, const.DEFAULT_APPROVAL_EXPERIENCE
                ),
            ): _number(0),
            vol.Required(
                const.CONF_WATERING_HEALTH_GAIN,
                default=default.get(
                    const.CONF_WATERING_HEALTH_GAIN,
                    const.DEFAULT_WATERING_HEALTH_GAIN,
                ),
            ): _number(0, const.HEALTH_MAX),
            vol.Required(
                const.CONF_INITIAL_HEALTH,
                default=default.get(
                    const.CONF_INITIAL_HEALTH, const.DEFAULT_INITIAL_HEALTH
                ),
            ): _number(const.HEALTH_MIN, const.HEALTH_MAX),
            vol.Required(
                const.CONF_EXPERIENCE_TO_ADVANCE,
                default=default.get(
                    const.CONF_EXPERIENCE_TO_ADVANCE,
                    const.DEFAULT_EXPERIENCE_TO_ADVANCE,
                ),
            ): _number(1),
            vol.Required(
                const.CONF_STICKER_IMAGE_REF,
                default=default.get(
                    const.CONF_STICKER_IMAGE_REF, const.DEFAULT_STICKER_IMAGE_REF
                ),
            ): selector.TextSelector(),
            vol.Required(
                const.CONF_UPDATE_INTERVAL,
                default=default.get(
                    const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
                ),
            ): _number(1),
        }
    )


def validate_settings_inputs(user_input: dict[str, Any]) -> dict[str, str]:
    """Validate settings input, returning a field → error key dict."""
    errors: dict[str, str] = {}
    if not str(user_input.get(const.CONF_STICKER_IMAGE_REF, "")).strip():
        errors[const.CONF_STICKER_IMAGE_REF] = const.TRANS_KEY_CFOF_INVALID_IMAGE_REF
    return errors


def build_settings_data(user_input: dict[str, Any]) -> dict[str, Any]:
    """Normalize settings input into entry options (numbers as ints)."""
    return {
        const.CONF_APPROVAL_EXPERIENCE: int(user_input[const.CONF_APPROVAL_EXPERIENCE]),
        const.CONF_WATERING_HEALTH_GAIN: int(
            user_input[const.CONF_WATERING_HEALTH_GAIN]
        ),
        const.CONF_INITIAL_HEALTH: int(user_input[const.CONF_INITIAL_HEALTH]),
        const.CONF_EXPERIENCE_TO_ADVANCE: int(
            user_input[const.CONF_EXPERIENCE_TO_ADVANCE]
        ),
        const.CONF_STICKER_IMAGE_REF: str(
            user_input[const.CONF_STICKER_IMAGE_REF]
        ).strip(),
        const.CONF_UPDATE_INTERVAL: int(user_input[const.CONF_UPDATE_INTERVAL]),
    }
