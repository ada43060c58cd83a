"""Shared fixtures for GrowPromise tests."""

from collections.abc import AsyncGenerator
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.growpromise import const
from custom_components.growpromise.auth import Identity
from custom_components.growpromise.coordinator import GrowPromiseCoordinator
from custom_components.growpromise.utils import dt_utils

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def reset_default_timezone() -> Any:
    """Restore the UTC default after setup switched it to the hass timezone."""
    yield
    dt_utils.set_default_timezone(ZoneInfo("UTC"))


@pytest.fixture
async def mock_hass_users(hass: HomeAssistant) -> dict[str, Any]:
    """Create mock Home Assistant users for testing."""
    admin_user = await hass.auth.async_create_user(
        "Admin User",
        group_ids=["system-admin"],
    )
    guardian_user = await hass.auth.async_create_user(
        "Guardian One",
        group_ids=["system-users"],
    )
    other_guardian_user = await hass.auth.async_create_user(
        "Guardian Two",
        group_ids=["system-users"],
    )
    dependent_user = await hass.auth.async_create_user(
        "Dependent One",
        group_ids=["system-users"],
    )
    other_dependent_user = await hass.auth.async_create_user(
        "Dependent Two",
        group_ids=["system-users"],
    )

    return {
        "admin": admin_user,
        "guardian": guardian_user,
        "guardian2": other_guardian_user,
        "dependent": dependent_user,
        "dependent2": other_dependent_user,
    }


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry with default options."""
    return MockConfigEntry(
        domain=const.DOMAIN,
        title=const.GROWPROMISE_TITLE,
        data={},
        options={
            const.CONF_APPROVAL_EXPERIENCE: const.DEFAULT_APPROVAL_EXPERIENCE,
            const.CONF_WATERING_HEALTH_GAIN: const.DEFAULT_WATERING_HEALTH_GAIN,
            const.CONF_INITIAL_HEALTH: const.DEFAULT_INITIAL_HEALTH,
            const.CONF_EXPERIENCE_TO_ADVANCE: const.DEFAULT_EXPERIENCE_TO_ADVANCE,
            const.CONF_STICKER_IMAGE_REF: const.DEFAULT_STICKER_IMAGE_REF,
            const.CONF_UPDATE_INTERVAL: const.DEFAULT_UPDATE_INTERVAL,
        },
        entry_id="test_entry_id",
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant, mock_config_entry: MockConfigEntry
) -> AsyncGenerator[MockConfigEntry, None]:
    """Set up the integration, unloading it again after the test."""
    mock_config_entry.add_to_hass(hass)

    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    yield mock_config_entry

    await hass.config_entries.async_unload(mock_config_entry.entry_id)
    await hass.async_block_till_done()


@pytest.fixture
def coordinator(init_integration: MockConfigEntry) -> GrowPromiseCoordinator:
    """Return the coordinator of the loaded entry."""
    return init_integration.runtime_data


@pytest.fixture
async def household(
    coordinator: GrowPromiseCoordinator, mock_hass_users: dict[str, Any]
) -> dict[str, Identity]:
    """Register two guardians and two dependents linked to the mock users.

    Both dependents belong to "guardian"; "guardian2" has no dependents.
    """
    profiles = coordinator.profile_manager
    guardian = await profiles.async_register_profile(
        "Guardian One", const.ROLE_GUARDIAN, mock_hass_users["guardian"].id
    )
    guardian2 = await profiles.async_register_profile(
        "Guardian Two", const.ROLE_GUARDIAN, mock_hass_users["guardian2"].id
    )
    dependent = await profiles.async_register_profile(
        "Dependent One",
        const.ROLE_DEPENDENT,
        mock_hass_users["dependent"].id,
        guardian_ids=[guardian[const.DATA_ID]],
    )
    dependent2 = await profiles.async_register_profile(
        "Dependent Two",
        const.ROLE_DEPENDENT,
        mock_hass_users["dependent2"].id,
        guardian_ids=[guardian[const.DATA_ID]],
    )
    return {
        "guardian": Identity.from_profile(guardian),
        "guardian2": Identity.from_profile(guardian2),
        "dependent": Identity.from_profile(dependent),
        "dependent2": Identity.from_profile(dependent2),
    }


@pytest.fixture
async def active_plant(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> dict[str, Any]:
    """Start a three-stage plant for "dependent"."""
    plant_type = await coordinator.growth_manager.async_add_plant_type(
        household["guardian"], "Sunflower", 3, "sunflower"
    )
    return await coordinator.growth_manager.async_start_plant(
        household["dependent"], plant_type[const.DATA_ID]
    )
