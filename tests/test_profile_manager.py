"""Tests for ProfileManager and the session gate."""

from typing import Any

import pytest
from homeassistant.core import HomeAssistant

from custom_components.growpromise import const
from custom_components.growpromise.auth import HassSessionGate, Identity
from custom_components.growpromise.coordinator import GrowPromiseCoordinator
from custom_components.growpromise.exceptions import (
    AuthorizationError,
    EntityNotFoundError,
    ValidationError,
)


async def test_dependent_needs_a_guardian(
    coordinator: GrowPromiseCoordinator, mock_hass_users: dict[str, Any]
) -> None:
    """Dependents are registered under an existing guardian."""
    profiles = coordinator.profile_manager
    with pytest.raises(ValidationError):
        await profiles.async_register_profile(
            "Orphan", const.ROLE_DEPENDENT, mock_hass_users["dependent"].id
        )
    with pytest.raises(EntityNotFoundError):
        await profiles.async_register_profile(
            "Orphan",
            const.ROLE_DEPENDENT,
            mock_hass_users["dependent"].id,
            guardian_ids=["missing"],
        )


async def test_guardian_link_must_be_a_guardian(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """A dependent cannot be linked as someone's guardian."""
    with pytest.raises(ValidationError):
        await coordinator.profile_manager.async_register_profile(
            "Cousin",
            const.ROLE_DEPENDENT,
            "another-user",
            guardian_ids=[household["dependent"].profile_id],
        )


async def test_resolve_dependent(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Dependents resolve to themselves; guardians must name a linked dependent."""
    profiles = coordinator.profile_manager
    dependent_id = household["dependent"].profile_id

    own = await profiles.async_resolve_dependent(household["dependent"], None, "test")
    assert own[const.DATA_ID] == dependent_id

    with pytest.raises(ValidationError):
        await profiles.async_resolve_dependent(household["guardian"], None, "test")
    with pytest.raises(AuthorizationError):
        await profiles.async_resolve_dependent(
            household["guardian2"], dependent_id, "test"
        )
    with pytest.raises(AuthorizationError):
        await profiles.async_resolve_dependent(
            household["dependent2"], dependent_id, "test"
        )


async def test_list_dependents(
    coordinator: GrowPromiseCoordinator, household: dict[str, Identity]
) -> None:
    """Guardians see their dependents, dependents see themselves."""
    profiles = coordinator.profile_manager

    assert len(await profiles.async_list_dependents(household["guardian"])) == 2
    assert await profiles.async_list_dependents(household["guardian2"]) == []
    own = await profiles.async_list_dependents(household["dependent"])
    assert [p[const.DATA_ID] for p in own] == [household["dependent"].profile_id]


async def test_session_gate(
    hass: HomeAssistant,
    coordinator: GrowPromiseCoordinator,
    household: dict[str, Identity],
    mock_hass_users: dict[str, Any],
) -> None:
    """The gate resolves linked users and refuses everyone else."""
    gate = await HassSessionGate.async_from_user_id(
        hass, coordinator.remote_store, mock_hass_users["dependent"].id
    )
    assert gate.is_authenticated()
    assert gate.current_identity() == household["dependent"]

    admin_gate = await HassSessionGate.async_from_user_id(
        hass, coordinator.remote_store, mock_hass_users["admin"].id
    )
    assert admin_gate.is_admin
    assert not admin_gate.is_authenticated()
    with pytest.raises(AuthorizationError):
        admin_gate.current_identity()

    system_gate = await HassSessionGate.async_from_user_id(
        hass, coordinator.remote_store, None
    )
    assert not system_gate.is_authenticated()
