# File: services.py
"""Defines custom services for the GrowPromise integration.

These services allow direct actions through scripts or automations. The
caller's Home Assistant user is resolved to its linked profile, and engine
errors are translated into Home Assistant exception types.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import functools
from typing import TYPE_CHECKING

import voluptuous as vol
from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import (
    HomeAssistantError,
    ServiceValidationError,
    Unauthorized,
)
from homeassistant.helpers import config_validation as cv

from . import const
from .auth import HassSessionGate
from .exceptions import (
    AlreadyWateredError,
    AuthorizationError,
    GrowPromiseError,
    InsufficientBalanceError,
    InvalidTransitionError,
    NotEnoughExperienceError,
    PlantCompletedError,
    TransportError,
    ValidationError,
)
from .utils.dt_utils import dt_format_duration

if TYPE_CHECKING:
    from .auth import Identity
    from .coordinator import GrowPromiseCoordinator

ServiceHandler = Callable[[ServiceCall], Awaitable[ServiceResponse]]
HandlerFunc = Callable[
    [HomeAssistant, "GrowPromiseCoordinator", ServiceCall], Awaitable[ServiceResponse]
]

# --- Service Schemas ---
REGISTER_PROFILE_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_NAME): cv.string,
        vol.Required(const.FIELD_ROLE): vol.In(const.ROLES),
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Optional(const.FIELD_GUARDIAN_IDS): vol.All(cv.ensure_list, [cv.string]),
    }
)

CREATE_COMMITMENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_TITLE): cv.string,
        vol.Required(const.FIELD_RECURRENCE): vol.All(
            vol.Upper, vol.In(const.RECURRENCE_OPTIONS)
        ),
        vol.Required(const.FIELD_START_DATE): cv.date,
        vol.Required(const.FIELD_DEPENDENT_IDS): vol.All(
            cv.ensure_list, [cv.string]
        ),
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
        vol.Optional(const.FIELD_END_DATE): cv.date,
        vol.Optional(const.FIELD_IS_ACTIVE, default=True): cv.boolean,
    }
)

UPDATE_COMMITMENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_COMMITMENT_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
        vol.Optional(const.FIELD_RECURRENCE): vol.All(
            vol.Upper, vol.In(const.RECURRENCE_OPTIONS)
        ),
        vol.Optional(const.FIELD_START_DATE): cv.date,
        vol.Optional(const.FIELD_END_DATE): cv.date,
        vol.Optional(const.FIELD_DEPENDENT_IDS): vol.All(
            cv.ensure_list, [cv.string]
        ),
    }
)

SET_COMMITMENT_ACTIVE_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_COMMITMENT_ID): cv.string,
        vol.Required(const.FIELD_IS_ACTIVE): cv.boolean,
    }
)

DELETE_COMMITMENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_COMMITMENT_ID): cv.string,
    }
)

SUBMIT_VERIFICATION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_ASSIGNMENT_ID): cv.string,
        vol.Required(const.FIELD_IMAGE_REF): cv.string,
        vol.Optional(const.FIELD_NOTE): cv.string,
    }
)

RESOLVE_VERIFICATION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_ASSIGNMENT_ID): cv.string,
        vol.Required(const.FIELD_APPROVED): cv.boolean,
        vol.Optional(const.FIELD_REJECTION_REASON): cv.string,
    }
)

CREATE_REWARD_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_TITLE): cv.string,
        vol.Required(const.FIELD_REQUIRED_STICKER_COUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
        vol.Optional(const.FIELD_IS_ACTIVE, default=True): cv.boolean,
    }
)

DELETE_REWARD_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_REWARD_ID): cv.string,
    }
)

REDEEM_REWARD_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_REWARD_ID): cv.string,
        vol.Optional(const.FIELD_DEPENDENT_ID): cv.string,
    }
)

ADD_PLANT_TYPE_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_NAME): cv.string,
        vol.Required(const.FIELD_MAX_STAGE): vol.All(vol.Coerce(int), vol.Range(min=2)),
        vol.Required(const.FIELD_IMAGE_PREFIX): cv.string,
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
        vol.Optional(const.FIELD_EXPERIENCE_TO_ADVANCE): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)

START_PLANT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_PLANT_TYPE_ID): cv.string,
        vol.Optional(const.FIELD_NAME): cv.string,
        vol.Optional(const.FIELD_DEPENDENT_ID): cv.string,
    }
)

PLANT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_PLANT_ID): cv.string,
    }
)

EMPTY_SCHEMA = vol.Schema({})

UPDATE_REWARD_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_REWARD_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
        vol.Optional(const.FIELD_REQUIRED_STICKER_COUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)

SET_REWARD_ACTIVE_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_REWARD_ID): cv.string,
        vol.Required(const.FIELD_IS_ACTIVE): cv.boolean,
    }
)

# --- Query Schemas ---
ASSIGNMENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_ASSIGNMENT_ID): cv.string,
    }
)

LIST_ASSIGNMENTS_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_STATUS): vol.All(
            vol.Upper, vol.In(const.ASSIGNMENT_STATUSES)
        ),
        vol.Optional(const.FIELD_DEPENDENT_ID): cv.string,
    }
)

LIST_REWARDS_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_ACTIVE_ONLY, default=False): cv.boolean,
    }
)

DEPENDENT_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_DEPENDENT_ID): cv.string,
    }
)


# --- Helpers ---
def _get_coordinator(hass: HomeAssistant) -> GrowPromiseCoordinator:
    """Return the coordinator of the loaded GrowPromise entry."""
    for entry in hass.config_entries.async_entries(const.DOMAIN):
        if entry.state is ConfigEntryState.LOADED:
            return entry.runtime_data
    raise HomeAssistantError(
        translation_domain=const.DOMAIN,
        translation_key=const.TRANS_KEY_ERROR_NOT_LOADED,
    )


async def _async_identity(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> Identity:
    """Resolve the caller of a service to its profile identity."""
    gate = await HassSessionGate.async_from_user_id(
        hass, coordinator.remote_store, call.context.user_id
    )
    return gate.current_identity()


def _translate_error(err: GrowPromiseError, call: ServiceCall) -> HomeAssistantError:
    """Map an engine error onto a Home Assistant exception."""
    if isinstance(err, ValidationError):
        return ServiceValidationError(
            str(err),
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_VALIDATION,
            translation_placeholders={"message": str(err)},
        )
    if isinstance(err, AuthorizationError):
        return Unauthorized(context=call.context)

    placeholders: dict[str, str] = {"message": str(err)}
    match err:
        case InvalidTransitionError():
            key = const.TRANS_KEY_ERROR_INVALID_TRANSITION
        case InsufficientBalanceError():
            key = const.TRANS_KEY_ERROR_INSUFFICIENT_BALANCE
            placeholders["shortfall"] = str(err.shortfall)
        case NotEnoughExperienceError():
            key = const.TRANS_KEY_ERROR_NOT_ENOUGH_EXPERIENCE
        case AlreadyWateredError():
            key = const.TRANS_KEY_ERROR_ALREADY_WATERED
            placeholders["remaining"] = dt_format_duration(err.remaining)
        case PlantCompletedError():
            key = const.TRANS_KEY_ERROR_PLANT_COMPLETED
        case TransportError():
            key = const.TRANS_KEY_ERROR_TRANSPORT
        case _:
            key = const.TRANS_KEY_ERROR_GENERIC
    return HomeAssistantError(
        str(err),
        translation_domain=const.DOMAIN,
        translation_key=key,
        translation_placeholders=placeholders,
    )


def _translated(
    handler: HandlerFunc, hass: HomeAssistant
) -> ServiceHandler:
    """Wrap a handler with coordinator lookup and error translation."""

    @functools.wraps(handler)
    async def _handle(call: ServiceCall) -> ServiceResponse:
        coordinator = _get_coordinator(hass)
        try:
            return await handler(hass, coordinator, call)
        except GrowPromiseError as err:
            const.LOGGER.warning(
                "WARNING: Service %s failed: %s", call.service, err
            )
            raise _translate_error(err, call) from err

    return _handle


# --- Handlers ---
async def _handle_register_profile(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    """Link a Home Assistant user to a guardian or dependent profile."""
    gate = await HassSessionGate.async_from_user_id(
        hass, coordinator.remote_store, call.context.user_id
    )
    # System calls (automations) carry no user
    if call.context.user_id and not gate.is_admin:
        raise AuthorizationError("register_profile requires an administrator")
    user = await hass.auth.async_get_user(call.data[const.FIELD_USER_ID])
    if user is None:
        raise ValidationError(
            f"Unknown Home Assistant user '{call.data[const.FIELD_USER_ID]}'",
            const.FIELD_USER_ID,
        )
    profile = await coordinator.profile_manager.async_register_profile(
        call.data[const.FIELD_NAME],
        call.data[const.FIELD_ROLE],
        user.id,
        call.data.get(const.FIELD_GUARDIAN_IDS),
    )
    return {"profile": profile}


async def _handle_create_commitment(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    commitment = await coordinator.commitment_manager.async_create_commitment(
        identity,
        call.data[const.FIELD_TITLE],
        call.data[const.FIELD_RECURRENCE],
        call.data[const.FIELD_START_DATE],
        call.data[const.FIELD_DEPENDENT_IDS],
        description=call.data.get(const.FIELD_DESCRIPTION),
        end_date=call.data.get(const.FIELD_END_DATE),
        is_active=call.data[const.FIELD_IS_ACTIVE],
    )
    await coordinator.async_request_refresh()
    return {"commitment": commitment}


async def _handle_update_commitment(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    commitment = await coordinator.commitment_manager.async_update_commitment(
        identity,
        call.data[const.FIELD_COMMITMENT_ID],
        title=call.data.get(const.FIELD_TITLE),
        description=call.data.get(const.FIELD_DESCRIPTION),
        recurrence=call.data.get(const.FIELD_RECURRENCE),
        start_date=call.data.get(const.FIELD_START_DATE),
        end_date=call.data.get(const.FIELD_END_DATE),
        dependent_ids=call.data.get(const.FIELD_DEPENDENT_IDS),
    )
    return {"commitment": commitment}


async def _handle_set_commitment_active(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    commitment = await coordinator.commitment_manager.async_set_commitment_active(
        identity,
        call.data[const.FIELD_COMMITMENT_ID],
        call.data[const.FIELD_IS_ACTIVE],
    )
    return {"commitment": commitment}


async def _handle_delete_commitment(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    removed = await coordinator.commitment_manager.async_delete_commitment(
        identity, call.data[const.FIELD_COMMITMENT_ID]
    )
    await coordinator.async_request_refresh()
    return {"assignments_removed": removed}


async def _handle_submit_verification(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    return await coordinator.commitment_manager.async_submit_verification(
        identity,
        call.data[const.FIELD_ASSIGNMENT_ID],
        call.data[const.FIELD_IMAGE_REF],
        call.data.get(const.FIELD_NOTE),
    )


async def _handle_resolve_verification(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    result = await coordinator.commitment_manager.async_resolve_verification(
        identity,
        call.data[const.FIELD_ASSIGNMENT_ID],
        call.data[const.FIELD_APPROVED],
        call.data.get(const.FIELD_REJECTION_REASON),
    )
    await coordinator.async_request_refresh()
    return result


async def _handle_create_reward(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    reward = await coordinator.reward_manager.async_create_reward(
        identity,
        call.data[const.FIELD_TITLE],
        call.data[const.FIELD_REQUIRED_STICKER_COUNT],
        description=call.data.get(const.FIELD_DESCRIPTION),
        is_active=call.data[const.FIELD_IS_ACTIVE],
    )
    return {"reward": reward}


async def _handle_delete_reward(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    await coordinator.reward_manager.async_delete_reward(
        identity, call.data[const.FIELD_REWARD_ID]
    )
    return {"reward_id": call.data[const.FIELD_REWARD_ID]}


async def _handle_redeem_reward(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    redemption = await coordinator.reward_manager.async_redeem_reward(
        identity,
        call.data[const.FIELD_REWARD_ID],
        call.data.get(const.FIELD_DEPENDENT_ID),
    )
    await coordinator.async_request_refresh()
    return {"redemption": redemption}


async def _handle_add_plant_type(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    plant_type = await coordinator.growth_manager.async_add_plant_type(
        identity,
        call.data[const.FIELD_NAME],
        call.data[const.FIELD_MAX_STAGE],
        call.data[const.FIELD_IMAGE_PREFIX],
        description=call.data.get(const.FIELD_DESCRIPTION),
        experience_to_advance=call.data.get(const.FIELD_EXPERIENCE_TO_ADVANCE),
    )
    return {"plant_type": plant_type}


async def _handle_start_plant(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    plant = await coordinator.growth_manager.async_start_plant(
        identity,
        call.data[const.FIELD_PLANT_TYPE_ID],
        name=call.data.get(const.FIELD_NAME),
        dependent_id=call.data.get(const.FIELD_DEPENDENT_ID),
    )
    return {"plant": plant}


async def _handle_water_plant(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    return await coordinator.growth_manager.async_water_plant(
        identity, call.data[const.FIELD_PLANT_ID]
    )


async def _handle_advance_plant(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    plant = await coordinator.growth_manager.async_advance_plant(
        identity, call.data[const.FIELD_PLANT_ID]
    )
    return {
        "plant": plant,
        "image_ref": await coordinator.growth_manager.async_stage_image_ref(plant),
    }


async def _handle_sync_pending_actions(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    """Drain the pending-action queue now instead of waiting for the sync pass."""
    results = await coordinator.sync_manager.async_drain()
    return {
        "results": [result.as_dict() for result in results],
        "remaining": len(coordinator.pending_queue),
        "dead_letters": [
            entry[const.DATA_ID] for entry in coordinator.pending_queue.dead_letters
        ],
    }


async def _handle_update_reward(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    reward = await coordinator.reward_manager.async_update_reward(
        identity,
        call.data[const.FIELD_REWARD_ID],
        title=call.data.get(const.FIELD_TITLE),
        description=call.data.get(const.FIELD_DESCRIPTION),
        required_sticker_count=call.data.get(const.FIELD_REQUIRED_STICKER_COUNT),
    )
    return {"reward": reward}


async def _handle_set_reward_active(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    reward = await coordinator.reward_manager.async_set_reward_active(
        identity, call.data[const.FIELD_REWARD_ID], call.data[const.FIELD_IS_ACTIVE]
    )
    return {"reward": reward}


# --- Query Handlers ---
async def _handle_get_assignment(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    """Return one assignment (served from cache while the authority is down)."""
    identity = await _async_identity(hass, coordinator, call)
    assignment = await coordinator.commitment_manager.async_get_assignment(
        identity, call.data[const.FIELD_ASSIGNMENT_ID]
    )
    return {"assignment": assignment}


async def _handle_list_assignments(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    assignments = await coordinator.commitment_manager.async_list_assignments(
        identity,
        status=call.data.get(const.FIELD_STATUS),
        dependent_id=call.data.get(const.FIELD_DEPENDENT_ID),
    )
    return {"assignments": assignments}


async def _handle_list_pending_verifications(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    manager = coordinator.commitment_manager
    return {"assignments": await manager.async_list_pending_verifications(identity)}


async def _handle_list_commitments(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    manager = coordinator.commitment_manager
    return {"commitments": await manager.async_list_commitments(identity)}


async def _handle_list_rewards(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    rewards = await coordinator.reward_manager.async_list_rewards(
        identity, active_only=call.data[const.FIELD_ACTIVE_ONLY]
    )
    return {"rewards": rewards}


async def _handle_get_reward_progress(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    progress = await coordinator.reward_manager.async_get_reward_progress(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    return {"progress": progress}


async def _handle_list_redemptions(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    redemptions = await coordinator.reward_manager.async_list_redemptions(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    return {"redemptions": redemptions}


async def _handle_get_sticker_counts(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    counts = await coordinator.economy_manager.async_get_sticker_counts(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    return dict(counts)


async def _handle_list_stickers(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    stickers = await coordinator.economy_manager.async_list_stickers(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    return {"stickers": stickers}


async def _handle_list_plant_types(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    # Any linked profile may browse the catalog
    await _async_identity(hass, coordinator, call)
    return {"plant_types": await coordinator.growth_manager.async_list_plant_types()}


async def _handle_list_plants(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    plants = await coordinator.growth_manager.async_list_plants(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    return {"plants": plants}


async def _handle_get_active_plant(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    """Return the active plant with its current stage image, or nulls."""
    identity = await _async_identity(hass, coordinator, call)
    growth = coordinator.growth_manager
    plant = await growth.async_get_active_plant(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    if plant is None:
        return {"plant": None, "image_ref": None}
    return {"plant": plant, "image_ref": await growth.async_stage_image_ref(plant)}


async def _handle_get_dependent_stats(
    hass: HomeAssistant, coordinator: GrowPromiseCoordinator, call: ServiceCall
) -> ServiceResponse:
    identity = await _async_identity(hass, coordinator, call)
    stats = await coordinator.commitment_manager.async_get_dependent_stats(
        identity, call.data.get(const.FIELD_DEPENDENT_ID)
    )
    return dict(stats)


SERVICE_HANDLERS: dict[str, tuple[HandlerFunc, vol.Schema]] = {
    const.SERVICE_REGISTER_PROFILE: (_handle_register_profile, REGISTER_PROFILE_SCHEMA),
    const.SERVICE_CREATE_COMMITMENT: (
        _handle_create_commitment,
        CREATE_COMMITMENT_SCHEMA,
    ),
    const.SERVICE_UPDATE_COMMITMENT: (
        _handle_update_commitment,
        UPDATE_COMMITMENT_SCHEMA,
    ),
    const.SERVICE_SET_COMMITMENT_ACTIVE: (
        _handle_set_commitment_active,
        SET_COMMITMENT_ACTIVE_SCHEMA,
    ),
    const.SERVICE_DELETE_COMMITMENT: (
        _handle_delete_commitment,
        DELETE_COMMITMENT_SCHEMA,
    ),
    const.SERVICE_SUBMIT_VERIFICATION: (
        _handle_submit_verification,
        SUBMIT_VERIFICATION_SCHEMA,
    ),
    const.SERVICE_RESOLVE_VERIFICATION: (
        _handle_resolve_verification,
        RESOLVE_VERIFICATION_SCHEMA,
    ),
    const.SERVICE_CREATE_REWARD: (_handle_create_reward, CREATE_REWARD_SCHEMA),
    const.SERVICE_DELETE_REWARD: (_handle_delete_reward, DELETE_REWARD_SCHEMA),
    const.SERVICE_REDEEM_REWARD: (_handle_redeem_reward, REDEEM_REWARD_SCHEMA),
    const.SERVICE_ADD_PLANT_TYPE: (_handle_add_plant_type, ADD_PLANT_TYPE_SCHEMA),
    const.SERVICE_START_PLANT: (_handle_start_plant, START_PLANT_SCHEMA),
    const.SERVICE_WATER_PLANT: (_handle_water_plant, PLANT_SCHEMA),
    const.SERVICE_ADVANCE_PLANT: (_handle_advance_plant, PLANT_SCHEMA),
    const.SERVICE_SYNC_PENDING_ACTIONS: (_handle_sync_pending_actions, EMPTY_SCHEMA),
    const.SERVICE_UPDATE_REWARD: (_handle_update_reward, UPDATE_REWARD_SCHEMA),
    const.SERVICE_SET_REWARD_ACTIVE: (
        _handle_set_reward_active,
        SET_REWARD_ACTIVE_SCHEMA,
    ),
    const.SERVICE_GET_ASSIGNMENT: (_handle_get_assignment, ASSIGNMENT_SCHEMA),
    const.SERVICE_LIST_ASSIGNMENTS: (
        _handle_list_assignments,
        LIST_ASSIGNMENTS_SCHEMA,
    ),
    const.SERVICE_LIST_PENDING_VERIFICATIONS: (
        _handle_list_pending_verifications,
        EMPTY_SCHEMA,
    ),
    const.SERVICE_LIST_COMMITMENTS: (_handle_list_commitments, EMPTY_SCHEMA),
    const.SERVICE_LIST_REWARDS: (_handle_list_rewards, LIST_REWARDS_SCHEMA),
    const.SERVICE_GET_REWARD_PROGRESS: (_handle_get_reward_progress, DEPENDENT_SCHEMA),
    const.SERVICE_LIST_REDEMPTIONS: (_handle_list_redemptions, DEPENDENT_SCHEMA),
    const.SERVICE_GET_STICKER_COUNTS: (_handle_get_sticker_counts, DEPENDENT_SCHEMA),
    const.SERVICE_LIST_STICKERS: (_handle_list_stickers, DEPENDENT_SCHEMA),
    const.SERVICE_LIST_PLANT_TYPES: (_handle_list_plant_types, EMPTY_SCHEMA),
    const.SERVICE_LIST_PLANTS: (_handle_list_plants, DEPENDENT_SCHEMA),
    const.SERVICE_GET_ACTIVE_PLANT: (_handle_get_active_plant, DEPENDENT_SCHEMA),
    const.SERVICE_GET_DEPENDENT_STATS: (_handle_get_dependent_stats, DEPENDENT_SCHEMA),
}


def async_setup_services(hass: HomeAssistant) -> None:
    """Register GrowPromise services.

    Query services only return data, so they require a response; mutations
    may be called fire-and-forget from automations.
    """
    for service, (handler, schema) in SERVICE_HANDLERS.items():
        if hass.services.has_service(const.DOMAIN, service):
            continue
        hass.services.async_register(
            const.DOMAIN,
            service,
            _translated(handler, hass),
            schema=schema,
            supports_response=(
                SupportsResponse.ONLY
                if service in const.QUERY_SERVICES
                else SupportsResponse.OPTIONAL
            ),
        )

    const.LOGGER.info("INFO: GrowPromise services have been registered successfully")


def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister GrowPromise services when unloading the integration."""
    for service in const.SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: GrowPromise services have been unregistered")
