"""Growth Manager - Plant lifecycle and the growth simulation.

This manager handles:
- The plant type catalog (guardian-authored)
- Starting a plant (at most one incomplete plant per dependent)
- Watering (rolling 24h window, streak reporting)
- Experience grants from approvals (never auto-advance)
- Stage advancement and completion

ARCHITECTURE:
- All rules live in GrowthEngine; this manager loads, guards and persists
- Mutations are guarded updates against the store, so a concurrent change
  to the same plant surfaces as InvalidTransitionError
- Emits PLANT_ADVANCED
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import auth, const, data_builders as db
from ..engines.growth_engine import GrowthEngine
from ..store import cache_key
from ..utils.dt_utils import dt_to_utc
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from ..auth import Identity
    from ..type_defs import PlantData, PlantTypeData, ProfileData


class GrowthManager(BaseManager):
    """Manager for plants and the plant type catalog."""

    async def async_setup(self) -> None:
        """Set up the GrowthManager."""
        const.LOGGER.debug("GrowthManager initialized for entry %s", self.entry_id)

    # =========================================================================
    # Plant types
    # =========================================================================

    async def async_add_plant_type(
        self,
        identity: Identity,
        name: str,
        max_stage: int,
        image_prefix: str,
        description: str | None = None,
        experience_to_advance: int | None = None,
    ) -> PlantTypeData:
        """Add a plant type to the catalog (guardians only)."""
        auth.require_guardian(identity, const.SERVICE_ADD_PLANT_TYPE)
        plant_type = db.build_plant_type(
            name,
            max_stage,
            image_prefix,
            description=description,
            experience_to_advance=experience_to_advance,
        )
        return await self.remote.async_add_plant_type(plant_type)

    async def async_list_plant_types(self) -> list[PlantTypeData]:
        """Return the plant type catalog."""
        return await self.remote.async_list_plant_types()

    # =========================================================================
    # Plants
    # =========================================================================

    async def _async_plant_for(
        self, identity: Identity, plant_id: str, action: str
    ) -> tuple[PlantData, ProfileData]:
        plant = await self.remote.async_get_plant(plant_id)
        dependent = await self.remote.async_get_profile(
            plant[const.DATA_PLANT_DEPENDENT_ID]
        )
        auth.require_self_or_guardian(identity, dependent, action)
        return plant, dependent

    async def _async_invalidate(self, dependent_id: str) -> None:
        await self.coordinator.client_store.async_invalidate(
            cache_key(const.CACHE_KEY_ACTIVE_PLANT, dependent_id)
        )

    async def async_start_plant(
        self,
        identity: Identity,
        plant_type_id: str,
        name: str | None = None,
        dependent_id: str | None = None,
        now_utc: datetime | None = None,
    ) -> PlantData:
        """Start a new plant for a dependent with no incomplete plant.

        Raises:
            InvalidTransitionError: the dependent already has an active plant
        """
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_START_PLANT
        )
        plant_type = await self.remote.async_get_plant_type(plant_type_id)
        plant = db.build_plant(
            dependent[const.DATA_ID],
            plant_type,
            self.coordinator.growth_config,
            self._now(now_utc),
            name=name,
        )
        created = await self.remote.async_add_plant(plant)
        await self._async_invalidate(dependent[const.DATA_ID])
        const.LOGGER.info(
            "INFO: Dependent %s started plant '%s' (%s)",
            dependent[const.DATA_ID],
            created[const.DATA_PLANT_NAME],
            plant_type[const.DATA_PLANT_TYPE_NAME],
        )
        return created

    async def async_get_active_plant(
        self, identity: Identity, dependent_id: str | None = None
    ) -> PlantData | None:
        """Return the dependent's incomplete plant, if any."""
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_GET_ACTIVE_PLANT
        )
        dep_id = dependent[const.DATA_ID]

        async def _fetch() -> PlantData | None:
            return await self.remote.async_get_active_plant(dep_id)

        return await self._async_read_through(
            cache_key(const.CACHE_KEY_ACTIVE_PLANT, dep_id), _fetch
        )

    async def async_list_plants(
        self, identity: Identity, dependent_id: str | None = None
    ) -> list[PlantData]:
        """Return a dependent's plant collection, newest first."""
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_LIST_PLANTS
        )
        return await self.remote.async_list_plants(dependent[const.DATA_ID])

    async def async_stage_image_ref(self, plant: PlantData) -> str:
        """Return the image reference of a plant's current stage."""
        plant_type = await self.remote.async_get_plant_type(
            plant[const.DATA_PLANT_TYPE_ID]
        )
        return GrowthEngine.stage_image_ref(plant_type, plant[const.DATA_PLANT_STAGE])

    # =========================================================================
    # Watering
    # =========================================================================

    async def async_water_plant(
        self,
        identity: Identity,
        plant_id: str,
        now_utc: datetime | None = None,
    ) -> dict[str, Any]:
        """Water a plant once per rolling 24h window.

        Returns:
            {"plant": ..., "health": new health, "health_gain": applied gain,
             "streak": consecutive-day watering streak}

        Raises:
            AlreadyWateredError: inside the window (carries the remaining time)
            PlantCompletedError: plant is completed
        """
        now = self._now(now_utc)
        plant, _dependent = await self._async_plant_for(
            identity, plant_id, const.SERVICE_WATER_PLANT
        )
        plan = GrowthEngine.plan_watering(plant, self.coordinator.growth_config, now)
        log = db.build_watering_log(plant_id, plan.health_gain, now)
        updated = await self.remote.async_record_watering(
            plant_id,
            plant[const.DATA_PLANT_LAST_WATERED_AT],
            plan.changes,
            log,
        )
        await self._async_invalidate(updated[const.DATA_PLANT_DEPENDENT_ID])

        streak = await self.async_watering_streak(plant_id)
        const.LOGGER.debug(
            "DEBUG: Watered plant %s: health=%s (+%s), streak=%s",
            plant_id,
            updated[const.DATA_PLANT_HEALTH],
            plan.health_gain,
            streak,
        )
        return {
            "plant": updated,
            "health": updated[const.DATA_PLANT_HEALTH],
            "health_gain": plan.health_gain,
            "streak": streak,
        }

    async def async_watering_streak(self, plant_id: str) -> int:
        """Return the current watering streak of a plant."""
        logs = await self.remote.async_list_watering_logs(plant_id)
        stamps = [
            stamp
            for stamp in (
                dt_to_utc(entry[const.DATA_WATERING_TIMESTAMP]) for entry in logs
            )
            if stamp is not None
        ]
        return GrowthEngine.watering_streak(stamps)

    # =========================================================================
    # Experience & Stages
    # =========================================================================

    async def async_grant_experience(
        self, plant_id: str, amount: int, source_id: str | None = None
    ) -> PlantData:
        """Add experience to a plant; never advances the stage."""
        plant = await self.remote.async_get_plant(plant_id)
        changes = GrowthEngine.plan_experience_grant(plant, amount, source_id)
        updated = await self.remote.async_update_plant(
            plant_id,
            {
                const.DATA_PLANT_EXPERIENCE: plant[const.DATA_PLANT_EXPERIENCE],
                const.DATA_PLANT_STAGE: plant[const.DATA_PLANT_STAGE],
            },
            changes,
        )
        await self._async_invalidate(updated[const.DATA_PLANT_DEPENDENT_ID])
        const.LOGGER.debug(
            "DEBUG: Granted %s experience to plant %s (%s/%s)",
            amount,
            plant_id,
            updated[const.DATA_PLANT_EXPERIENCE],
            updated[const.DATA_PLANT_EXPERIENCE_TO_ADVANCE],
        )
        return updated

    async def async_grant_experience_to_active(
        self, dependent_id: str, amount: int, source_id: str | None = None
    ) -> PlantData | None:
        """Grant experience to the dependent's active plant; no-op without one.

        With a source_id the grant happens at most once across all of the
        dependent's plants, so a replayed approval returns None.
        """
        if source_id is not None:
            for owned in await self.remote.async_list_plants(dependent_id):
                if source_id in owned[const.DATA_PLANT_EXPERIENCE_SOURCES]:
                    const.LOGGER.debug(
                        "DEBUG: Experience for %s already granted to plant %s",
                        source_id,
                        owned[const.DATA_ID],
                    )
                    return None
        plant = await self.remote.async_get_active_plant(dependent_id)
        if plant is None:
            const.LOGGER.debug(
                "DEBUG: Dependent %s has no active plant, experience not granted",
                dependent_id,
            )
            return None
        return await self.async_grant_experience(
            plant[const.DATA_ID], amount, source_id
        )

    async def async_advance_plant(
        self,
        identity: Identity,
        plant_id: str,
        now_utc: datetime | None = None,
    ) -> PlantData:
        """Advance a plant one stage, carrying leftover experience.

        Raises:
            NotEnoughExperienceError: experience below experience_to_advance
            PlantCompletedError: plant is completed
        """
        plant, _dependent = await self._async_plant_for(
            identity, plant_id, const.SERVICE_ADVANCE_PLANT
        )
        plant_type = await self.remote.async_get_plant_type(
            plant[const.DATA_PLANT_TYPE_ID]
        )
        changes = GrowthEngine.plan_advance(plant, plant_type, self._now(now_utc))
        updated = await self.remote.async_update_plant(
            plant_id,
            {
                const.DATA_PLANT_EXPERIENCE: plant[const.DATA_PLANT_EXPERIENCE],
                const.DATA_PLANT_STAGE: plant[const.DATA_PLANT_STAGE],
            },
            changes,
        )
        await self._async_invalidate(updated[const.DATA_PLANT_DEPENDENT_ID])
        const.LOGGER.info(
            "INFO: Plant %s advanced to stage %s%s",
            plant_id,
            updated[const.DATA_PLANT_STAGE],
            " (completed)" if updated[const.DATA_PLANT_COMPLETED] else "",
        )
        self.emit(
            const.SIGNAL_SUFFIX_PLANT_ADVANCED,
            dependent_id=updated[const.DATA_PLANT_DEPENDENT_ID],
            plant_id=plant_id,
            stage=updated[const.DATA_PLANT_STAGE],
            completed=updated[const.DATA_PLANT_COMPLETED],
            image_ref=GrowthEngine.stage_image_ref(
                plant_type, updated[const.DATA_PLANT_STAGE]
            ),
        )
        return updated
