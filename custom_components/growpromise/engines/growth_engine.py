"""Growth Engine - Pure logic for the plant growth simulation.

This engine provides stateless, pure Python functions for:
- The rolling 24h watering window and health gain (clamped to 100)
- Watering streak calculation
- Experience bookkeeping and the can_advance flag
- Stage advancement with carried-over experience and completion

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
Gains are read from GrowthConfig, never from literals.
State management belongs in GrowthManager.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .. import const
from ..exceptions import (
    AlreadyWateredError,
    NotEnoughExperienceError,
    PlantCompletedError,
    ValidationError,
)
from ..type_defs import PlantData, PlantTypeData
from ..utils.dt_utils import as_local, dt_to_iso, dt_to_utc
from ..utils.math_utils import clamp

WATERING_WINDOW = timedelta(hours=const.WATERING_WINDOW_HOURS)
STREAK_BREAK_GAP = timedelta(hours=const.WATERING_STREAK_GAP_HOURS)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True)
class GrowthConfig:
    """Tunable pacing of the economy and the growth simulation.

    Attributes:
        approval_experience: Experience granted to the active plant per approval
        watering_health_gain: Health added per watering
        initial_health: Health of a newly started plant
        experience_to_advance: Experience per stage when the plant type sets none
        sticker_image_ref: Image reference of minted stickers
    """

    approval_experience: int = const.DEFAULT_APPROVAL_EXPERIENCE
    watering_health_gain: int = const.DEFAULT_WATERING_HEALTH_GAIN
    initial_health: int = const.DEFAULT_INITIAL_HEALTH
    experience_to_advance: int = const.DEFAULT_EXPERIENCE_TO_ADVANCE
    sticker_image_ref: str = const.DEFAULT_STICKER_IMAGE_REF

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> GrowthConfig:
        """Build the config from config entry options, filling defaults."""
        return cls(
            approval_experience=int(
                options.get(
                    const.CONF_APPROVAL_EXPERIENCE, const.DEFAULT_APPROVAL_EXPERIENCE
                )
            ),
            watering_health_gain=int(
                options.get(
                    const.CONF_WATERING_HEALTH_GAIN,
                    const.DEFAULT_WATERING_HEALTH_GAIN,
                )
            ),
            initial_health=int(
                clamp(
                    int(
                        options.get(
                            const.CONF_INITIAL_HEALTH, const.DEFAULT_INITIAL_HEALTH
                        )
                    ),
                    const.HEALTH_MIN,
                    const.HEALTH_MAX,
                )
            ),
            experience_to_advance=int(
                options.get(
                    const.CONF_EXPERIENCE_TO_ADVANCE,
                    const.DEFAULT_EXPERIENCE_TO_ADVANCE,
                )
            ),
            sticker_image_ref=str(
                options.get(
                    const.CONF_STICKER_IMAGE_REF, const.DEFAULT_STICKER_IMAGE_REF
                )
            ),
        )


@dataclass
class WateringPlan:
    """Outcome of a permitted watering, before it is persisted.

    Attributes:
        health_gain: Health actually added after clamping
        changes: Plant field updates
    """

    health_gain: int
    changes: dict[str, Any]


# =============================================================================
# GROWTH ENGINE
# =============================================================================


class GrowthEngine:
    """Pure logic engine for plant watering, experience and stages.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    @staticmethod
    def ensure_not_completed(plant: PlantData) -> None:
        """Raise PlantCompletedError for a frozen plant."""
        if plant[const.DATA_PLANT_COMPLETED]:
            raise PlantCompletedError(plant[const.DATA_ID])

    @staticmethod
    def stage_image_ref(plant_type: PlantTypeData, stage: int) -> str:
        """Return the opaque image reference for a plant type's stage."""
        return f"{plant_type[const.DATA_PLANT_TYPE_IMAGE_PREFIX]}_{stage}"

    # =========================================================================
    # WATERING
    # =========================================================================

    @staticmethod
    def next_watering_at(plant: PlantData) -> datetime | None:
        """Return the earliest instant the plant may be watered again."""
        last = dt_to_utc(plant[const.DATA_PLANT_LAST_WATERED_AT])
        return last + WATERING_WINDOW if last else None

    @staticmethod
    def plan_watering(
        plant: PlantData, config: GrowthConfig, now: datetime
    ) -> WateringPlan:
        """Plan one watering.

        The window is rolling from last_watered_at; exactly 24h later is allowed.

        Raises:
            PlantCompletedError: plant is completed
            AlreadyWateredError: inside the window (carries the remaining time)
        """
        GrowthEngine.ensure_not_completed(plant)
        next_allowed = GrowthEngine.next_watering_at(plant)
        if next_allowed is not None and now < next_allowed:
            raise AlreadyWateredError(plant[const.DATA_ID], next_allowed - now)

        old_health = plant[const.DATA_PLANT_HEALTH]
        new_health = int(
            clamp(
                old_health + config.watering_health_gain,
                const.HEALTH_MIN,
                const.HEALTH_MAX,
            )
        )
        return WateringPlan(
            health_gain=new_health - old_health,
            changes={
                const.DATA_PLANT_HEALTH: new_health,
                const.DATA_PLANT_LAST_WATERED_AT: dt_to_iso(now),
            },
        )

    @staticmethod
    def watering_streak(timestamps: list[datetime], tz=None) -> int:
        """Count consecutive local days with a watering, newest first.

        The chain starts at the most recent watering and walks back while
        each gap between consecutive waterings is under 48h. The streak is
        the number of distinct local calendar days in that chain.

        Examples (waterings at 09:00 local):
            Mon, Tue, Wed → 3
            Mon, Wed (48h gap) → 1
            Mon 09:00, Mon 20:00, Tue 09:00 → 2
        """
        if not timestamps:
            return 0
        ordered = sorted(timestamps, reverse=True)
        days = {as_local(ordered[0], tz).date()}
        previous = ordered[0]
        for stamp in ordered[1:]:
            if previous - stamp >= STREAK_BREAK_GAP:
                break
            days.add(as_local(stamp, tz).date())
            previous = stamp
        return len(days)

    # =========================================================================
    # EXPERIENCE & STAGES
    # =========================================================================

    @staticmethod
    def plan_experience_grant(
        plant: PlantData, amount: int, source_id: str | None = None
    ) -> dict[str, Any]:
        """Plan adding experience; never advances the stage.

        A source_id (the approved assignment) is recorded on the plant so the
        same approval is never granted twice.

        Raises:
            ValidationError: amount is negative
            PlantCompletedError: plant is completed
        """
        if amount < 0:
            raise ValidationError("Experience amount must not be negative", "amount")
        GrowthEngine.ensure_not_completed(plant)
        experience = plant[const.DATA_PLANT_EXPERIENCE] + amount
        changes: dict[str, Any] = {
            const.DATA_PLANT_EXPERIENCE: experience,
            const.DATA_PLANT_CAN_ADVANCE: (
                experience >= plant[const.DATA_PLANT_EXPERIENCE_TO_ADVANCE]
            ),
        }
        if source_id is not None:
            changes[const.DATA_PLANT_EXPERIENCE_SOURCES] = [
                *plant[const.DATA_PLANT_EXPERIENCE_SOURCES],
                source_id,
            ]
        return changes

    @staticmethod
    def plan_advance(
        plant: PlantData, plant_type: PlantTypeData, now: datetime
    ) -> dict[str, Any]:
        """Plan advancing one stage, carrying leftover experience forward.

        Reaching the type's max stage completes and freezes the plant.

        Raises:
            PlantCompletedError: plant is completed
            NotEnoughExperienceError: experience < experience_to_advance
        """
        GrowthEngine.ensure_not_completed(plant)
        experience = plant[const.DATA_PLANT_EXPERIENCE]
        required = plant[const.DATA_PLANT_EXPERIENCE_TO_ADVANCE]
        if experience < required:
            raise NotEnoughExperienceError(plant[const.DATA_ID], experience, required)

        max_stage = plant_type[const.DATA_PLANT_TYPE_MAX_STAGE]
        new_stage = min(plant[const.DATA_PLANT_STAGE] + 1, max_stage)
        remaining = experience - required
        completed = new_stage >= max_stage
        return {
            const.DATA_PLANT_STAGE: new_stage,
            const.DATA_PLANT_EXPERIENCE: remaining,
            const.DATA_PLANT_CAN_ADVANCE: (not completed) and remaining >= required,
            const.DATA_PLANT_COMPLETED: completed,
            const.DATA_PLANT_COMPLETED_AT: dt_to_iso(now) if completed else None,
        }
