"""Unit tests for GrowthEngine - watering, streaks, experience and stages.

Pure Python tests, no Home Assistant fixtures.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from custom_components.growpromise import const
from custom_components.growpromise.engines.growth_engine import (
    GrowthConfig,
    GrowthEngine,
)
from custom_components.growpromise.exceptions import (
    AlreadyWateredError,
    NotEnoughExperienceError,
    PlantCompletedError,
    ValidationError,
)

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)
CONFIG = GrowthConfig()

PLANT_TYPE = {
    const.DATA_ID: "type-1",
    const.DATA_PLANT_TYPE_NAME: "Sunflower",
    const.DATA_PLANT_TYPE_DESCRIPTION: "",
    const.DATA_PLANT_TYPE_MAX_STAGE: 3,
    const.DATA_PLANT_TYPE_IMAGE_PREFIX: "sunflower",
    const.DATA_PLANT_TYPE_EXPERIENCE_TO_ADVANCE: None,
}


def make_plant(**overrides: Any):
    """Build a plant row."""
    plant = {
        const.DATA_ID: "plant-1",
        const.DATA_PLANT_DEPENDENT_ID: "dep-1",
        const.DATA_PLANT_TYPE_ID: "type-1",
        const.DATA_PLANT_NAME: "Sunny",
        const.DATA_PLANT_STAGE: 1,
        const.DATA_PLANT_HEALTH: 50,
        const.DATA_PLANT_EXPERIENCE: 0,
        const.DATA_PLANT_EXPERIENCE_TO_ADVANCE: 100,
        const.DATA_PLANT_CAN_ADVANCE: False,
        const.DATA_PLANT_LAST_WATERED_AT: None,
        const.DATA_PLANT_COMPLETED: False,
        const.DATA_PLANT_COMPLETED_AT: None,
        const.DATA_PLANT_STARTED_AT: "2025-03-01T00:00:00+00:00",
        const.DATA_PLANT_EXPERIENCE_SOURCES: [],
    }
    plant.update(overrides)
    return plant


# =============================================================================
# Test: configuration
# =============================================================================


class TestGrowthConfig:
    """Tests for GrowthConfig.from_options."""

    def test_defaults(self) -> None:
        """Missing options fall back to the defaults."""
        assert GrowthConfig.from_options({}) == GrowthConfig()

    def test_initial_health_is_clamped(self) -> None:
        """An out-of-range initial health is bounded to 0..100."""
        config = GrowthConfig.from_options({const.CONF_INITIAL_HEALTH: 250})
        assert config.initial_health == const.HEALTH_MAX


# =============================================================================
# Test: watering
# =============================================================================


class TestWatering:
    """Tests for plan_watering."""

    def test_first_watering(self) -> None:
        """A never-watered plant can be watered right away."""
        plan = GrowthEngine.plan_watering(make_plant(), CONFIG, NOW)
        assert plan.health_gain == CONFIG.watering_health_gain
        assert plan.changes[const.DATA_PLANT_HEALTH] == 60
        assert plan.changes[const.DATA_PLANT_LAST_WATERED_AT] == NOW.isoformat()

    def test_second_watering_inside_window_fails(self) -> None:
        """Watering again within 24h reports the remaining time."""
        plant = make_plant(last_watered_at=NOW.isoformat())
        with pytest.raises(AlreadyWateredError) as exc_info:
            GrowthEngine.plan_watering(plant, CONFIG, NOW + timedelta(hours=23))
        assert exc_info.value.remaining == timedelta(hours=1)

    def test_exactly_24h_later_succeeds(self) -> None:
        """The window boundary is inclusive."""
        plant = make_plant(last_watered_at=NOW.isoformat())
        plan = GrowthEngine.plan_watering(plant, CONFIG, NOW + timedelta(hours=24))
        assert plan.health_gain == CONFIG.watering_health_gain

    def test_health_is_clamped_to_100(self) -> None:
        """The applied gain is what remained below the cap."""
        plan = GrowthEngine.plan_watering(make_plant(health=95), CONFIG, NOW)
        assert plan.changes[const.DATA_PLANT_HEALTH] == 100
        assert plan.health_gain == 5

    def test_completed_plant_cannot_be_watered(self) -> None:
        """A completed plant is frozen."""
        with pytest.raises(PlantCompletedError):
            GrowthEngine.plan_watering(make_plant(completed=True), CONFIG, NOW)

    def test_next_watering_at(self) -> None:
        """The next allowed watering is 24h after the last one."""
        plant = make_plant(last_watered_at=NOW.isoformat())
        assert GrowthEngine.next_watering_at(plant) == NOW + timedelta(hours=24)
        assert GrowthEngine.next_watering_at(make_plant()) is None


# =============================================================================
# Test: watering streak
# =============================================================================


class TestWateringStreak:
    """Tests for watering_streak."""

    def test_no_waterings(self) -> None:
        """No log means no streak."""
        assert GrowthEngine.watering_streak([]) == 0

    def test_consecutive_days(self) -> None:
        """Mon, Tue, Wed at the same hour is a three-day streak."""
        stamps = [NOW, NOW + timedelta(days=1), NOW + timedelta(days=2)]
        assert GrowthEngine.watering_streak(stamps, UTC) == 3

    def test_48h_gap_breaks_the_chain(self) -> None:
        """Mon then Wed (exactly 48h apart) restarts the streak."""
        stamps = [NOW, NOW + timedelta(hours=48)]
        assert GrowthEngine.watering_streak(stamps, UTC) == 1

    def test_same_day_counts_once(self) -> None:
        """Two waterings on one day count as one day."""
        stamps = [NOW, NOW + timedelta(hours=11), NOW + timedelta(days=1)]
        assert GrowthEngine.watering_streak(stamps, UTC) == 2

    def test_only_the_latest_chain_counts(self) -> None:
        """An older run behind a break does not add to the streak."""
        stamps = [
            NOW,
            NOW + timedelta(days=1),
            NOW + timedelta(days=4),
            NOW + timedelta(days=5),
        ]
        assert GrowthEngine.watering_streak(stamps, UTC) == 2

    def test_days_are_local(self) -> None:
        """Days are counted in the given timezone."""
        tz = ZoneInfo("America/New_York")
        # 23:30 and 01:30 local: two local days, one UTC day
        first = datetime(2025, 3, 11, 3, 30, tzinfo=UTC)
        stamps = [first, first + timedelta(hours=2)]
        assert GrowthEngine.watering_streak(stamps, tz) == 2
        assert GrowthEngine.watering_streak(stamps, UTC) == 1


# =============================================================================
# Test: experience & stages
# =============================================================================


class TestExperience:
    """Tests for plan_experience_grant."""

    def test_grant_never_advances(self) -> None:
        """Experience accrues and only flips can_advance."""
        changes = GrowthEngine.plan_experience_grant(make_plant(experience=95), 10)
        assert changes == {
            const.DATA_PLANT_EXPERIENCE: 105,
            const.DATA_PLANT_CAN_ADVANCE: True,
        }

    def test_negative_grant_is_rejected(self) -> None:
        """Experience never decreases through a grant."""
        with pytest.raises(ValidationError):
            GrowthEngine.plan_experience_grant(make_plant(), -1)

    def test_completed_plant_takes_no_experience(self) -> None:
        """A frozen plant refuses grants."""
        with pytest.raises(PlantCompletedError):
            GrowthEngine.plan_experience_grant(make_plant(completed=True), 10)


class TestAdvance:
    """Tests for plan_advance."""

    def test_leftover_experience_carries_over(self) -> None:
        """120 experience at 100 per stage leaves 20 after advancing."""
        changes = GrowthEngine.plan_advance(
            make_plant(experience=120, can_advance=True), PLANT_TYPE, NOW
        )
        assert changes[const.DATA_PLANT_STAGE] == 2
        assert changes[const.DATA_PLANT_EXPERIENCE] == 20
        assert changes[const.DATA_PLANT_CAN_ADVANCE] is False
        assert changes[const.DATA_PLANT_COMPLETED] is False

    def test_not_enough_experience(self) -> None:
        """Advancing below the threshold is refused."""
        with pytest.raises(NotEnoughExperienceError) as exc_info:
            GrowthEngine.plan_advance(make_plant(experience=99), PLANT_TYPE, NOW)
        assert exc_info.value.required == 100

    def test_reaching_max_stage_completes(self) -> None:
        """The final stage completes and timestamps the plant."""
        changes = GrowthEngine.plan_advance(
            make_plant(stage=2, experience=100), PLANT_TYPE, NOW
        )
        assert changes[const.DATA_PLANT_STAGE] == 3
        assert changes[const.DATA_PLANT_COMPLETED] is True
        assert changes[const.DATA_PLANT_COMPLETED_AT] == NOW.isoformat()
        assert changes[const.DATA_PLANT_CAN_ADVANCE] is False

    def test_completed_plant_cannot_advance(self) -> None:
        """A completed plant is frozen."""
        with pytest.raises(PlantCompletedError):
            GrowthEngine.plan_advance(
                make_plant(stage=3, experience=500, completed=True), PLANT_TYPE, NOW
            )

    def test_stage_image_ref(self) -> None:
        """Image references combine the type prefix and the stage."""
        assert GrowthEngine.stage_image_ref(PLANT_TYPE, 2) == "sunflower_2"
