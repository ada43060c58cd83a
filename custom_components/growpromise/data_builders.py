"""Entity building and normalization helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Entity field defaults
- Business logic validation of new entities
- Complete entity structure building
- Normalization of raw payloads at the store boundary

## Key Concepts

### Normalize Functions
Each entity type has a `normalize_<entity>()` function that:
- Accepts a raw dict as read from storage or received from a remote payload
- Accepts both canonical keys and the camelCase aliases of the mobile API
  (e.g. `isActive`, `repeatType`, `requiredStickers`)
- Fills defaults in ONE place (no `is_active ?? true` at call sites)
- Returns the canonical TypedDict consumed by engines and managers

### Build Functions
Each entity type has a `build_<entity>()` function that:
- Validates inputs and raises ValidationError on bad input
- Generates the id (UUID) for new entities
- Sets timestamps
- Returns a complete, normalized entity dict ready for storage
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any
import uuid

from . import const
from .exceptions import ValidationError
from .type_defs import (
    AssignmentData,
    CommitmentData,
    PlantData,
    PlantTypeData,
    ProfileData,
    RedemptionData,
    RewardData,
    StickerData,
    WateringLogData,
)
from .utils.dt_utils import dt_parse_date, dt_to_iso, dt_to_utc

if TYPE_CHECKING:
    from .engines.growth_engine import GrowthConfig

# ==============================================================================
# HELPER FUNCTIONS FOR FIELD NORMALIZATION
# ==============================================================================


def _pick(raw: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among several key aliases."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def _normalize_list_field(value: Any) -> list[Any]:
    """Normalize a field that should be a list.

    Handles cases where the value might be:
    - Already a list → return a copy
    - None → return empty list
    - A single string → wrap it (never iterate characters)
    """
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    if isinstance(value, str):
        return [value] if value else []
    return list(value)


def _normalize_bool(value: Any, default: bool) -> bool:
    """Normalize a flag, keeping `default` when the payload omits it."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _normalize_int(value: Any, default: int = 0) -> int:
    """Normalize a numeric field to int."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _normalize_timestamp(value: Any) -> str | None:
    """Normalize any datetime-ish value to a UTC ISO string (or None)."""
    parsed = dt_to_utc(value) if value else None
    return parsed.isoformat() if parsed else None


def _normalize_date(value: Any) -> str | None:
    """Normalize any date-ish value to an ISO date string (or None)."""
    parsed = dt_parse_date(value) if value else None
    return parsed.isoformat() if parsed else None


def _optional_text(value: Any) -> str | None:
    """Return stripped text, or None when blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _new_id() -> str:
    return str(uuid.uuid4())


# ==============================================================================
# NORMALIZATION (store boundary)
# ==============================================================================


def normalize_profile(raw: dict[str, Any]) -> ProfileData:
    """Normalize a raw profile payload."""
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_PROFILE_NAME: str(_pick(raw, "name", "username", default="")),
        const.DATA_PROFILE_ROLE: str(
            _pick(raw, "role", "userType", default=const.ROLE_DEPENDENT)
        ).lower(),
        const.DATA_PROFILE_HA_USER_ID: str(_pick(raw, "ha_user_id", default="")),
        const.DATA_PROFILE_GUARDIAN_IDS: _normalize_list_field(
            _pick(raw, "guardian_ids", "parentIds")
        ),
        const.DATA_CREATED_AT: _normalize_timestamp(
            _pick(raw, "created_at", "createdAt")
        )
        or "",
    }


def normalize_commitment(raw: dict[str, Any]) -> CommitmentData:
    """Normalize a raw commitment payload."""
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_COMMITMENT_TITLE: str(_pick(raw, "title", default="")),
        const.DATA_COMMITMENT_DESCRIPTION: str(_pick(raw, "description", default="")),
        const.DATA_COMMITMENT_RECURRENCE: str(
            _pick(raw, "recurrence", "repeatType", default=const.RECURRENCE_ONCE)
        ).upper(),
        const.DATA_COMMITMENT_START_DATE: _normalize_date(
            _pick(raw, "start_date", "startDate")
        )
        or "",
        const.DATA_COMMITMENT_END_DATE: _normalize_date(
            _pick(raw, "end_date", "endDate")
        ),
        const.DATA_COMMITMENT_IS_ACTIVE: _normalize_bool(
            _pick(raw, "is_active", "isActive"), default=True
        ),
        const.DATA_COMMITMENT_GUARDIAN_ID: str(
            _pick(raw, "guardian_id", "createdBy", default="")
        ),
        const.DATA_COMMITMENT_DEPENDENT_IDS: _normalize_list_field(
            _pick(raw, "dependent_ids", "childIds")
        ),
        const.DATA_CREATED_AT: _normalize_timestamp(
            _pick(raw, "created_at", "createdAt")
        )
        or "",
    }


def normalize_assignment(raw: dict[str, Any]) -> AssignmentData:
    """Normalize a raw assignment payload."""
    status = str(
        _pick(raw, "status", default=const.ASSIGNMENT_STATUS_PENDING)
    ).upper()
    if status not in const.ASSIGNMENT_STATUSES:
        raise ValidationError(f"Unknown assignment status '{status}'", "status")
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_ASSIGNMENT_COMMITMENT_ID: str(
            _pick(raw, "commitment_id", "promiseId", default="")
        ),
        const.DATA_ASSIGNMENT_DEPENDENT_ID: str(
            _pick(raw, "dependent_id", "childId", default="")
        ),
        const.DATA_ASSIGNMENT_DUE_DATE: _normalize_timestamp(
            _pick(raw, "due_date", "dueDate")
        )
        or "",
        const.DATA_ASSIGNMENT_STATUS: status,
        const.DATA_ASSIGNMENT_VERIFICATION_IMAGE_REF: _optional_text(
            _pick(raw, "verification_image_ref", "verificationImage")
        ),
        const.DATA_ASSIGNMENT_VERIFICATION_NOTE: _optional_text(
            _pick(raw, "verification_note", "verificationDescription")
        ),
        const.DATA_ASSIGNMENT_VERIFICATION_TIME: _normalize_timestamp(
            _pick(raw, "verification_time", "verificationTime")
        ),
        const.DATA_ASSIGNMENT_REJECTION_REASON: _optional_text(
            _pick(raw, "rejection_reason", "rejectionReason")
        ),
        const.DATA_ASSIGNMENT_COMPLETED_AT: _normalize_timestamp(
            _pick(raw, "completed_at", "completedAt")
        ),
        const.DATA_CREATED_AT: _normalize_timestamp(
            _pick(raw, "created_at", "createdAt")
        )
        or "",
    }


def normalize_sticker(raw: dict[str, Any]) -> StickerData:
    """Normalize a raw sticker payload."""
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_STICKER_DEPENDENT_ID: str(
            _pick(raw, "dependent_id", "childId", default="")
        ),
        const.DATA_STICKER_SOURCE_ASSIGNMENT_ID: str(
            _pick(raw, "source_assignment_id", "promiseAssignmentId", default="")
        ),
        const.DATA_STICKER_TITLE: str(_pick(raw, "title", default="")),
        const.DATA_STICKER_IMAGE_REF: str(
            _pick(raw, "image_ref", "imageUrl", default=const.DEFAULT_STICKER_IMAGE_REF)
        ),
        const.DATA_STICKER_MINTED_AT: _normalize_timestamp(
            _pick(raw, "minted_at", "createdAt")
        )
        or "",
        const.DATA_STICKER_REDEEMED_BY_REWARD_ID: _optional_text(
            _pick(raw, "redeemed_by_reward_id", "rewardId")
        ),
    }


def normalize_reward(raw: dict[str, Any]) -> RewardData:
    """Normalize a raw reward payload."""
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_REWARD_GUARDIAN_ID: str(
            _pick(raw, "guardian_id", "parentId", default="")
        ),
        const.DATA_REWARD_TITLE: str(_pick(raw, "title", default="")),
        const.DATA_REWARD_DESCRIPTION: str(_pick(raw, "description", default="")),
        const.DATA_REWARD_REQUIRED_STICKER_COUNT: _normalize_int(
            _pick(raw, "required_sticker_count", "requiredStickers"), default=1
        ),
        const.DATA_REWARD_IS_ACTIVE: _normalize_bool(
            _pick(raw, "is_active", "isActive"), default=True
        ),
        const.DATA_CREATED_AT: _normalize_timestamp(
            _pick(raw, "created_at", "createdAt")
        )
        or "",
    }


def normalize_redemption(raw: dict[str, Any]) -> RedemptionData:
    """Normalize a raw redemption payload."""
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_REDEMPTION_REWARD_ID: str(
            _pick(raw, "reward_id", "rewardId", default="")
        ),
        const.DATA_REDEMPTION_REWARD_TITLE: str(_pick(raw, "reward_title", default="")),
        const.DATA_REDEMPTION_GUARDIAN_ID: str(
            _pick(raw, "guardian_id", "parentId", default="")
        ),
        const.DATA_REDEMPTION_DEPENDENT_ID: str(
            _pick(raw, "dependent_id", "childId", default="")
        ),
        const.DATA_REDEMPTION_STICKER_IDS: _normalize_list_field(
            _pick(raw, "sticker_ids_consumed")
        ),
        const.DATA_REDEMPTION_REDEEMED_AT: _normalize_timestamp(
            _pick(raw, "redeemed_at", "achievedAt")
        )
        or "",
    }


def normalize_plant_type(raw: dict[str, Any]) -> PlantTypeData:
    """Normalize a raw plant type payload."""
    experience = _pick(raw, "experience_to_advance", "experienceToGrow")
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_PLANT_TYPE_NAME: str(_pick(raw, "name", default="")),
        const.DATA_PLANT_TYPE_DESCRIPTION: str(_pick(raw, "description", default="")),
        const.DATA_PLANT_TYPE_MAX_STAGE: _normalize_int(
            _pick(raw, "max_stage", "growthStages"), default=1
        ),
        const.DATA_PLANT_TYPE_IMAGE_PREFIX: str(
            _pick(raw, "image_prefix", "imagePrefix", default="")
        ),
        const.DATA_PLANT_TYPE_EXPERIENCE_TO_ADVANCE: (
            _normalize_int(experience) if experience is not None else None
        ),
    }


def normalize_plant(raw: dict[str, Any]) -> PlantData:
    """Normalize a raw plant payload."""
    experience = max(_normalize_int(_pick(raw, "experience")), 0)
    experience_to_advance = _normalize_int(
        _pick(raw, "experience_to_advance", "experienceToGrow"),
        default=const.DEFAULT_EXPERIENCE_TO_ADVANCE,
    )
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_PLANT_DEPENDENT_ID: str(
            _pick(raw, "dependent_id", "childId", default="")
        ),
        const.DATA_PLANT_TYPE_ID: str(
            _pick(raw, "plant_type_id", "plantTypeId", default="")
        ),
        const.DATA_PLANT_NAME: str(_pick(raw, "name", default="")),
        const.DATA_PLANT_STAGE: max(
            _normalize_int(
                _pick(raw, "stage", "currentStage"), default=const.PLANT_FIRST_STAGE
            ),
            const.PLANT_FIRST_STAGE,
        ),
        const.DATA_PLANT_HEALTH: _normalize_int(
            _pick(raw, "health"), default=const.DEFAULT_INITIAL_HEALTH
        ),
        const.DATA_PLANT_EXPERIENCE: experience,
        const.DATA_PLANT_EXPERIENCE_TO_ADVANCE: experience_to_advance,
        # Always recomputed; a stored flag is never trusted
        const.DATA_PLANT_CAN_ADVANCE: experience >= experience_to_advance,
        const.DATA_PLANT_LAST_WATERED_AT: _normalize_timestamp(
            _pick(raw, "last_watered_at", "lastWatered")
        ),
        const.DATA_PLANT_COMPLETED: _normalize_bool(
            _pick(raw, "completed", "isCompleted"), default=False
        ),
        const.DATA_PLANT_COMPLETED_AT: _normalize_timestamp(
            _pick(raw, "completed_at", "completedAt")
        ),
        const.DATA_PLANT_STARTED_AT: _normalize_timestamp(
            _pick(raw, "started_at", "startedAt")
        )
        or "",
        const.DATA_PLANT_EXPERIENCE_SOURCES: [
            str(source)
            for source in _normalize_list_field(_pick(raw, "experience_sources"))
        ],
    }


def normalize_watering_log(raw: dict[str, Any]) -> WateringLogData:
    """Normalize a raw watering log payload."""
    return {
        const.DATA_ID: str(raw[const.DATA_ID]),
        const.DATA_WATERING_PLANT_ID: str(
            _pick(raw, "plant_id", "plantId", default="")
        ),
        const.DATA_WATERING_TIMESTAMP: _normalize_timestamp(_pick(raw, "timestamp"))
        or "",
        const.DATA_WATERING_HEALTH_GAIN: _normalize_int(
            _pick(raw, "health_gain", "healthGain")
        ),
    }


# ==============================================================================
# BUILDERS (new entities)
# ==============================================================================


def require_text(value: Any, field: str) -> str:
    """Return stripped text or raise ValidationError when blank."""
    text = _optional_text(value)
    if not text:
        raise ValidationError(f"'{field}' must not be empty", field)
    return text


def _require_date(value: Any, field: str) -> date:
    parsed = dt_parse_date(value)
    if parsed is None:
        raise ValidationError(f"'{field}' is not a valid date: {value!r}", field)
    return parsed


def build_profile(
    name: str,
    role: str,
    ha_user_id: str,
    now: datetime,
    guardian_ids: list[str] | None = None,
) -> ProfileData:
    """Build a new profile."""
    if role not in const.ROLES:
        raise ValidationError(f"Unknown role '{role}'", const.FIELD_ROLE)
    return normalize_profile(
        {
            const.DATA_ID: _new_id(),
            const.DATA_PROFILE_NAME: require_text(name, const.FIELD_NAME),
            const.DATA_PROFILE_ROLE: role,
            const.DATA_PROFILE_HA_USER_ID: ha_user_id,
            const.DATA_PROFILE_GUARDIAN_IDS: (
                guardian_ids if role == const.ROLE_DEPENDENT else []
            ),
            const.DATA_CREATED_AT: dt_to_iso(now),
        }
    )


def validate_commitment_schedule(
    recurrence: str, start_date: Any, end_date: Any
) -> tuple[date, date | None]:
    """Validate recurrence and date range, returning parsed dates."""
    if recurrence not in const.RECURRENCE_OPTIONS:
        raise ValidationError(
            f"Unknown recurrence '{recurrence}'", const.FIELD_RECURRENCE
        )
    start = _require_date(start_date, const.FIELD_START_DATE)
    end = _require_date(end_date, const.FIELD_END_DATE) if end_date else None
    if end is not None and end < start:
        raise ValidationError("End date is before start date", const.FIELD_END_DATE)
    return start, end


def build_commitment(
    guardian_id: str,
    title: str,
    recurrence: str,
    start_date: Any,
    dependent_ids: list[str],
    now: datetime,
    description: str | None = None,
    end_date: Any = None,
    is_active: bool = True,
) -> CommitmentData:
    """Build a new commitment definition."""
    start, end = validate_commitment_schedule(recurrence, start_date, end_date)
    if not dependent_ids:
        raise ValidationError(
            "A commitment needs at least one dependent", const.FIELD_DEPENDENT_IDS
        )
    return normalize_commitment(
        {
            const.DATA_ID: _new_id(),
            const.DATA_COMMITMENT_TITLE: require_text(title, const.FIELD_TITLE),
            const.DATA_COMMITMENT_DESCRIPTION: description or "",
            const.DATA_COMMITMENT_RECURRENCE: recurrence,
            const.DATA_COMMITMENT_START_DATE: start.isoformat(),
            const.DATA_COMMITMENT_END_DATE: end.isoformat() if end else None,
            const.DATA_COMMITMENT_IS_ACTIVE: is_active,
            const.DATA_COMMITMENT_GUARDIAN_ID: guardian_id,
            const.DATA_COMMITMENT_DEPENDENT_IDS: list(dict.fromkeys(dependent_ids)),
            const.DATA_CREATED_AT: dt_to_iso(now),
        }
    )


def build_assignment(
    commitment_id: str,
    dependent_id: str,
    due_date: datetime,
    now: datetime,
) -> AssignmentData:
    """Build a new PENDING assignment with the given deadline."""
    return normalize_assignment(
        {
            const.DATA_ID: _new_id(),
            const.DATA_ASSIGNMENT_COMMITMENT_ID: commitment_id,
            const.DATA_ASSIGNMENT_DEPENDENT_ID: dependent_id,
            const.DATA_ASSIGNMENT_DUE_DATE: dt_to_iso(due_date),
            const.DATA_ASSIGNMENT_STATUS: const.ASSIGNMENT_STATUS_PENDING,
            const.DATA_CREATED_AT: dt_to_iso(now),
        }
    )


def build_sticker(
    dependent_id: str,
    assignment_id: str,
    title: str,
    image_ref: str,
    now: datetime,
) -> StickerData:
    """Build a new, unredeemed sticker tagged with its source assignment."""
    return normalize_sticker(
        {
            const.DATA_ID: _new_id(),
            const.DATA_STICKER_DEPENDENT_ID: dependent_id,
            const.DATA_STICKER_SOURCE_ASSIGNMENT_ID: assignment_id,
            const.DATA_STICKER_TITLE: title,
            const.DATA_STICKER_IMAGE_REF: image_ref,
            const.DATA_STICKER_MINTED_AT: dt_to_iso(now),
            const.DATA_STICKER_REDEEMED_BY_REWARD_ID: None,
        }
    )


def validate_required_sticker_count(value: Any) -> int:
    """Validate a reward's sticker cost."""
    count = _normalize_int(value, default=0)
    if count < 1:
        raise ValidationError(
            "A reward requires at least one sticker",
            const.FIELD_REQUIRED_STICKER_COUNT,
        )
    return count


def build_reward(
    guardian_id: str,
    title: str,
    required_sticker_count: int,
    now: datetime,
    description: str | None = None,
    is_active: bool = True,
) -> RewardData:
    """Build a new reward definition."""
    return normalize_reward(
        {
            const.DATA_ID: _new_id(),
            const.DATA_REWARD_GUARDIAN_ID: guardian_id,
            const.DATA_REWARD_TITLE: require_text(title, const.FIELD_TITLE),
            const.DATA_REWARD_DESCRIPTION: description or "",
            const.DATA_REWARD_REQUIRED_STICKER_COUNT: validate_required_sticker_count(
                required_sticker_count
            ),
            const.DATA_REWARD_IS_ACTIVE: is_active,
            const.DATA_CREATED_AT: dt_to_iso(now),
        }
    )


def build_redemption(
    reward: RewardData,
    dependent_id: str,
    sticker_ids: list[str],
    now: datetime,
) -> RedemptionData:
    """Build the immutable redemption record for consumed stickers."""
    return normalize_redemption(
        {
            const.DATA_ID: _new_id(),
            const.DATA_REDEMPTION_REWARD_ID: reward[const.DATA_ID],
            const.DATA_REDEMPTION_REWARD_TITLE: reward[const.DATA_REWARD_TITLE],
            const.DATA_REDEMPTION_GUARDIAN_ID: reward[const.DATA_REWARD_GUARDIAN_ID],
            const.DATA_REDEMPTION_DEPENDENT_ID: dependent_id,
            const.DATA_REDEMPTION_STICKER_IDS: sticker_ids,
            const.DATA_REDEMPTION_REDEEMED_AT: dt_to_iso(now),
        }
    )


def build_plant_type(
    name: str,
    max_stage: int,
    image_prefix: str,
    description: str | None = None,
    experience_to_advance: int | None = None,
) -> PlantTypeData:
    """Build a new plant type catalog entry."""
    stages = _normalize_int(max_stage, default=0)
    if stages < 2:
        raise ValidationError(
            "A plant type needs at least two stages", const.FIELD_MAX_STAGE
        )
    if experience_to_advance is not None and experience_to_advance < 1:
        raise ValidationError(
            "Experience to advance must be positive",
            const.FIELD_EXPERIENCE_TO_ADVANCE,
        )
    return normalize_plant_type(
        {
            const.DATA_ID: _new_id(),
            const.DATA_PLANT_TYPE_NAME: require_text(name, const.FIELD_NAME),
            const.DATA_PLANT_TYPE_DESCRIPTION: description or "",
            const.DATA_PLANT_TYPE_MAX_STAGE: stages,
            const.DATA_PLANT_TYPE_IMAGE_PREFIX: require_text(
                image_prefix, const.FIELD_IMAGE_PREFIX
            ),
            const.DATA_PLANT_TYPE_EXPERIENCE_TO_ADVANCE: experience_to_advance,
        }
    )


def build_plant(
    dependent_id: str,
    plant_type: PlantTypeData,
    config: GrowthConfig,
    now: datetime,
    name: str | None = None,
) -> PlantData:
    """Build a new plant at the first stage."""
    experience_to_advance = (
        plant_type[const.DATA_PLANT_TYPE_EXPERIENCE_TO_ADVANCE]
        or config.experience_to_advance
    )
    return normalize_plant(
        {
            const.DATA_ID: _new_id(),
            const.DATA_PLANT_DEPENDENT_ID: dependent_id,
            const.DATA_PLANT_TYPE_ID: plant_type[const.DATA_ID],
            const.DATA_PLANT_NAME: _optional_text(name)
            or plant_type[const.DATA_PLANT_TYPE_NAME],
            const.DATA_PLANT_STAGE: const.PLANT_FIRST_STAGE,
            const.DATA_PLANT_HEALTH: config.initial_health,
            const.DATA_PLANT_EXPERIENCE: 0,
            const.DATA_PLANT_EXPERIENCE_TO_ADVANCE: experience_to_advance,
            const.DATA_PLANT_LAST_WATERED_AT: None,
            const.DATA_PLANT_COMPLETED: False,
            const.DATA_PLANT_COMPLETED_AT: None,
            const.DATA_PLANT_STARTED_AT: dt_to_iso(now),
            const.DATA_PLANT_EXPERIENCE_SOURCES: [],
        }
    )


def build_watering_log(plant_id: str, health_gain: int, now: datetime) -> WateringLogData:
    """Build a watering log entry."""
    return normalize_watering_log(
        {
            const.DATA_ID: _new_id(),
            const.DATA_WATERING_PLANT_ID: plant_id,
            const.DATA_WATERING_TIMESTAMP: dt_to_iso(now),
            const.DATA_WATERING_HEALTH_GAIN: health_gain,
        }
    )
