"""Type definitions for GrowPromise data structures.

Entities are stored and passed around as plain dicts so they serialize
directly into Home Assistant storage. These TypedDicts describe the canonical
shape produced by data_builders.normalize_*(); every dict that crosses the
store boundary has been normalized into one of them.

IMPORTANT: This file must NOT import from coordinator.py or any manager to
avoid circular dependencies. Only import from typing.

NOTE: TypedDict is STATIC ANALYSIS ONLY. It does not enforce types at runtime.
"""

from typing import Any, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

ProfileId = str  # UUID string
CommitmentId = str  # UUID string
AssignmentId = str  # UUID string
RewardId = str  # UUID string
PlantId = str  # UUID string
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"


# =============================================================================
# People
# =============================================================================


class ProfileData(TypedDict):
    """A guardian or dependent linked to a Home Assistant user."""

    id: ProfileId
    name: str
    role: str  # const.ROLE_*
    ha_user_id: str
    guardian_ids: list[ProfileId]  # Only meaningful for dependents
    created_at: ISODatetime


# =============================================================================
# Commitments
# =============================================================================


class CommitmentData(TypedDict):
    """A guardian-authored recurring task."""

    id: CommitmentId
    title: str
    description: str
    recurrence: str  # const.RECURRENCE_*
    start_date: ISODate
    end_date: ISODate | None
    is_active: bool
    guardian_id: ProfileId
    dependent_ids: list[ProfileId]
    created_at: ISODatetime


class AssignmentData(TypedDict):
    """One dependent's instance of a commitment for one due date."""

    id: AssignmentId
    commitment_id: CommitmentId
    dependent_id: ProfileId
    due_date: ISODatetime  # Deadline: end of the local due day, stored in UTC
    status: str  # const.ASSIGNMENT_STATUS_*
    verification_image_ref: str | None
    verification_note: str | None
    verification_time: ISODatetime | None
    rejection_reason: str | None
    completed_at: ISODatetime | None
    created_at: ISODatetime


# =============================================================================
# Economy
# =============================================================================


class StickerData(TypedDict):
    """A unit of spendable currency minted on approval."""

    id: str
    dependent_id: ProfileId
    source_assignment_id: AssignmentId
    title: str
    image_ref: str
    minted_at: ISODatetime
    redeemed_by_reward_id: RewardId | None


class RewardData(TypedDict):
    """A guardian-authored redeemable goal."""

    id: RewardId
    guardian_id: ProfileId
    title: str
    description: str
    required_sticker_count: int
    is_active: bool
    created_at: ISODatetime


class RedemptionData(TypedDict):
    """Immutable record of a reward being claimed."""

    id: str
    reward_id: RewardId
    reward_title: str
    guardian_id: ProfileId
    dependent_id: ProfileId
    sticker_ids_consumed: list[str]
    redeemed_at: ISODatetime


class StickerCounts(TypedDict):
    """Derived sticker balance for one dependent."""

    total: int
    available: int
    redeemed: int


class RewardProgress(TypedDict):
    """Progress of one dependent toward one reward."""

    reward: RewardData
    available: int
    progress: float  # Percent, capped at 100
    can_redeem: bool


# =============================================================================
# Growth
# =============================================================================


class PlantTypeData(TypedDict):
    """Catalog entry describing a plant species."""

    id: str
    name: str
    description: str
    max_stage: int
    image_prefix: str
    experience_to_advance: int | None  # None → configured default


class PlantData(TypedDict):
    """A dependent's growth-simulation instance."""

    id: PlantId
    dependent_id: ProfileId
    plant_type_id: str
    name: str
    stage: int
    health: int
    experience: int
    experience_to_advance: int
    can_advance: bool
    last_watered_at: ISODatetime | None
    completed: bool
    completed_at: ISODatetime | None
    started_at: ISODatetime
    experience_sources: list[str]  # assignment ids already granted


class WateringLogData(TypedDict):
    """One watering event."""

    id: str
    plant_id: PlantId
    timestamp: ISODatetime
    health_gain: int


# =============================================================================
# Client-side state
# =============================================================================


class PendingActionData(TypedDict):
    """A queued client-side action awaiting replay."""

    id: str
    sequence: int
    action_type: str  # const.ACTION_*
    payload: dict[str, Any]
    enqueued_at: ISODatetime
    dead_letter: NotRequired[str]  # error that stopped replay for good


class ClientStoreData(TypedDict):
    """Layout of the persisted client store."""

    cache: dict[str, Any]
    pending_actions: list[PendingActionData]
    pending_sequence: int


# =============================================================================
# Reporting
# =============================================================================


class DependentStats(TypedDict):
    """Summary of a dependent's commitments, stickers and plants."""

    total: int
    completed: int
    pending: int
    rejected: int
    expired: int
    completion_rate: int
    stickers_total: int
    stickers_available: int
    plants_completed: int
    watering_streak: NotRequired[int]
