# File: remote_store.py
"""Authoritative store for GrowPromise household data.

RemoteStore is the contract the managers program against: CRUD per entity,
keyed by id, where every state-changing mutation is a guarded transition
(a precondition on current state) rather than a blind overwrite. A lost
race surfaces as InvalidTransitionError, an unreachable authority as
TransportError.

StorageRemoteStore is the reference authority. It keeps the household data
in memory and applies each mutation as a single atomic step before handing
it to Home Assistant storage. It never raises TransportError: Store logs a
failed write itself and the next save writes the full data again.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
import copy
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.storage import Store

from . import const, data_builders as db
from .engines.economy_engine import EconomyEngine
from .exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    PlantCompletedError,
    ValidationError,
)

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from .engines.commitment_engine import TransitionPlan
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

# (bucket, entity_id, entity or None to delete)
EntityWrite = tuple[str, str, dict[str, Any] | None]


class RemoteStore(ABC):
    """Abstract authoritative store consumed by the managers."""

    @abstractmethod
    async def async_initialize(self) -> None:
        """Load or connect to the authority."""

    # -- Profiles -------------------------------------------------------------

    @abstractmethod
    async def async_add_profile(self, profile: ProfileData) -> ProfileData:
        """Create a profile; an HA user may be linked to one profile only."""

    @abstractmethod
    async def async_get_profile(self, profile_id: str) -> ProfileData:
        """Return a profile or raise EntityNotFoundError."""

    @abstractmethod
    async def async_list_profiles(self, role: str | None = None) -> list[ProfileData]:
        """Return all profiles, optionally filtered by role."""

    @abstractmethod
    async def async_find_profile_by_user(self, ha_user_id: str) -> ProfileData | None:
        """Return the profile linked to an HA user, if any."""

    # -- Commitments ----------------------------------------------------------

    @abstractmethod
    async def async_add_commitment(self, commitment: CommitmentData) -> CommitmentData:
        """Create a commitment definition."""

    @abstractmethod
    async def async_get_commitment(self, commitment_id: str) -> CommitmentData:
        """Return a commitment or raise EntityNotFoundError."""

    @abstractmethod
    async def async_list_commitments(
        self, guardian_id: str | None = None, dependent_id: str | None = None
    ) -> list[CommitmentData]:
        """Return commitments, optionally filtered by owner or dependent."""

    @abstractmethod
    async def async_update_commitment(
        self, commitment_id: str, changes: Mapping[str, Any]
    ) -> CommitmentData:
        """Update a commitment definition's editable fields."""

    @abstractmethod
    async def async_delete_commitment(self, commitment_id: str) -> int:
        """Delete a commitment and its assignments, returning how many went."""

    # -- Assignments ----------------------------------------------------------

    @abstractmethod
    async def async_add_assignments(
        self, assignments: list[AssignmentData]
    ) -> list[AssignmentData]:
        """Create assignments, skipping any whose natural key already exists."""

    @abstractmethod
    async def async_get_assignment(self, assignment_id: str) -> AssignmentData:
        """Return an assignment or raise EntityNotFoundError."""

    @abstractmethod
    async def async_list_assignments(
        self,
        dependent_id: str | None = None,
        commitment_ids: set[str] | None = None,
        status: str | None = None,
    ) -> list[AssignmentData]:
        """Return assignments matching all given filters."""

    @abstractmethod
    async def async_transition_assignment(
        self, plan: TransitionPlan
    ) -> AssignmentData:
        """Compare-and-set an assignment's status.

        Raises:
            InvalidTransitionError: stored status is no longer plan.expected_status
        """

    # -- Stickers & rewards ---------------------------------------------------

    @abstractmethod
    async def async_mint_sticker(self, sticker: StickerData) -> tuple[StickerData, bool]:
        """Mint a sticker, idempotent by source assignment.

        Returns:
            (sticker, created); created is False when one already existed
        """

    @abstractmethod
    async def async_list_stickers(
        self, dependent_id: str | None = None
    ) -> list[StickerData]:
        """Return stickers, optionally for one dependent."""

    @abstractmethod
    async def async_add_reward(self, reward: RewardData) -> RewardData:
        """Create a reward definition."""

    @abstractmethod
    async def async_get_reward(self, reward_id: str) -> RewardData:
        """Return a reward or raise EntityNotFoundError."""

    @abstractmethod
    async def async_list_rewards(
        self, guardian_ids: set[str] | None = None, active_only: bool = False
    ) -> list[RewardData]:
        """Return rewards, optionally filtered by owners and active flag."""

    @abstractmethod
    async def async_update_reward(
        self, reward_id: str, changes: Mapping[str, Any]
    ) -> RewardData:
        """Update a reward definition."""

    @abstractmethod
    async def async_delete_reward(self, reward_id: str) -> None:
        """Delete a reward definition; redemption history is kept."""

    @abstractmethod
    async def async_redeem_reward(
        self, dependent_id: str, reward_id: str, now: datetime
    ) -> RedemptionData:
        """Atomically consume the oldest N available stickers for a reward.

        Raises:
            InsufficientBalanceError: not enough available stickers
            ValidationError: reward is inactive
        """

    @abstractmethod
    async def async_list_redemptions(
        self, dependent_id: str | None = None, guardian_id: str | None = None
    ) -> list[RedemptionData]:
        """Return redemption history, newest first."""

    # -- Plants ---------------------------------------------------------------

    @abstractmethod
    async def async_add_plant_type(self, plant_type: PlantTypeData) -> PlantTypeData:
        """Create a plant type catalog entry."""

    @abstractmethod
    async def async_get_plant_type(self, plant_type_id: str) -> PlantTypeData:
        """Return a plant type or raise EntityNotFoundError."""

    @abstractmethod
    async def async_list_plant_types(self) -> list[PlantTypeData]:
        """Return the plant type catalog."""

    @abstractmethod
    async def async_add_plant(self, plant: PlantData) -> PlantData:
        """Create a plant unless the dependent already has an incomplete one.

        Raises:
            InvalidTransitionError: an incomplete plant exists
        """

    @abstractmethod
    async def async_get_plant(self, plant_id: str) -> PlantData:
        """Return a plant or raise EntityNotFoundError."""

    @abstractmethod
    async def async_list_plants(self, dependent_id: str | None = None) -> list[PlantData]:
        """Return plants, newest first."""

    @abstractmethod
    async def async_get_active_plant(self, dependent_id: str) -> PlantData | None:
        """Return the dependent's incomplete plant, if any."""

    @abstractmethod
    async def async_update_plant(
        self,
        plant_id: str,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> PlantData:
        """Apply changes while every field in `expected` still matches.

        Raises:
            PlantCompletedError: the stored plant is completed
            InvalidTransitionError: an expected field changed concurrently
        """

    @abstractmethod
    async def async_record_watering(
        self,
        plant_id: str,
        expected_last_watered_at: str | None,
        changes: Mapping[str, Any],
        log: WateringLogData,
    ) -> PlantData:
        """Apply a watering and append its log in one step (guarded)."""

    @abstractmethod
    async def async_list_watering_logs(self, plant_id: str) -> list[WateringLogData]:
        """Return a plant's watering log, oldest first."""


class StorageRemoteStore(RemoteStore):
    """RemoteStore persisted through Home Assistant's Storage helper."""

    NORMALIZERS: dict[str, Callable[[dict[str, Any]], Any]] = {
        const.DATA_PROFILES: db.normalize_profile,
        const.DATA_COMMITMENTS: db.normalize_commitment,
        const.DATA_ASSIGNMENTS: db.normalize_assignment,
        const.DATA_STICKERS: db.normalize_sticker,
        const.DATA_REWARDS: db.normalize_reward,
        const.DATA_REDEMPTIONS: db.normalize_redemption,
        const.DATA_PLANT_TYPES: db.normalize_plant_type,
        const.DATA_PLANTS: db.normalize_plant,
        const.DATA_WATERING_LOGS: db.normalize_watering_log,
    }

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.REMOTE_STORAGE_KEY
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location.
        """
        self.hass = hass
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = self.get_default_structure()

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return the canonical empty household structure."""
        structure: dict[str, Any] = {
            const.DATA_META: {const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION}
        }
        for bucket in StorageRemoteStore.NORMALIZERS:
            structure[bucket] = {}
        return structure

    async def async_initialize(self) -> None:
        """Load household data, normalizing every stored entity."""
        const.LOGGER.debug("DEBUG: StorageRemoteStore: Loading data from storage")
        existing = await self._store.async_load()
        self._data = self.get_default_structure()
        if existing is None:
            const.LOGGER.info("INFO: No household data found. Initializing new data")
            return
        for bucket, normalize in self.NORMALIZERS.items():
            for entity_id, raw in (existing.get(bucket) or {}).items():
                self._data[bucket][entity_id] = normalize(
                    {**raw, const.DATA_ID: raw.get(const.DATA_ID, entity_id)}
                )
        const.LOGGER.debug(
            "DEBUG: Loaded household data: %s",
            {bucket: len(self._data[bucket]) for bucket in self.NORMALIZERS},
        )

    async def async_remove(self) -> None:
        """Delete the storage file."""
        self._data = self.get_default_structure()
        await self._store.async_remove()

    # -- Internals ------------------------------------------------------------

    def _bucket(self, bucket: str) -> dict[str, Any]:
        return self._data[bucket]

    def _get(self, bucket: str, entity_type: str, entity_id: str) -> dict[str, Any]:
        entity = self._bucket(bucket).get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_type, entity_id)
        return entity

    def _merged(
        self, bucket: str, entity: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> dict[str, Any]:
        return self.NORMALIZERS[bucket]({**entity, **changes})

    async def _async_apply(self, writes: list[EntityWrite]) -> None:
        """Apply entity writes in memory, then persist the household data."""
        for bucket, entity_id, entity in writes:
            if entity is None:
                self._bucket(bucket).pop(entity_id, None)
            else:
                self._bucket(bucket)[entity_id] = entity
        await self._store.async_save(self._data)

    @staticmethod
    def _copy(entity: Any) -> Any:
        return copy.deepcopy(entity)

    # -- Profiles -------------------------------------------------------------

    async def async_add_profile(self, profile: ProfileData) -> ProfileData:
        """Create a profile; an HA user may be linked to one profile only."""
        user_id = profile[const.DATA_PROFILE_HA_USER_ID]
        if user_id and await self.async_find_profile_by_user(user_id):
            raise ValidationError(
                f"User {user_id} already has a profile", const.FIELD_USER_ID
            )
        await self._async_apply(
            [(const.DATA_PROFILES, profile[const.DATA_ID], dict(profile))]
        )
        return self._copy(profile)

    async def async_get_profile(self, profile_id: str) -> ProfileData:
        """Return a profile or raise EntityNotFoundError."""
        return self._copy(self._get(const.DATA_PROFILES, "Profile", profile_id))

    async def async_list_profiles(self, role: str | None = None) -> list[ProfileData]:
        """Return all profiles, optionally filtered by role."""
        return [
            self._copy(profile)
            for profile in self._bucket(const.DATA_PROFILES).values()
            if role is None or profile[const.DATA_PROFILE_ROLE] == role
        ]

    async def async_find_profile_by_user(self, ha_user_id: str) -> ProfileData | None:
        """Return the profile linked to an HA user, if any."""
        for profile in self._bucket(const.DATA_PROFILES).values():
            if profile[const.DATA_PROFILE_HA_USER_ID] == ha_user_id:
                return self._copy(profile)
        return None

    # -- Commitments ----------------------------------------------------------

    async def async_add_commitment(self, commitment: CommitmentData) -> CommitmentData:
        """Create a commitment definition."""
        await self._async_apply(
            [(const.DATA_COMMITMENTS, commitment[const.DATA_ID], dict(commitment))]
        )
        return self._copy(commitment)

    async def async_get_commitment(self, commitment_id: str) -> CommitmentData:
        """Return a commitment or raise EntityNotFoundError."""
        return self._copy(
            self._get(const.DATA_COMMITMENTS, "Commitment", commitment_id)
        )

    async def async_list_commitments(
        self, guardian_id: str | None = None, dependent_id: str | None = None
    ) -> list[CommitmentData]:
        """Return commitments, optionally filtered by owner or dependent."""
        return [
            self._copy(commitment)
            for commitment in self._bucket(const.DATA_COMMITMENTS).values()
            if (
                guardian_id is None
                or commitment[const.DATA_COMMITMENT_GUARDIAN_ID] == guardian_id
            )
            and (
                dependent_id is None
                or dependent_id in commitment[const.DATA_COMMITMENT_DEPENDENT_IDS]
            )
        ]

    async def async_update_commitment(
        self, commitment_id: str, changes: Mapping[str, Any]
    ) -> CommitmentData:
        """Update a commitment definition's editable fields."""
        current = self._get(const.DATA_COMMITMENTS, "Commitment", commitment_id)
        updated = self._merged(const.DATA_COMMITMENTS, current, changes)
        await self._async_apply([(const.DATA_COMMITMENTS, commitment_id, updated)])
        return self._copy(updated)

    async def async_delete_commitment(self, commitment_id: str) -> int:
        """Delete a commitment and its assignments, returning how many went."""
        self._get(const.DATA_COMMITMENTS, "Commitment", commitment_id)
        writes: list[EntityWrite] = [(const.DATA_COMMITMENTS, commitment_id, None)]
        writes.extend(
            (const.DATA_ASSIGNMENTS, assignment_id, None)
            for assignment_id, assignment in self._bucket(
                const.DATA_ASSIGNMENTS
            ).items()
            if assignment[const.DATA_ASSIGNMENT_COMMITMENT_ID] == commitment_id
        )
        await self._async_apply(writes)
        return len(writes) - 1

    # -- Assignments ----------------------------------------------------------

    async def async_add_assignments(
        self, assignments: list[AssignmentData]
    ) -> list[AssignmentData]:
        """Create assignments, skipping any whose natural key already exists."""

        def _key(item: Mapping[str, Any]) -> tuple[str, str, str]:
            return (
                item[const.DATA_ASSIGNMENT_COMMITMENT_ID],
                item[const.DATA_ASSIGNMENT_DEPENDENT_ID],
                item[const.DATA_ASSIGNMENT_DUE_DATE],
            )

        seen = {_key(item) for item in self._bucket(const.DATA_ASSIGNMENTS).values()}
        added: list[AssignmentData] = []
        for assignment in assignments:
            key = _key(assignment)
            if key in seen:
                continue
            seen.add(key)
            added.append(assignment)
        if added:
            await self._async_apply(
                [
                    (const.DATA_ASSIGNMENTS, item[const.DATA_ID], dict(item))
                    for item in added
                ]
            )
        return self._copy(added)

    async def async_get_assignment(self, assignment_id: str) -> AssignmentData:
        """Return an assignment or raise EntityNotFoundError."""
        return self._copy(
            self._get(const.DATA_ASSIGNMENTS, "Assignment", assignment_id)
        )

    async def async_list_assignments(
        self,
        dependent_id: str | None = None,
        commitment_ids: set[str] | None = None,
        status: str | None = None,
    ) -> list[AssignmentData]:
        """Return assignments matching all given filters, by due date."""
        result = [
            self._copy(assignment)
            for assignment in self._bucket(const.DATA_ASSIGNMENTS).values()
            if (
                dependent_id is None
                or assignment[const.DATA_ASSIGNMENT_DEPENDENT_ID] == dependent_id
            )
            and (
                commitment_ids is None
                or assignment[const.DATA_ASSIGNMENT_COMMITMENT_ID] in commitment_ids
            )
            and (status is None or assignment[const.DATA_ASSIGNMENT_STATUS] == status)
        ]
        result.sort(key=lambda item: item[const.DATA_ASSIGNMENT_DUE_DATE])
        return result

    async def async_transition_assignment(
        self, plan: TransitionPlan
    ) -> AssignmentData:
        """Compare-and-set an assignment's status."""
        current = self._get(const.DATA_ASSIGNMENTS, "Assignment", plan.assignment_id)
        found = current[const.DATA_ASSIGNMENT_STATUS]
        if found != plan.expected_status:
            raise InvalidTransitionError(plan.assignment_id, found, plan.new_status)
        updated = self._merged(const.DATA_ASSIGNMENTS, current, plan.changes)
        await self._async_apply(
            [(const.DATA_ASSIGNMENTS, plan.assignment_id, updated)]
        )
        return self._copy(updated)

    # -- Stickers & rewards ---------------------------------------------------

    async def async_mint_sticker(
        self, sticker: StickerData
    ) -> tuple[StickerData, bool]:
        """Mint a sticker, idempotent by source assignment."""
        existing = EconomyEngine.find_sticker_for_assignment(
            self._bucket(const.DATA_STICKERS).values(),
            sticker[const.DATA_STICKER_SOURCE_ASSIGNMENT_ID],
        )
        if existing is not None:
            return self._copy(existing), False
        await self._async_apply(
            [(const.DATA_STICKERS, sticker[const.DATA_ID], dict(sticker))]
        )
        return self._copy(sticker), True

    async def async_list_stickers(
        self, dependent_id: str | None = None
    ) -> list[StickerData]:
        """Return stickers, oldest first."""
        result = [
            self._copy(sticker)
            for sticker in self._bucket(const.DATA_STICKERS).values()
            if dependent_id is None
            or sticker[const.DATA_STICKER_DEPENDENT_ID] == dependent_id
        ]
        result.sort(key=lambda s: (s[const.DATA_STICKER_MINTED_AT], s[const.DATA_ID]))
        return result

    async def async_add_reward(self, reward: RewardData) -> RewardData:
        """Create a reward definition."""
        await self._async_apply(
            [(const.DATA_REWARDS, reward[const.DATA_ID], dict(reward))]
        )
        return self._copy(reward)

    async def async_get_reward(self, reward_id: str) -> RewardData:
        """Return a reward or raise EntityNotFoundError."""
        return self._copy(self._get(const.DATA_REWARDS, "Reward", reward_id))

    async def async_list_rewards(
        self, guardian_ids: set[str] | None = None, active_only: bool = False
    ) -> list[RewardData]:
        """Return rewards, cheapest first."""
        result = [
            self._copy(reward)
            for reward in self._bucket(const.DATA_REWARDS).values()
            if (
                guardian_ids is None
                or reward[const.DATA_REWARD_GUARDIAN_ID] in guardian_ids
            )
            and (not active_only or reward[const.DATA_REWARD_IS_ACTIVE])
        ]
        result.sort(key=lambda r: r[const.DATA_REWARD_REQUIRED_STICKER_COUNT])
        return result

    async def async_update_reward(
        self, reward_id: str, changes: Mapping[str, Any]
    ) -> RewardData:
        """Update a reward definition."""
        current = self._get(const.DATA_REWARDS, "Reward", reward_id)
        updated = self._merged(const.DATA_REWARDS, current, changes)
        await self._async_apply([(const.DATA_REWARDS, reward_id, updated)])
        return self._copy(updated)

    async def async_delete_reward(self, reward_id: str) -> None:
        """Delete a reward definition; redemption history is kept."""
        self._get(const.DATA_REWARDS, "Reward", reward_id)
        await self._async_apply([(const.DATA_REWARDS, reward_id, None)])

    async def async_redeem_reward(
        self, dependent_id: str, reward_id: str, now: datetime
    ) -> RedemptionData:
        """Atomically consume the oldest N available stickers for a reward."""
        reward = self._get(const.DATA_REWARDS, "Reward", reward_id)
        if not reward[const.DATA_REWARD_IS_ACTIVE]:
            raise ValidationError(
                f"Reward '{reward_id}' is not active", const.FIELD_REWARD_ID
            )
        # Check and act happen with no suspension point in between
        selected = EconomyEngine.select_for_redemption(
            self._bucket(const.DATA_STICKERS).values(),
            dependent_id,
            reward[const.DATA_REWARD_REQUIRED_STICKER_COUNT],
        )
        redemption = db.build_redemption(
            reward, dependent_id, [s[const.DATA_ID] for s in selected], now
        )
        writes: list[EntityWrite] = [
            (
                const.DATA_STICKERS,
                sticker[const.DATA_ID],
                {**sticker, const.DATA_STICKER_REDEEMED_BY_REWARD_ID: reward_id},
            )
            for sticker in selected
        ]
        writes.append(
            (const.DATA_REDEMPTIONS, redemption[const.DATA_ID], dict(redemption))
        )
        await self._async_apply(writes)
        return self._copy(redemption)

    async def async_list_redemptions(
        self, dependent_id: str | None = None, guardian_id: str | None = None
    ) -> list[RedemptionData]:
        """Return redemption history, newest first."""
        result = [
            self._copy(redemption)
            for redemption in self._bucket(const.DATA_REDEMPTIONS).values()
            if (
                dependent_id is None
                or redemption[const.DATA_REDEMPTION_DEPENDENT_ID] == dependent_id
            )
            and (
                guardian_id is None
                or redemption[const.DATA_REDEMPTION_GUARDIAN_ID] == guardian_id
            )
        ]
        result.sort(
            key=lambda r: r[const.DATA_REDEMPTION_REDEEMED_AT], reverse=True
        )
        return result

    # -- Plants ---------------------------------------------------------------

    async def async_add_plant_type(self, plant_type: PlantTypeData) -> PlantTypeData:
        """Create a plant type catalog entry."""
        await self._async_apply(
            [(const.DATA_PLANT_TYPES, plant_type[const.DATA_ID], dict(plant_type))]
        )
        return self._copy(plant_type)

    async def async_get_plant_type(self, plant_type_id: str) -> PlantTypeData:
        """Return a plant type or raise EntityNotFoundError."""
        return self._copy(
            self._get(const.DATA_PLANT_TYPES, "Plant type", plant_type_id)
        )

    async def async_list_plant_types(self) -> list[PlantTypeData]:
        """Return the plant type catalog by name."""
        result = [
            self._copy(plant_type)
            for plant_type in self._bucket(const.DATA_PLANT_TYPES).values()
        ]
        result.sort(key=lambda p: p[const.DATA_PLANT_TYPE_NAME])
        return result

    def _active_plant(self, dependent_id: str) -> dict[str, Any] | None:
        for plant in self._bucket(const.DATA_PLANTS).values():
            if (
                plant[const.DATA_PLANT_DEPENDENT_ID] == dependent_id
                and not plant[const.DATA_PLANT_COMPLETED]
            ):
                return plant
        return None

    async def async_add_plant(self, plant: PlantData) -> PlantData:
        """Create a plant unless the dependent already has an incomplete one."""
        dependent_id = plant[const.DATA_PLANT_DEPENDENT_ID]
        active = self._active_plant(dependent_id)
        if active is not None:
            raise InvalidTransitionError(
                active[const.DATA_ID],
                "active",
                "new_plant",
                f"Dependent {dependent_id} already has an active plant",
            )
        await self._async_apply(
            [(const.DATA_PLANTS, plant[const.DATA_ID], dict(plant))]
        )
        return self._copy(plant)

    async def async_get_plant(self, plant_id: str) -> PlantData:
        """Return a plant or raise EntityNotFoundError."""
        return self._copy(self._get(const.DATA_PLANTS, "Plant", plant_id))

    async def async_list_plants(
        self, dependent_id: str | None = None
    ) -> list[PlantData]:
        """Return plants, newest first."""
        result = [
            self._copy(plant)
            for plant in self._bucket(const.DATA_PLANTS).values()
            if dependent_id is None
            or plant[const.DATA_PLANT_DEPENDENT_ID] == dependent_id
        ]
        result.sort(key=lambda p: p[const.DATA_PLANT_STARTED_AT], reverse=True)
        return result

    async def async_get_active_plant(self, dependent_id: str) -> PlantData | None:
        """Return the dependent's incomplete plant, if any."""
        active = self._active_plant(dependent_id)
        return self._copy(active) if active is not None else None

    def _guarded_plant(
        self, plant_id: str, expected: Mapping[str, Any]
    ) -> dict[str, Any]:
        current = self._get(const.DATA_PLANTS, "Plant", plant_id)
        if current[const.DATA_PLANT_COMPLETED]:
            raise PlantCompletedError(plant_id)
        for key, value in expected.items():
            if current.get(key) != value:
                raise InvalidTransitionError(
                    plant_id,
                    str(current.get(key)),
                    str(value),
                    f"Plant {plant_id} changed concurrently ({key})",
                )
        return current

    async def async_update_plant(
        self,
        plant_id: str,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> PlantData:
        """Apply changes while every field in `expected` still matches."""
        current = self._guarded_plant(plant_id, expected)
        updated = self._merged(const.DATA_PLANTS, current, changes)
        await self._async_apply([(const.DATA_PLANTS, plant_id, updated)])
        return self._copy(updated)

    async def async_record_watering(
        self,
        plant_id: str,
        expected_last_watered_at: str | None,
        changes: Mapping[str, Any],
        log: WateringLogData,
    ) -> PlantData:
        """Apply a watering and append its log in one step (guarded)."""
        current = self._guarded_plant(
            plant_id, {const.DATA_PLANT_LAST_WATERED_AT: expected_last_watered_at}
        )
        updated = self._merged(const.DATA_PLANTS, current, changes)
        await self._async_apply(
            [
                (const.DATA_PLANTS, plant_id, updated),
                (const.DATA_WATERING_LOGS, log[const.DATA_ID], dict(log)),
            ]
        )
        return self._copy(updated)

    async def async_list_watering_logs(self, plant_id: str) -> list[WateringLogData]:
        """Return a plant's watering log, oldest first."""
        result = [
            self._copy(log)
            for log in self._bucket(const.DATA_WATERING_LOGS).values()
            if log[const.DATA_WATERING_PLANT_ID] == plant_id
        ]
        result.sort(key=lambda entry: entry[const.DATA_WATERING_TIMESTAMP])
        return result
