"""Profile manager for GrowPromise integration.

Handles registration of guardian and dependent profiles and the lookups the
other managers use to authorize an identity against a dependent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import auth, const, data_builders as db
from ..exceptions import ValidationError
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from ..auth import Identity
    from ..type_defs import ProfileData


class ProfileManager(BaseManager):
    """Manages guardian and dependent profiles."""

    async def async_setup(self) -> None:
        """Set up the profile manager."""
        const.LOGGER.debug("ProfileManager async_setup complete")

    async def async_register_profile(
        self,
        name: str,
        role: str,
        ha_user_id: str,
        guardian_ids: list[str] | None = None,
        now_utc: datetime | None = None,
    ) -> ProfileData:
        """Register a profile linked to a Home Assistant user.

        Dependents must name at least one existing guardian profile.
        """
        if role == const.ROLE_DEPENDENT:
            if not guardian_ids:
                raise ValidationError(
                    "A dependent needs at least one guardian", const.FIELD_GUARDIAN_IDS
                )
            for guardian_id in guardian_ids:
                guardian = await self.remote.async_get_profile(guardian_id)
                if guardian[const.DATA_PROFILE_ROLE] != const.ROLE_GUARDIAN:
                    raise ValidationError(
                        f"Profile '{guardian_id}' is not a guardian",
                        const.FIELD_GUARDIAN_IDS,
                    )
        profile = db.build_profile(
            name, role, ha_user_id, self._now(now_utc), guardian_ids
        )
        created = await self.remote.async_add_profile(profile)
        const.LOGGER.info(
            "INFO: Registered %s profile '%s' (%s)",
            role,
            created[const.DATA_PROFILE_NAME],
            created[const.DATA_ID],
        )
        return created

    async def async_get_dependent(self, dependent_id: str) -> ProfileData:
        """Return a dependent profile."""
        profile = await self.remote.async_get_profile(dependent_id)
        if profile[const.DATA_PROFILE_ROLE] != const.ROLE_DEPENDENT:
            raise ValidationError(
                f"Profile '{dependent_id}' is not a dependent", const.FIELD_DEPENDENT_ID
            )
        return profile

    async def async_resolve_dependent(
        self, identity: Identity, dependent_id: str | None, action: str
    ) -> ProfileData:
        """Resolve the dependent an identity acts on, enforcing access.

        A dependent acts on themself (dependent_id may be omitted); a guardian
        must name one of their linked dependents.
        """
        if dependent_id is None:
            if not identity.is_dependent:
                raise ValidationError(
                    "A guardian must name the dependent", const.FIELD_DEPENDENT_ID
                )
            dependent_id = identity.profile_id
        dependent = await self.async_get_dependent(dependent_id)
        auth.require_self_or_guardian(identity, dependent, action)
        return dependent

    async def async_list_dependents(self, identity: Identity) -> list[ProfileData]:
        """Return the dependents an identity can see."""
        dependents = await self.remote.async_list_profiles(const.ROLE_DEPENDENT)
        if identity.is_dependent:
            return [d for d in dependents if d[const.DATA_ID] == identity.profile_id]
        return [d for d in dependents if auth.is_guardian_of(identity, d)]

    async def async_guardian_ids_for(self, identity: Identity) -> set[str]:
        """Return the guardians whose catalog an identity sees."""
        if identity.is_guardian:
            return {identity.profile_id}
        profile = await self.remote.async_get_profile(identity.profile_id)
        return set(profile[const.DATA_PROFILE_GUARDIAN_IDS])
