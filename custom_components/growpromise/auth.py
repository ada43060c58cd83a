# File: auth.py
"""Session gate and authorization checks for GrowPromise.

Every operation is scoped to an explicit Identity (profile id + role) passed
by the caller; nothing reads an ambient "current session". HassSessionGate
resolves the Home Assistant user behind a service call to its linked profile.
The gate never refreshes credentials: authorization failures are raised
unchanged as AuthorizationError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import const
from .exceptions import AuthorizationError

if TYPE_CHECKING:
    from homeassistant.auth.models import User
    from homeassistant.core import HomeAssistant

    from .remote_store import RemoteStore
    from .type_defs import ProfileData


@dataclass(frozen=True)
class Identity:
    """The caller of an engine operation."""

    profile_id: str
    role: str
    ha_user_id: str = ""

    @property
    def is_guardian(self) -> bool:
        """Return True for guardian identities."""
        return self.role == const.ROLE_GUARDIAN

    @property
    def is_dependent(self) -> bool:
        """Return True for dependent identities."""
        return self.role == const.ROLE_DEPENDENT

    @classmethod
    def from_profile(cls, profile: ProfileData) -> Identity:
        """Build the identity of a stored profile."""
        return cls(
            profile_id=profile[const.DATA_ID],
            role=profile[const.DATA_PROFILE_ROLE],
            ha_user_id=profile[const.DATA_PROFILE_HA_USER_ID],
        )


class SessionGate(ABC):
    """Supplies the validity flag and identity of the current session."""

    @abstractmethod
    def is_authenticated(self) -> bool:
        """Return True when a valid identity is available."""

    @abstractmethod
    def current_identity(self) -> Identity:
        """Return the session identity or raise AuthorizationError."""


class HassSessionGate(SessionGate):
    """Session gate backed by a Home Assistant user and its linked profile."""

    def __init__(self, user: User | None, profile: ProfileData | None) -> None:
        """Initialize the gate from a resolved user and profile."""
        self.user = user
        self.profile = profile

    @classmethod
    async def async_from_user_id(
        cls, hass: HomeAssistant, remote_store: RemoteStore, user_id: str | None
    ) -> HassSessionGate:
        """Resolve an HA user id (e.g. from a service call context)."""
        if not user_id:
            return cls(None, None)
        user = await hass.auth.async_get_user(user_id)
        if user is None:
            const.LOGGER.warning("WARNING: Authorization: Invalid user ID '%s'", user_id)
            return cls(None, None)
        profile = await remote_store.async_find_profile_by_user(user.id)
        return cls(user, profile)

    @property
    def is_admin(self) -> bool:
        """Return True when the HA user is an administrator."""
        return bool(self.user and self.user.is_admin)

    def is_authenticated(self) -> bool:
        """Return True for an active HA user linked to a profile."""
        return bool(self.user and self.user.is_active and self.profile)

    def current_identity(self) -> Identity:
        """Return the linked profile's identity."""
        if not self.is_authenticated() or self.profile is None:
            raise AuthorizationError("Caller is not linked to a GrowPromise profile")
        return Identity.from_profile(self.profile)


# ==============================================================================
# Authorization Checks
# ==============================================================================


def require_guardian(identity: Identity, action: str) -> None:
    """Allow only guardians."""
    if not identity.is_guardian:
        const.LOGGER.warning(
            "WARNING: %s: Profile '%s' is not a guardian", action, identity.profile_id
        )
        raise AuthorizationError(f"{action} requires a guardian")


def require_dependent(identity: Identity, action: str) -> None:
    """Allow only dependents."""
    if not identity.is_dependent:
        const.LOGGER.warning(
            "WARNING: %s: Profile '%s' is not a dependent", action, identity.profile_id
        )
        raise AuthorizationError(f"{action} requires a dependent")


def is_guardian_of(identity: Identity, dependent: ProfileData) -> bool:
    """Return True when the identity is a guardian linked to the dependent."""
    return identity.is_guardian and identity.profile_id in dependent.get(
        const.DATA_PROFILE_GUARDIAN_IDS, []
    )


def require_guardian_of(
    identity: Identity, dependent: ProfileData, action: str
) -> None:
    """Allow only a guardian linked to the dependent."""
    if not is_guardian_of(identity, dependent):
        const.LOGGER.warning(
            "WARNING: %s: Profile '%s' is not a guardian of '%s'",
            action,
            identity.profile_id,
            dependent[const.DATA_ID],
        )
        raise AuthorizationError(f"{action} requires a guardian of this dependent")


def require_self_or_guardian(
    identity: Identity, dependent: ProfileData, action: str
) -> None:
    """Allow the dependent themself or one of their guardians."""
    if identity.profile_id == dependent[const.DATA_ID]:
        return
    require_guardian_of(identity, dependent, action)
