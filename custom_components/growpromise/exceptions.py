# File: exceptions.py
"""Error taxonomy for the GrowPromise engine.

Pure Python exceptions with no Home Assistant dependency so engines can raise
them directly. services.py maps them onto Home Assistant exception types.

Hierarchy:
    GrowPromiseError
    ├── ValidationError            malformed input, never retried
    │   └── EntityNotFoundError
    ├── InvalidTransitionError     state-machine precondition violated (incl. races)
    ├── AuthorizationError         identity may not perform the action
    ├── TransportError             authoritative store unreachable
    └── ExpectedOutcome            user-facing outcomes, not engine failures
        ├── InsufficientBalanceError
        ├── NotEnoughExperienceError
        ├── AlreadyWateredError
        └── PlantCompletedError
"""

from __future__ import annotations

from datetime import timedelta

from .utils.dt_utils import dt_format_duration


class GrowPromiseError(Exception):
    """Base class for all GrowPromise errors."""


class ValidationError(GrowPromiseError):
    """Raised for malformed input (e.g. a rejection without a reason).

    Attributes:
        field: Name of the offending input field, if known
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize ValidationError."""
        self.field = field
        super().__init__(message)


class EntityNotFoundError(ValidationError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        """Initialize EntityNotFoundError."""
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class InvalidTransitionError(GrowPromiseError):
    """Raised when a state transition's precondition does not hold.

    Callers should re-fetch current state before deciding what to do next.

    Attributes:
        entity_id: The entity whose transition was refused
        current: The state found in the store (None if not applicable)
        target: The state the caller attempted to reach
    """

    def __init__(
        self,
        entity_id: str,
        current: str | None,
        target: str,
        message: str | None = None,
    ) -> None:
        """Initialize InvalidTransitionError."""
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            message
            or f"Cannot transition '{entity_id}' from {current} to {target}"
        )


class AuthorizationError(GrowPromiseError):
    """Raised when the calling identity is not allowed to perform an action."""


class TransportError(GrowPromiseError):
    """Raised when the authoritative store cannot be reached (network, timeout)."""


class ExpectedOutcome(GrowPromiseError):
    """Base class for expected, user-facing outcomes.

    These are normal results of a valid request against current state and must
    be distinguishable from transport failures.
    """


class InsufficientBalanceError(ExpectedOutcome):
    """Raised when a redemption needs more stickers than are available.

    Attributes:
        dependent_id: The dependent attempting the redemption
        available: Stickers currently available
        required: Stickers the reward requires
        shortfall: How many more stickers are needed
    """

    def __init__(self, dependent_id: str, available: int, required: int) -> None:
        """Initialize InsufficientBalanceError."""
        self.dependent_id = dependent_id
        self.available = available
        self.required = required
        self.shortfall = required - available
        super().__init__(
            f"Insufficient stickers for dependent {dependent_id}: "
            f"available={available}, required={required}, "
            f"shortfall={self.shortfall}"
        )


class NotEnoughExperienceError(ExpectedOutcome):
    """Raised when advancing a plant that has not accrued enough experience."""

    def __init__(self, plant_id: str, experience: int, required: int) -> None:
        """Initialize NotEnoughExperienceError."""
        self.plant_id = plant_id
        self.experience = experience
        self.required = required
        super().__init__(
            f"Plant {plant_id} has {experience}/{required} experience to advance"
        )


class AlreadyWateredError(ExpectedOutcome):
    """Raised when watering again inside the rolling watering window.

    Attributes:
        plant_id: The plant that was already watered
        remaining: Time left until the next watering is allowed
    """

    def __init__(self, plant_id: str, remaining: timedelta) -> None:
        """Initialize AlreadyWateredError."""
        self.plant_id = plant_id
        self.remaining = remaining
        super().__init__(
            f"Plant {plant_id} was already watered; "
            f"next watering in {dt_format_duration(remaining)}"
        )


class PlantCompletedError(ExpectedOutcome):
    """Raised when mutating a plant that has reached its final stage."""

    def __init__(self, plant_id: str) -> None:
        """Initialize PlantCompletedError."""
        self.plant_id = plant_id
        super().__init__(f"Plant {plant_id} is completed and can no longer change")
