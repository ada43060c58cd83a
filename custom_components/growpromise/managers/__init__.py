"""Manager modules for GrowPromise integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager
from .commitment_manager import CommitmentManager
from .economy_manager import EconomyManager
from .growth_manager import GrowthManager
from .notification_manager import NotificationManager
from .profile_manager import ProfileManager
from .reward_manager import RewardManager
from .sync_manager import SyncManager

__all__ = [
    "BaseManager",
    "CommitmentManager",
    "EconomyManager",
    "GrowthManager",
    "NotificationManager",
    "ProfileManager",
    "RewardManager",
    "SyncManager",
]
