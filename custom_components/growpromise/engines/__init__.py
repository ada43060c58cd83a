"""Engine modules for GrowPromise integration.

Contains specialized computation engines:
- commitment_engine: Assignment state machine, transitions and instantiation
- economy_engine: Sticker balances and redemption selection
- growth_engine: Plant watering, experience and stages
- schedule_engine: Recurrence expansion into due dates
- statistics_engine: Per-dependent summaries
"""

# Use relative imports within package to avoid mypy module resolution issues
from .commitment_engine import CommitmentEngine, DueAssignment, TransitionPlan
from .economy_engine import EconomyEngine
from .growth_engine import GrowthConfig, GrowthEngine, WateringPlan
from .schedule_engine import RecurrenceEngine
from .statistics_engine import StatisticsEngine

__all__ = [
    "CommitmentEngine",
    "DueAssignment",
    "EconomyEngine",
    "GrowthConfig",
    "GrowthEngine",
    "RecurrenceEngine",
    "StatisticsEngine",
    "TransitionPlan",
    "WateringPlan",
]
