"""Statistics Engine - Summaries over a dependent's assignments and rewards.

Design Principles:
    - Stateless: No coordinator reference, operates on passed data structures
    - Derived: Every figure is recomputed from entity rows, nothing is stored
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from .. import const
from ..utils.math_utils import calculate_percentage
from .economy_engine import EconomyEngine

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import AssignmentData, DependentStats, PlantData, StickerData


class StatisticsEngine:
    """Summaries for one dependent.

    Example:
        StatisticsEngine.summarize(dependent_id, assignments, stickers, plants)
        → {"total": 4, "completed": 3, "pending": 1, ..., "completion_rate": 75}
    """

    @staticmethod
    def completion_rate(completed: int, total: int) -> int:
        """Return the rounded percentage of approved assignments."""
        return round(calculate_percentage(completed, total))

    @staticmethod
    def summarize(
        dependent_id: str,
        assignments: Iterable[AssignmentData],
        stickers: Iterable[StickerData],
        plants: Iterable[PlantData],
    ) -> DependentStats:
        """Summarize a dependent's commitments, stickers and plants.

        `pending` covers everything still awaiting an outcome (PENDING and
        SUBMITTED).
        """
        statuses = Counter(
            assignment[const.DATA_ASSIGNMENT_STATUS]
            for assignment in assignments
            if assignment[const.DATA_ASSIGNMENT_DEPENDENT_ID] == dependent_id
        )
        total = sum(statuses.values())
        completed = statuses[const.ASSIGNMENT_STATUS_APPROVED]
        counts = EconomyEngine.sticker_counts(stickers, dependent_id)
        return {
            "total": total,
            "completed": completed,
            "pending": statuses[const.ASSIGNMENT_STATUS_PENDING]
            + statuses[const.ASSIGNMENT_STATUS_SUBMITTED],
            "rejected": statuses[const.ASSIGNMENT_STATUS_REJECTED],
            "expired": statuses[const.ASSIGNMENT_STATUS_EXPIRED],
            "completion_rate": StatisticsEngine.completion_rate(completed, total),
            "stickers_total": counts["total"],
            "stickers_available": counts["available"],
            "plants_completed": sum(
                1
                for plant in plants
                if plant[const.DATA_PLANT_DEPENDENT_ID] == dependent_id
                and plant[const.DATA_PLANT_COMPLETED]
            ),
        }
