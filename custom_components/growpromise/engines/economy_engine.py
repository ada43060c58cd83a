"""Economy Engine - Pure logic for the sticker ledger and reward redemption.

This engine provides stateless, pure Python functions for:
- Deriving sticker balances (never stored)
- Oldest-first selection of stickers for a redemption
- Reward progress calculation

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
State management belongs in EconomyManager and RewardManager; the atomic
check-then-act of a redemption is performed by the remote store using
select_for_redemption().
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const
from ..exceptions import InsufficientBalanceError
from ..utils.math_utils import calculate_percentage

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import RewardData, RewardProgress, StickerCounts, StickerData


class EconomyEngine:
    """Pure logic engine for sticker balances and redemptions.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    @staticmethod
    def is_available(sticker: StickerData) -> bool:
        """Return True when a sticker has not been redeemed."""
        return sticker[const.DATA_STICKER_REDEEMED_BY_REWARD_ID] is None

    @staticmethod
    def available_stickers(
        stickers: Iterable[StickerData], dependent_id: str
    ) -> list[StickerData]:
        """Return a dependent's unredeemed stickers, oldest first.

        Ties on minted_at are broken by id so the order is reproducible.
        """
        return sorted(
            (
                sticker
                for sticker in stickers
                if sticker[const.DATA_STICKER_DEPENDENT_ID] == dependent_id
                and EconomyEngine.is_available(sticker)
            ),
            key=lambda s: (s[const.DATA_STICKER_MINTED_AT], s[const.DATA_ID]),
        )

    @staticmethod
    def sticker_counts(
        stickers: Iterable[StickerData], dependent_id: str
    ) -> StickerCounts:
        """Derive total / available / redeemed counts for a dependent."""
        total = 0
        available = 0
        for sticker in stickers:
            if sticker[const.DATA_STICKER_DEPENDENT_ID] != dependent_id:
                continue
            total += 1
            if EconomyEngine.is_available(sticker):
                available += 1
        return {"total": total, "available": available, "redeemed": total - available}

    @staticmethod
    def select_for_redemption(
        stickers: Iterable[StickerData], dependent_id: str, required: int
    ) -> list[StickerData]:
        """Select exactly `required` oldest available stickers.

        Raises:
            InsufficientBalanceError: fewer than `required` stickers are available
        """
        available = EconomyEngine.available_stickers(stickers, dependent_id)
        if len(available) < required:
            raise InsufficientBalanceError(dependent_id, len(available), required)
        return available[:required]

    @staticmethod
    def find_sticker_for_assignment(
        stickers: Iterable[StickerData], assignment_id: str
    ) -> StickerData | None:
        """Return the sticker minted for an assignment, if any."""
        for sticker in stickers:
            if sticker[const.DATA_STICKER_SOURCE_ASSIGNMENT_ID] == assignment_id:
                return sticker
        return None

    @staticmethod
    def reward_progress(reward: RewardData, available: int) -> RewardProgress:
        """Return progress toward one reward, capped at 100 percent."""
        required = reward[const.DATA_REWARD_REQUIRED_STICKER_COUNT]
        return {
            "reward": reward,
            "available": available,
            "progress": min(calculate_percentage(available, required), 100.0),
            "can_redeem": available >= required,
        }
