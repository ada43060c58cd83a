"""Economy Manager - Sticker ledger operations.

This manager is the stateful wrapper around EconomyEngine:
- Mints stickers on approval (idempotent by source assignment)
- Serves derived balances; nothing is ever stored as a counter

ARCHITECTURE:
- EconomyManager = "The Bank" (owns sticker minting)
- RewardManager spends stickers through the store's atomic redemption
- CommitmentManager calls async_mint() from its approve path
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const, data_builders as db
from ..engines.economy_engine import EconomyEngine
from ..store import cache_key
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from ..auth import Identity
    from ..type_defs import StickerCounts, StickerData


class EconomyManager(BaseManager):
    """Manager for the sticker ledger."""

    async def async_setup(self) -> None:
        """Set up the EconomyManager."""
        const.LOGGER.debug("EconomyManager initialized for entry %s", self.entry_id)

    async def async_mint(
        self,
        dependent_id: str,
        assignment_id: str,
        title: str,
        now_utc: datetime | None = None,
    ) -> tuple[StickerData, bool]:
        """Mint the sticker for an approved assignment.

        A second call for the same assignment returns the existing sticker.

        Returns:
            (sticker, created)
        """
        sticker = db.build_sticker(
            dependent_id,
            assignment_id,
            title,
            self.coordinator.growth_config.sticker_image_ref,
            self._now(now_utc),
        )
        minted, created = await self.remote.async_mint_sticker(sticker)
        if created:
            const.LOGGER.info(
                "INFO: Minted sticker %s for dependent %s (assignment %s)",
                minted[const.DATA_ID],
                dependent_id,
                assignment_id,
            )
        else:
            const.LOGGER.debug(
                "DEBUG: Sticker for assignment %s already minted, reusing %s",
                assignment_id,
                minted[const.DATA_ID],
            )
        return minted, created

    async def async_get_sticker_counts(
        self, identity: Identity, dependent_id: str | None = None
    ) -> StickerCounts:
        """Return total / available / redeemed counts for a dependent."""
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_GET_STICKER_COUNTS
        )
        return await self.async_counts_for(dependent[const.DATA_ID])

    async def async_counts_for(self, dependent_id: str) -> StickerCounts:
        """Return counts without an authorization check (internal callers)."""

        async def _fetch() -> StickerCounts:
            stickers = await self.remote.async_list_stickers(dependent_id)
            return EconomyEngine.sticker_counts(stickers, dependent_id)

        return await self._async_read_through(
            cache_key(const.CACHE_KEY_STICKER_COUNTS, dependent_id), _fetch
        )

    async def async_list_stickers(
        self, identity: Identity, dependent_id: str | None = None
    ) -> list[StickerData]:
        """Return a dependent's stickers, oldest first."""
        dependent = await self.coordinator.profile_manager.async_resolve_dependent(
            identity, dependent_id, const.SERVICE_LIST_STICKERS
        )
        return await self.remote.async_list_stickers(dependent[const.DATA_ID])
