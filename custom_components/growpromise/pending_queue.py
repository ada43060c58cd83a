# File: pending_queue.py
"""Durable, order-preserving queue of actions awaiting replay.

Each queued action is a tagged variant: a frozen dataclass whose `action_type`
names it in storage. parse_action() is the one place that turns a stored
entry back into its variant, so SyncManager can dispatch exhaustively.

Draining replays entries in sequence order. Every success is removed and
saved individually to preserve partial progress. An unreachable authority
leaves the entry queued for the next pass; any other GrowPromise error can
never succeed on retry, so the entry is dead-lettered: kept for inspection
and discard, but skipped by later drains.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, fields
from typing import TYPE_CHECKING, Any, ClassVar
import uuid

from . import const
from .exceptions import (
    EntityNotFoundError,
    GrowPromiseError,
    TransportError,
    ValidationError,
)
from .utils.dt_utils import dt_to_iso, dt_to_utc

if TYPE_CHECKING:
    from datetime import datetime

    from .store import GrowPromiseStore
    from .type_defs import PendingActionData


# =============================================================================
# ACTION VARIANTS
# =============================================================================


@dataclass(frozen=True)
class SubmitVerificationAction:
    """A dependent's proof submission captured while the authority was down.

    submitted_at is the capture time; replay submits as of that instant so a
    submission made before the deadline is not expired by a late drain.
    """

    action_type: ClassVar[str] = const.ACTION_SUBMIT_VERIFICATION

    identity_id: str
    identity_role: str
    assignment_id: str
    image_ref: str
    note: str | None = None
    submitted_at: str | None = None


@dataclass(frozen=True)
class MintStickerAction:
    """A sticker mint that failed after its approval was recorded."""

    action_type: ClassVar[str] = const.ACTION_MINT_STICKER

    assignment_id: str


@dataclass(frozen=True)
class GrantExperienceAction:
    """An approval's experience grant that failed after the approval was recorded."""

    action_type: ClassVar[str] = const.ACTION_GRANT_EXPERIENCE

    assignment_id: str
    dependent_id: str
    amount: int


PendingAction = SubmitVerificationAction | MintStickerAction | GrantExperienceAction

ACTION_VARIANTS: dict[str, type[PendingAction]] = {
    SubmitVerificationAction.action_type: SubmitVerificationAction,
    MintStickerAction.action_type: MintStickerAction,
    GrantExperienceAction.action_type: GrantExperienceAction,
}


def parse_action(entry: PendingActionData) -> PendingAction:
    """Rebuild the tagged variant of a stored queue entry.

    Raises:
        ValidationError: unknown action type or malformed payload
    """
    action_type = entry[const.DATA_PENDING_ACTION_TYPE]
    variant = ACTION_VARIANTS.get(action_type)
    if variant is None:
        raise ValidationError(f"Unknown pending action type '{action_type}'")
    payload = entry[const.DATA_PENDING_PAYLOAD]
    known = {f.name for f in fields(variant)}
    try:
        return variant(**{k: v for k, v in payload.items() if k in known})
    except TypeError as err:
        raise ValidationError(
            f"Malformed payload for pending action '{action_type}': {err}"
        ) from err


@dataclass
class DrainResult:
    """Outcome of replaying one queue entry."""

    entry_id: str
    sequence: int
    action_type: str
    success: bool
    error: str | None = None
    dead_lettered: bool = False

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable view (service responses)."""
        return asdict(self)


# =============================================================================
# QUEUE
# =============================================================================


class PendingActionQueue:
    """Pending-action queue persisted in the client store."""

    def __init__(self, store: GrowPromiseStore) -> None:
        """Initialize the queue on top of the client store."""
        self._store = store
        self._drain_lock = asyncio.Lock()

    @property
    def entries(self) -> list[PendingActionData]:
        """Return every stored entry (dead letters included) in replay order."""
        return sorted(
            (dict(entry) for entry in self._store.data[const.DATA_PENDING_ACTIONS]),
            key=lambda entry: entry[const.DATA_PENDING_SEQUENCE_NUMBER],
        )  # type: ignore[return-value]

    @property
    def replayable(self) -> list[PendingActionData]:
        """Return the entries a drain will still replay."""
        return [
            entry
            for entry in self.entries
            if const.DATA_PENDING_DEAD_LETTER not in entry
        ]

    @property
    def dead_letters(self) -> list[PendingActionData]:
        """Return entries that failed permanently and await a discard."""
        return [
            entry for entry in self.entries if const.DATA_PENDING_DEAD_LETTER in entry
        ]

    def __len__(self) -> int:
        """Return the number of entries still awaiting replay."""
        return len(self.replayable)

    def submission_captured_at(self, assignment_id: str) -> datetime | None:
        """Return when a still-queued submission for an assignment was captured."""
        for entry in self.replayable:
            if entry[const.DATA_PENDING_ACTION_TYPE] != const.ACTION_SUBMIT_VERIFICATION:
                continue
            payload = entry[const.DATA_PENDING_PAYLOAD]
            if payload.get("assignment_id") == assignment_id:
                return dt_to_utc(payload.get("submitted_at") or entry["enqueued_at"])
        return None

    async def async_enqueue(
        self, action: PendingAction, now: datetime
    ) -> PendingActionData:
        """Append an action with the next sequence number."""
        data = self._store.data
        sequence = data[const.DATA_PENDING_SEQUENCE] + 1
        data[const.DATA_PENDING_SEQUENCE] = sequence
        entry: PendingActionData = {
            "id": str(uuid.uuid4()),
            "sequence": sequence,
            "action_type": action.action_type,
            "payload": asdict(action),
            "enqueued_at": dt_to_iso(now) or "",
        }
        data[const.DATA_PENDING_ACTIONS].append(entry)
        await self._store.async_save()
        const.LOGGER.info(
            "INFO: Queued pending action '%s' (seq %s)", action.action_type, sequence
        )
        return dict(entry)  # type: ignore[return-value]

    def _find(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self._store.data[const.DATA_PENDING_ACTIONS]):
            if entry[const.DATA_ID] == entry_id:
                return index
        return None

    async def _async_remove(self, entry_id: str) -> bool:
        index = self._find(entry_id)
        if index is None:
            return False
        del self._store.data[const.DATA_PENDING_ACTIONS][index]
        await self._store.async_save()
        return True

    async def _async_dead_letter(self, entry_id: str, error: str) -> None:
        index = self._find(entry_id)
        if index is None:
            return
        self._store.data[const.DATA_PENDING_ACTIONS][index][
            const.DATA_PENDING_DEAD_LETTER
        ] = error
        await self._store.async_save()

    async def async_discard(self, entry_id: str) -> None:
        """Remove a poisoned entry without replaying it."""
        if not await self._async_remove(entry_id):
            raise EntityNotFoundError("Pending action", entry_id)
        const.LOGGER.warning("WARNING: Discarded pending action %s", entry_id)

    async def async_drain(
        self, replay: Callable[[PendingAction], Awaitable[Any]]
    ) -> list[DrainResult]:
        """Replay queued actions in order, removing each one that succeeds.

        A failing entry never aborts the drain: its error is recorded in the
        returned results. Transport and unexpected failures stay queued for
        the next attempt; a GrowPromise error dead-letters the entry.
        """
        async with self._drain_lock:
            results: list[DrainResult] = []
            for entry in self.replayable:
                entry_id = entry[const.DATA_ID]
                sequence = entry[const.DATA_PENDING_SEQUENCE_NUMBER]
                action_type = entry[const.DATA_PENDING_ACTION_TYPE]
                try:
                    await replay(parse_action(entry))
                except Exception as err:  # pylint: disable=broad-exception-caught
                    dead = isinstance(err, GrowPromiseError) and not isinstance(
                        err, TransportError
                    )
                    if dead:
                        const.LOGGER.error(
                            "ERROR: Pending action '%s' (seq %s) can never succeed, "
                            "dead-lettered: %s",
                            action_type,
                            sequence,
                            err,
                        )
                        await self._async_dead_letter(entry_id, str(err))
                    else:
                        const.LOGGER.warning(
                            "WARNING: Replay of pending action '%s' (seq %s) failed: %s",
                            action_type,
                            sequence,
                            err,
                        )
                    results.append(
                        DrainResult(
                            entry_id, sequence, action_type, False, str(err), dead
                        )
                    )
                    continue
                await self._async_remove(entry_id)
                const.LOGGER.debug(
                    "DEBUG: Replayed pending action '%s' (seq %s)",
                    action_type,
                    sequence,
                )
                results.append(DrainResult(entry_id, sequence, action_type, True))
            return results
