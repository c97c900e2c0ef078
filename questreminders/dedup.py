"""Per-user, per-minute slot deduplication.

A slot is one local-calendar minute for one user, keyed as
``YYYY-MM-DDThh:mm``. A user gets at most one notification batch per slot no
matter how many reminders are due in it. The authoritative check is a
conditional write on ``lastSlotKey`` performed by the repository, so two
overlapping runs cannot both dispatch for the same slot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .timezone import LocalTime

logger = logging.getLogger(__name__)


def slot_key(now_local: LocalTime) -> str:
    """Canonical slot identifier for a local minute."""
    return (
        f"{now_local.year}-{now_local.month:02d}-{now_local.day:02d}"
        f"T{now_local.hour:02d}:{now_local.minute:02d}"
    )


def notification_tag(key: str) -> str:
    """Client-side replacement/grouping tag for a slot."""
    return f"quest-{key}"


@dataclass(frozen=True)
class SlotClaim:
    """Outcome of a conditional ``lastSlotKey`` write.

    Attributes:
        user_id:           Owner of the dedup state.
        slot_key:          Slot that was requested.
        acquired:          False when the stored value already equalled ``slot_key``.
        previous_slot_key: Stored value before the claim ("" if none).
    """

    user_id: str
    slot_key: str
    acquired: bool
    previous_slot_key: str = ""


class SlotDeduplicator:
    """Gate a user's batch on the stored ``lastSlotKey``.

    ``repository`` must provide ``get_state``, ``claim_slot`` and
    ``release_slot``.
    """

    def __init__(self, repository) -> None:
        self._repository = repository

    def already_sent(self, user_id: str, key: str) -> bool:
        """Cheap pre-check against the last persisted slot."""
        state = self._repository.get_state(user_id)
        return state.last_slot_key == key

    def claim(self, user_id: str, key: str) -> SlotClaim:
        """Atomically set ``lastSlotKey`` to ``key`` unless it already holds it."""
        claim = self._repository.claim_slot(user_id, key)
        if not claim.acquired:
            logger.debug(f"[Reminders] Slot {key} already claimed for user {user_id}")
        return claim

    def release(self, claim: SlotClaim) -> None:
        """Undo a claim whose dispatch never happened."""
        if not claim.acquired:
            return
        self._repository.release_slot(claim.user_id, claim.slot_key, claim.previous_slot_key)
