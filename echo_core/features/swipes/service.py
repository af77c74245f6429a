from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from echo_core.core.errors import NotFoundError
from echo_core.core.locks import KeyedLocks
from echo_core.models.match import SwipeSnapshot
from echo_core.models.swipe import SwipeKind, SwipeRecord

logger = logging.getLogger(__name__)


class SwipeLedger:
    """Bounded per-user swipe history, newest last."""

    def __init__(self, max_entries: int = 100):
        self._max_entries = max_entries
        self._history: Dict[str, List[SwipeRecord]] = {}
        self._locks = KeyedLocks()

    def record(self, swiper_id: str, target_id: str, kind: SwipeKind, swiped_at: datetime) -> SwipeRecord:
        entry = SwipeRecord(
            swipe_id=str(uuid.uuid4()),
            swiper_id=swiper_id,
            target_id=target_id,
            kind=kind,
            swiped_at=swiped_at,
        )
        with self._locks.hold(swiper_id):
            history = self._history.setdefault(swiper_id, [])
            history.append(entry)
            if len(history) > self._max_entries:
                del history[: len(history) - self._max_entries]
        return entry

    def history(self, swiper_id: str) -> List[SwipeRecord]:
        with self._locks.hold(swiper_id):
            return list(self._history.get(swiper_id, []))

    def latest_between(
        self, user_a: str, user_b: str, since: Optional[datetime] = None
    ) -> Optional[SwipeRecord]:
        """Most recent consumed swipe either user aimed at the other.

        Swipes made at or before `since` are skipped; they belong to an
        earlier match between the same pair.
        """
        candidates = [
            entry
            for swiper, target in ((user_a, user_b), (user_b, user_a))
            for entry in self.history(swiper)
            if entry.target_id == target
            and entry.consumed
            and entry.kind != SwipeKind.NOPE
            and (since is None or entry.swiped_at > since)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda entry: entry.swiped_at)

    def find(self, snapshot: SwipeSnapshot) -> Optional[SwipeRecord]:
        with self._locks.hold(snapshot.swiper_id):
            for entry in reversed(self._history.get(snapshot.swiper_id, [])):
                if entry.swipe_id == snapshot.swipe_id:
                    return entry
        return None

    def restore(self, snapshot: SwipeSnapshot) -> SwipeRecord:
        """Flip the swipe back to unconsumed so its target reappears in discovery."""
        with self._locks.hold(snapshot.swiper_id):
            for entry in reversed(self._history.get(snapshot.swiper_id, [])):
                if entry.swipe_id == snapshot.swipe_id:
                    entry.consumed = False
                    logger.info(
                        "[swipes] swipe restored",
                        extra={"user_id": snapshot.swiper_id, "target_id": snapshot.target_id},
                    )
                    return entry
        raise NotFoundError(f"Swipe {snapshot.swipe_id} no longer in history for {snapshot.swiper_id}")


def snapshot_of(entry: SwipeRecord) -> SwipeSnapshot:
    return SwipeSnapshot(
        swipe_id=entry.swipe_id,
        swiper_id=entry.swiper_id,
        target_id=entry.target_id,
        kind=entry.kind,
        swiped_at=entry.swiped_at,
    )
