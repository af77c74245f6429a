"""
Match lifecycle engine.

PENDING -> ACTIVE once both participants have interacted.
PENDING -> EXPIRED when now >= expires_at (ACTIVE matches are exempt).
PENDING -> REWOUND when the swiper rewinds; the match is deleted and the
swipe that produced it is restored in the swiper's history.

Status is recomputed from (match, now) by the pure `tick`; the engine only
stores the result so later reads see a monotonic history.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from echo_core.core.errors import (
    DuplicateMatchError,
    MatchExpiredError,
    NotFoundError,
    RewindWindowClosedError,
    ValidationError,
)
from echo_core.core.locks import KeyedLocks
from echo_core.core.metrics import matches_created_total, matches_expired_total, matches_rewound_total
from echo_core.features.swipes.service import SwipeLedger
from echo_core.models.match import (
    TERMINAL_STATUSES,
    Match,
    MatchCountdown,
    MatchStatus,
    SwipeSnapshot,
    pair_key,
)
from echo_core.models.results import DenialReason
from echo_core.models.swipe import SwipeKind

logger = logging.getLogger(__name__)

MATCH_TTL = timedelta(hours=48)

_HOUR = timedelta(hours=1)


def tick(match: Match, now: datetime) -> Match:
    """Pure status recompute. Only an unconsummated match can expire."""
    if match.status == MatchStatus.PENDING and now >= match.expires_at:
        return dataclasses.replace(match, status=MatchStatus.EXPIRED)
    return match


def hours_left(match: Match, now: datetime) -> int:
    """ceil((expires_at - now) / 1h), floored at 0."""
    return max(math.ceil((match.expires_at - now) / _HOUR), 0)


def rewind_denial(match: Match, actor_id: str) -> Optional[DenialReason]:
    """Why `actor_id` may not rewind `match` right now, or None."""
    if match.status != MatchStatus.PENDING:
        return DenialReason.REWIND_WINDOW_CLOSED
    snapshot = match.last_swipe_snapshot
    if snapshot is None or snapshot.swiper_id != actor_id:
        return DenialReason.REWIND_UNAVAILABLE
    return None


class MatchLifecycleEngine:
    def __init__(self, ledger: SwipeLedger, ttl: timedelta = MATCH_TTL):
        self._ledger = ledger
        self._ttl = ttl
        self._matches: Dict[str, Match] = {}
        self._by_pair: Dict[Tuple[str, str], str] = {}
        self._locks = KeyedLocks()

    # Creation ---------------------------------------------------------
    def create_match(
        self,
        user_a: str,
        user_b: str,
        now: datetime,
        snapshot: Optional[SwipeSnapshot] = None,
    ) -> Match:
        if user_a == user_b:
            raise ValidationError("A user cannot match with themselves")

        pair = pair_key(user_a, user_b)
        with self._locks.hold(pair):
            existing_id = self._by_pair.get(pair)
            if existing_id is not None:
                existing = self._advance(existing_id, now)
                if existing is not None and existing.status not in TERMINAL_STATUSES:
                    logger.warning(
                        "[matches] duplicate match rejected",
                        extra={"match_id": existing.id, "user_id": user_a},
                    )
                    raise DuplicateMatchError(f"Match {existing.id} is still open for this pair")

            match = Match(
                id=str(uuid.uuid4()),
                user_a=user_a,
                user_b=user_b,
                created_at=now,
                expires_at=now + self._ttl,
                last_swipe_snapshot=snapshot,
                is_super_like=bool(snapshot and snapshot.kind == SwipeKind.SUPERLIKE),
            )
            self._matches[match.id] = match
            self._by_pair[pair] = match.id

        matches_created_total.inc()
        logger.info("[matches] created", extra={"match_id": match.id, "user_id": user_a})
        return match

    def previous_created_at(self, user_a: str, user_b: str) -> Optional[datetime]:
        """Creation time of the last match recorded for this pair, if any."""
        pair = pair_key(user_a, user_b)
        with self._locks.hold(pair):
            match_id = self._by_pair.get(pair)
            match = self._matches.get(match_id) if match_id else None
        return match.created_at if match else None

    # Reads ------------------------------------------------------------
    def get(self, match_id: str, now: datetime) -> Match:
        """Current state of a match with any due expiry applied."""
        match = self._require(match_id)
        with self._locks.hold(match.pair):
            current = self._advance(match_id, now)
        if current is None:
            raise NotFoundError(f"Match {match_id} not found")
        return current

    def countdown(self, match_id: str, now: datetime) -> MatchCountdown:
        match = self.get(match_id, now)
        left = 0 if match.status in TERMINAL_STATUSES else hours_left(match, now)
        return MatchCountdown(match_id=match.id, status=match.status, hours_left=left)

    def list_for_user(self, user_id: str, now: datetime) -> List[Match]:
        ids = [m.id for m in list(self._matches.values()) if m.involves(user_id)]
        results = []
        for match_id in ids:
            try:
                results.append(self.get(match_id, now))
            except NotFoundError:
                # Rewound between listing and read
                continue
        return sorted(results, key=lambda m: m.created_at, reverse=True)

    # Transitions ------------------------------------------------------
    def record_interaction(self, match_id: str, user_id: str, now: datetime) -> Match:
        match = self._require(match_id)
        if not match.involves(user_id):
            raise ValidationError(f"User {user_id} is not part of match {match_id}")

        with self._locks.hold(match.pair):
            current = self._advance(match_id, now)
            if current is None:
                raise NotFoundError(f"Match {match_id} not found")
            if current.status == MatchStatus.EXPIRED:
                raise MatchExpiredError(f"Match {match_id} expired at {current.expires_at.isoformat()}")

            interacted = current.interacted | {user_id}
            status = current.status
            if status == MatchStatus.PENDING and {current.user_a, current.user_b} <= interacted:
                status = MatchStatus.ACTIVE
                logger.info("[matches] activated", extra={"match_id": match_id})
            updated = dataclasses.replace(current, interacted=frozenset(interacted), status=status)
            self._matches[match_id] = updated
        return updated

    def rewind(self, match_id: str, actor_id: str, now: datetime) -> Match:
        """Delete a PENDING match and restore the swipe that created it.

        Callers authorise the rewind first; a match that left PENDING in the
        meantime raises RewindWindowClosedError. The swipe is restored before
        the match is deleted, so a swipe that aged out of history raises
        NotFoundError and leaves the match in place.
        """
        match = self._require(match_id)
        with self._locks.hold(match.pair):
            current = self._advance(match_id, now)
            if current is None:
                raise NotFoundError(f"Match {match_id} not found")
            denial = rewind_denial(current, actor_id)
            if denial == DenialReason.REWIND_WINDOW_CLOSED:
                raise RewindWindowClosedError(f"Match {match_id} is {current.status.value}; rewind window closed")
            if denial is not None:
                raise ValidationError(f"User {actor_id} did not make the swipe behind match {match_id}")

            self._ledger.restore(current.last_swipe_snapshot)
            del self._matches[match_id]
            if self._by_pair.get(current.pair) == match_id:
                del self._by_pair[current.pair]
            rewound = dataclasses.replace(current, status=MatchStatus.REWOUND)

        matches_rewound_total.inc()
        logger.info("[matches] rewound", extra={"match_id": match_id, "user_id": actor_id})
        return rewound

    # Internal helpers -------------------------------------------------
    def _require(self, match_id: str) -> Match:
        match = self._matches.get(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    def _advance(self, match_id: str, now: datetime) -> Optional[Match]:
        """Apply tick and store the result. Caller holds the pair lock."""
        stored = self._matches.get(match_id)
        if stored is None:
            return None
        ticked = tick(stored, now)
        if ticked is not stored:
            self._matches[match_id] = ticked
            matches_expired_total.inc()
            logger.info("[matches] expired", extra={"match_id": match_id})
        return ticked
