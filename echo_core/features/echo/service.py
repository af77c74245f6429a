"""
Echo status engine.

compute_status is a pure function of (last_photo_at, now); nothing derived
from it is ever persisted. EchoFreshnessService owns ProfileFreshness records
and recomputes status on every read.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Optional

from echo_core.core.clock import normalize_utc
from echo_core.core.errors import NotFoundError, ValidationError
from echo_core.core.locks import KeyedLocks
from echo_core.models.echo import EchoStatus, EchoStatusView, ProfileFreshness

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(days=7)
WARNING_THRESHOLD = timedelta(days=2)

_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)


def compute_status(
    last_photo_at: datetime,
    now: datetime,
    *,
    freshness_window: timedelta = FRESHNESS_WINDOW,
    warning_threshold: timedelta = WARNING_THRESHOLD,
) -> EchoStatusView:
    """Derive echo status. Total: a future last_photo_at counts as zero elapsed.

    elapsed == window is SILENCE; remaining == threshold is EXPIRING.
    """
    elapsed = max(normalize_utc(now) - normalize_utc(last_photo_at), timedelta(0))
    max_days = math.ceil(freshness_window / _DAY)

    if elapsed >= freshness_window:
        return EchoStatusView(status=EchoStatus.SILENCE, hours_left=0, days_left=0)

    remaining = freshness_window - elapsed
    status = EchoStatus.EXPIRING if remaining <= warning_threshold else EchoStatus.ACTIVE
    return EchoStatusView(
        status=status,
        hours_left=math.ceil(remaining / _HOUR),
        days_left=min(max(math.ceil(remaining / _DAY), 0), max_days),
    )


class EchoFreshnessService:
    """Holds last verified photo timestamps and answers status reads."""

    def __init__(
        self,
        freshness_window: timedelta = FRESHNESS_WINDOW,
        warning_threshold: timedelta = WARNING_THRESHOLD,
    ):
        self._freshness_window = freshness_window
        self._warning_threshold = warning_threshold
        self._records: Dict[str, ProfileFreshness] = {}
        self._locks = KeyedLocks()

    def record_photo(self, user_id: str, taken_at: Optional[datetime], now: datetime) -> EchoStatusView:
        """Supersede last_photo_at with a newly verified photo."""
        now = normalize_utc(now)
        taken = normalize_utc(taken_at) if taken_at else now
        if taken > now:
            raise ValidationError(f"Photo timestamp {taken.isoformat()} is in the future")

        with self._locks.hold(user_id):
            current = self._records.get(user_id)
            if current is None or taken > current.last_photo_at:
                self._records[user_id] = ProfileFreshness(user_id=user_id, last_photo_at=taken)
                logger.info("[echo] photo recorded", extra={"user_id": user_id})
            else:
                logger.info(
                    "[echo] stale photo ignored",
                    extra={"user_id": user_id, "taken_at": taken.isoformat()},
                )
            last_photo_at = self._records[user_id].last_photo_at

        return self._status(last_photo_at, now)

    def get_freshness(self, user_id: str) -> ProfileFreshness:
        record = self._records.get(user_id)
        if record is None:
            raise NotFoundError(f"No photo on record for user {user_id}")
        return record

    def get_status(self, user_id: str, now: datetime) -> EchoStatusView:
        return self._status(self.get_freshness(user_id).last_photo_at, now)

    def is_discoverable(self, user_id: str, now: datetime) -> bool:
        return self.get_status(user_id, now).is_discoverable

    def _status(self, last_photo_at: datetime, now: datetime) -> EchoStatusView:
        return compute_status(
            last_photo_at,
            now,
            freshness_window=self._freshness_window,
            warning_threshold=self._warning_threshold,
        )
