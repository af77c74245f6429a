"""
Clock sources.

Engines never call datetime.now() themselves; they take a clock so tests can
pin and advance time deterministically. All values are tz-aware UTC.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


def normalize_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self._current = normalize_utc(start) if start else datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._current = normalize_utc(moment)

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._current = self._current + step
            return self._current


def start_of_next_day(now: datetime) -> datetime:
    """Next UTC midnight strictly after `now`."""
    current = normalize_utc(now)
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


def read_clock(clock: Clock) -> datetime:
    """Read `clock`, surfacing any failure as UnavailableError."""
    from echo_core.core.errors import UnavailableError

    try:
        return normalize_utc(clock.now())
    except Exception as exc:
        raise UnavailableError("Clock source unavailable") from exc
