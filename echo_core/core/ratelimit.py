"""
Fixed-window rate limiter for abuse-sensitive actions (report, block).

- In-memory, keyed by (subject_id, action_type).
- A window resets once now - window_start >= window_size.
- Denied attempts are not counted, so a burst of rejected retries never
  pushes the subject into the next window.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Mapping, Optional, Tuple

from echo_core.core.locks import KeyedLocks
from echo_core.core.metrics import ratelimit_block_total, ratelimit_windows_active
from echo_core.models.rate_limit import RateLimitWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window: timedelta


class RateLimiter:
    def __init__(self, gc_every: int = 1000):
        self._windows: Dict[Tuple[str, str], RateLimitWindow] = {}
        self._locks = KeyedLocks()
        self._gc_every = max(1, gc_every)
        self._calls = 0
        self._calls_lock = threading.Lock()

    def allow(self, subject_id: str, action_type: str, now: datetime, window_size: timedelta, limit: int) -> bool:
        key = (subject_id, action_type)
        with self._locks.hold(key):
            window = self._windows.get(key)
            if window is None or now - window.window_start >= window_size:
                window = RateLimitWindow(
                    subject_id=subject_id,
                    action_type=action_type,
                    window_start=now,
                    window_size=window_size,
                )
                self._windows[key] = window
            if window.count >= limit:
                allowed = False
            else:
                window.count += 1
                allowed = True

        if not allowed:
            ratelimit_block_total.inc(labels={"scope": action_type})
            logger.warning(
                "[ratelimit] blocked",
                extra={"user_id": subject_id, "action": action_type, "limit": limit},
            )
        self._maybe_purge(now)
        return allowed

    def window(self, subject_id: str, action_type: str) -> Optional[RateLimitWindow]:
        return self._windows.get((subject_id, action_type))

    def purge_expired(self, now: datetime) -> int:
        """Drop windows whose window_start + window_size < now."""
        removed = 0
        for key, window in list(self._windows.items()):
            if not window.is_stale(now):
                continue
            with self._locks.hold(key):
                current = self._windows.get(key)
                if current is not None and current.is_stale(now):
                    del self._windows[key]
                    removed += 1
        ratelimit_windows_active.set(len(self._windows))
        if removed:
            logger.info("[ratelimit] purged windows", extra={"removed": removed})
        return removed

    def __len__(self) -> int:
        return len(self._windows)

    def _maybe_purge(self, now: datetime) -> None:
        with self._calls_lock:
            self._calls += 1
            due = self._calls % self._gc_every == 0
        if due:
            self.purge_expired(now)


def build_rate_limit_policies(cfg) -> Mapping[str, RateLimitPolicy]:
    """Report/block policies from settings."""
    return {
        "REPORT": RateLimitPolicy(
            limit=cfg.REPORT_RATE_LIMIT,
            window=timedelta(seconds=cfg.REPORT_RATE_WINDOW_SECONDS),
        ),
        "BLOCK": RateLimitPolicy(
            limit=cfg.BLOCK_RATE_LIMIT,
            window=timedelta(seconds=cfg.BLOCK_RATE_WINDOW_SECONDS),
        ),
    }
