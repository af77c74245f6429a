from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass
class RateLimitWindow:
    """Fixed window for one (subject_id, action_type). Ephemeral."""

    subject_id: str
    action_type: str
    window_start: datetime
    window_size: timedelta
    count: int = 0

    def is_stale(self, now: datetime) -> bool:
        return self.window_start + self.window_size < now
