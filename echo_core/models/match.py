"""
Match models.

A Match is immutable; lifecycle transitions produce a new instance via
dataclasses.replace so a recompute can never half-apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from echo_core.models.swipe import SwipeKind


class MatchStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REWOUND = "REWOUND"


# Status ordering for forward-only transitions. REWOUND is reachable only from PENDING.
TERMINAL_STATUSES = frozenset({MatchStatus.EXPIRED, MatchStatus.REWOUND})


@dataclass(frozen=True)
class SwipeSnapshot:
    """The swipe that completed the pair, kept so a rewind can restore it."""

    swipe_id: str
    swiper_id: str
    target_id: str
    kind: SwipeKind
    swiped_at: datetime


def pair_key(user_a: str, user_b: str) -> Tuple[str, str]:
    """Unordered pair identity."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


@dataclass(frozen=True)
class Match:
    id: str
    user_a: str
    user_b: str
    created_at: datetime
    expires_at: datetime
    status: MatchStatus = MatchStatus.PENDING
    last_swipe_snapshot: Optional[SwipeSnapshot] = None
    interacted: FrozenSet[str] = field(default_factory=frozenset)
    is_super_like: bool = False

    @property
    def pair(self) -> Tuple[str, str]:
        return pair_key(self.user_a, self.user_b)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_a, self.user_b)

    def other(self, user_id: str) -> str:
        return self.user_b if user_id == self.user_a else self.user_a


@dataclass(frozen=True)
class MatchCountdown:
    match_id: str
    status: MatchStatus
    hours_left: int
