from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SwipeKind(str, Enum):
    LIKE = "LIKE"
    NOPE = "NOPE"
    SUPERLIKE = "SUPERLIKE"


@dataclass
class SwipeRecord:
    """One entry in a swiper's history. `consumed` flips back to False on rewind."""

    swipe_id: str
    swiper_id: str
    target_id: str
    kind: SwipeKind
    swiped_at: datetime
    consumed: bool = True
