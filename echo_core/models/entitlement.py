"""
Entitlement models.

Plans are capability tiers without pricing. Limits are per UTC day and
"unlimited" is the UNLIMITED sentinel, never a large integer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict


class Plan(str, Enum):
    FREE = "FREE"
    PLUS = "PLUS"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class Unlimited(Enum):
    UNLIMITED = "unlimited"

    def __repr__(self) -> str:
        return "UNLIMITED"


UNLIMITED = Unlimited.UNLIMITED

Quota = Union[int, Unlimited]


class QuotaKind(str, Enum):
    SWIPES = "swipes"
    SUPER_LIKES = "super_likes"
    REWINDS = "rewinds"
    BOOSTS = "boosts"


class ActionKind(str, Enum):
    LIKE = "LIKE"
    NOPE = "NOPE"
    SUPERLIKE = "SUPERLIKE"
    REWIND = "REWIND"
    BOOST = "BOOST"
    REPORT = "REPORT"
    BLOCK = "BLOCK"


@dataclass
class QuotaCounter:
    reset_at: datetime
    used: int = 0


@dataclass
class EntitlementState:
    """Owned by EntitlementStore; callers only ever see snapshots."""

    user_id: str
    counters: Dict[QuotaKind, QuotaCounter]
    plan: Plan = Plan.FREE
    plan_changed_at: Optional[datetime] = None

    @property
    def daily_swipes_used(self) -> int:
        return self.counters[QuotaKind.SWIPES].used

    @property
    def daily_swipe_reset_at(self) -> datetime:
        return self.counters[QuotaKind.SWIPES].reset_at

    @property
    def super_like_refill_at(self) -> datetime:
        return self.counters[QuotaKind.SUPER_LIKES].reset_at

    @property
    def rewind_refill_at(self) -> datetime:
        return self.counters[QuotaKind.REWINDS].reset_at


class PlanChangeKind(str, Enum):
    PURCHASE = "PURCHASE"
    UPGRADE = "UPGRADE"
    DOWNGRADE = "DOWNGRADE"
    CANCEL = "CANCEL"


class PlanChangeEvent(BaseModel):
    """Subscription feed event. Only its effect on entitlements is modelled."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    plan: Plan = Plan.FREE
    kind: PlanChangeKind
    occurred_at: datetime


@dataclass(frozen=True)
class QuotaSnapshot:
    quota: QuotaKind
    limit: Quota
    used: int
    remaining: Quota
    refill_at: datetime


@dataclass(frozen=True)
class EntitlementSnapshot:
    user_id: str
    plan: Plan
    quotas: Dict[QuotaKind, QuotaSnapshot] = field(default_factory=dict)
