"""
Gate outcomes.

Denials are expected, renderable outcomes and travel as values. Each reason
maps to a distinct user-facing message ("upgrade" vs "come back tomorrow").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union

from echo_core.models.entitlement import Plan, Quota, QuotaKind


class DenialReason(str, Enum):
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"
    PLAN_INSUFFICIENT = "PLAN_INSUFFICIENT"
    RATE_LIMITED = "RATE_LIMITED"
    REWIND_UNAVAILABLE = "REWIND_UNAVAILABLE"
    REWIND_WINDOW_CLOSED = "REWIND_WINDOW_CLOSED"


@dataclass(frozen=True)
class Authorized:
    remaining: Dict[QuotaKind, Quota] = field(default_factory=dict)
    authorized: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    cause: Optional[DenialReason] = None
    quota: Optional[QuotaKind] = None
    # Cheapest plan offering `quota`; set for PLAN_INSUFFICIENT denials
    required_plan: Optional[Plan] = None
    authorized: bool = field(default=False, init=False)


GateResult = Union[Authorized, Denied]
