"""
Plan -> limits table.

Limits come from configuration (PLAN_LIMITS); -1 there means unlimited and is
converted to the UNLIMITED sentinel here so arithmetic downstream stays total.
A limit of 0 means the plan does not offer the consumable at all.
"""

from typing import Dict, Mapping, Optional, Tuple

from echo_core.models.entitlement import UNLIMITED, ActionKind, Plan, Quota, QuotaKind

PlanLimits = Dict[Plan, Dict[QuotaKind, Quota]]

# Consumables each quota-governed action draws from. A super-like is also a swipe.
ACTION_QUOTAS: Dict[ActionKind, Tuple[QuotaKind, ...]] = {
    ActionKind.LIKE: (QuotaKind.SWIPES,),
    ActionKind.NOPE: (QuotaKind.SWIPES,),
    ActionKind.SUPERLIKE: (QuotaKind.SUPER_LIKES, QuotaKind.SWIPES),
    ActionKind.REWIND: (QuotaKind.REWINDS,),
    ActionKind.BOOST: (QuotaKind.BOOSTS,),
}


def parse_limit(value: int) -> Quota:
    if value == -1:
        return UNLIMITED
    if value < 0:
        raise ValueError(f"Invalid limit {value}; use -1 for unlimited")
    return value


def load_plan_limits(raw: Mapping[str, Mapping[str, int]]) -> PlanLimits:
    """Convert the PLAN_LIMITS setting into typed limits. Missing quotas default to 0."""
    limits: PlanLimits = {}
    for plan in Plan:
        entries = raw.get(plan.value, {})
        limits[plan] = {quota: parse_limit(int(entries.get(quota.value, 0))) for quota in QuotaKind}
    return limits


def remaining(limit: Quota, used: int) -> Quota:
    if limit is UNLIMITED:
        return UNLIMITED
    return max(limit - used, 0)


def is_offered(limit: Quota) -> bool:
    return limit is UNLIMITED or limit > 0


def required_plan_for(limits: PlanLimits, quota: QuotaKind) -> Optional[Plan]:
    """Lowest plan, in upgrade order, that offers `quota` at all."""
    for plan in Plan:
        if is_offered(limits[plan][quota]):
            return plan
    return None
