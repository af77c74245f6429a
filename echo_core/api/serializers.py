"""Plain-dict renderings of engine values for JSON responses."""

from typing import Any, Dict, Union

from echo_core.models.entitlement import UNLIMITED, EntitlementSnapshot, Quota
from echo_core.models.match import Match, MatchCountdown
from echo_core.models.results import Authorized, Denied


def quota_value(value: Quota) -> Union[int, str]:
    return UNLIMITED.value if value is UNLIMITED else value


def decision_payload(result: Union[Authorized, Denied]) -> Dict[str, Any]:
    if isinstance(result, Authorized):
        return {
            "authorized": True,
            "remaining": {quota.value: quota_value(left) for quota, left in result.remaining.items()},
        }
    return {
        "authorized": False,
        "reason": result.reason.value,
        "cause": result.cause.value if result.cause else None,
        "quota": result.quota.value if result.quota else None,
        "required_plan": result.required_plan.value if result.required_plan else None,
    }


def match_payload(match: Match) -> Dict[str, Any]:
    return {
        "id": match.id,
        "user_a": match.user_a,
        "user_b": match.user_b,
        "created_at": match.created_at.isoformat(),
        "expires_at": match.expires_at.isoformat(),
        "status": match.status.value,
        "is_super_like": match.is_super_like,
    }


def countdown_payload(countdown: MatchCountdown) -> Dict[str, Any]:
    return {
        "match_id": countdown.match_id,
        "status": countdown.status.value,
        "hours_left": countdown.hours_left,
    }


def entitlements_payload(snapshot: EntitlementSnapshot) -> Dict[str, Any]:
    return {
        "user_id": snapshot.user_id,
        "plan": snapshot.plan.value,
        "quotas": {
            quota.value: {
                "limit": quota_value(entry.limit),
                "used": entry.used,
                "remaining": quota_value(entry.remaining),
                "refill_at": entry.refill_at.isoformat(),
            }
            for quota, entry in snapshot.quotas.items()
        },
    }
