from datetime import datetime, timedelta, timezone

from echo_core.core.metrics import gate_decisions_total
from echo_core.core.ratelimit import RateLimiter, RateLimitPolicy
from echo_core.core.config import DEFAULT_PLAN_LIMITS
from echo_core.features.entitlements.plans import load_plan_limits
from echo_core.features.entitlements.store import EntitlementStore
from echo_core.features.gate.service import EntitlementGate
from echo_core.models.entitlement import ActionKind, QuotaKind
from echo_core.models.results import Authorized, Denied, DenialReason

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def _gate(policies=None):
    store = EntitlementStore(load_plan_limits(DEFAULT_PLAN_LIMITS))
    policies = policies if policies is not None else {
        "REPORT": RateLimitPolicy(limit=2, window=timedelta(hours=24)),
        "BLOCK": RateLimitPolicy(limit=3, window=timedelta(hours=1)),
    }
    return EntitlementGate(store, RateLimiter(), policies)


def test_quota_action_reports_remaining():
    result = _gate().authorize("u1", ActionKind.LIKE, NOW)
    assert result == Authorized(remaining={QuotaKind.SWIPES: 49})


def test_abuse_sensitive_action_is_rate_limited():
    gate = _gate()
    assert isinstance(gate.authorize("u1", ActionKind.REPORT, NOW), Authorized)
    assert isinstance(gate.authorize("u1", ActionKind.REPORT, NOW), Authorized)

    denied = gate.authorize("u1", ActionKind.REPORT, NOW)
    assert denied == Denied(reason=DenialReason.RATE_LIMITED)

    assert isinstance(gate.authorize("u1", ActionKind.REPORT, NOW + timedelta(hours=24)), Authorized)


def test_moderation_does_not_touch_quotas():
    gate = _gate()
    gate.authorize("u1", ActionKind.BLOCK, NOW)

    snapshot = gate.entitlements("u1", NOW)
    assert all(entry.used == 0 for entry in snapshot.quotas.values())


def test_rate_limit_runs_before_quota():
    policies = {"LIKE": RateLimitPolicy(limit=1, window=timedelta(minutes=1))}
    gate = _gate(policies)

    assert isinstance(gate.authorize("u1", ActionKind.LIKE, NOW), Authorized)
    assert gate.authorize("u1", ActionKind.LIKE, NOW).reason == DenialReason.RATE_LIMITED
    # The rate-limited attempt never reached the store
    assert gate.entitlements("u1", NOW).quotas[QuotaKind.SWIPES].used == 1


def test_denials_keep_their_reason():
    gate = _gate()
    assert gate.authorize("u1", ActionKind.REWIND, NOW).reason == DenialReason.PLAN_INSUFFICIENT
    assert gate.is_abuse_sensitive(ActionKind.REPORT)
    assert not gate.is_abuse_sensitive(ActionKind.LIKE)


def test_decisions_are_counted():
    gate = _gate()
    gate.authorize("u1", ActionKind.LIKE, NOW)
    gate.authorize("u1", ActionKind.SUPERLIKE, NOW)

    assert gate_decisions_total.value({"action": "LIKE", "outcome": "AUTHORIZED"}) == 1
    assert gate_decisions_total.value({"action": "SUPERLIKE", "outcome": "PLAN_INSUFFICIENT"}) == 1
