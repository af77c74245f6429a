"""
Entitlement gate: the only way callers reach quotas and rate limits.

Rate limits run first for abuse-sensitive actions, then quotas for
quota-governed actions; the first denial wins and nothing after it runs.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Union

from echo_core.core.metrics import gate_decisions_total
from echo_core.core.ratelimit import RateLimiter, RateLimitPolicy
from echo_core.features.entitlements.plans import ACTION_QUOTAS
from echo_core.features.entitlements.store import EntitlementStore
from echo_core.models.entitlement import ActionKind, EntitlementSnapshot, Plan, PlanChangeEvent
from echo_core.models.results import Authorized, Denied, DenialReason

logger = logging.getLogger(__name__)


class EntitlementGate:
    def __init__(
        self,
        store: EntitlementStore,
        limiter: RateLimiter,
        policies: Mapping[str, RateLimitPolicy],
    ):
        self._store = store
        self._limiter = limiter
        self._policies = dict(policies)

    def is_abuse_sensitive(self, action: ActionKind) -> bool:
        return action.value in self._policies

    def authorize(self, user_id: str, action: ActionKind, now: datetime) -> Union[Authorized, Denied]:
        policy = self._policies.get(action.value)
        if policy is not None:
            if not self._limiter.allow(user_id, action.value, now, policy.window, policy.limit):
                return self._record(user_id, action, Denied(reason=DenialReason.RATE_LIMITED))

        if action in ACTION_QUOTAS:
            result = self._store.check_and_consume(user_id, action, now)
        else:
            result = Authorized()
        return self._record(user_id, action, result)

    def apply_plan_change(self, event: PlanChangeEvent, now: datetime) -> Plan:
        return self._store.apply_plan_change(event, now)

    def entitlements(self, user_id: str, now: datetime) -> EntitlementSnapshot:
        return self._store.snapshot(user_id, now)

    def _record(self, user_id: str, action: ActionKind, result: Union[Authorized, Denied]) -> Union[Authorized, Denied]:
        if isinstance(result, Denied):
            gate_decisions_total.inc(labels={"action": action.value, "outcome": result.reason.value})
            logger.info(
                "[gate] DENIED",
                extra={"user_id": user_id, "action": action.value, "reason": result.reason.value},
            )
        else:
            gate_decisions_total.inc(labels={"action": action.value, "outcome": "AUTHORIZED"})
        return result
