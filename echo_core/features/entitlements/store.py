"""
Entitlement store.

Handles:
- Per-user plan (fed by subscription events, effective on the next check)
- Daily consumable quotas with lazy refill at the next UTC midnight
- Atomic check-and-consume per (user_id, quota)

Each (user_id, quota) pair has its own lock. A check that draws on several
quotas (super-like = super-like + swipe) takes all of them in a stable order
and validates every quota before consuming any.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, Union

from echo_core.core.clock import start_of_next_day
from echo_core.core.errors import ValidationError
from echo_core.core.locks import KeyedLocks
from echo_core.features.entitlements.plans import (
    ACTION_QUOTAS,
    PlanLimits,
    is_offered,
    remaining,
    required_plan_for,
)
from echo_core.models.entitlement import (
    UNLIMITED,
    ActionKind,
    EntitlementSnapshot,
    EntitlementState,
    Plan,
    PlanChangeEvent,
    PlanChangeKind,
    QuotaCounter,
    QuotaKind,
    QuotaSnapshot,
)
from echo_core.models.results import Authorized, Denied, DenialReason

logger = logging.getLogger(__name__)


class EntitlementStore:
    def __init__(self, plan_limits: PlanLimits):
        self._limits = plan_limits
        self._states: Dict[str, EntitlementState] = {}
        self._states_lock = threading.Lock()
        self._locks = KeyedLocks()

    # Plan feed --------------------------------------------------------
    def apply_plan_change(self, event: PlanChangeEvent, now: datetime) -> Plan:
        """Record a subscription change. Out-of-order (older) events are ignored."""
        state = self._state_for(event.user_id, now)
        target = Plan.FREE if event.kind == PlanChangeKind.CANCEL else event.plan

        with self._locks.hold((event.user_id, "plan")):
            if state.plan_changed_at is not None and event.occurred_at < state.plan_changed_at:
                logger.warning(
                    "[entitlements] stale plan event ignored",
                    extra={"user_id": event.user_id, "plan": target.value, "event_kind": event.kind.value},
                )
                return state.plan
            previous = state.plan
            state.plan = target
            state.plan_changed_at = event.occurred_at

        logger.info(
            "[entitlements] plan changed",
            extra={"user_id": event.user_id, "plan": target.value, "previous_plan": previous.value},
        )
        return target

    def get_plan(self, user_id: str) -> Plan:
        state = self._states.get(user_id)
        return state.plan if state else Plan.FREE

    # Quotas -----------------------------------------------------------
    def check_and_consume(self, user_id: str, action: ActionKind, now: datetime) -> Union[Authorized, Denied]:
        quotas = ACTION_QUOTAS.get(action)
        if quotas is None:
            raise ValidationError(f"Action {action.value} is not quota-governed")

        state = self._state_for(user_id, now)
        with self._locks.hold_many((user_id, quota) for quota in quotas):
            limits = self._limits[state.plan]

            for quota in quotas:
                if not is_offered(limits[quota]):
                    return self._deny(user_id, action, state.plan, DenialReason.PLAN_INSUFFICIENT, quota)

            for quota in quotas:
                counter = state.counters[quota]
                self._refill(counter, now)
                limit = limits[quota]
                if limit is not UNLIMITED and counter.used >= limit:
                    return self._deny(user_id, action, state.plan, DenialReason.QUOTA_EXHAUSTED, quota)

            for quota in quotas:
                state.counters[quota].used += 1

            left = {quota: remaining(limits[quota], state.counters[quota].used) for quota in quotas}

        logger.info(
            "[entitlements] consumed",
            extra={"user_id": user_id, "action": action.value, "plan": state.plan.value},
        )
        return Authorized(remaining=left)

    def snapshot(self, user_id: str, now: datetime) -> EntitlementSnapshot:
        state = self._state_for(user_id, now)
        quotas: Dict[QuotaKind, QuotaSnapshot] = {}
        with self._locks.hold_many((user_id, quota) for quota in QuotaKind):
            limits = self._limits[state.plan]
            for quota in QuotaKind:
                counter = state.counters[quota]
                self._refill(counter, now)
                quotas[quota] = QuotaSnapshot(
                    quota=quota,
                    limit=limits[quota],
                    used=counter.used,
                    remaining=remaining(limits[quota], counter.used),
                    refill_at=counter.reset_at,
                )
        return EntitlementSnapshot(user_id=user_id, plan=state.plan, quotas=quotas)

    # Internal helpers -------------------------------------------------
    def _state_for(self, user_id: str, now: datetime) -> EntitlementState:
        state = self._states.get(user_id)
        if state is not None:
            return state
        with self._states_lock:
            state = self._states.get(user_id)
            if state is None:
                reset_at = start_of_next_day(now)
                state = EntitlementState(
                    user_id=user_id,
                    counters={quota: QuotaCounter(reset_at=reset_at) for quota in QuotaKind},
                )
                self._states[user_id] = state
            return state

    @staticmethod
    def _refill(counter: QuotaCounter, now: datetime) -> None:
        """Lazy daily reset. Caller holds the quota lock, so one boundary grants one reset."""
        if now >= counter.reset_at:
            counter.used = 0
            counter.reset_at = start_of_next_day(now)

    def _deny(self, user_id: str, action: ActionKind, plan: Plan, reason: DenialReason, quota: QuotaKind) -> Denied:
        logger.info(
            "[entitlements] DENIED",
            extra={"user_id": user_id, "action": action.value, "plan": plan.value, "reason": reason.value},
        )
        required_plan = None
        if reason == DenialReason.PLAN_INSUFFICIENT:
            required_plan = required_plan_for(self._limits, quota)
        return Denied(reason=reason, quota=quota, required_plan=required_plan)
