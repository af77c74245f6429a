"""
EchoCore: the surface the API layer calls.

Reads the clock once per request and threads `now` through the engines.
Denials come back as Authorized/Denied values; conflicts and missing
records raise AppError subclasses; a failing clock raises UnavailableError.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Union

from echo_core.core.clock import Clock, SystemClock, read_clock
from echo_core.core.config import Settings, settings as default_settings
from echo_core.core.errors import NotFoundError, RewindWindowClosedError, ValidationError
from echo_core.core.ratelimit import RateLimiter, build_rate_limit_policies
from echo_core.features.echo.service import EchoFreshnessService
from echo_core.features.entitlements.plans import load_plan_limits
from echo_core.features.entitlements.store import EntitlementStore
from echo_core.features.gate.service import EntitlementGate
from echo_core.features.matches.service import MatchLifecycleEngine, rewind_denial
from echo_core.features.swipes.service import SwipeLedger, snapshot_of
from echo_core.models.echo import EchoStatusView
from echo_core.models.entitlement import ActionKind, EntitlementSnapshot, Plan, PlanChangeEvent
from echo_core.models.match import Match, MatchCountdown
from echo_core.models.results import Authorized, Denied, DenialReason
from echo_core.models.swipe import SwipeKind, SwipeRecord

logger = logging.getLogger(__name__)

MODERATION_ACTIONS = (ActionKind.REPORT, ActionKind.BLOCK)


class EchoCore:
    def __init__(
        self,
        clock: Clock,
        echo: EchoFreshnessService,
        matches: MatchLifecycleEngine,
        ledger: SwipeLedger,
        gate: EntitlementGate,
    ):
        self.clock = clock
        self.echo = echo
        self.matches = matches
        self.ledger = ledger
        self.gate = gate

    def now(self) -> datetime:
        return read_clock(self.clock)

    # Echo ---------------------------------------------------------------
    def get_echo_status(self, user_id: str) -> EchoStatusView:
        return self.echo.get_status(user_id, self.now())

    def record_photo(self, user_id: str, taken_at: Optional[datetime] = None) -> EchoStatusView:
        return self.echo.record_photo(user_id, taken_at, self.now())

    def is_discoverable(self, user_id: str) -> bool:
        return self.echo.is_discoverable(user_id, self.now())

    # Matches ------------------------------------------------------------
    def create_match(self, user_a: str, user_b: str) -> Match:
        since = self.matches.previous_created_at(user_a, user_b)
        latest = self.ledger.latest_between(user_a, user_b, since=since)
        snapshot = snapshot_of(latest) if latest else None
        return self.matches.create_match(user_a, user_b, self.now(), snapshot=snapshot)

    def get_match(self, match_id: str) -> Match:
        return self.matches.get(match_id, self.now())

    def get_match_countdown(self, match_id: str) -> MatchCountdown:
        return self.matches.countdown(match_id, self.now())

    def list_matches(self, user_id: str) -> List[Match]:
        return self.matches.list_for_user(user_id, self.now())

    def record_interaction(self, match_id: str, user_id: str) -> Match:
        return self.matches.record_interaction(match_id, user_id, self.now())

    def request_rewind(self, match_id: str, actor_id: str) -> Union[Authorized, Denied]:
        """Entitlement is checked before the match is touched.

        A swipe that already aged out of history is denied before anything is
        consumed. A match consummated after consumption raises
        RewindWindowClosedError to the caller instead of being reported as a
        denial; the quota stays spent and the match is left as it is.
        """
        now = self.now()
        match = self.matches.get(match_id, now)
        if not match.involves(actor_id):
            raise ValidationError(f"User {actor_id} is not part of match {match_id}")

        denial = rewind_denial(match, actor_id)
        if denial is not None:
            logger.info(
                "[rewind] DENIED",
                extra={"user_id": actor_id, "match_id": match_id, "reason": denial.value},
            )
            return Denied(reason=denial)

        if self.ledger.find(match.last_swipe_snapshot) is None:
            logger.info(
                "[rewind] DENIED: swipe no longer in history",
                extra={"user_id": actor_id, "match_id": match_id, "reason": DenialReason.REWIND_UNAVAILABLE.value},
            )
            return Denied(reason=DenialReason.REWIND_UNAVAILABLE)

        decision = self.gate.authorize(actor_id, ActionKind.REWIND, now)
        if isinstance(decision, Denied):
            return Denied(
                reason=DenialReason.REWIND_UNAVAILABLE,
                cause=decision.reason,
                quota=decision.quota,
                required_plan=decision.required_plan,
            )

        try:
            self.matches.rewind(match_id, actor_id, now)
        except RewindWindowClosedError:
            logger.error(
                "[rewind] entitlement consumed but match left PENDING; match kept",
                extra={"user_id": actor_id, "match_id": match_id},
            )
            raise
        except NotFoundError:
            logger.error(
                "[rewind] entitlement consumed but rewind not applied",
                extra={"user_id": actor_id, "match_id": match_id},
            )
            raise
        return decision

    # Entitlements -------------------------------------------------------
    def request_swipe_action(
        self, user_id: str, kind: SwipeKind, target_id: Optional[str] = None
    ) -> Union[Authorized, Denied]:
        now = self.now()
        decision = self.gate.authorize(user_id, ActionKind(kind.value), now)
        if isinstance(decision, Authorized) and target_id:
            self.ledger.record(user_id, target_id, kind, now)
        return decision

    def request_boost(self, user_id: str) -> Union[Authorized, Denied]:
        return self.gate.authorize(user_id, ActionKind.BOOST, self.now())

    def request_report_or_block(self, subject_id: str, kind: ActionKind) -> bool:
        if kind not in MODERATION_ACTIONS:
            raise ValidationError(f"{kind.value} is not a report or block action")
        return isinstance(self.gate.authorize(subject_id, kind, self.now()), Authorized)

    def apply_plan_change(self, event: PlanChangeEvent) -> Plan:
        return self.gate.apply_plan_change(event, self.now())

    def get_entitlements(self, user_id: str) -> EntitlementSnapshot:
        return self.gate.entitlements(user_id, self.now())

    def swipe_history(self, user_id: str) -> List[SwipeRecord]:
        return self.ledger.history(user_id)


def build_echo_core(cfg: Optional[Settings] = None, clock: Optional[Clock] = None) -> EchoCore:
    cfg = cfg or default_settings
    ledger = SwipeLedger(max_entries=cfg.SWIPE_HISTORY_MAX)
    store = EntitlementStore(load_plan_limits(cfg.PLAN_LIMITS))
    gate = EntitlementGate(
        store,
        RateLimiter(gc_every=cfg.RATE_LIMIT_GC_EVERY),
        build_rate_limit_policies(cfg),
    )
    return EchoCore(
        clock=clock or SystemClock(),
        echo=EchoFreshnessService(
            freshness_window=timedelta(days=cfg.ECHO_FRESHNESS_DAYS),
            warning_threshold=timedelta(days=cfg.ECHO_WARNING_DAYS),
        ),
        matches=MatchLifecycleEngine(ledger, ttl=timedelta(hours=cfg.MATCH_TTL_HOURS)),
        ledger=ledger,
        gate=gate,
    )
