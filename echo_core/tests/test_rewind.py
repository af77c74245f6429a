from datetime import timedelta

import pytest

from echo_core.core.errors import NotFoundError, RewindWindowClosedError, ValidationError
from echo_core.models.entitlement import ActionKind, Plan, PlanChangeEvent, PlanChangeKind, QuotaKind
from echo_core.models.match import MatchStatus
from echo_core.models.results import Authorized, Denied, DenialReason
from echo_core.models.swipe import SwipeKind


def _subscribe(core, user_id, plan):
    core.apply_plan_change(
        PlanChangeEvent(user_id=user_id, plan=plan, kind=PlanChangeKind.PURCHASE, occurred_at=core.now())
    )


def _match_made_by(core, clock, swiper, other):
    """`other` liked first; `swiper`'s like completed the pair."""
    core.request_swipe_action(other, SwipeKind.LIKE, target_id=swiper)
    clock.advance(minutes=1)
    core.request_swipe_action(swiper, SwipeKind.LIKE, target_id=other)
    return core.create_match(swiper, other)


def test_swiper_with_entitlement_rewinds(core, clock):
    _subscribe(core, "alice", Plan.GOLD)
    match = _match_made_by(core, clock, "alice", "bob")
    assert match.last_swipe_snapshot.swiper_id == "alice"

    result = core.request_rewind(match.id, "alice")

    assert isinstance(result, Authorized)
    with pytest.raises(NotFoundError):
        core.get_match(match.id)
    history = core.swipe_history("alice")
    assert history[-1].target_id == "bob"
    assert history[-1].consumed is False


def test_free_plan_gets_rewind_unavailable_with_cause(core, clock):
    match = _match_made_by(core, clock, "alice", "bob")

    result = core.request_rewind(match.id, "alice")

    assert result == Denied(
        reason=DenialReason.REWIND_UNAVAILABLE,
        cause=DenialReason.PLAN_INSUFFICIENT,
        quota=QuotaKind.REWINDS,
        required_plan=Plan.PLUS,
    )
    assert core.get_match(match.id).status == MatchStatus.PENDING


def test_plus_rewind_quota_exhausts(core, clock):
    _subscribe(core, "alice", Plan.PLUS)
    first = _match_made_by(core, clock, "alice", "bob")
    second = _match_made_by(core, clock, "alice", "carol")

    assert isinstance(core.request_rewind(first.id, "alice"), Authorized)
    result = core.request_rewind(second.id, "alice")

    assert result.reason == DenialReason.REWIND_UNAVAILABLE
    assert result.cause == DenialReason.QUOTA_EXHAUSTED


def test_only_the_swiper_may_rewind(core, clock):
    _subscribe(core, "bob", Plan.PLATINUM)
    match = _match_made_by(core, clock, "alice", "bob")

    result = core.request_rewind(match.id, "bob")

    assert result == Denied(reason=DenialReason.REWIND_UNAVAILABLE)
    assert core.get_entitlements("bob").quotas[QuotaKind.REWINDS].used == 0


def test_active_match_is_closed_regardless_of_entitlement(core, clock):
    _subscribe(core, "alice", Plan.PLATINUM)
    match = _match_made_by(core, clock, "alice", "bob")
    core.record_interaction(match.id, "alice")
    core.record_interaction(match.id, "bob")

    assert core.request_rewind(match.id, "alice") == Denied(reason=DenialReason.REWIND_WINDOW_CLOSED)

    free_match = _match_made_by(core, clock, "dave", "erin")
    core.record_interaction(free_match.id, "dave")
    core.record_interaction(free_match.id, "erin")
    assert core.request_rewind(free_match.id, "dave").reason == DenialReason.REWIND_WINDOW_CLOSED


def test_expired_match_cannot_be_rewound(core, clock):
    _subscribe(core, "alice", Plan.GOLD)
    match = _match_made_by(core, clock, "alice", "bob")
    clock.advance(hours=48)

    assert core.request_rewind(match.id, "alice").reason == DenialReason.REWIND_WINDOW_CLOSED


def test_outsider_rewind_rejected(core, clock):
    match = _match_made_by(core, clock, "alice", "bob")
    with pytest.raises(ValidationError):
        core.request_rewind(match.id, "mallory")


def test_rewound_pair_can_match_again(core, clock):
    _subscribe(core, "alice", Plan.GOLD)
    match = _match_made_by(core, clock, "alice", "bob")
    core.request_rewind(match.id, "alice")
    clock.advance(minutes=5)

    again = core.create_match("alice", "bob")
    assert again.status == MatchStatus.PENDING
    assert again.id != match.id


def test_superlike_match_is_flagged(core, clock):
    _subscribe(core, "alice", Plan.GOLD)
    core.request_swipe_action("bob", SwipeKind.LIKE, target_id="alice")
    clock.advance(timedelta(seconds=10))
    core.request_swipe_action("alice", SwipeKind.SUPERLIKE, target_id="bob")

    assert core.create_match("alice", "bob").is_super_like


def test_swipe_aged_out_of_history_denies_rewind_without_spending(core, clock):
    _subscribe(core, "alice", Plan.PLUS)
    match = _match_made_by(core, clock, "alice", "bob")
    for i in range(100):
        core.request_swipe_action("alice", SwipeKind.NOPE, target_id=f"stranger-{i}")

    result = core.request_rewind(match.id, "alice")

    assert result == Denied(reason=DenialReason.REWIND_UNAVAILABLE)
    assert core.get_match(match.id).status == MatchStatus.PENDING
    assert core.get_entitlements("alice").quotas[QuotaKind.REWINDS].used == 0


def test_match_consummated_after_consumption_raises_and_keeps_quota_spent(core, clock, monkeypatch):
    _subscribe(core, "alice", Plan.PLUS)
    match = _match_made_by(core, clock, "alice", "bob")
    authorize = core.gate.authorize

    def authorize_then_consummate(user_id, action, now):
        decision = authorize(user_id, action, now)
        core.record_interaction(match.id, "alice")
        core.record_interaction(match.id, "bob")
        return decision

    monkeypatch.setattr(core.gate, "authorize", authorize_then_consummate)

    with pytest.raises(RewindWindowClosedError):
        core.request_rewind(match.id, "alice")

    assert core.get_match(match.id).status == MatchStatus.ACTIVE
    assert core.get_entitlements("alice").quotas[QuotaKind.REWINDS].used == 1
    assert core.swipe_history("alice")[-1].consumed is True


def test_window_closes_between_authorize_and_rewind(core, clock):
    _subscribe(core, "alice", Plan.PLUS)
    match = _match_made_by(core, clock, "alice", "bob")

    assert isinstance(core.gate.authorize("alice", ActionKind.REWIND, core.now()), Authorized)
    core.record_interaction(match.id, "alice")
    core.record_interaction(match.id, "bob")

    with pytest.raises(RewindWindowClosedError):
        core.matches.rewind(match.id, "alice", core.now())
    assert core.get_entitlements("alice").quotas[QuotaKind.REWINDS].used == 1


def test_rematch_after_expiry_does_not_reuse_old_swipe(core, clock):
    _subscribe(core, "alice", Plan.GOLD)
    first = _match_made_by(core, clock, "alice", "bob")
    clock.advance(hours=49)
    assert core.get_match(first.id).status == MatchStatus.EXPIRED

    again = core.create_match("alice", "bob")

    assert again.last_swipe_snapshot is None
    assert core.request_rewind(again.id, "alice") == Denied(reason=DenialReason.REWIND_UNAVAILABLE)


def test_rematch_after_expiry_uses_fresh_swipe(core, clock):
    _subscribe(core, "alice", Plan.GOLD)
    first = _match_made_by(core, clock, "alice", "bob")
    clock.advance(hours=49)

    second = _match_made_by(core, clock, "alice", "bob")

    assert second.last_swipe_snapshot.swiped_at > first.created_at
    assert isinstance(core.request_rewind(second.id, "alice"), Authorized)
