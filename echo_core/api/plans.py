from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from echo_core.api.dependencies import get_core
from echo_core.api.serializers import entitlements_payload
from echo_core.engine import EchoCore
from echo_core.models.entitlement import PlanChangeEvent

router = APIRouter()


@router.post("/v1/plans/events")
def apply_plan_change(event: PlanChangeEvent, core: EchoCore = Depends(get_core)):
    """Subscription feed hook; the new plan applies on the next quota check."""
    plan = core.apply_plan_change(event)
    return {"user_id": event.user_id, "plan": plan.value}


@router.get("/v1/entitlements")
def get_entitlements(user_id: str = Query(..., min_length=1), core: EchoCore = Depends(get_core)):
    return entitlements_payload(core.get_entitlements(user_id))
