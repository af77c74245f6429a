from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from echo_core.api.dependencies import get_core
from echo_core.api.serializers import decision_payload
from echo_core.engine import EchoCore
from echo_core.models.swipe import SwipeKind

router = APIRouter()


class SwipeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    kind: SwipeKind
    target_id: Optional[str] = None


class BoostRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


@router.post("/v1/swipes")
def request_swipe_action(body: SwipeRequest, core: EchoCore = Depends(get_core)):
    return decision_payload(core.request_swipe_action(body.user_id, body.kind, body.target_id))


@router.get("/v1/swipes/history")
def swipe_history(user_id: str = Query(..., min_length=1), core: EchoCore = Depends(get_core)):
    return {
        "history": [
            {
                "swipe_id": entry.swipe_id,
                "target_id": entry.target_id,
                "kind": entry.kind.value,
                "swiped_at": entry.swiped_at.isoformat(),
                "consumed": entry.consumed,
            }
            for entry in core.swipe_history(user_id)
        ]
    }


@router.post("/v1/boosts")
def request_boost(body: BoostRequest, core: EchoCore = Depends(get_core)):
    return decision_payload(core.request_boost(body.user_id))
