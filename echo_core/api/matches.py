from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from echo_core.api.dependencies import get_core
from echo_core.api.serializers import countdown_payload, decision_payload, match_payload
from echo_core.engine import EchoCore

router = APIRouter()


class CreateMatchRequest(BaseModel):
    user_a: str = Field(..., min_length=1)
    user_b: str = Field(..., min_length=1)


class ParticipantRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class RewindRequest(BaseModel):
    actor_id: str = Field(..., min_length=1)


@router.post("/v1/matches", status_code=201)
def create_match(body: CreateMatchRequest, core: EchoCore = Depends(get_core)):
    return match_payload(core.create_match(body.user_a, body.user_b))


@router.get("/v1/matches")
def list_matches(user_id: str = Query(..., min_length=1), core: EchoCore = Depends(get_core)):
    return {"matches": [match_payload(m) for m in core.list_matches(user_id)]}


@router.get("/v1/matches/{match_id}/countdown")
def get_match_countdown(match_id: str, core: EchoCore = Depends(get_core)):
    return countdown_payload(core.get_match_countdown(match_id))


@router.post("/v1/matches/{match_id}/interactions")
def record_interaction(match_id: str, body: ParticipantRequest, core: EchoCore = Depends(get_core)):
    return match_payload(core.record_interaction(match_id, body.user_id))


@router.post("/v1/matches/{match_id}/rewind")
def request_rewind(match_id: str, body: RewindRequest, core: EchoCore = Depends(get_core)):
    return decision_payload(core.request_rewind(match_id, body.actor_id))
