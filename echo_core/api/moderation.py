from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from echo_core.api.dependencies import get_core
from echo_core.engine import EchoCore
from echo_core.models.entitlement import ActionKind

router = APIRouter()


class ModerationRequest(BaseModel):
    subject_id: str = Field(..., min_length=1)
    kind: Literal["REPORT", "BLOCK"]


@router.post("/v1/moderation")
def request_report_or_block(body: ModerationRequest, core: EchoCore = Depends(get_core)):
    """Rate-limited per reporter. `allowed: false` means try again after the window."""
    allowed = core.request_report_or_block(body.subject_id, ActionKind(body.kind))
    return {"allowed": allowed}
