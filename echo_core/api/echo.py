from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from echo_core.api.dependencies import get_core
from echo_core.engine import EchoCore

router = APIRouter()


class PhotoSubmitted(BaseModel):
    user_id: str = Field(..., min_length=1)
    taken_at: Optional[datetime] = None


@router.get("/v1/echo/status")
def get_echo_status(user_id: str = Query(..., min_length=1), core: EchoCore = Depends(get_core)):
    """Current echo status; recomputed from the last photo on every call."""
    view = core.get_echo_status(user_id)
    return {
        "user_id": user_id,
        "status": view.status.value,
        "hours_left": view.hours_left,
        "days_left": view.days_left,
        "discoverable": view.is_discoverable,
    }


@router.post("/v1/echo/photos")
def submit_photo(event: PhotoSubmitted, core: EchoCore = Depends(get_core)):
    view = core.record_photo(event.user_id, event.taken_at)
    return {"user_id": event.user_id, "status": view.status.value, "hours_left": view.hours_left, "days_left": view.days_left}
