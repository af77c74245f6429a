"""
Echo freshness models.

An Echo is a user's discoverable profile. Its status is never stored: it is
derived from ProfileFreshness.last_photo_at on every read.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EchoStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRING = "EXPIRING"
    SILENCE = "SILENCE"


class ProfileFreshness(BaseModel):
    """Last verified photo for a user. Superseded, never deleted."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    last_photo_at: datetime


class EchoStatusView(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: EchoStatus
    hours_left: int = Field(ge=0)
    days_left: int = Field(ge=0)

    @property
    def is_discoverable(self) -> bool:
        return self.status != EchoStatus.SILENCE
