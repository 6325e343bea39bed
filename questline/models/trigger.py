"""Triggers: backend-defined, time-gated one-shot narrative events."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TIME_TRIGGER = "time"


class TriggerState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"   # Terminal


class Trigger(BaseModel):
    """
    A declarative trigger. Only ``time`` triggers are understood; other types
    are accepted on load and stay inert.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    type: str = TIME_TRIGGER
    activation_time: datetime = Field(alias="activationTime")
    message: Optional[str] = None

    @field_validator("activation_time")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TriggerActivation(BaseModel):
    """Record of a single Pending -> Active transition."""

    trigger_id: str
    activated_at: datetime
    message: Optional[str] = None
