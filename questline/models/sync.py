"""Sync results and backend response shapes."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SyncStatus(str, Enum):
    SENT = "sent"
    NOT_SENT = "not_sent"   # Skipped locally, no network call made
    FAILED = "failed"       # Attempted, transport or backend failure


class SyncResult(BaseModel):
    """Outcome of a best-effort event report."""

    status: SyncStatus
    event_type: str
    reason: Optional[str] = None
    ack: Optional[dict] = None

    @property
    def sent(self) -> bool:
        return self.status == SyncStatus.SENT


class HintResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    hint: str
    hint_level: int = 1


class PasswordCheck(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = False
    message: str = ""
