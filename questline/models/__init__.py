"""Quest engine data models."""

from questline.models.config import AccessPolicy, QuestConfig
from questline.models.events import (
    AmuletCollected,
    GameEvent,
    LocationChanged,
    MissionCompleted,
    MissionStarted,
    parse_event,
)
from questline.models.location import Location, LocationGraph, default_graph
from questline.models.progress import ProgressSnapshot
from questline.models.session import SessionContext
from questline.models.sync import HintResponse, PasswordCheck, SyncResult, SyncStatus
from questline.models.trigger import Trigger, TriggerActivation, TriggerState

__all__ = [
    "AccessPolicy",
    "AmuletCollected",
    "GameEvent",
    "HintResponse",
    "Location",
    "LocationChanged",
    "LocationGraph",
    "MissionCompleted",
    "MissionStarted",
    "PasswordCheck",
    "ProgressSnapshot",
    "QuestConfig",
    "SessionContext",
    "SyncResult",
    "SyncStatus",
    "Trigger",
    "TriggerActivation",
    "TriggerState",
    "default_graph",
    "parse_event",
]
