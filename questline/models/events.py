"""
Game Events: the closed set of event kinds reported to the backend.

Each kind has a fixed, validated payload. Wire payloads use camelCase keys;
unknown kinds are rejected rather than passed through untyped.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from questline.errors import UnknownEventError


class _EventBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def event_data(self) -> dict:
        """Payload sent as ``eventData``, without the discriminator."""
        return self.model_dump(mode="json", by_alias=True, exclude={"event_type"})


class MissionStarted(_EventBase):
    event_type: Literal["mission_started"] = "mission_started"
    level: int = Field(ge=1, default=1)
    team_id: Optional[str] = None


class LocationChanged(_EventBase):
    event_type: Literal["location_changed"] = "location_changed"
    location: str


class AmuletCollected(_EventBase):
    event_type: Literal["amulet_collected"] = "amulet_collected"
    amulet_number: int = Field(ge=1)
    location: str


class MissionCompleted(_EventBase):
    event_type: Literal["mission_completed"] = "mission_completed"
    amulets: int = Field(ge=0)
    level: int = Field(ge=1, default=1)
    locations: List[str] = []


GameEvent = Annotated[
    Union[MissionStarted, LocationChanged, AmuletCollected, MissionCompleted],
    Field(discriminator="event_type"),
]

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(GameEvent)

EVENT_TYPES = ("mission_started", "location_changed", "amulet_collected", "mission_completed")


def parse_event(event_type: str, event_data: dict) -> GameEvent:
    """Build a typed event from a wire-format type and payload."""
    if event_type not in EVENT_TYPES:
        raise UnknownEventError(f"Unknown event type: {event_type}")
    try:
        return _EVENT_ADAPTER.validate_python({**event_data, "eventType": event_type})
    except ValidationError as e:
        raise UnknownEventError(f"Invalid payload for {event_type}: {e}") from e
