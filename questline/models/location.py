"""Location Graph: the static, totally ordered sequence of quest stages."""

from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class Location(BaseModel):
    """A discrete stage in the quest, identified by a stable id and a rank."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    emoji: str = ""
    order: int


class LocationGraph(BaseModel):
    """Ordered location descriptors. Not mutable at runtime."""

    model_config = ConfigDict(frozen=True)

    locations: List[Location]

    @model_validator(mode="after")
    def check_total_order(self) -> "LocationGraph":
        if not self.locations:
            raise ValueError("a location graph needs at least one location")
        seen = set()
        previous_order = None
        for location in self.locations:
            if location.id in seen:
                raise ValueError(f"duplicate location id: {location.id}")
            seen.add(location.id)
            if previous_order is not None and location.order <= previous_order:
                raise ValueError(
                    f"location order must strictly increase, got {location.order} "
                    f"after {previous_order} at {location.id}"
                )
            previous_order = location.order
        return self

    def __len__(self) -> int:
        return len(self.locations)

    def __iter__(self) -> Iterator[Location]:
        return iter(self.locations)

    @property
    def ids(self) -> List[str]:
        return [loc.id for loc in self.locations]

    @property
    def start_location(self) -> str:
        return self.locations[0].id

    def get(self, location_id: str) -> Optional[Location]:
        return next((loc for loc in self.locations if loc.id == location_id), None)

    def position(self, location_id: str) -> Optional[int]:
        """Zero-based position of a location in the sequence."""
        for index, loc in enumerate(self.locations):
            if loc.id == location_id:
                return index
        return None

    def location_name(self, location_id: str) -> str:
        location = self.get(location_id)
        return location.name if location else location_id


def default_graph() -> LocationGraph:
    """The six-stage Cyber Village quest."""
    return LocationGraph(
        locations=[
            Location(id="gates", name="Cyber Village Gates", emoji="🚪", order=1),
            Location(id="dome", name="Dome of Protection", emoji="🛡️", order=2),
            Location(id="mirror", name="Mirror of Truth", emoji="🪞", order=3),
            Location(id="stone", name="Stone of Prophecies", emoji="🔮", order=4),
            Location(id="hut", name="Keeper's Hut", emoji="🏠", order=5),
            Location(id="lair", name="Virus Lair", emoji="👾", order=6),
        ]
    )
