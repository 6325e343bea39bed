"""Progress Snapshot: the serialisable projection of a player's progress."""

from typing import List, Set

from pydantic import BaseModel, Field


class ProgressSnapshot(BaseModel):
    """Point-in-time copy of ProgressState. Mutating it changes nothing live."""

    completed_locations: Set[str] = set()
    collected_items: List[str] = []
    hints_used: int = Field(ge=0, default=0)
    current_location: str
    game_started: bool = False
