"""
Access Controller: decides which quest locations a player may enter.

Behavioral Contract:
- Pure: reads a ProgressSnapshot and the static LocationGraph, mutates nothing.
- One policy per controller. Policies are never mixed.
- Monotonic: once a location is reachable it stays reachable as progress grows.
- A location that is not in the graph is never reachable.
"""

from typing import Callable, Dict, List, Optional

from questline.models.config import AccessPolicy
from questline.models.location import LocationGraph
from questline.models.progress import ProgressSnapshot


def _named_prerequisite_access(
    graph: LocationGraph,
    location_id: str,
    progress: ProgressSnapshot,
) -> bool:
    """Every location ranked below the target must be completed."""
    target = graph.get(location_id)
    if target is None:
        return False
    return all(
        loc.id in progress.completed_locations
        for loc in graph
        if loc.order < target.order
    )


def _prefix_count_access(
    graph: LocationGraph,
    location_id: str,
    progress: ProgressSnapshot,
) -> bool:
    """At most one step ahead of the amulets collected so far."""
    if not progress.game_started:
        return False
    position = graph.position(location_id)
    if position is None:
        return False
    return position <= len(progress.collected_items)


def _named_prerequisite_complete(graph: LocationGraph, progress: ProgressSnapshot) -> bool:
    return len(progress.completed_locations) >= len(graph)


def _prefix_count_complete(graph: LocationGraph, progress: ProgressSnapshot) -> bool:
    return len(progress.collected_items) >= len(graph)


_ACCESS_RULES: Dict[AccessPolicy, Callable[[LocationGraph, str, ProgressSnapshot], bool]] = {
    AccessPolicy.NAMED_PREREQUISITE: _named_prerequisite_access,
    AccessPolicy.PREFIX_COUNT: _prefix_count_access,
}

_COMPLETION_RULES: Dict[AccessPolicy, Callable[[LocationGraph, ProgressSnapshot], bool]] = {
    AccessPolicy.NAMED_PREREQUISITE: _named_prerequisite_complete,
    AccessPolicy.PREFIX_COUNT: _prefix_count_complete,
}


class AccessController:
    """Reachability and quest completion under a single access policy."""

    def __init__(
        self,
        graph: LocationGraph,
        policy: AccessPolicy = AccessPolicy.NAMED_PREREQUISITE,
    ):
        self.graph = graph
        self.policy = policy
        self._rule = _ACCESS_RULES[policy]
        self._completion_rule = _COMPLETION_RULES[policy]

    def can_access(self, location_id: str, progress: ProgressSnapshot) -> bool:
        return self._rule(self.graph, location_id, progress)

    def accessible_locations(self, progress: ProgressSnapshot) -> List[str]:
        return [loc.id for loc in self.graph if self.can_access(loc.id, progress)]

    def next_location(self, progress: ProgressSnapshot) -> Optional[str]:
        """First reachable location the player has not finished yet."""
        if self.policy == AccessPolicy.PREFIX_COUNT:
            done = set(progress.collected_items)
        else:
            done = progress.completed_locations
        for loc in self.graph:
            if loc.id not in done and self.can_access(loc.id, progress):
                return loc.id
        return None

    def is_quest_complete(self, progress: ProgressSnapshot) -> bool:
        """Completion, measured with the same policy that gates access."""
        return self._completion_rule(self.graph, progress)
