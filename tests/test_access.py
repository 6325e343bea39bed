"""Tests for the Access Controller policies."""

from questline.access.controller import AccessController
from questline.models.config import AccessPolicy
from questline.models.location import default_graph
from questline.models.progress import ProgressSnapshot


def _progress(completed=(), collected=(), started=False) -> ProgressSnapshot:
    return ProgressSnapshot(
        completed_locations=set(completed),
        collected_items=list(collected),
        current_location="gates",
        game_started=started,
    )


class TestNamedPrerequisitePolicy:
    def setup_method(self):
        self.graph = default_graph()
        self.controller = AccessController(self.graph, AccessPolicy.NAMED_PREREQUISITE)

    def test_first_location_always_reachable(self):
        assert self.controller.can_access("gates", _progress()) is True

    def test_rank_four_needs_ranks_one_to_three(self):
        progress = _progress(completed=["gates", "dome"])
        assert self.controller.can_access("stone", progress) is False

        progress = _progress(completed=["gates", "dome", "mirror"])
        assert self.controller.can_access("stone", progress) is True

    def test_gap_in_prerequisites_blocks_access(self):
        progress = _progress(completed=["gates", "mirror"])
        assert self.controller.can_access("stone", progress) is False

    def test_unknown_location_never_reachable(self):
        progress = _progress(completed=self.graph.ids)
        assert self.controller.can_access("basement", progress) is False

    def test_access_is_monotonic(self):
        completed = []
        reachable_before = set()
        for location in self.graph.ids:
            completed.append(location)
            reachable = set(self.controller.accessible_locations(_progress(completed=completed)))
            assert reachable_before <= reachable
            reachable_before = reachable

    def test_next_location(self):
        assert self.controller.next_location(_progress()) == "gates"
        assert self.controller.next_location(_progress(completed=["gates"])) == "dome"
        assert self.controller.next_location(_progress(completed=self.graph.ids)) is None

    def test_quest_complete_counts_completed_locations(self):
        assert self.controller.is_quest_complete(_progress(completed=self.graph.ids[:5])) is False
        assert self.controller.is_quest_complete(_progress(completed=self.graph.ids)) is True


class TestPrefixCountPolicy:
    def setup_method(self):
        self.graph = default_graph()
        self.controller = AccessController(self.graph, AccessPolicy.PREFIX_COUNT)

    def test_nothing_reachable_before_game_starts(self):
        assert self.controller.accessible_locations(_progress(collected=["gates"])) == []

    def test_one_step_ahead_of_collection(self):
        progress = _progress(started=True)
        assert self.controller.accessible_locations(progress) == ["gates"]

        progress = _progress(collected=["gates", "dome"], started=True)
        assert self.controller.accessible_locations(progress) == ["gates", "dome", "mirror"]

    def test_ignores_named_completion(self):
        progress = _progress(completed=["gates", "dome", "mirror"], started=True)
        assert self.controller.can_access("stone", progress) is False

    def test_unknown_location_never_reachable(self):
        progress = _progress(collected=self.graph.ids, started=True)
        assert self.controller.can_access("basement", progress) is False

    def test_quest_complete_counts_amulets(self):
        progress = _progress(completed=self.graph.ids, collected=self.graph.ids[:5], started=True)
        assert self.controller.is_quest_complete(progress) is False
        progress = _progress(collected=self.graph.ids, started=True)
        assert self.controller.is_quest_complete(progress) is True
