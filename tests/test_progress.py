"""Tests for Progress State persistence and bookkeeping."""

import pytest

from questline.progress.state import ProgressState
from questline.store.kv import PersistentStore


def _make_state(store: PersistentStore = None) -> ProgressState:
    return ProgressState(store or PersistentStore(":memory:"), start_location="gates")


class TestProgressState:
    def setup_method(self):
        self.store = PersistentStore(db_path=":memory:")
        self.state = _make_state(self.store)

    def test_initial_state(self):
        assert self.state.completed_locations == set()
        assert self.state.collected_items == []
        assert self.state.hints_used == 0
        assert self.state.current_location == "gates"
        assert self.state.game_started is False

    def test_completed_locations_only_grow(self):
        sizes = []
        for location in ["gates", "dome", "mirror"]:
            self.state.mark_location_completed(location)
            sizes.append(len(self.state.completed_locations))
        assert sizes == [1, 2, 3]

    def test_mark_completed_is_idempotent(self):
        self.state.mark_location_completed("gates")
        self.state.mark_location_completed("gates")
        assert len(self.state.completed_locations) == 1

    def test_collect_item_rejects_duplicates(self):
        results = [self.state.collect_item(at) for at in ["forest", "forest", "lake"]]
        assert results == [True, False, True]
        assert self.state.collected_items == ["forest", "lake"]

    def test_reset_clears_everything(self):
        self.state.mark_location_completed("gates")
        self.state.collect_item("gates")
        self.state.record_hint_used()
        self.state.set_current_location("dome")
        self.state.start_game()

        self.state.reset()

        assert self.state.completed_locations == set()
        assert self.state.collected_items == []
        assert self.state.hints_used == 0
        assert self.state.current_location == "gates"
        assert self.state.game_started is False

        reloaded = _make_state(self.store)
        assert reloaded.snapshot() == self.state.snapshot()

    def test_is_complete(self):
        for location in ["gates", "dome"]:
            self.state.mark_location_completed(location)
        assert self.state.is_complete(3) is False
        self.state.mark_location_completed("mirror")
        assert self.state.is_complete(3) is True

    def test_snapshot_is_a_copy(self):
        snapshot = self.state.snapshot()
        snapshot.completed_locations.add("lair")
        assert "lair" not in self.state.completed_locations


class TestProgressPersistence:
    def test_round_trip(self):
        store = PersistentStore(":memory:")
        state = _make_state(store)
        state.start_game()
        state.mark_location_completed("gates")
        state.mark_location_completed("dome")
        state.collect_item("gates")
        state.collect_item("dome")
        state.record_hint_used()
        state.set_current_location("mirror")

        reloaded = _make_state(store)
        assert reloaded.snapshot() == state.snapshot()
        assert reloaded.collected_items == ["gates", "dome"]

    def test_records_round_trip_without_store(self):
        state = _make_state()
        state.start_game()
        state.mark_location_completed("gates")
        state.collect_item("gates")
        state.record_hint_used()
        state.set_current_location("dome")

        fresh_store = PersistentStore(":memory:")
        restored = _make_state(fresh_store)
        restored.from_records(state.to_records())

        assert restored.snapshot() == state.snapshot()
        # Applying records is in-memory only
        assert fresh_store.keys("quest_") == []

    def test_refund_hint_never_goes_negative(self):
        store = PersistentStore(":memory:")
        state = _make_state(store)
        state.record_hint_used()
        state.refund_hint()
        state.refund_hint()
        assert state.hints_used == 0
        assert store.get("quest_hints_used") == "0"

    def test_keys_are_namespaced(self):
        store = PersistentStore(":memory:")
        state = ProgressState(store, start_location="gates", namespace="quest")
        state.mark_location_completed("gates")
        assert set(store.keys("quest_")) == {
            "quest_completed_locations",
            "quest_hints_used",
            "quest_current_location",
            "quest_collected_items",
            "quest_game_started",
        }
        assert store.get("quest_hints_used") == "0"

    def test_namespaces_do_not_collide(self):
        store = PersistentStore(":memory:")
        ProgressState(store, start_location="gates", namespace="alpha").mark_location_completed("gates")
        beta = ProgressState(store, start_location="gates", namespace="beta")
        assert beta.completed_locations == set()

    def test_corrupt_snapshot_is_treated_as_absent(self):
        store = PersistentStore(":memory:")
        store.set_many({
            "quest_completed_locations": "{not json",
            "quest_collected_items": '{"a": 1}',
            "quest_hints_used": "many",
            "quest_current_location": "dome",
        })
        state = _make_state(store)
        assert state.completed_locations == set()
        assert state.collected_items == []
        assert state.hints_used == 0
        # Intact fields still load
        assert state.current_location == "dome"

    def test_negative_hint_counter_is_discarded(self):
        store = PersistentStore(":memory:")
        store.set("quest_hints_used", "-2")
        assert _make_state(store).hints_used == 0

    def test_write_failure_keeps_in_memory_state(self):
        store = PersistentStore(":memory:")
        state = _make_state(store)
        store.close()

        state.mark_location_completed("gates")
        assert state.collect_item("gates") is True

        assert state.completed_locations == {"gates"}
        assert state.collected_items == ["gates"]

    def test_read_failure_starts_empty(self):
        store = PersistentStore(":memory:")
        store.close()
        state = _make_state(store)
        assert state.completed_locations == set()
        assert state.current_location == "gates"
