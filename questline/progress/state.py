"""
Progress State: the player's completed locations, amulets, hints and position.

Behavioral Contract:
- Mutated only through the operations below; every mutation persists at once.
- Completion membership only grows, except on an explicit reset.
- A failed write is logged and ignored: the in-memory state is authoritative
  for the session.
- Corrupt persisted values are discarded at load and treated as absent.
"""

import json
import logging
from typing import Dict, List, Optional, Set

from questline.errors import PersistenceError
from questline.models.progress import ProgressSnapshot
from questline.store.kv import PersistentStore

logger = logging.getLogger(__name__)

COMPLETED_LOCATIONS = "completed_locations"
HINTS_USED = "hints_used"
CURRENT_LOCATION = "current_location"
COLLECTED_ITEMS = "collected_items"
GAME_STARTED = "game_started"

_FIELDS = (COMPLETED_LOCATIONS, HINTS_USED, CURRENT_LOCATION, COLLECTED_ITEMS, GAME_STARTED)


class ProgressState:
    """Progress for the running session, mirrored into a PersistentStore."""

    def __init__(
        self,
        store: PersistentStore,
        start_location: str,
        namespace: str = "quest",
    ):
        self._store = store
        self._namespace = namespace
        self.start_location = start_location

        self._completed: Set[str] = set()
        self._collected: List[str] = []
        self._hints_used = 0
        self._current_location = start_location
        self._game_started = False

        self._load()

    # --- Reads ---

    @property
    def completed_locations(self) -> Set[str]:
        return set(self._completed)

    @property
    def collected_items(self) -> List[str]:
        return list(self._collected)

    @property
    def hints_used(self) -> int:
        return self._hints_used

    @property
    def current_location(self) -> str:
        return self._current_location

    @property
    def game_started(self) -> bool:
        return self._game_started

    def is_complete(self, total_location_count: int) -> bool:
        """Quest completion under the named-prerequisite policy."""
        return len(self._completed) >= total_location_count

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            completed_locations=set(self._completed),
            collected_items=list(self._collected),
            hints_used=self._hints_used,
            current_location=self._current_location,
            game_started=self._game_started,
        )

    # --- Mutations ---

    def mark_location_completed(self, location_id: str) -> None:
        """Add a location to the completed set. Idempotent."""
        self._completed.add(location_id)
        self._persist()

    def collect_item(self, at: str) -> bool:
        """Record an amulet at a location. Returns False for a duplicate."""
        if at in self._collected:
            return False
        self._collected.append(at)
        self._persist()
        return True

    def set_current_location(self, location_id: str) -> None:
        self._current_location = location_id
        self._persist()

    def start_game(self) -> None:
        self._game_started = True
        self._persist()

    def record_hint_used(self) -> None:
        """Increment the hint counter. The budget is enforced by HintRationer."""
        self._hints_used += 1
        self._persist()

    def refund_hint(self) -> None:
        """Give back a hint that was reserved but never delivered."""
        if self._hints_used > 0:
            self._hints_used -= 1
            self._persist()

    def reset(self) -> None:
        """Clear every field back to its initial value in one write."""
        self._completed = set()
        self._collected = []
        self._hints_used = 0
        self._current_location = self.start_location
        self._game_started = False
        self._persist()

    # --- Serialization ---

    def key(self, field: str) -> str:
        return f"{self._namespace}_{field}"

    def to_records(self) -> Dict[str, str]:
        """Serialise the current state to namespaced string records."""
        return {
            self.key(COMPLETED_LOCATIONS): json.dumps(sorted(self._completed)),
            self.key(HINTS_USED): str(self._hints_used),
            self.key(CURRENT_LOCATION): self._current_location,
            self.key(COLLECTED_ITEMS): json.dumps(self._collected),
            self.key(GAME_STARTED): "true" if self._game_started else "false",
        }

    def _persist(self) -> None:
        try:
            self._store.set_many(self.to_records())
        except PersistenceError as e:
            logger.warning(
                "Progress write failed; keeping in-memory state",
                extra={"namespace": self._namespace, "error": str(e)},
            )

    def _load(self) -> None:
        """Load each field independently; a bad field never poisons the others."""
        try:
            records = self._store.get_many([self.key(f) for f in _FIELDS])
        except PersistenceError as e:
            logger.warning(
                "Progress read failed; starting without prior progress",
                extra={"namespace": self._namespace, "error": str(e)},
            )
            return
        self.from_records(records)

    def from_records(self, records: Dict[str, Optional[str]]) -> None:
        """
        Replace the in-memory state with namespaced string records, as written
        by ``to_records``. Missing or corrupt fields keep their current value.
        Does not persist.
        """
        records = {self.key(f): records.get(self.key(f)) for f in _FIELDS}

        completed = _parse_string_list(records[self.key(COMPLETED_LOCATIONS)])
        if completed is not None:
            self._completed = set(completed)

        collected = _parse_string_list(records[self.key(COLLECTED_ITEMS)])
        if collected is not None:
            # Drop duplicates from older snapshots, keep first occurrence
            self._collected = list(dict.fromkeys(collected))

        hints = _parse_count(records[self.key(HINTS_USED)])
        if hints is not None:
            self._hints_used = hints

        current = records[self.key(CURRENT_LOCATION)]
        if current:
            self._current_location = current

        self._game_started = records[self.key(GAME_STARTED)] == "true"


def _parse_string_list(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except (ValueError, TypeError):
        logger.warning("Discarding unparsable progress list", extra={"raw": raw[:80]})
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        logger.warning("Discarding malformed progress list", extra={"raw": raw[:80]})
        return None
    return value


def _parse_count(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Discarding unparsable hint counter", extra={"raw": raw[:80]})
        return None
    return value if value >= 0 else None
