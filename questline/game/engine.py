"""
Quest Engine: one explicitly constructed object per play session.

Wires progress, access control, hint rationing, triggers and backend sync
together, and is the entry point for player actions. Every local state
transition commits (mutate + persist) before its event report is handed to
the gateway as a detached task, so remote failures never touch local progress.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from questline.access.controller import AccessController
from questline.errors import (
    AuthorizationError,
    ConfigurationError,
    QuestError,
    TransportError,
)
from questline.hints.rationer import HintRationer
from questline.models.config import QuestConfig
from questline.models.events import (
    AmuletCollected,
    GameEvent,
    LocationChanged,
    MissionCompleted,
    MissionStarted,
)
from questline.models.location import LocationGraph, default_graph
from questline.models.progress import ProgressSnapshot
from questline.models.session import SessionContext
from questline.models.sync import HintResponse, PasswordCheck
from questline.models.trigger import Trigger, TriggerActivation
from questline.progress.state import ProgressState
from questline.store.kv import PersistentStore
from questline.sync.gateway import SyncGateway
from questline.triggers.scheduler import TriggerScheduler

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = "Service temporarily unavailable."
NO_HINTS_LEFT = "No hints left!"
HINT_NOT_FOUND = "Hint not found."
HINT_FAILED = "Could not get a hint. Try again later."
HINTS_HOST_ONLY = "Hints are only available inside the host app."
REGISTER_FIRST = "Register with the bot first: send /start"
PASSWORD_FAILED = "Could not check the password."


class Notifier:
    """Surfaces player-facing messages. The default only logs them."""

    def show_alert(self, message: str) -> None:
        logger.info("Player alert", extra={"alert": message})


class QuestEngine:
    """A single player's quest session."""

    def __init__(
        self,
        config: QuestConfig,
        session: SessionContext,
        store: Optional[PersistentStore] = None,
        graph: Optional[LocationGraph] = None,
        gateway: Optional[SyncGateway] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.session = session
        self.graph = graph or default_graph()

        start_location = config.start_location or self.graph.start_location
        if self.graph.get(start_location) is None:
            raise ConfigurationError(f"Start location {start_location} is not in the quest graph")

        self._owns_store = store is None
        self.store = store or PersistentStore(config.storage_path)
        self.progress = ProgressState(self.store, start_location, config.storage_namespace)
        self.access = AccessController(self.graph, config.access_policy)
        self.hints = HintRationer(self.progress, config.max_hints)
        self.gateway = gateway or SyncGateway(config, session, clock=clock)
        self.notifier = notifier or Notifier()
        self.scheduler = TriggerScheduler(
            on_activate=self._on_trigger,
            poll_interval_seconds=config.trigger_poll_interval_seconds,
        )

        self.level = 1
        self._completion_reported = self.access.is_quest_complete(self.progress.snapshot())

    # --- Reads ---

    def snapshot(self) -> ProgressSnapshot:
        return self.progress.snapshot()

    def can_access(self, location_id: str) -> bool:
        return self.access.can_access(location_id, self.progress.snapshot())

    def hints_left(self) -> int:
        return self.hints.hints_left()

    def is_quest_complete(self) -> bool:
        return self.access.is_quest_complete(self.progress.snapshot())

    def location_name(self, location_id: str) -> str:
        return self.graph.location_name(location_id)

    # --- Local transitions ---

    def start_game(self, level: int = 1) -> None:
        self.level = level
        self.progress.start_game()
        self._submit(MissionStarted(level=level, team_id=self.session.team_id))

    def enter_location(self, location_id: str) -> bool:
        """Move the player to a location if the access policy allows it."""
        if not self.can_access(location_id):
            self.notifier.show_alert(f"{self.location_name(location_id)} is still locked.")
            return False
        self.progress.set_current_location(location_id)
        self._submit(LocationChanged(location=location_id))
        return True

    def complete_location(self, location_id: str) -> bool:
        if not self.can_access(location_id):
            logger.warning("Refusing to complete an unreachable location", extra={"location": location_id})
            return False
        self.progress.mark_location_completed(location_id)
        self._check_completion()
        return True

    def collect_amulet(self, location_id: str) -> bool:
        """Record an amulet. Returns False for a duplicate or unreachable location."""
        if not self.can_access(location_id):
            logger.warning("Refusing to collect at an unreachable location", extra={"location": location_id})
            return False
        if not self.progress.collect_item(location_id):
            return False
        self._submit(AmuletCollected(
            amulet_number=len(self.progress.collected_items),
            location=location_id,
        ))
        self._check_completion()
        return True

    def reset(self) -> None:
        self.progress.reset()
        self.level = 1
        self._completion_reported = False

    def _check_completion(self) -> None:
        if self._completion_reported or not self.is_quest_complete():
            return
        self._completion_reported = True
        completed = self.progress.completed_locations
        self._submit(MissionCompleted(
            amulets=len(self.progress.collected_items),
            level=self.level,
            locations=[loc.id for loc in self.graph if loc.id in completed],
        ))

    def _submit(self, event: GameEvent) -> Optional[asyncio.Task]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; event not sent", extra={"event_type": event.event_type})
            return None
        return self.gateway.submit_event(event)

    # --- Backend requests ---

    async def startup(self) -> int:
        """Fetch trigger definitions once. Returns how many were loaded."""
        try:
            triggers = await self.gateway.fetch_triggers()
        except QuestError as e:
            logger.warning("Triggers unavailable; continuing without them", extra={"error": str(e)})
            triggers = []
        self.scheduler.load(triggers)
        return len(triggers)

    async def get_mission(self, location_id: str) -> Optional[object]:
        try:
            return await self.gateway.fetch_mission(location_id)
        except AuthorizationError as e:
            self.notifier.show_alert(e.user_message)
        except ConfigurationError:
            self.notifier.show_alert(SERVICE_UNAVAILABLE)
        except TransportError as e:
            if e.error_code == "requires_registration":
                self.notifier.show_alert(REGISTER_FIRST)
        return None

    async def request_hint(self, location_id: str, hint_level: int = 1) -> Optional[HintResponse]:
        """
        Ask the backend for a hint. The hint is reserved against the local
        budget before the request goes out and refunded if none comes back,
        so concurrent requests can never overdraw the budget.
        """
        if not self.hints.use_hint():
            self.notifier.show_alert(NO_HINTS_LEFT)
            return None

        try:
            return await self.gateway.request_hint(location_id, hint_level)
        except AuthorizationError:
            self.hints.refund_hint()
            self.notifier.show_alert(HINTS_HOST_ONLY)
        except ConfigurationError:
            self.hints.refund_hint()
            self.notifier.show_alert(SERVICE_UNAVAILABLE)
        except TransportError as e:
            self.hints.refund_hint()
            if e.error_code == "no_hints_left":
                self.notifier.show_alert(NO_HINTS_LEFT)
            elif e.error_code == "not_found":
                self.notifier.show_alert(HINT_NOT_FOUND)
            else:
                self.notifier.show_alert(HINT_FAILED)
        except BaseException:
            self.hints.refund_hint()
            raise
        return None

    async def submit_password(self, location_id: str, password: str) -> PasswordCheck:
        """Check a location password; a correct one completes the location."""
        if not self.can_access(location_id):
            return PasswordCheck(success=False, message=f"{self.location_name(location_id)} is still locked.")

        try:
            result = await self.gateway.check_password(location_id, password)
        except AuthorizationError as e:
            return PasswordCheck(success=False, message=e.user_message)
        except ConfigurationError:
            return PasswordCheck(success=False, message=SERVICE_UNAVAILABLE)
        except TransportError:
            return PasswordCheck(success=False, message=PASSWORD_FAILED)

        if result.success:
            self.complete_location(location_id)
        return result

    # --- Triggers ---

    def check_triggers(self, current_time: Optional[datetime] = None) -> List[TriggerActivation]:
        return self.scheduler.evaluate_once(current_time)

    def _on_trigger(self, trigger: Trigger) -> None:
        if trigger.message:
            self.notifier.show_alert(trigger.message)

    # --- Lifecycle ---

    async def aclose(self) -> None:
        """Flush outstanding reports and release resources."""
        await self.gateway.aclose()
        if self._owns_store:
            self.store.close()
