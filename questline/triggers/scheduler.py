"""
Trigger Scheduler: fires backend-defined narrative triggers on time.

States per trigger:
  PENDING → ACTIVE (terminal)

Activation is level-triggered: every evaluation re-checks ``now >=
activation_time`` for each pending trigger, so a missed tick only delays
an activation until the next one. The transition is recorded through an
atomic compare-and-set, so overlapping evaluations fire a trigger once.
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from questline.models.trigger import TIME_TRIGGER, Trigger, TriggerActivation, TriggerState

logger = logging.getLogger(__name__)


class ActiveTriggerLog:
    """Trigger id → activation timestamp, for triggers that have fired."""

    def __init__(self):
        self._entries: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def mark_active(self, trigger_id: str, activated_at: datetime) -> bool:
        """Record an activation. Returns False if the trigger already fired."""
        with self._lock:
            if trigger_id in self._entries:
                return False
            self._entries[trigger_id] = activated_at
            return True

    def is_active(self, trigger_id: str) -> bool:
        return trigger_id in self._entries

    def activated_at(self, trigger_id: str) -> Optional[datetime]:
        return self._entries.get(trigger_id)

    def as_dict(self) -> Dict[str, datetime]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class TriggerScheduler:
    """Evaluates loaded triggers against wall-clock time."""

    def __init__(
        self,
        on_activate: Optional[Callable[[Trigger], None]] = None,
        poll_interval_seconds: float = 30.0,
    ):
        self.on_activate = on_activate
        self.poll_interval_seconds = poll_interval_seconds
        self._triggers: Dict[str, Trigger] = {}
        self._log = ActiveTriggerLog()
        self._running = False

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    @property
    def active_log(self) -> Dict[str, datetime]:
        return self._log.as_dict()

    @property
    def triggers(self) -> List[Trigger]:
        return list(self._triggers.values())

    @property
    def pending(self) -> List[Trigger]:
        return [t for t in self._triggers.values() if not self._log.is_active(t.id)]

    def load(self, triggers: List[Trigger]) -> None:
        """Replace the trigger set. Triggers that already fired stay fired."""
        self._triggers = {}
        for trigger in triggers:
            if trigger.id in self._triggers:
                logger.warning("Duplicate trigger id ignored", extra={"trigger_id": trigger.id})
                continue
            if trigger.type != TIME_TRIGGER:
                logger.info(
                    "Trigger type not understood; it will stay inert",
                    extra={"trigger_id": trigger.id, "trigger_type": trigger.type},
                )
            self._triggers[trigger.id] = trigger

    def state(self, trigger_id: str) -> Optional[TriggerState]:
        if trigger_id not in self._triggers:
            return None
        if self._log.is_active(trigger_id):
            return TriggerState.ACTIVE
        return TriggerState.PENDING

    def evaluate_once(self, current_time: Optional[datetime] = None) -> List[TriggerActivation]:
        """
        Run a single evaluation pass.
        Returns the activations that happened during this pass.
        """
        if current_time is None:
            current_time = datetime.now(timezone.utc)
        elif current_time.tzinfo is None:
            current_time = current_time.replace(tzinfo=timezone.utc)

        activations = []
        for trigger in list(self._triggers.values()):
            if not self._is_due(trigger, current_time):
                continue
            if not self._log.mark_active(trigger.id, current_time):
                continue

            activations.append(TriggerActivation(
                trigger_id=trigger.id,
                activated_at=current_time,
                message=trigger.message,
            ))
            logger.info("Trigger activated", extra={"trigger_id": trigger.id})
            self._notify(trigger)

        return activations

    def _is_due(self, trigger: Trigger, current_time: datetime) -> bool:
        if self._log.is_active(trigger.id):
            return False
        if trigger.type != TIME_TRIGGER:
            return False
        return current_time >= trigger.activation_time

    def _notify(self, trigger: Trigger) -> None:
        if self.on_activate is None:
            return
        try:
            self.on_activate(trigger)
        except Exception:
            # The activation stays recorded; a failing side effect never re-fires it
            logger.exception("Trigger side effect failed", extra={"trigger_id": trigger.id})

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Poll the triggers until ``stop_event`` is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                self.evaluate_once()
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.poll_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
