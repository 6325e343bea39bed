"""Hint Rationer: enforces the per-session hint budget."""

import logging

from questline.progress.state import ProgressState

logger = logging.getLogger(__name__)


class HintRationer:
    """
    Grants hints while ``hints_used < max_hints``.

    The budget is a fixed constant for the session and is not persisted;
    only the counter on ProgressState is.
    """

    def __init__(self, progress: ProgressState, max_hints: int = 3):
        self._progress = progress
        self.max_hints = max_hints

    def use_hint(self) -> bool:
        """Consume one hint. Returns False, changing nothing, once the budget is spent."""
        if self._progress.hints_used >= self.max_hints:
            logger.info(
                "Hint budget exhausted",
                extra={"hints_used": self._progress.hints_used, "max_hints": self.max_hints},
            )
            return False
        self._progress.record_hint_used()
        return True

    def hints_left(self) -> int:
        return max(0, self.max_hints - self._progress.hints_used)

    def can_use_hint(self) -> bool:
        return self.hints_left() > 0

    def refund_hint(self) -> None:
        """Return a hint reserved by ``use_hint`` that was never delivered."""
        self._progress.refund_hint()
