"""
Error taxonomy for the quest engine.

Remote failures are always recoverable: none of these errors is allowed to
roll back or corrupt progress that has already been committed locally.
"""

from typing import Optional


class QuestError(Exception):
    """Base class for all quest engine errors."""
    pass


class ConfigurationError(QuestError):
    """Raised when a backend-dependent operation runs without a backend endpoint."""
    pass


class AuthorizationError(QuestError):
    """
    Raised when a backend call requires a session token and none is present.

    Carries a player-facing message. No network call is attempted.
    """

    def __init__(
        self,
        message: str = "Authorization failed. Open the quest from the host app.",
    ):
        super().__init__(message)
        self.user_message = message


class TransportError(QuestError):
    """Network failure or non-success response from the backend."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        payload: Optional[dict] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.payload = payload or {}


class PersistenceError(QuestError):
    """Local storage read/write failure or corrupt serialized data."""
    pass


class UnknownEventError(QuestError):
    """Raised when an event payload does not match any known event kind."""
    pass
