"""Session Context: identity of the current player for one session."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr


class SessionContext(BaseModel):
    """
    Who is playing, and whether the host platform vouched for them.

    The auth token is the opaque init-data blob supplied by the host. It is
    immutable for the session lifetime and is never rendered in reprs or logs.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    team_id: Optional[str] = None
    auth_token: Optional[SecretStr] = None
    is_host_session: bool = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    is_premium: bool = False

    @property
    def is_authenticated(self) -> bool:
        """True iff a token with non-whitespace content is present."""
        return bool(self.token().strip())

    def token(self) -> str:
        """The raw token value, or an empty string when unauthenticated."""
        if self.auth_token is None:
            return ""
        return self.auth_token.get_secret_value()
