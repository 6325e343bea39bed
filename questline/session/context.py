"""
Session Context builders.

A session either comes from the host messaging platform (user profile plus
an opaque init-data token) or, when the quest is opened outside the host,
from a locally generated fallback identity with no token.
"""

import logging
import random
import time
from typing import Mapping, Optional

from questline.models.session import SessionContext

logger = logging.getLogger(__name__)

TEAM_PARAM = "team"


def team_id_from_params(launch_params: Optional[Mapping[str, str]]) -> Optional[str]:
    """The team id carried in launch parameters, if any."""
    if not launch_params:
        return None
    team = launch_params.get(TEAM_PARAM)
    return team or None


def from_host_launch(
    user: Mapping,
    init_data: Optional[str],
    launch_params: Optional[Mapping[str, str]] = None,
) -> SessionContext:
    """Build a session from the host platform's user profile and init data."""
    user_id = user.get("id")
    if user_id is None:
        raise ValueError("host launch is missing a user id")

    session = SessionContext(
        user_id=str(user_id),
        team_id=team_id_from_params(launch_params),
        auth_token=init_data or None,
        is_host_session=True,
        first_name=user.get("first_name"),
        last_name=user.get("last_name"),
        username=user.get("username"),
        is_premium=bool(user.get("is_premium", False)),
    )
    if not session.is_authenticated:
        logger.warning("Host session started without init data", extra={"user_id": session.user_id})
    logger.info("Host session initialized", extra={"user_id": session.user_id, "team_id": session.team_id})
    return session


def local_fallback(
    launch_params: Optional[Mapping[str, str]] = None,
    now_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> SessionContext:
    """
    Identity for a quest opened outside the host platform.
    Always unauthenticated: backend-routed calls will fail closed.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random.Random()

    team_id = team_id_from_params(launch_params) or f"team_{rng.randrange(1000)}"
    session = SessionContext(
        user_id=f"web_{now_ms}",
        team_id=team_id,
        auth_token=None,
        is_host_session=False,
        first_name="Test",
        last_name="User",
        username="test_user",
    )
    logger.info("Local fallback session", extra={"user_id": session.user_id, "team_id": team_id})
    return session


def create_session(
    host_user: Optional[Mapping] = None,
    init_data: Optional[str] = None,
    launch_params: Optional[Mapping[str, str]] = None,
) -> SessionContext:
    """Host session when a host user is present, local fallback otherwise."""
    if host_user:
        try:
            return from_host_launch(host_user, init_data, launch_params)
        except ValueError:
            logger.exception("Host launch data unusable; using local fallback")
    return local_fallback(launch_params)
