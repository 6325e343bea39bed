"""
Local quest backend: FastAPI endpoints.

An in-memory stand-in for the quest backend, for development and end-to-end
tests. It serves the same endpoints the client consumes:
- Missions per location
- Game event intake
- Hint requests (with a per-user hint budget)
- Location password checks
- Trigger definitions

It only checks that the session header is present; it does not verify the
token's signature.
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from questline.errors import UnknownEventError
from questline.models.events import parse_event


# --- Request Models ---

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MissionRequest(_CamelModel):
    location: str
    user_id: Any = None
    team_id: Optional[str] = None


class GameEventRequest(_CamelModel):
    event_type: str
    event_data: dict = {}
    user_id: Any = None
    team_id: Optional[str] = None
    timestamp: Optional[str] = None


class HintRequest(_CamelModel):
    location: str
    hint_level: int = 1
    user_id: Any = None
    team_id: Optional[str] = None


class PasswordRequest(_CamelModel):
    location: str
    password: str
    user_id: Any = None
    team_id: Optional[str] = None


# --- Application Factory ---

def create_app(
    missions: Optional[Dict[str, Any]] = None,
    hints: Optional[Dict[str, List[str]]] = None,
    passwords: Optional[Dict[str, str]] = None,
    triggers: Optional[List[dict]] = None,
    max_hints: int = 3,
    auth_header: str = "X-Telegram-Init-Data",
) -> FastAPI:
    """Create and configure the local backend application."""

    app = FastAPI(
        title="Questline Local Backend",
        description="In-memory quest backend for development",
        version="0.1.0",
    )

    app.state.missions = dict(missions or {})
    app.state.hints = dict(hints or {})
    app.state.passwords = dict(passwords or {})
    app.state.triggers = list(triggers or [])
    app.state.events = []
    app.state.hints_used = defaultdict(int)

    def _authorized(request: Request) -> bool:
        return bool(request.headers.get(auth_header, "").strip())

    def _unauthorized() -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"error": "unauthorized", "success": False, "message": "Not authorized"},
        )

    # === MISSIONS ===

    @app.post("/get-mission")
    def get_mission(req: MissionRequest, request: Request):
        """Mission text for a location."""
        if not _authorized(request):
            return _unauthorized()
        mission = app.state.missions.get(req.location)
        if mission is None:
            return JSONResponse(status_code=404, content={"error": "not_found"})
        return {"mission": mission}

    # === EVENTS ===

    @app.post("/game-event")
    def game_event(req: GameEventRequest, request: Request):
        """Accept a game event report."""
        if not _authorized(request):
            return _unauthorized()
        try:
            event = parse_event(req.event_type, req.event_data)
        except UnknownEventError as e:
            return JSONResponse(status_code=400, content={"error": "unknown_event", "detail": str(e)})

        app.state.events.append({
            "event": event,
            "user_id": req.user_id,
            "team_id": req.team_id,
            "timestamp": req.timestamp,
        })
        return {"ok": True, "received": req.event_type, "count": len(app.state.events)}

    # === HINTS ===

    @app.post("/request-hint")
    def request_hint(req: HintRequest, request: Request):
        """Hand out a hint, within the per-user budget."""
        if not _authorized(request):
            return _unauthorized()

        user_key = str(req.user_id)
        if app.state.hints_used[user_key] >= max_hints:
            return JSONResponse(status_code=429, content={"error": "no_hints_left"})

        levels = app.state.hints.get(req.location, [])
        if not 1 <= req.hint_level <= len(levels):
            return JSONResponse(status_code=404, content={"error": "not_found"})

        app.state.hints_used[user_key] += 1
        return {
            "hint": levels[req.hint_level - 1],
            "hintLevel": req.hint_level,
            "hintsLeft": max_hints - app.state.hints_used[user_key],
        }

    # === PASSWORDS ===

    @app.post("/check-password")
    def check_password(req: PasswordRequest, request: Request):
        """Verify a location password."""
        if not _authorized(request):
            return _unauthorized()
        expected = app.state.passwords.get(req.location)
        if expected is None:
            return JSONResponse(
                status_code=404,
                content={"error": "not_found", "success": False, "message": "Unknown location"},
            )
        if req.password.strip().lower() == expected.strip().lower():
            return {"success": True, "message": "Correct! The way forward is open."}
        return {"success": False, "message": "Wrong password, try again."}

    # === TRIGGERS ===

    @app.get("/triggers")
    def list_triggers(request: Request):
        """Trigger definitions for the current session."""
        if not _authorized(request):
            return _unauthorized()
        return app.state.triggers

    return app
