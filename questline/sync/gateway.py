"""
Sync Gateway: authenticated traffic between the quest client and its backend.

Behavioral Contract:
- Event reports are best-effort and at-most-once: no retries, no queue of
  failed reports, no rollback of the local transition that caused them.
- A report without a backend endpoint or without a session token is skipped
  locally and reported as NOT_SENT. No unauthenticated call is ever made.
- Request/response calls (missions, hints, passwords, triggers) raise
  ConfigurationError / AuthorizationError before touching the network, and
  TransportError when the network or the backend fails.
- Detached reports run as tasks with a bounded number in flight; their
  errors are contained inside the task.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Set

import httpx
from pydantic import ValidationError

from questline.errors import AuthorizationError, ConfigurationError, TransportError
from questline.models.config import QuestConfig
from questline.models.events import GameEvent, parse_event
from questline.models.session import SessionContext
from questline.models.sync import HintResponse, PasswordCheck, SyncResult, SyncStatus
from questline.models.trigger import Trigger

logger = logging.getLogger(__name__)

GET_MISSION = "get-mission"
GAME_EVENT = "game-event"
REQUEST_HINT = "request-hint"
CHECK_PASSWORD = "check-password"
TRIGGERS = "triggers"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _client_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SyncGateway:
    """Async client for the quest backend."""

    def __init__(
        self,
        config: QuestConfig,
        session: SessionContext,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.session = session
        self._clock = clock or _utc_now
        self._owns_client = http_client is None
        if http_client is None and config.backend_configured:
            http_client = httpx.AsyncClient(
                base_url=config.backend_url,
                timeout=config.request_timeout_seconds,
            )
        self.client = http_client
        self._pending: Set[asyncio.Task] = set()
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def pending_reports(self) -> int:
        return len(self._pending)

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            self.config.auth_header: self.session.token(),
        }

    def _identity(self) -> dict:
        return {"userId": self.session.user_id, "teamId": self.session.team_id}

    # === EVENT REPORTING ===

    async def report_event(self, event: GameEvent) -> SyncResult:
        """Send one event report and wait for the outcome. Never raises for I/O."""
        event_type = event.event_type

        if not self.config.backend_configured or self.client is None:
            logger.warning("Backend URL not configured; event not sent", extra={"event_type": event_type})
            return SyncResult(
                status=SyncStatus.NOT_SENT,
                event_type=event_type,
                reason="backend_not_configured",
            )

        if not self.session.is_authenticated:
            logger.warning("Session token missing; event not sent", extra={"event_type": event_type})
            return SyncResult(
                status=SyncStatus.NOT_SENT,
                event_type=event_type,
                reason="missing_auth_token",
            )

        body = {
            "eventType": event_type,
            "eventData": event.event_data(),
            **self._identity(),
            "timestamp": _client_timestamp(self._clock()),
        }

        try:
            response = await self.client.post(GAME_EVENT, json=body, headers=self._headers())
            response.raise_for_status()
            ack = response.json() if response.content else None
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(
                "Event send failed",
                extra={"event_type": event_type, "status_code": status_code},
            )
            return SyncResult(
                status=SyncStatus.FAILED,
                event_type=event_type,
                reason=f"http_{status_code}",
            )
        except httpx.HTTPError as e:
            logger.error(
                "Event send failed",
                extra={"event_type": event_type, "error": repr(e)},
            )
            return SyncResult(
                status=SyncStatus.FAILED,
                event_type=event_type,
                reason=type(e).__name__,
            )
        except ValueError:
            logger.error("Event ack was not valid JSON", extra={"event_type": event_type})
            return SyncResult(
                status=SyncStatus.FAILED,
                event_type=event_type,
                reason="invalid_ack",
            )

        logger.info("Event sent", extra={"event_type": event_type})
        return SyncResult(
            status=SyncStatus.SENT,
            event_type=event_type,
            ack=ack if isinstance(ack, dict) or ack is None else {"result": ack},
        )

    async def report(self, event_type: str, event_data: Optional[dict] = None) -> SyncResult:
        """Report an event given in wire form. Unknown kinds raise UnknownEventError."""
        return await self.report_event(parse_event(event_type, event_data or {}))

    def submit_event(self, event: GameEvent) -> asyncio.Task:
        """
        Schedule a detached report on the running loop.
        The caller may ignore the returned task.
        """
        task = asyncio.get_running_loop().create_task(self._report_detached(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _report_detached(self, event: GameEvent) -> SyncResult:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.config.max_in_flight_events)
        async with self._semaphore:
            try:
                return await self.report_event(event)
            except Exception:
                logger.exception("Detached event report crashed", extra={"event_type": event.event_type})
                return SyncResult(
                    status=SyncStatus.FAILED,
                    event_type=event.event_type,
                    reason="unexpected_error",
                )

    async def drain(self) -> List[SyncResult]:
        """
        Wait for every outstanding detached report, including reports submitted
        while earlier ones were still in flight.
        """
        collected: List[SyncResult] = []
        while self._pending:
            results = await asyncio.gather(*list(self._pending), return_exceptions=True)
            collected.extend(r for r in results if isinstance(r, SyncResult))
        return collected

    # === REQUEST / RESPONSE ===

    def _require_session(self, operation: str) -> None:
        if not self.config.backend_configured or self.client is None:
            logger.warning("Backend URL not configured", extra={"operation": operation})
            raise ConfigurationError(f"{operation}: backend URL not configured")
        if not self.session.is_authenticated:
            logger.error("Session token missing", extra={"operation": operation})
            raise AuthorizationError()

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        body: Optional[dict] = None,
    ) -> Any:
        self._require_session(operation)

        try:
            response = await self.client.request(method, path, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("Backend request failed", extra={"operation": operation, "error": repr(e)})
            raise TransportError(f"{operation} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(
                "Backend response was not valid JSON",
                extra={"operation": operation, "status_code": response.status_code},
            )
            raise TransportError(
                f"{operation}: unparsable response",
                status_code=response.status_code,
            ) from e

        if response.is_error:
            error_code = None
            if isinstance(payload, dict):
                error_code = payload.get("error")
                if payload.get("requiresRegistration"):
                    error_code = "requires_registration"
            logger.error(
                "Backend rejected request",
                extra={
                    "operation": operation,
                    "status_code": response.status_code,
                    "error_code": error_code,
                },
            )
            raise TransportError(
                f"{operation}: HTTP {response.status_code}",
                status_code=response.status_code,
                error_code=error_code,
                payload=payload if isinstance(payload, dict) else None,
            )

        return payload

    async def fetch_mission(self, location: str) -> Optional[Any]:
        """The mission for a location, or None if the backend has none."""
        payload = await self._request(
            "POST", GET_MISSION, "get_mission",
            {"location": location, **self._identity()},
        )
        if not isinstance(payload, dict):
            raise TransportError("get_mission: unexpected response shape")
        return payload.get("mission")

    async def request_hint(self, location: str, hint_level: int = 1) -> HintResponse:
        payload = await self._request(
            "POST", REQUEST_HINT, "request_hint",
            {"location": location, "hintLevel": hint_level, **self._identity()},
        )
        try:
            return HintResponse.model_validate({"hint_level": hint_level, **payload})
        except (ValidationError, TypeError) as e:
            raise TransportError("request_hint: unexpected response shape") from e

    async def check_password(self, location: str, password: str) -> PasswordCheck:
        """
        Ask the backend to verify a location password.

        A rejection that still carries ``{success, message}`` (e.g. 401/403)
        is returned as a PasswordCheck, not raised.
        """
        try:
            payload = await self._request(
                "POST", CHECK_PASSWORD, "check_password",
                {"location": location, "password": password, **self._identity()},
            )
        except TransportError as e:
            if "success" not in e.payload:
                raise
            if e.status_code in (401, 403):
                logger.error("Password check not authorized", extra={"location": location})
            payload = e.payload

        try:
            return PasswordCheck.model_validate(payload)
        except (ValidationError, TypeError) as e:
            raise TransportError("check_password: unexpected response shape") from e

    async def fetch_triggers(self) -> List[Trigger]:
        """Trigger definitions for this session. Malformed entries are skipped."""
        payload = await self._request("GET", TRIGGERS, "fetch_triggers")
        if isinstance(payload, dict):
            payload = payload.get("triggers", [])
        if not isinstance(payload, list):
            raise TransportError("fetch_triggers: unexpected response shape")

        triggers = []
        for raw in payload:
            try:
                triggers.append(Trigger.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed trigger", extra={"raw": str(raw)[:120]})
        return triggers

    async def aclose(self) -> None:
        """Wait for detached reports, then close the HTTP client if we own it."""
        await self.drain()
        if self._owns_client and self.client is not None:
            await self.client.aclose()
