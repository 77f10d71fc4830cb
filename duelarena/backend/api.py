"""FastAPI endpoints for duel sessions and websocket sync."""

from __future__ import annotations

from collections import defaultdict
import logging
import os
from typing import Any, Callable

from fastapi import Depends, FastAPI, Header, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from duelarena.backend import errors
from duelarena.backend.clock import BlockClock, Clock
from duelarena.backend.keys import pair_key
from duelarena.backend.models import GameRules, SessionStatus, SessionView
from duelarena.backend.service import DuelService
from duelarena.backend.store import InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[errors.DuelError], int] = {
    errors.SelfPlay: 400,
    errors.InvalidOpponent: 400,
    errors.NotYourTurn: 403,
    errors.WrongPlayer: 403,
    errors.NoSession: 404,
    errors.SessionAlreadyExists: 409,
    errors.GameOver: 409,
    errors.TimeoutNotReached: 409,
    errors.TurnTimeout: 409,
}


class CreateSessionRequest(BaseModel):
    opponent: str = Field(min_length=1, max_length=128)


class SessionStateResponse(BaseModel):
    status: str
    session: dict[str, Any] | None


class StatusResponse(BaseModel):
    status: str


class TurnResponse(BaseModel):
    yourTurn: bool


class EventsResponse(BaseModel):
    events: list[dict[str, Any]]


class DuelWebSocketHub:
    """Tracks watchers per pair; each watcher sees the session from its own ``first`` side."""

    def __init__(self) -> None:
        self._connections: dict[str, dict[WebSocket, str]] = defaultdict(dict)

    async def connect(self, key: str, websocket: WebSocket, first: str) -> None:
        await websocket.accept()
        self._connections[key][websocket] = first

    def disconnect(self, key: str, websocket: WebSocket) -> None:
        connections = self._connections.get(key)
        if connections is None:
            return
        connections.pop(websocket, None)
        if not connections:
            self._connections.pop(key, None)

    async def send_state(self, websocket: WebSocket, status: str, view: SessionView | None) -> None:
        await websocket.send_json(
            {"type": "session.full", "status": status, "session": view.to_dict() if view else None}
        )

    async def broadcast(self, key: str, render: Callable[[str], tuple[str, SessionView | None]]) -> None:
        stale_connections: list[WebSocket] = []
        for websocket, first in list(self._connections.get(key, {}).items()):
            status, view = render(first)
            try:
                await self.send_state(websocket, status, view)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(key=key, websocket=websocket)


def _default_clock() -> Clock:
    block_seconds = float(os.getenv("DUELARENA_BLOCK_SECONDS", "12.0"))
    return BlockClock(block_seconds=block_seconds)


def _to_http(exc: errors.DuelError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(type(exc), 400),
        detail={"code": exc.code, "message": exc.message},
    )


def create_app(
    store: SessionStore | None = None,
    clock: Clock | None = None,
    rules: GameRules | None = None,
) -> FastAPI:
    app = FastAPI(title="Duel Arena API", version="0.1.0")
    service = DuelService(
        store=store if store is not None else InMemorySessionStore(),
        rules=rules if rules is not None else GameRules(),
    )
    block_clock = clock if clock is not None else _default_clock()
    websocket_hub = DuelWebSocketHub()
    app.state.websocket_hub = websocket_hub
    app.state.duel_service = service

    def render(first: str, second: str) -> tuple[str, SessionView | None]:
        view = service.get_session(first, second)
        if view is None:
            return SessionStatus.NO_SESSION, None
        return view.status_text(), view

    async def publish(first: str, second: str) -> None:
        await websocket_hub.broadcast(
            key=pair_key(first, second),
            render=lambda viewer: render(viewer, second if viewer == first else first),
        )

    def get_service() -> DuelService:
        return service

    def caller_identity(x_participant_id: str = Header(min_length=1, max_length=128)) -> str:
        return x_participant_id

    async def run_mutation(
        operation: Callable[[str, str, int], SessionView], caller: str, opponent: str
    ) -> SessionStateResponse:
        try:
            view = operation(caller, opponent, block_clock())
        except errors.DuelError as exc:
            logger.info("Rejected %s by %s against %s: %s", operation.__name__, caller, opponent, exc.code)
            raise _to_http(exc) from exc
        await publish(caller, opponent)
        return SessionStateResponse(status=view.status_text(), session=view.to_dict())

    @app.post("/api/duels", response_model=SessionStateResponse)
    async def create_session(
        payload: CreateSessionRequest,
        caller: str = Depends(caller_identity),
        local_service: DuelService = Depends(get_service),
    ) -> SessionStateResponse:
        return await run_mutation(local_service.create_session, caller, payload.opponent)

    @app.post("/api/duels/{opponent}/attack", response_model=SessionStateResponse)
    async def attack(
        opponent: str,
        caller: str = Depends(caller_identity),
        local_service: DuelService = Depends(get_service),
    ) -> SessionStateResponse:
        return await run_mutation(local_service.attack, caller, opponent)

    @app.post("/api/duels/{opponent}/counter-attack", response_model=SessionStateResponse)
    async def counter_attack(
        opponent: str,
        caller: str = Depends(caller_identity),
        local_service: DuelService = Depends(get_service),
    ) -> SessionStateResponse:
        return await run_mutation(local_service.counter_attack, caller, opponent)

    @app.post("/api/duels/{opponent}/forfeit", response_model=SessionStateResponse)
    async def forfeit(
        opponent: str,
        caller: str = Depends(caller_identity),
        local_service: DuelService = Depends(get_service),
    ) -> SessionStateResponse:
        return await run_mutation(local_service.forfeit, caller, opponent)

    @app.get("/api/duels/{first}/{second}", response_model=SessionStateResponse)
    def get_session(
        first: str,
        second: str,
        local_service: DuelService = Depends(get_service),
    ) -> SessionStateResponse:
        view = local_service.get_session(first, second)
        if view is None:
            return SessionStateResponse(status=SessionStatus.NO_SESSION, session=None)
        return SessionStateResponse(status=view.status_text(), session=view.to_dict())

    @app.get("/api/duels/{first}/{second}/status", response_model=StatusResponse)
    def get_status(
        first: str,
        second: str,
        local_service: DuelService = Depends(get_service),
    ) -> StatusResponse:
        return StatusResponse(status=local_service.get_status_text(first, second))

    @app.get("/api/duels/{first}/{second}/events", response_model=EventsResponse)
    def get_events(
        first: str,
        second: str,
        local_service: DuelService = Depends(get_service),
    ) -> EventsResponse:
        return EventsResponse(events=local_service.get_events(first, second))

    @app.get("/api/turns/{opponent}", response_model=TurnResponse)
    def get_turn(
        opponent: str,
        caller: str = Depends(caller_identity),
        local_service: DuelService = Depends(get_service),
    ) -> TurnResponse:
        return TurnResponse(yourTurn=local_service.is_callers_turn(caller, opponent))

    @app.websocket("/ws/duels/{first}/{second}")
    async def duel_ws(websocket: WebSocket, first: str, second: str) -> None:
        try:
            key = pair_key(first, second)
        except errors.InvalidOpponent:
            await websocket.close(code=1008)
            return
        if first == second:
            await websocket.close(code=1008)
            return

        await websocket_hub.connect(key=key, websocket=websocket, first=first)
        status, view = render(first, second)
        await websocket_hub.send_state(websocket=websocket, status=status, view=view)

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(key=key, websocket=websocket)

    return app


app = create_app()
