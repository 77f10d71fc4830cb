"""Session lifecycle: composes store lookups with engine decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from duelarena.backend import engine
from duelarena.backend.errors import DuelError, InvalidOpponent, SessionAlreadyExists
from duelarena.backend.keys import serialize_identity
from duelarena.backend.models import ROLE_A, ROLE_B, GameRules, Session, SessionStatus, SessionView
from duelarena.backend.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class DuelService:
    """Mutating and read operations over duel sessions.

    ``caller`` and ``now`` always come from the caller environment; the service
    holds no clock and no notion of who is calling.
    """

    store: SessionStore
    rules: GameRules = field(default_factory=GameRules)

    def create_session(self, initiator: str, opponent: str, now: int) -> SessionView:
        serialize_identity(initiator)
        serialize_identity(opponent)
        with self.store.pair_lock(initiator, opponent):
            session = engine.new_session(initiator, opponent, now=now, rules=self.rules)
            if self.store.exists(initiator, opponent):
                raise SessionAlreadyExists(f"{initiator} and {opponent} already have a session")
            self.store.write(session, [engine.created_event(session)])
        logger.info("Session created: %s vs %s at %s", initiator, opponent, now)
        return session.view_for(initiator)

    def attack(self, caller: str, opponent: str, now: int) -> SessionView:
        return self._move(caller, opponent, role=ROLE_A, now=now)

    def counter_attack(self, caller: str, opponent: str, now: int) -> SessionView:
        return self._move(caller, opponent, role=ROLE_B, now=now)

    def forfeit(self, caller: str, opponent: str, now: int) -> SessionView:
        serialize_identity(caller)
        serialize_identity(opponent)
        with self.store.pair_lock(caller, opponent):
            current = self.store.lookup(caller, opponent)
            try:
                result = engine.resolve_forfeit(current, caller=caller, now=now, rules=self.rules)
            except DuelError as exc:
                logger.info("Forfeit by %s against %s rejected: %s", caller, opponent, exc.code)
                raise
            self.store.write(result.session, result.engine_events)
        logger.info("Forfeit: %s wins against %s at %s", caller, opponent, now)
        return result.session.view_for(caller)

    def get_session(self, first: str, second: str) -> SessionView | None:
        session = self._lookup(first, second)
        if session is None:
            return None
        return session.view_for(first)

    def is_callers_turn(self, caller: str, opponent: str) -> bool:
        session = self._lookup(caller, opponent)
        if session is None or session.is_over:
            return False
        return session.active_turn == caller

    def get_status_text(self, first: str, second: str) -> str:
        session = self._lookup(first, second)
        if session is None:
            return SessionStatus.NO_SESSION
        return session.status_text()

    def get_events(self, first: str, second: str) -> list[dict[str, Any]]:
        try:
            return self.store.events(first, second)
        except InvalidOpponent:
            return []

    def _lookup(self, first: str, second: str) -> Session | None:
        # An unusable identity can never own a session.
        try:
            return self.store.lookup(first, second)
        except InvalidOpponent:
            return None

    def _move(self, caller: str, opponent: str, role: str, now: int) -> SessionView:
        serialize_identity(caller)
        serialize_identity(opponent)
        with self.store.pair_lock(caller, opponent):
            current = self.store.lookup(caller, opponent)
            try:
                result = engine.resolve_move(current, caller=caller, role=role, now=now, rules=self.rules)
            except DuelError as exc:
                logger.info("Move by %s against %s rejected: %s", caller, opponent, exc.code)
                raise
            self.store.write(result.session, result.engine_events)
        if result.session.is_over:
            logger.info("Session over: %s defeated %s at %s", result.session.winner, opponent, now)
        return result.session.view_for(caller)
