"""Persistence interfaces and implementations for duel sessions."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import json
import logging
import threading
from typing import Any, Iterable, Iterator, Protocol

from duelarena.backend.keys import advisory_lock_id, canonical_pair
from duelarena.backend.models import Session

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def lookup(self, first: str, second: str) -> Session | None:
        """Return the session for the unordered pair, if any."""

    def exists(self, first: str, second: str) -> bool:
        """Return True when a session is recorded for the pair in either orientation."""

    def write(self, session: Session, events: Iterable[dict[str, Any]] = ()) -> None:
        """Replace the pair's session record and append its events in one step."""

    def events(self, first: str, second: str) -> list[dict[str, Any]]:
        """Return the pair's event log, oldest first."""

    def pair_lock(self, first: str, second: str) -> Any:
        """Context manager giving exclusive access to one pair."""


@dataclass
class _PairLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


@dataclass
class InMemorySessionStore:
    """Arena store: one record per session, indexed under both orderings."""

    def __post_init__(self) -> None:
        self._records: dict[int, dict[str, Any]] = {}
        self._index: dict[tuple[str, str], int] = {}
        self._next_id = 1
        self._guard = threading.Lock()
        self._pair_locks: dict[tuple[str, str], _PairLock] = {}

    def lookup(self, first: str, second: str) -> Session | None:
        with self._guard:
            record_id = self._index.get((first, second))
            if record_id is None:
                return None
            return self._records[record_id]["session"]

    def exists(self, first: str, second: str) -> bool:
        with self._guard:
            return (first, second) in self._index or (second, first) in self._index

    def write(self, session: Session, events: Iterable[dict[str, Any]] = ()) -> None:
        a, b = session.participant_a, session.participant_b
        with self._guard:
            record_id = self._index.get((a, b))
            if record_id is None:
                record_id = self._next_id
                self._next_id += 1
                self._records[record_id] = {"session": session, "events": list(events)}
                self._index[(a, b)] = record_id
                self._index[(b, a)] = record_id
                return
            payload = self._records[record_id]
            next_events = list(payload["events"])
            next_events.extend(events)
            self._records[record_id] = {"session": session, "events": next_events}

    def events(self, first: str, second: str) -> list[dict[str, Any]]:
        with self._guard:
            record_id = self._index.get((first, second))
            if record_id is None:
                return []
            return list(self._records[record_id]["events"])

    @contextmanager
    def pair_lock(self, first: str, second: str) -> Iterator[None]:
        key = canonical_pair(first, second)
        with self._guard:
            pair = self._pair_locks.get(key)
            if pair is None:
                pair = _PairLock()
                self._pair_locks[key] = pair
            pair.holders += 1
        try:
            with pair.lock:
                yield
        finally:
            with self._guard:
                pair.holders -= 1
                # Drop the lock once no caller holds or waits on it.
                if pair.holders == 0:
                    self._pair_locks.pop(key, None)


_SESSION_COLUMNS = """
    participant_a, participant_b, health_a, health_b, active_turn, winner, last_move_at, created_at
"""


@dataclass
class PostgresSessionStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def lookup(self, first: str, second: str) -> Session | None:
        low, high = canonical_pair(first, second)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_SESSION_COLUMNS}
                    FROM duel_sessions
                    WHERE participant_low = %s AND participant_high = %s
                    """,
                    (low, high),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _session_from_row(row)

    def exists(self, first: str, second: str) -> bool:
        low, high = canonical_pair(first, second)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT 1 FROM duel_sessions
                    WHERE participant_low = %s AND participant_high = %s
                    """,
                    (low, high),
                )
                row = cur.fetchone()
        return row is not None

    def write(self, session: Session, events: Iterable[dict[str, Any]] = ()) -> None:
        low, high = canonical_pair(session.participant_a, session.participant_b)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO duel_sessions (participant_low, participant_high, {_SESSION_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (participant_low, participant_high) DO UPDATE
                    SET health_a = EXCLUDED.health_a,
                        health_b = EXCLUDED.health_b,
                        active_turn = EXCLUDED.active_turn,
                        winner = EXCLUDED.winner,
                        last_move_at = EXCLUDED.last_move_at
                    """,
                    (
                        low,
                        high,
                        session.participant_a,
                        session.participant_b,
                        session.health_a,
                        session.health_b,
                        session.active_turn,
                        session.winner,
                        session.last_move_at,
                        session.created_at,
                    ),
                )
                for event in events:
                    cur.execute(
                        """
                        INSERT INTO duel_events (participant_low, participant_high, at_height, event_json)
                        VALUES (%s, %s, %s, %s::jsonb)
                        """,
                        (low, high, event.get("at", session.last_move_at), json.dumps(event)),
                    )
            conn.commit()

    def events(self, first: str, second: str) -> list[dict[str, Any]]:
        low, high = canonical_pair(first, second)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT event_json FROM duel_events
                    WHERE participant_low = %s AND participant_high = %s
                    ORDER BY id
                    """,
                    (low, high),
                )
                rows = cur.fetchall()
        return [row[0] if isinstance(row[0], dict) else json.loads(row[0]) for row in rows]

    @contextmanager
    def pair_lock(self, first: str, second: str) -> Iterator[None]:
        lock_id = advisory_lock_id(first, second)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT pg_advisory_lock(%s)", (lock_id,))
            try:
                yield
            finally:
                with conn.cursor() as cur:
                    cur.execute("SELECT pg_advisory_unlock(%s)", (lock_id,))
                conn.commit()


def _session_from_row(row: tuple) -> Session:
    participant_a, participant_b, health_a, health_b, active_turn, winner, last_move_at, created_at = row
    return Session(
        participant_a=participant_a,
        participant_b=participant_b,
        health_a=int(health_a),
        health_b=int(health_b),
        active_turn=active_turn,
        winner=winner,
        last_move_at=int(last_move_at),
        created_at=int(created_at),
    )


def create_store(database_url: str | None) -> SessionStore:
    if database_url:
        logger.info("Using PostgreSQL session store")
        return PostgresSessionStore(database_url=database_url)
    logger.info("Using in-memory session store")
    return InMemorySessionStore()
