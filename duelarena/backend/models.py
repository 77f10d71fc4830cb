"""Domain models for duel sessions and their read views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

ROLE_A = "A"
ROLE_B = "B"


class SessionStatus:
    """Status texts reported by the read path."""

    NO_SESSION = "no-session"
    ONGOING = "ongoing"
    OVER_PREFIX = "over:"

    @classmethod
    def for_winner(cls, winner: str | None) -> str:
        if winner is None:
            return cls.ONGOING
        return f"{cls.OVER_PREFIX}{winner}"


@dataclass(frozen=True)
class GameRules:
    starting_health: int = 100
    attack_damage: int = 10
    match_timeout_blocks: int = 20
    turn_timeout_blocks: int | None = None

    def __post_init__(self) -> None:
        if self.starting_health <= 0:
            raise ValueError("starting_health must be positive")
        if self.attack_damage <= 0:
            raise ValueError("attack_damage must be positive")
        if self.match_timeout_blocks <= 0:
            raise ValueError("match_timeout_blocks must be positive")
        if self.turn_timeout_blocks is not None:
            if self.turn_timeout_blocks <= 0:
                raise ValueError("turn_timeout_blocks must be positive")
            if self.turn_timeout_blocks >= self.match_timeout_blocks:
                raise ValueError("turn_timeout_blocks must be smaller than match_timeout_blocks")


@dataclass(frozen=True)
class SessionView:
    """Session state as seen from ``participant_a``'s side of the query."""

    participant_a: str
    participant_b: str
    health_a: int
    health_b: int
    active_turn: str
    winner: str | None
    last_move_at: int

    def status_text(self) -> str:
        return SessionStatus.for_winner(self.winner)

    def to_dict(self) -> dict[str, Any]:
        return {
            "participantA": self.participant_a,
            "participantB": self.participant_b,
            "healthA": self.health_a,
            "healthB": self.health_b,
            "activeTurn": self.active_turn,
            "winner": self.winner,
            "lastMoveAt": self.last_move_at,
        }


@dataclass(frozen=True)
class Session:
    """One duel between two participants, stored in initiator orientation.

    ``participant_a`` created the session and moves with ``attack``;
    ``participant_b`` moves with ``counter_attack``.
    """

    participant_a: str
    participant_b: str
    health_a: int
    health_b: int
    active_turn: str
    last_move_at: int
    created_at: int
    winner: str | None = None

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    def role_of(self, identity: str) -> str | None:
        if identity == self.participant_a:
            return ROLE_A
        if identity == self.participant_b:
            return ROLE_B
        return None

    def opponent_of(self, identity: str) -> str:
        if identity == self.participant_a:
            return self.participant_b
        if identity == self.participant_b:
            return self.participant_a
        raise KeyError(identity)

    def health_of(self, identity: str) -> int:
        if identity == self.participant_a:
            return self.health_a
        if identity == self.participant_b:
            return self.health_b
        raise KeyError(identity)

    def status_text(self) -> str:
        return SessionStatus.for_winner(self.winner)

    def view_for(self, first: str) -> SessionView:
        second = self.opponent_of(first)
        return SessionView(
            participant_a=first,
            participant_b=second,
            health_a=self.health_of(first),
            health_b=self.health_of(second),
            active_turn=self.active_turn,
            winner=self.winner,
            last_move_at=self.last_move_at,
        )
