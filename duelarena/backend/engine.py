"""Pure rules for duel sessions: turn legality, damage, victory and forfeiture.

Nothing in this module reads a clock or touches storage. Every function takes
the full current record plus the caller and the externally supplied block
height, and either returns the next record or raises a ``DuelError``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from duelarena.backend.errors import (
    GameOver,
    NoSession,
    NotYourTurn,
    SelfPlay,
    TimeoutNotReached,
    TurnTimeout,
    WrongPlayer,
)
from duelarena.backend.keys import serialize_identity
from duelarena.backend.models import GameRules, Session


@dataclass(frozen=True)
class MoveResult:
    session: Session
    engine_events: list[dict[str, Any]]


def new_session(initiator: str, opponent: str, now: int, rules: GameRules) -> Session:
    serialize_identity(initiator)
    serialize_identity(opponent)
    if initiator == opponent:
        raise SelfPlay()
    return Session(
        participant_a=initiator,
        participant_b=opponent,
        health_a=rules.starting_health,
        health_b=rules.starting_health,
        active_turn=initiator,
        last_move_at=now,
        created_at=now,
    )


def created_event(session: Session) -> dict[str, Any]:
    return {
        "kind": "session_created",
        "participantA": session.participant_a,
        "participantB": session.participant_b,
        "health": session.health_a,
        "at": session.created_at,
    }


def validate_ongoing(session: Session) -> None:
    if session.winner is not None:
        raise GameOver(f"Session already won by {session.winner}")


def validate_turn(session: Session, caller: str) -> None:
    if session.active_turn != caller:
        raise NotYourTurn()


def validate_role(session: Session, caller: str, role: str) -> None:
    actual = session.role_of(caller)
    if actual is None:
        raise NotYourTurn(f"{caller} is not part of this session")
    if actual != role:
        raise WrongPlayer(f"{caller} plays side {actual} in this session, not side {role}")


def validate_turn_window(session: Session, now: int, rules: GameRules) -> None:
    if rules.turn_timeout_blocks is None:
        return
    if now - session.last_move_at >= rules.turn_timeout_blocks:
        raise TurnTimeout()


def resolve_winner(health_a: int, health_b: int, participant_a: str, participant_b: str) -> str | None:
    """Return the winner for the given health values.

    ``health_a`` is checked first, so a double knockout goes to ``participant_b``.
    """
    if health_a == 0:
        return participant_b
    if health_b == 0:
        return participant_a
    return None


def apply_damage(session: Session, attacker: str, now: int, rules: GameRules) -> MoveResult:
    defender = session.opponent_of(attacker)
    defender_health = max(0, session.health_of(defender) - rules.attack_damage)
    if defender == session.participant_a:
        health_a, health_b = defender_health, session.health_b
    else:
        health_a, health_b = session.health_a, defender_health

    winner = resolve_winner(health_a, health_b, session.participant_a, session.participant_b)
    moved_at = max(session.last_move_at, now)
    next_session = replace(
        session,
        health_a=health_a,
        health_b=health_b,
        winner=winner,
        active_turn=session.active_turn if winner is not None else defender,
        last_move_at=moved_at,
    )

    events: list[dict[str, Any]] = [
        {
            "kind": "attack",
            "attacker": attacker,
            "defender": defender,
            "damage": session.health_of(defender) - defender_health,
            "defenderHealth": defender_health,
            "at": moved_at,
        }
    ]
    if winner is not None:
        events.append({"kind": "session_over", "winner": winner, "reason": "knockout", "at": moved_at})
    return MoveResult(session=next_session, engine_events=events)


def resolve_move(session: Session | None, caller: str, role: str, now: int, rules: GameRules) -> MoveResult:
    """Validate and apply one attack or counter-attack by ``caller``."""
    if session is None:
        raise NoSession()
    validate_ongoing(session)
    validate_role(session, caller, role)
    validate_turn(session, caller)
    validate_turn_window(session, now, rules)
    return apply_damage(session, attacker=caller, now=now, rules=rules)


def check_forfeit_eligible(session: Session | None, caller: str, now: int, rules: GameRules) -> Session:
    if session is None:
        raise NoSession()
    validate_ongoing(session)
    if session.role_of(caller) is None:
        raise NotYourTurn(f"{caller} is not part of this session")
    if caller == session.active_turn:
        raise NotYourTurn("The turn-holder cannot claim a forfeit")
    if now - session.last_move_at < rules.match_timeout_blocks:
        raise TimeoutNotReached(
            f"Forfeit opens at block {session.last_move_at + rules.match_timeout_blocks}, now {now}"
        )
    return replace(session, winner=caller, last_move_at=max(session.last_move_at, now))


def resolve_forfeit(session: Session | None, caller: str, now: int, rules: GameRules) -> MoveResult:
    next_session = check_forfeit_eligible(session, caller=caller, now=now, rules=rules)
    return MoveResult(
        session=next_session,
        engine_events=[
            {
                "kind": "session_over",
                "winner": caller,
                "reason": "forfeit",
                "at": next_session.last_move_at,
            }
        ],
    )
