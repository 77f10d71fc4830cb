import pytest

from duelarena.backend import engine
from duelarena.backend.errors import (
    GameOver,
    NoSession,
    NotYourTurn,
    SelfPlay,
    TimeoutNotReached,
    TurnTimeout,
    WrongPlayer,
)
from duelarena.backend.models import ROLE_A, ROLE_B, GameRules

RULES = GameRules()


def test_new_session_sets_defaults() -> None:
    session = engine.new_session("alice", "bob", now=7, rules=RULES)

    assert session.health_a == 100
    assert session.health_b == 100
    assert session.active_turn == "alice"
    assert session.winner is None
    assert session.last_move_at == 7
    assert session.created_at == 7


def test_new_session_rejects_self_play() -> None:
    with pytest.raises(SelfPlay):
        engine.new_session("alice", "alice", now=0, rules=RULES)


def test_attack_damages_defender_and_flips_turn() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)

    result = engine.resolve_move(session, caller="alice", role=ROLE_A, now=1, rules=RULES)

    assert result.session.health_a == 100
    assert result.session.health_b == 90
    assert result.session.active_turn == "bob"
    assert result.session.last_move_at == 1
    assert result.engine_events == [
        {"kind": "attack", "attacker": "alice", "defender": "bob", "damage": 10, "defenderHealth": 90, "at": 1}
    ]


def test_counter_attack_damages_initiator() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)
    after_attack = engine.resolve_move(session, caller="alice", role=ROLE_A, now=1, rules=RULES).session

    result = engine.resolve_move(after_attack, caller="bob", role=ROLE_B, now=2, rules=RULES)

    assert result.session.health_a == 90
    assert result.session.health_b == 90
    assert result.session.active_turn == "alice"


def test_move_out_of_turn_is_rejected() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)

    with pytest.raises(NotYourTurn):
        engine.resolve_move(session, caller="bob", role=ROLE_B, now=1, rules=RULES)


def test_move_with_wrong_face_is_rejected_even_on_own_turn() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)

    with pytest.raises(WrongPlayer):
        engine.resolve_move(session, caller="alice", role=ROLE_B, now=1, rules=RULES)


def test_move_without_session_is_rejected() -> None:
    with pytest.raises(NoSession):
        engine.resolve_move(None, caller="alice", role=ROLE_A, now=1, rules=RULES)


def test_knockout_sets_winner_and_freezes_turn() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)
    turns = []
    now = 0
    while session.winner is None:
        now += 1
        caller = session.active_turn
        role = ROLE_A if caller == "alice" else ROLE_B
        session = engine.resolve_move(session, caller=caller, role=role, now=now, rules=RULES).session
        turns.append(session.active_turn)

    assert now == 19
    assert session.winner == "alice"
    assert session.health_b == 0
    assert session.health_a == 10
    assert session.active_turn == "alice"
    assert turns[:-1] == ["bob", "alice"] * 9
    with pytest.raises(GameOver):
        engine.resolve_move(session, caller="bob", role=ROLE_B, now=now + 1, rules=RULES)


def test_health_is_clamped_at_zero() -> None:
    rules = GameRules(attack_damage=30)
    session = engine.new_session("alice", "bob", now=0, rules=rules)
    for now in range(1, 8):
        caller = session.active_turn
        role = ROLE_A if caller == "alice" else ROLE_B
        result = engine.resolve_move(session, caller=caller, role=role, now=now, rules=rules)
        session = result.session
        if session.winner is not None:
            break

    assert session.health_b == 0
    assert session.winner == "alice"
    assert result.engine_events[0]["damage"] == 10
    assert result.engine_events[-1] == {"kind": "session_over", "winner": "alice", "reason": "knockout", "at": 7}


def test_resolve_winner_checks_first_health_first() -> None:
    assert engine.resolve_winner(0, 0, "alice", "bob") == "bob"
    assert engine.resolve_winner(0, 50, "alice", "bob") == "bob"
    assert engine.resolve_winner(50, 0, "alice", "bob") == "alice"
    assert engine.resolve_winner(50, 50, "alice", "bob") is None


def test_turn_window_blocks_late_move_when_enabled() -> None:
    rules = GameRules(match_timeout_blocks=20, turn_timeout_blocks=5)
    session = engine.new_session("alice", "bob", now=0, rules=rules)

    with pytest.raises(TurnTimeout):
        engine.resolve_move(session, caller="alice", role=ROLE_A, now=5, rules=rules)
    result = engine.resolve_move(session, caller="alice", role=ROLE_A, now=4, rules=rules)
    assert result.session.health_b == 90


def test_turn_window_is_ignored_when_disabled() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)

    result = engine.resolve_move(session, caller="alice", role=ROLE_A, now=500, rules=RULES)

    assert result.session.last_move_at == 500


def test_forfeit_requires_match_timeout() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)

    with pytest.raises(TimeoutNotReached):
        engine.check_forfeit_eligible(session, caller="bob", now=19, rules=RULES)

    result = engine.resolve_forfeit(session, caller="bob", now=20, rules=RULES)
    assert result.session.winner == "bob"
    assert result.session.health_a == 100
    assert result.session.health_b == 100
    assert result.session.active_turn == "alice"
    assert result.engine_events == [{"kind": "session_over", "winner": "bob", "reason": "forfeit", "at": 20}]


def test_forfeit_rejects_turn_holder_and_finished_sessions() -> None:
    session = engine.new_session("alice", "bob", now=0, rules=RULES)

    with pytest.raises(NotYourTurn):
        engine.check_forfeit_eligible(session, caller="alice", now=100, rules=RULES)

    finished = engine.check_forfeit_eligible(session, caller="bob", now=100, rules=RULES)
    with pytest.raises(GameOver):
        engine.check_forfeit_eligible(finished, caller="alice", now=200, rules=RULES)
    with pytest.raises(NoSession):
        engine.check_forfeit_eligible(None, caller="bob", now=100, rules=RULES)


def test_earlier_height_never_rewinds_last_move() -> None:
    session = engine.new_session("alice", "bob", now=10, rules=RULES)

    result = engine.resolve_move(session, caller="alice", role=ROLE_A, now=3, rules=RULES)

    assert result.session.last_move_at == 10


def test_rules_reject_turn_window_not_narrower_than_match_timeout() -> None:
    with pytest.raises(ValueError):
        GameRules(match_timeout_blocks=20, turn_timeout_blocks=20)
    with pytest.raises(ValueError):
        GameRules(attack_damage=0)
