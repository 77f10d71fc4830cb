"""Duel-layer exceptions."""

from __future__ import annotations


class DuelError(Exception):
    """Base class for rejected duel operations.

    Every subclass is a caller-correctable precondition failure: the call made
    no state change and may be retried with corrected arguments or later.
    """

    code = "duel_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or (self.__doc__ or self.code).strip()
        super().__init__(self.message)


class NoSession(DuelError):
    """No session exists for this pair."""

    code = "no_session"


class SessionAlreadyExists(DuelError):
    """A session already exists for this pair."""

    code = "session_already_exists"


class SelfPlay(DuelError):
    """A participant cannot duel themselves."""

    code = "self_play"


class NotYourTurn(DuelError):
    """The caller is not allowed to act right now."""

    code = "not_your_turn"


class GameOver(DuelError):
    """The session already has a winner."""

    code = "game_over"


class TimeoutNotReached(DuelError):
    """The match timeout has not elapsed yet."""

    code = "timeout_not_reached"


class TurnTimeout(DuelError):
    """The turn window elapsed before the move was made."""

    code = "turn_timeout"


class WrongPlayer(DuelError):
    """The caller used the move reserved for the other side of the session."""

    code = "wrong_player"


class InvalidOpponent(DuelError):
    """The opponent identity is not usable."""

    code = "invalid_opponent"
