"""Backend package for duel sessions."""

from .config import DuelSettings, load_settings
from .keys import canonical_pair, pair_key
from .models import GameRules, Session, SessionView
from .service import DuelService
from .store import InMemorySessionStore, PostgresSessionStore, SessionStore, create_store

__all__ = [
    "canonical_pair",
    "create_store",
    "DuelService",
    "DuelSettings",
    "GameRules",
    "InMemorySessionStore",
    "load_settings",
    "pair_key",
    "PostgresSessionStore",
    "Session",
    "SessionStore",
    "SessionView",
]
