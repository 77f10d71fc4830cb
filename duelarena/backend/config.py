"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from duelarena.backend.models import GameRules


@dataclass(frozen=True)
class DuelSettings:
    database_url: str | None
    host: str
    port: int
    starting_health: int
    attack_damage: int
    match_timeout_blocks: int
    turn_timeout_blocks: int | None
    block_seconds: float
    log_level: str

    def rules(self) -> GameRules:
        return GameRules(
            starting_health=self.starting_health,
            attack_damage=self.attack_damage,
            match_timeout_blocks=self.match_timeout_blocks,
            turn_timeout_blocks=self.turn_timeout_blocks,
        )


def _optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    if raw == "":
        return None
    return int(raw)


def load_settings() -> DuelSettings:
    block_seconds = float(os.getenv("DUELARENA_BLOCK_SECONDS", "12.0"))
    if block_seconds <= 0:
        raise ValueError("DUELARENA_BLOCK_SECONDS must be positive")
    return DuelSettings(
        database_url=os.getenv("DUELARENA_DATABASE_URL"),
        host=os.getenv("DUELARENA_HOST", "127.0.0.1"),
        port=int(os.getenv("DUELARENA_PORT", "8000")),
        starting_health=int(os.getenv("DUELARENA_STARTING_HEALTH", "100")),
        attack_damage=int(os.getenv("DUELARENA_ATTACK_DAMAGE", "10")),
        match_timeout_blocks=int(os.getenv("DUELARENA_MATCH_TIMEOUT_BLOCKS", "20")),
        turn_timeout_blocks=_optional_int("DUELARENA_TURN_TIMEOUT_BLOCKS"),
        block_seconds=block_seconds,
        log_level=os.getenv("DUELARENA_LOG_LEVEL", "INFO").upper(),
    )
