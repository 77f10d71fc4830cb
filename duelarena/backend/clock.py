"""Block-height sources handed to the duel service by its caller environment."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]


class BlockClock:
    """Monotonic block height derived from elapsed wall time."""

    def __init__(
        self,
        block_seconds: float,
        start_height: int = 0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if block_seconds <= 0:
            raise ValueError("block_seconds must be positive")
        self._block_seconds = block_seconds
        self._start_height = start_height
        self._timer = timer
        self._origin = timer()

    def __call__(self) -> int:
        elapsed = self._timer() - self._origin
        return self._start_height + int(elapsed // self._block_seconds)
