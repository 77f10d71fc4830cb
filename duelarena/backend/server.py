"""Run the duel API with uvicorn using environment settings."""

from __future__ import annotations

import logging

from duelarena.backend.api import create_app
from duelarena.backend.clock import BlockClock
from duelarena.backend.config import load_settings
from duelarena.backend.store import create_store

logger = logging.getLogger(__name__)


def build_app():
    settings = load_settings()
    app = create_app(
        store=create_store(settings.database_url),
        clock=BlockClock(block_seconds=settings.block_seconds),
        rules=settings.rules(),
    )
    return app, settings


def main() -> None:
    import uvicorn

    app, settings = build_app()
    logging.basicConfig(level=settings.log_level)
    logger.info("Starting duel API on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
