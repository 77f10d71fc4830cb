"""Create the duel tables in the configured PostgreSQL database."""

from __future__ import annotations

import logging
from pathlib import Path

from duelarena.backend.config import load_settings

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")


def apply_schema(database_url: str, schema_path: Path = SCHEMA_PATH) -> None:
    """Run the idempotent schema script in a single transaction."""
    import psycopg

    schema_sql = schema_path.read_text(encoding="utf-8")
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        conn.commit()
    logger.info("Applied %s", schema_path.name)


def main() -> None:
    settings = load_settings()
    if not settings.database_url:
        raise RuntimeError("DUELARENA_DATABASE_URL is required for migration")
    apply_schema(settings.database_url)


if __name__ == "__main__":
    main()
