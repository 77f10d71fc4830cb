import sys
import types

import pytest

from duelarena.backend import migrate


class _RecordingCursor:
    def __init__(self) -> None:
        self.statements: list[str] = []

    def execute(self, sql: str) -> None:
        self.statements.append(sql)

    def __enter__(self) -> "_RecordingCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _RecordingConnection:
    def __init__(self) -> None:
        self.cursor_instance = _RecordingCursor()
        self.committed = False

    def cursor(self) -> _RecordingCursor:
        return self.cursor_instance

    def commit(self) -> None:
        self.committed = True

    def __enter__(self) -> "_RecordingConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


def _install_fake_psycopg(monkeypatch) -> tuple[_RecordingConnection, list[str]]:
    connection = _RecordingConnection()
    urls: list[str] = []

    def connect(url: str) -> _RecordingConnection:
        urls.append(url)
        return connection

    monkeypatch.setitem(sys.modules, "psycopg", types.SimpleNamespace(connect=connect))
    return connection, urls


def test_main_applies_schema_to_configured_database(monkeypatch) -> None:
    connection, urls = _install_fake_psycopg(monkeypatch)
    monkeypatch.setenv("DUELARENA_DATABASE_URL", "postgresql://local/duels")

    migrate.main()

    assert urls == ["postgresql://local/duels"]
    assert connection.committed is True
    [schema_sql] = connection.cursor_instance.statements
    assert "CREATE TABLE IF NOT EXISTS duel_sessions" in schema_sql
    assert "CREATE TABLE IF NOT EXISTS duel_events" in schema_sql


def test_apply_schema_runs_given_script(monkeypatch, tmp_path) -> None:
    connection, _ = _install_fake_psycopg(monkeypatch)
    schema_path = tmp_path / "schema.sql"
    schema_path.write_text("SELECT 1;", encoding="utf-8")

    migrate.apply_schema("postgresql://local", schema_path=schema_path)

    assert connection.cursor_instance.statements == ["SELECT 1;"]
    assert connection.committed is True


def test_main_requires_database_url(monkeypatch) -> None:
    connection, _ = _install_fake_psycopg(monkeypatch)
    monkeypatch.delenv("DUELARENA_DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DUELARENA_DATABASE_URL"):
        migrate.main()

    assert connection.cursor_instance.statements == []
