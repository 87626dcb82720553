import sqlite3
from pathlib import Path

import pytest

from site_analytics.adapters.sqlite.migrator import SQLiteMigrator

MIGRATIONS_DIR = str(Path(__file__).resolve().parent.parent.parent / "migrations")


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


def _table_exists(db_path: str, name: str) -> bool:
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
        )
        return cursor.fetchone() is not None
    finally:
        conn.close()


def test_migrator_creates_migration_table(temp_db_path):
    SQLiteMigrator(temp_db_path, MIGRATIONS_DIR).run_migrations()
    assert _table_exists(temp_db_path, "_migrations")


def test_migrator_applies_schema(temp_db_path):
    applied = SQLiteMigrator(temp_db_path, MIGRATIONS_DIR).run_migrations()

    assert applied == ["0001_page_analytics.sql", "0002_services.sql"]
    assert _table_exists(temp_db_path, "page_analytics")
    assert _table_exists(temp_db_path, "services")


def test_migrator_is_idempotent(temp_db_path):
    migrator = SQLiteMigrator(temp_db_path, MIGRATIONS_DIR)

    migrator.run_migrations()
    assert migrator.run_migrations() == []
    assert migrator.pending() == []

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute("SELECT count(*) FROM _migrations")
    assert cursor.fetchone()[0] == 2
    conn.close()


def test_down_section_is_not_applied(temp_db_path, tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_t.sql").write_text(
        "-- Up\nCREATE TABLE t (id TEXT);\n\n-- Down\nDROP TABLE t;\n"
    )

    SQLiteMigrator(temp_db_path, str(migrations)).run_migrations()

    assert _table_exists(temp_db_path, "t")


def test_failed_migration_raises(temp_db_path, tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_bad.sql").write_text("CREATE TABLE (;\n")

    migrator = SQLiteMigrator(temp_db_path, str(migrations))
    with pytest.raises(RuntimeError, match="0001_bad.sql"):
        migrator.run_migrations()
    assert migrator.pending() == ["0001_bad.sql"]
