"""
Tests for the operational scripts.
"""

import json
import os

import pytest
from sqlalchemy import create_engine

from scripts import records, verify_database
from tests.conftest import build_metadata


@pytest.fixture
def database(monkeypatch, tmp_path):
    """SQLite file database with the test tables; returns the .env path."""
    monkeypatch.setattr(os, "environ", dict(os.environ))
    os.environ.pop("DATABASE_URL", None)

    db_path = tmp_path / "records.db"
    engine = create_engine(f"sqlite:///{db_path}")
    build_metadata().create_all(engine)
    engine.dispose()

    env_file = tmp_path / ".env"
    env_file.write_text(f"DATABASE_URL=sqlite:///{db_path}\n")
    return str(env_file)


def run(capsys, env_file, *argv):
    code = records.main(["--env-file", env_file, *argv])
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


# ============================================================
# RECORDS CLI TESTS
# ============================================================

class TestRecordsCli:
    """save / show / list / delete."""

    def test_parse_value(self):
        assert records.parse_value("7") == 7
        assert records.parse_value("null") is None
        assert records.parse_value("Ann") == "Ann"
        assert records.parse_value('"7"') == "7"

    def test_parse_assignments(self):
        assert records.parse_assignments(["a=1", "b=x=y"]) == {"a": 1, "b": "x=y"}
        with pytest.raises(ValueError):
            records.parse_assignments(["broken"])

    def test_save_show_list_delete(self, capsys, database):
        code, saved = run(capsys, database, "save", "users", "name=Ann", "login=ann")
        assert code == 0
        assert saved == {"success": True, "action": "insert", "key": 1}

        code, shown = run(capsys, database, "show", "users", "1")
        assert code == 0
        assert shown["login"] == "ann"

        code, listed = run(capsys, database, "list", "users", "--limit", "5")
        assert code == 0
        assert [row["name"] for row in listed] == ["Ann"]

        code, deleted = run(capsys, database, "delete", "users", "1")
        assert code == 0
        assert deleted == {"deleted": True}

        code, _ = run(capsys, database, "show", "users", "1")
        assert code == 1

    def test_show_by_name(self, capsys, database):
        run(capsys, database, "save", "users", "name=Bob", "login=bob")
        code, shown = run(capsys, database, "--name-column", "login", "show", "users", "bob")
        assert code == 0
        assert shown["id"] == 1

    def test_save_updates_existing_key(self, capsys, database):
        run(capsys, database, "save", "users", "name=Ann")
        code, saved = run(capsys, database, "save", "users", "id=1", "name=Anna")
        assert code == 0
        assert saved["action"] == "update"

    def test_delete_by_uuid_key(self, capsys, database):
        tag = "a3bb189e-8bf9-3888-9912-ace4e6543002"
        run(capsys, database, "--key-column", "uuid", "save", "tags", f"uuid={tag}", "label=red")

        code, deleted = run(capsys, database, "--key-column", "uuid", "delete", "tags", tag)
        assert code == 0
        assert deleted == {"deleted": True}

        code, listed = run(capsys, database, "list", "tags")
        assert code == 0
        assert listed == []

    def test_duplicate_returns_storage_failure(self, capsys, database):
        run(capsys, database, "save", "users", "login=ann")
        code, _ = run(capsys, database, "save", "users", "login=ann")
        assert code == 1

    def test_unknown_table_is_configuration_error(self, capsys, database):
        code, _ = run(capsys, database, "list", "missing")
        assert code == 2

    def test_missing_configuration(self, capsys, monkeypatch, tmp_path):
        monkeypatch.setattr(os, "environ", dict(os.environ))
        for name in ("DATABASE_URL", "DB_TYPE"):
            os.environ.pop(name, None)
        empty = tmp_path / "empty.env"
        empty.write_text("")

        assert records.main(["--env-file", str(empty), "list", "users"]) == 2


# ============================================================
# VERIFY DATABASE TESTS
# ============================================================

class TestVerifyDatabase:
    """verify_database exit codes."""

    def test_success(self, capsys, database):
        assert verify_database.main(["--env-file", database]) == 0
        assert "users" in capsys.readouterr().out

    def test_configuration_error(self, monkeypatch, tmp_path):
        monkeypatch.setattr(os, "environ", dict(os.environ))
        for name in ("DATABASE_URL", "DB_TYPE"):
            os.environ.pop(name, None)
        empty = tmp_path / "empty.env"
        empty.write_text("")

        assert verify_database.main(["--env-file", str(empty)]) == 2
