"""
Tests for the SQLAlchemy gateway.

============================================================
PURPOSE
============================================================
Runs the DatabaseGateway contract against in-memory SQLite:
1. Reads and condition handling
2. Writes and assigned keys
3. Schema errors before SQL
4. Storage error translation
5. Transactions

============================================================
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from core.exceptions import (
    DuplicateRecordError,
    IntegrityConstraintError,
    InvalidColumnError,
    QueryError,
    StorageConnectionError,
    TransactionError,
    UnknownTableError,
)
from database import SqlAlchemyGateway, transaction_scope


@pytest.fixture
def seeded(gateway):
    """Gateway with three users."""
    gateway.insert("users", {"name": "Ann", "login": "ann", "email": "ann@example.com"})
    gateway.insert("users", {"name": "Bob", "login": "bob", "email": None})
    gateway.insert("users", {"name": "Cid", "login": "cid", "email": "cid@example.com"})
    return gateway


# ============================================================
# READ TESTS
# ============================================================

class TestReads:
    """fetch_one / fetch_all / count."""

    def test_fetch_one_returns_dict(self, seeded):
        row = seeded.fetch_one("users", {"login": "bob"})
        assert isinstance(row, dict)
        assert row["id"] == 2
        assert row["name"] == "Bob"

    def test_fetch_one_not_found(self, seeded):
        assert seeded.fetch_one("users", {"id": 99}) is None

    def test_none_condition_matches_null(self, seeded):
        rows = seeded.fetch_all("users", {"email": None})
        assert [row["login"] for row in rows] == ["bob"]

    def test_order_limit_offset(self, seeded):
        rows = seeded.fetch_all("users", order_by="id DESC", limit=2, offset=1)
        assert [row["id"] for row in rows] == [2, 1]

    def test_order_by_mapping(self, seeded):
        rows = seeded.fetch_all("users", order_by={"name": "desc"})
        assert [row["name"] for row in rows] == ["Cid", "Bob", "Ann"]

    def test_selected_columns(self, seeded):
        rows = seeded.fetch_all("users", {"id": 1}, columns=["id", "login"])
        assert rows == [{"id": 1, "login": "ann"}]

    def test_count(self, seeded):
        assert seeded.count("users") == 3
        assert seeded.count("users", {"login": "ann"}) == 1
        assert seeded.count("users", {"login": "nobody"}) == 0


# ============================================================
# WRITE TESTS
# ============================================================

class TestWrites:
    """insert / update / delete."""

    def test_insert_returns_autoincrement_key(self, gateway):
        assert gateway.insert("users", {"name": "Ann"}) == 1
        assert gateway.insert("users", {"name": "Bob"}) == 2

    def test_insert_returns_given_string_key(self, gateway):
        key = "0f8fad5b-d9cb-469f-a165-70867728950e"
        assert gateway.insert("tags", {"uuid": key, "label": "x"}) == key

    def test_update_returns_rowcount(self, seeded):
        assert seeded.update("users", {"name": "Anna"}, {"login": "ann"}) == 1
        assert seeded.fetch_one("users", {"login": "ann"})["name"] == "Anna"
        assert seeded.update("users", {"name": "X"}, {"id": 99}) == 0

    def test_delete_returns_rowcount(self, seeded):
        assert seeded.delete("users", {"id": 1}) == 1
        assert seeded.delete("users", {"id": 1}) == 0
        assert seeded.count("users") == 2


# ============================================================
# SCHEMA ERROR TESTS
# ============================================================

class TestSchemaErrors:
    """Unknown tables and columns are rejected before SQL is sent."""

    def test_unknown_table(self, gateway):
        with pytest.raises(UnknownTableError):
            gateway.fetch_one("missing", {"id": 1})

    @pytest.mark.parametrize(
        "call",
        [
            lambda g: g.fetch_all("users", {"nickname": "x"}),
            lambda g: g.fetch_all("users", columns=["nickname"]),
            lambda g: g.fetch_all("users", order_by="nickname"),
            lambda g: g.insert("users", {"nickname": "x"}),
            lambda g: g.update("users", {"nickname": "x"}, {"id": 1}),
            lambda g: g.delete("users", {"nickname": "x"}),
        ],
    )
    def test_unknown_column(self, gateway, call):
        with pytest.raises(InvalidColumnError) as exc_info:
            call(gateway)
        assert isinstance(exc_info.value, QueryError)
        assert exc_info.value.column == "nickname"

    def test_columns(self, gateway):
        assert gateway.columns("tags") == ["uuid", "label"]

    def test_forget_drops_cached_table(self, gateway):
        gateway.table("users")
        gateway.forget("users")
        assert "users" not in gateway._tables
        gateway.forget()
        assert gateway._tables == {}


# ============================================================
# ERROR TRANSLATION TESTS
# ============================================================

class TestErrorTranslation:
    """SQLAlchemy errors become storage errors."""

    def test_unique_violation_is_duplicate(self, seeded):
        with pytest.raises(DuplicateRecordError) as exc_info:
            seeded.insert("users", {"name": "Other", "login": "ann"})
        assert exc_info.value.operation == "insert"
        assert exc_info.value.table == "users"

    def test_primary_key_violation_is_duplicate(self, gateway):
        gateway.insert("tags", {"uuid": "a", "label": "x"})
        with pytest.raises(DuplicateRecordError):
            gateway.insert("tags", {"uuid": "a", "label": "y"})

    def _failing_gateway(self, error):
        engine = MagicMock()
        engine.begin.return_value.__enter__.return_value.execute.side_effect = error
        gateway = SqlAlchemyGateway(engine)
        gateway._tables["users"] = MagicMock()
        gateway._column = MagicMock()
        return gateway

    def test_operational_error(self):
        gateway = self._failing_gateway(OperationalError("SELECT", {}, Exception("gone away")))
        with pytest.raises(StorageConnectionError):
            gateway._execute("stmt", "fetch", "users", list)

    def test_other_integrity_error(self):
        gateway = self._failing_gateway(IntegrityError("INSERT", {}, Exception("NOT NULL failed")))
        with pytest.raises(IntegrityConstraintError) as exc_info:
            gateway._execute("stmt", "insert", "users", list)
        assert not isinstance(exc_info.value, DuplicateRecordError)

    def test_other_errors_are_query_errors(self):
        gateway = self._failing_gateway(ProgrammingError("SELECT", {}, Exception("syntax")))
        with pytest.raises(QueryError) as exc_info:
            gateway._execute("stmt", "fetch", "users", list)
        assert exc_info.value.message.startswith("ProgrammingError")


# ============================================================
# TRANSACTION TESTS
# ============================================================

class TestTransactions:
    """begin_transaction / commit / rollback."""

    def test_commit_keeps_rows(self, gateway):
        gateway.begin_transaction()
        assert gateway.in_transaction
        gateway.insert("users", {"name": "Ann"})
        gateway.commit()

        assert not gateway.in_transaction
        assert gateway.count("users") == 1

    def test_rollback_discards_rows(self, gateway):
        gateway.table("users")
        gateway.begin_transaction()
        gateway.insert("users", {"name": "Ann"})
        assert gateway.count("users") == 1
        gateway.rollback()

        assert gateway.count("users") == 0

    def test_double_begin(self, gateway):
        gateway.begin_transaction()
        try:
            with pytest.raises(TransactionError):
                gateway.begin_transaction()
        finally:
            gateway.rollback()

    def test_commit_without_transaction(self, gateway):
        with pytest.raises(TransactionError):
            gateway.commit()
        with pytest.raises(TransactionError):
            gateway.rollback()

    def test_transaction_scope_commits(self, gateway):
        with transaction_scope(gateway):
            gateway.insert("users", {"name": "Ann"})
        assert gateway.count("users") == 1

    def test_transaction_scope_rolls_back(self, gateway):
        gateway.table("users")
        with pytest.raises(RuntimeError):
            with transaction_scope(gateway):
                gateway.insert("users", {"name": "Ann"})
                raise RuntimeError("abort")

        assert not gateway.in_transaction
        assert gateway.count("users") == 0
