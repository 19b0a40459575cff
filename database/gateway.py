"""
Database Layer - Gateway.

============================================================
RESPONSIBILITY
============================================================
Defines the capability interface records use to reach storage,
and its SQLAlchemy implementation.

- fetch_one / fetch_all / count for reads
- insert / update / delete for writes
- begin_transaction / commit / rollback pass-through

============================================================
ERROR CONTRACT
============================================================
- Unknown tables raise UnknownTableError; unknown columns
  raise InvalidColumnError (a QueryError); both before any
  SQL is sent
- Every SQLAlchemyError is translated into a StorageError
  subclass so callers never depend on driver exceptions

============================================================
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Protocol, Sequence, Union

from sqlalchemy import MetaData, Table, delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import (
    IntegrityError as SQLAlchemyIntegrityError,
    NoSuchTableError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.sql import ColumnElement

from core.exceptions import (
    DuplicateRecordError,
    IntegrityConstraintError,
    InvalidColumnError,
    QueryError,
    StorageConnectionError,
    StorageError,
    TransactionError,
    UnknownTableError,
    wrap_exception,
)

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Conditions = Mapping[str, Any]
OrderBy = Union[str, Sequence[str], Mapping[str, str], None]


# =============================================================
# GATEWAY CONTRACT
# =============================================================

class DatabaseGateway(Protocol):
    """
    Capabilities required from a storage backend.

    Any object providing these methods can back a Record.
    Implementations raise StorageError subclasses for runtime
    failures, including InvalidColumnError for columns the table
    lacks, and UnknownTableError for unknown tables.
    """

    def fetch_one(self, table: str, conditions: Conditions) -> Optional[Row]:
        ...

    def fetch_all(
        self,
        table: str,
        conditions: Optional[Conditions] = None,
        order_by: OrderBy = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        ...

    def count(self, table: str, conditions: Optional[Conditions] = None) -> int:
        ...

    def insert(self, table: str, fields: Mapping[str, Any]) -> Any:
        ...

    def update(self, table: str, fields: Mapping[str, Any], conditions: Conditions) -> int:
        ...

    def delete(self, table: str, conditions: Conditions) -> int:
        ...

    def begin_transaction(self) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


# =============================================================
# SQLALCHEMY IMPLEMENTATION
# =============================================================

class SqlAlchemyGateway:
    """
    DatabaseGateway backed by SQLAlchemy Core.

    Tables are reflected on first use and cached for the lifetime
    of the gateway. Outside an explicit transaction each call runs
    in its own engine.begin() block; between begin_transaction()
    and commit()/rollback() all calls share one connection.
    """

    def __init__(self, engine: Engine, schema: Optional[str] = None) -> None:
        """
        Initialize the gateway.

        Args:
            engine: SQLAlchemy engine (owned by the caller)
            schema: Optional database schema to reflect tables from
        """
        self._engine = engine
        self._metadata = MetaData(schema=schema)
        self._tables: Dict[str, Table] = {}
        self._connection: Optional[Connection] = None
        self._transaction = None

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    # =========================================================
    # SCHEMA RESOLUTION
    # =========================================================

    def table(self, name: str) -> Table:
        """
        Return the reflected table.

        Raises:
            UnknownTableError: If the table does not exist
            StorageConnectionError: If reflection cannot connect
        """
        cached = self._tables.get(name)
        if cached is not None:
            return cached

        # Reflect on the open connection so a pooled checkout cannot reset it
        bind = self._connection if self._connection is not None else self._engine
        try:
            reflected = Table(name, self._metadata, autoload_with=bind)
        except NoSuchTableError as e:
            raise UnknownTableError(name, cause=e) from e
        except SQLAlchemyError as e:
            self._raise_storage_error(e, "reflect", name)

        self._tables[name] = reflected
        logger.debug(f"Reflected table {name}: columns={list(reflected.columns.keys())}")
        return reflected

    def columns(self, name: str) -> List[str]:
        """Column names of a table."""
        return list(self.table(name).columns.keys())

    def forget(self, name: Optional[str] = None) -> None:
        """Drop cached reflection for one table, or all of them."""
        if name is None:
            self._tables.clear()
            self._metadata.clear()
        elif name in self._tables:
            self._metadata.remove(self._tables.pop(name))

    def _column(self, table: Table, column: str):
        try:
            return table.columns[column]
        except KeyError:
            raise InvalidColumnError(table.name, column) from None

    def _where(self, table: Table, conditions: Optional[Conditions]) -> List[ColumnElement]:
        clauses = []
        for column, value in (conditions or {}).items():
            col = self._column(table, column)
            clauses.append(col.is_(None) if value is None else col == value)
        return clauses

    def _order(self, table: Table, order_by: OrderBy) -> List[ColumnElement]:
        if not order_by:
            return []
        if isinstance(order_by, str):
            order_by = [order_by]
        if isinstance(order_by, Mapping):
            items = order_by.items()
        else:
            items = [self._split_order(item) for item in order_by]

        clauses = []
        for column, direction in items:
            col = self._column(table, column)
            clauses.append(col.desc() if str(direction).upper() == "DESC" else col.asc())
        return clauses

    @staticmethod
    def _split_order(item: str):
        parts = item.split()
        return parts[0], parts[1] if len(parts) > 1 else "ASC"

    def _values(self, table: Table, fields: Mapping[str, Any]) -> Dict[str, Any]:
        return {self._column(table, column).key: value for column, value in fields.items()}

    # =========================================================
    # EXECUTION
    # =========================================================

    def _execute(
        self,
        stmt: Any,
        operation: str,
        table: str,
        consume: Callable[[Result], Any],
    ) -> Any:
        """
        Run a statement inside the open transaction or its own.

        consume() reads what the caller needs from the result while
        the connection is still checked out.
        """
        try:
            if self._connection is not None:
                return consume(self._connection.execute(stmt))
            with self._engine.begin() as conn:
                return consume(conn.execute(stmt))
        except SQLAlchemyError as e:
            self._raise_storage_error(e, operation, table)

    def _raise_storage_error(self, error: SQLAlchemyError, operation: str, table: str) -> None:
        """
        Translate SQLAlchemy errors into storage exceptions.

        Raises:
            StorageError: Always raises the matching subclass
        """
        logger.error(f"Database error in {operation} on {table}: {error}")

        if isinstance(error, OperationalError):
            raise StorageConnectionError(
                str(error.orig or error), operation=operation, table=table, cause=error
            ) from error

        if isinstance(error, SQLAlchemyIntegrityError):
            error_str = str(error).lower()
            if "duplicate" in error_str or "unique" in error_str:
                raise DuplicateRecordError(
                    str(error.orig or error), operation=operation, table=table, cause=error
                ) from error
            raise IntegrityConstraintError(
                str(error.orig or error), operation=operation, table=table, cause=error
            ) from error

        raise wrap_exception(error, QueryError, operation=operation, table=table) from error

    # =========================================================
    # READS
    # =========================================================

    def fetch_one(self, table: str, conditions: Conditions) -> Optional[Row]:
        """First row matching conditions, or None."""
        rows = self.fetch_all(table, conditions, limit=1)
        return rows[0] if rows else None

    def fetch_all(
        self,
        table: str,
        conditions: Optional[Conditions] = None,
        order_by: OrderBy = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """All rows matching conditions as plain dicts."""
        tbl = self.table(table)
        selected = [self._column(tbl, c) for c in columns] if columns else [tbl]

        stmt = select(*selected).where(*self._where(tbl, conditions))
        stmt = stmt.order_by(*self._order(tbl, order_by))
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)

        return self._execute(
            stmt, "fetch", table, lambda result: [dict(row._mapping) for row in result]
        )

    def count(self, table: str, conditions: Optional[Conditions] = None) -> int:
        """Number of rows matching conditions."""
        tbl = self.table(table)
        stmt = select(func.count()).select_from(tbl).where(*self._where(tbl, conditions))
        return int(self._execute(stmt, "count", table, lambda result: result.scalar()) or 0)

    # =========================================================
    # WRITES
    # =========================================================

    def insert(self, table: str, fields: Mapping[str, Any]) -> Any:
        """
        Insert one row.

        Returns:
            The assigned primary key value, or None when the table
            has no single-column primary key and no value was given
        """
        tbl = self.table(table)
        values = self._values(tbl, fields)
        inserted = self._execute(
            insert(tbl).values(values),
            "insert",
            table,
            lambda result: result.inserted_primary_key,
        )

        key_columns = list(tbl.primary_key.columns)
        if len(key_columns) != 1:
            return None

        key = inserted[0] if inserted else None
        if key is None:
            key = values.get(key_columns[0].key)
        logger.debug(f"Inserted into {table}: key={key}")
        return key

    def update(self, table: str, fields: Mapping[str, Any], conditions: Conditions) -> int:
        """Update matching rows, returning the number of rows affected."""
        tbl = self.table(table)
        stmt = update(tbl).where(*self._where(tbl, conditions)).values(self._values(tbl, fields))
        return self._execute(stmt, "update", table, lambda result: result.rowcount)

    def delete(self, table: str, conditions: Conditions) -> int:
        """Delete matching rows, returning the number of rows affected."""
        tbl = self.table(table)
        stmt = delete(tbl).where(*self._where(tbl, conditions))
        return self._execute(stmt, "delete", table, lambda result: result.rowcount)

    # =========================================================
    # TRANSACTIONS
    # =========================================================

    def begin_transaction(self) -> None:
        """
        Open a transaction shared by all following calls.

        Raises:
            TransactionError: If a transaction is already open or begin fails
        """
        if self._transaction is not None:
            raise TransactionError("Transaction already in progress", operation="begin")
        try:
            self._connection = self._engine.connect()
            self._transaction = self._connection.begin()
        except SQLAlchemyError as e:
            self._close()
            raise TransactionError(
                f"Failed to begin transaction: {e}", operation="begin", cause=e
            ) from e
        logger.debug("Transaction started")

    def commit(self) -> None:
        """Commit the open transaction."""
        self._finish("commit")

    def rollback(self) -> None:
        """Roll back the open transaction."""
        self._finish("rollback")

    def _finish(self, operation: str) -> None:
        if self._transaction is None:
            raise TransactionError(f"No transaction to {operation}", operation=operation)
        try:
            getattr(self._transaction, operation)()
        except SQLAlchemyError as e:
            raise TransactionError(
                f"Failed to {operation} transaction: {e}", operation=operation, cause=e
            ) from e
        finally:
            self._close()
        logger.debug(f"Transaction {operation} complete")

    def _close(self) -> None:
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._transaction = None


# =============================================================
# TRANSACTION SCOPE
# =============================================================

@contextmanager
def transaction_scope(gateway: DatabaseGateway) -> Generator[DatabaseGateway, None, None]:
    """
    Context manager for a gateway transaction.

    Usage:
        with transaction_scope(gateway):
            record.save_to_sql()
            other.delete_from_sql()

    On exception:
        - Rolls back
        - Re-raises the exception
    """
    gateway.begin_transaction()
    try:
        yield gateway
    except Exception as e:
        logger.error(f"Transaction failed, rolling back: {e}")
        gateway.rollback()
        raise
    gateway.commit()


__all__ = [
    "DatabaseGateway",
    "SqlAlchemyGateway",
    "transaction_scope",
    "Row",
    "Conditions",
    "OrderBy",
]
