"""
Database Layer - Fluent Query.

============================================================
RESPONSIBILITY
============================================================
Keeps the legacy fluent query-builder API working on top of
the DatabaseGateway.

    query.from_("users").where("active", True).order_by("name").fetch_all()
    query.insert_into("users", {"name": "Ann"}).execute()

The builder only collects state; every terminal call is a
single gateway call. Storage errors are reported to the owner
and degrade to an empty result, as the legacy builder did.

============================================================
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from core.constants import DEFAULT_KEY_COLUMN
from core.exceptions import StorageError

logger = logging.getLogger(__name__)

# reporter(message, type) receives storage errors, e.g. Record.add_status_message
Reporter = Callable[[str, str], Any]

SELECT = "select"
INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


class FluentQuery:
    """FluentPDO-style query builder over a DatabaseGateway."""

    def __init__(
        self,
        gateway: Any,
        key_column: str = DEFAULT_KEY_COLUMN,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self._gateway = gateway
        self._key_column = key_column or DEFAULT_KEY_COLUMN
        self._reporter = reporter
        self._reset()

    def _reset(self) -> None:
        self.table = ""
        self.query_type = SELECT
        self.conditions: Dict[str, Any] = {}
        self.order: Dict[str, str] = {}
        self.columns: Optional[List[str]] = None
        self.values: Dict[str, Any] = {}
        self.max_results: Optional[int] = None
        self.first_result: Optional[int] = None

    def _start(self, table: str, query_type: str, primary_key: Any = None) -> "FluentQuery":
        self._reset()
        self.table = table
        self.query_type = query_type
        if primary_key is not None:
            self.where(self._key_column, primary_key)
        return self

    # =========================================================
    # BUILDERS
    # =========================================================

    def from_(self, table: str, primary_key: Any = None) -> "FluentQuery":
        """Start a SELECT, optionally narrowed to one primary key."""
        return self._start(table, SELECT, primary_key)

    def insert_into(self, table: str, values: Optional[Mapping[str, Any]] = None) -> "FluentQuery":
        """Start an INSERT of one row."""
        self._start(table, INSERT)
        self.values = dict(values or {})
        return self

    def update(
        self,
        table: str,
        values: Optional[Mapping[str, Any]] = None,
        primary_key: Any = None,
    ) -> "FluentQuery":
        """Start an UPDATE."""
        self._start(table, UPDATE, primary_key)
        self.values = dict(values or {})
        return self

    def delete_from(self, table: str, primary_key: Any = None) -> "FluentQuery":
        """Start a DELETE."""
        return self._start(table, DELETE, primary_key)

    def where(self, column: Union[str, Mapping[str, Any]], value: Any = None) -> "FluentQuery":
        """Add equality conditions; a mapping adds one condition per item."""
        if isinstance(column, Mapping):
            for name, item in column.items():
                self.where(name, item)
        else:
            self.conditions[column] = value
        return self

    def select(self, columns: Union[str, Sequence[str]]) -> "FluentQuery":
        """Restrict the selected columns."""
        if self.query_type == SELECT:
            if isinstance(columns, str):
                columns = [c.strip() for c in columns.split(",") if c.strip()]
            self.columns = None if list(columns) == ["*"] else list(columns)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "FluentQuery":
        self.order[column] = direction.upper()
        return self

    def limit(self, limit: int) -> "FluentQuery":
        self.max_results = limit
        return self

    def offset(self, offset: int) -> "FluentQuery":
        self.first_result = offset
        return self

    # =========================================================
    # TERMINALS
    # =========================================================

    def _report(self, error: StorageError) -> None:
        message = f"Fluent {self.query_type} on {self.table} failed: {error.message}"
        if self._reporter is not None:
            self._reporter(message, "error")
        else:
            logger.error(message)

    def fetch(self) -> Optional[Dict[str, Any]]:
        """First matching row, or None."""
        if self.query_type != SELECT:
            return None
        try:
            rows = self._gateway.fetch_all(
                self.table,
                self.conditions,
                order_by=self.order or None,
                limit=1,
                offset=self.first_result,
                columns=self.columns,
            )
        except StorageError as e:
            self._report(e)
            return None
        return rows[0] if rows else None

    def fetch_all(self, index_by: Optional[str] = None) -> Union[List[Dict[str, Any]], Dict[Any, Dict[str, Any]]]:
        """
        All matching rows.

        Args:
            index_by: Return a dict keyed by this column instead of a list;
                the column is fetched even when not selected
        """
        if self.query_type != SELECT:
            return {} if index_by else []
        columns = self.columns
        if index_by and columns and index_by not in columns:
            columns = [*columns, index_by]
        try:
            rows = self._gateway.fetch_all(
                self.table,
                self.conditions,
                order_by=self.order or None,
                limit=self.max_results,
                offset=self.first_result,
                columns=columns,
            )
        except StorageError as e:
            self._report(e)
            rows = []
        if index_by:
            return {row[index_by]: row for row in rows}
        return rows

    def count(self) -> int:
        """Number of rows matching the conditions, ignoring limit/offset."""
        if self.query_type != SELECT:
            return 0
        try:
            return self._gateway.count(self.table, self.conditions)
        except StorageError as e:
            self._report(e)
            return 0

    def execute(self) -> Any:
        """
        Run the built statement.

        Returns:
            select: list of rows
            insert: assigned key, or False on failure
            update/delete: rows affected, or False on failure
        """
        if self.query_type == SELECT:
            return self.fetch_all()
        try:
            if self.query_type == INSERT:
                if not self.values:
                    return False
                key = self._gateway.insert(self.table, self.values)
                return False if key is None else key
            if self.query_type == UPDATE:
                if not self.values:
                    return False
                return self._gateway.update(self.table, self.values, self.conditions)
            return self._gateway.delete(self.table, self.conditions)
        except StorageError as e:
            self._report(e)
            return False

    def __iter__(self):
        return iter(self.fetch_all())


__all__ = ["FluentQuery", "Reporter"]
