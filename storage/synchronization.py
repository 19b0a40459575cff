"""
Storage - Synchronization Engine.

============================================================
PURPOSE
============================================================
Reconciles a RecordStore with a DatabaseGateway:

- load / reload pull one row into the store
- save picks insert or update after an existence check
- insert / update / delete push fields to storage
- record_exist asks storage whether a row matches

============================================================
ERROR POLICY
============================================================
- Missing gateway or table: ConfigurationError, always raised
- Unknown table, or a column outside a declared RecordSchema:
  SchemaError, always raised
- A column the table lacks is a QueryError and follows the
  StorageError rules below
- StorageError on reads (load, record_exist, listings):
  reported, result degrades to 0 / False / []
- StorageError on update: reported, result is None
- StorageError on insert / delete: reported, then re-raised so
  a failed write is never mistaken for a no-op

============================================================
CONCURRENCY
============================================================
save() is two round-trips (count, then write) and sync() is
save() followed by reload(). Neither is atomic; callers that
need isolation wrap them in begin_transaction() / commit().
Concurrent writers can race between the existence check and
the insert, which then fails with DuplicateRecordError.

============================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from core.clock import ClockProtocol, get_clock
from core.exceptions import ConfigurationError, MissingConfigError, StorageError

from .record_store import RecordStore
from .schema import RecordConfig

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"


@dataclass(frozen=True)
class SaveResult:
    """
    Outcome of save().

    Truthy when the chosen write succeeded. For inserts, key is the
    newly assigned primary key.
    """

    success: bool
    action: str
    key: Any = None
    rows_affected: Optional[int] = None

    def __bool__(self) -> bool:
        return self.success


class SynchronizationEngine:
    """Load/save/delete protocol between one RecordStore and a gateway."""

    def __init__(
        self,
        store: RecordStore,
        config_source: Callable[[], RecordConfig],
        gateway: Any = None,
        clock: Optional[ClockProtocol] = None,
        reporter: Optional[Callable[[str, str], Any]] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Field buffer to synchronize
            config_source: Returns the current RecordConfig of the owner
            gateway: DatabaseGateway, may be attached later
            clock: Source of create/modify timestamps
            reporter: Receives (message, type) for storage failures
        """
        self.store = store
        self._config_source = config_source
        self.gateway = gateway
        self.clock = clock or get_clock()
        self.reporter = reporter

    # =========================================================
    # HELPERS
    # =========================================================

    @property
    def config(self) -> RecordConfig:
        return self._config_source()

    @property
    def key(self) -> Any:
        """Current primary key value, None when unknown."""
        key_column = self.config.key_column
        return self.store.get(key_column) if key_column else None

    def require_gateway(self) -> Any:
        """
        Raises:
            ConfigurationError: If no gateway has been attached
        """
        if self.gateway is None:
            raise ConfigurationError(
                "Database gateway not initialized. Pass gateway= or call set_gateway()",
                config_key="gateway",
            )
        return self.gateway

    def _table(self) -> str:
        table = self.config.table
        if not table:
            raise MissingConfigError("table", source="record")
        return table

    def _key_conditions(self, value: Any) -> Dict[str, Any]:
        return {self.config.key_column: value}

    def _fields(self, data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        values = dict(data) if data else dict(self.store.snapshot())
        if self.store.schema is not None:
            self.store.schema.check(values.keys())
        return values

    def _report(self, operation: str, error: StorageError) -> None:
        message = f"{operation} failed: {error.message}"
        if self.reporter is not None:
            self.reporter(message, "error")
        else:
            logger.error(message)

    # =========================================================
    # READS
    # =========================================================

    def load(self, identifier: Any = None) -> int:
        """
        Load the first row matching identifier into the store.

        Args:
            identifier: None for the current key, a scalar primary
                key, or a mapping of conditions

        Returns:
            1 when a row was merged, 0 when none was found or the
            read failed
        """
        gateway = self.require_gateway()
        table = self._table()

        if identifier is None:
            identifier = self.key
        if isinstance(identifier, Mapping):
            conditions = dict(identifier)
        else:
            conditions = self._key_conditions(identifier)

        try:
            row = gateway.fetch_one(table, conditions)
        except StorageError as e:
            self._report("load", e)
            return 0

        if not row:
            logger.debug(f"No row in {table} for {conditions}")
            return 0

        self.store.merge(row)
        return 1

    def record_exist(self, conditions: Any = None) -> bool:
        """
        Check whether a matching row exists.

        Args:
            conditions: None for the current key, a mapping of
                conditions, a string for the name column or a
                number for the key column
        """
        gateway = self.require_gateway()
        table = self._table()
        config = self.config

        if conditions is None:
            conditions = self._key_conditions(self.key)
        elif isinstance(conditions, str) and config.name_column:
            conditions = {config.name_column: conditions}
        elif not isinstance(conditions, Mapping):
            conditions = self._key_conditions(conditions)

        try:
            return gateway.count(table, dict(conditions)) > 0
        except StorageError as e:
            self._report("record_exist", e)
            return False

    def reload(self) -> bool:
        """Re-read the current key's row; True when a row was merged."""
        return self.load(self._key_conditions(self.key)) > 0

    def get_all(self, columns: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        """Every row of the table, [] when the read failed."""
        return self._fetch_all(columns=columns)

    def get_columns(
        self,
        columns: Optional[Sequence[str]] = None,
        conditions: Any = None,
        order_by: Any = None,
        index_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Union[List[Dict[str, Any]], Dict[Any, Dict[str, Any]]]:
        """
        Selected columns of matching rows.

        Args:
            columns: Column names, None or ["*"] for all
            conditions: Mapping of conditions or a primary key value
            order_by: Column name, list of "column [ASC|DESC]" or mapping
            index_by: Key the result by this column; it is fetched
                even when missing from columns
            limit: Maximum number of rows
        """
        if conditions is not None and not isinstance(conditions, Mapping):
            conditions = self._key_conditions(conditions)
        if index_by and columns and "*" not in columns and index_by not in columns:
            columns = [*columns, index_by]
        rows = self._fetch_all(columns, conditions, order_by, limit)
        if index_by:
            return {row[index_by]: row for row in rows}
        return rows

    def _fetch_all(
        self,
        columns: Optional[Sequence[str]] = None,
        conditions: Optional[Mapping[str, Any]] = None,
        order_by: Any = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        gateway = self.require_gateway()
        table = self._table()
        if columns is not None and list(columns) == ["*"]:
            columns = None
        try:
            return gateway.fetch_all(
                table, conditions, order_by=order_by, limit=limit, columns=columns
            )
        except StorageError as e:
            self._report("listing", e)
            return []

    # =========================================================
    # WRITES
    # =========================================================

    def save(self, data: Optional[Mapping[str, Any]] = None) -> SaveResult:
        """
        Insert or update depending on whether the current key exists.

        Args:
            data: Fields to write, defaults to all current fields
        """
        values = self._fields(data)

        if self.key is not None and self.record_exist():
            rows = self.update(values)
            return SaveResult(rows is not None, UPDATE, self.key, rows)

        key = self.insert(values)
        return SaveResult(key is not None, INSERT, key)

    def insert(self, data: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Insert a new row and remember its key.

        Returns:
            The assigned key, or None when storage assigned none

        Raises:
            StorageError: After reporting it
        """
        gateway = self.require_gateway()
        table = self._table()
        config = self.config
        values = self._fields(data)

        if config.create_column and config.create_column not in values:
            values[config.create_column] = self.clock.now()

        try:
            key = gateway.insert(table, values)
        except StorageError as e:
            self._report("insert", e)
            raise

        if key is not None and config.key_column:
            self.store.set(config.key_column, key)
        logger.debug(f"Inserted {table} row with key={key}")
        return key

    def update(
        self,
        data: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Mapping[str, Any]] = None,
    ) -> Optional[int]:
        """
        Update matching rows; written values are not merged back.

        Args:
            data: Fields to write, defaults to all current fields
            conditions: Defaults to the current key

        Returns:
            Rows affected, or None when the update failed or was refused
        """
        gateway = self.require_gateway()
        table = self._table()
        config = self.config
        values = self._fields(data)

        if conditions is None:
            conditions = self._key_conditions(self.key)
        if not conditions:
            self._refuse("update", table)
            return None

        if config.last_modified_column and config.last_modified_column not in values:
            values[config.last_modified_column] = self.clock.now()
        if not values:
            return 0

        try:
            return gateway.update(table, values, dict(conditions))
        except StorageError as e:
            self._report("update", e)
            return None

    def delete(self, conditions: Any = None) -> bool:
        """
        Delete matching rows; the store keeps its fields.

        Args:
            conditions: None for the current key (or all current
                fields when no key is known), a mapping, or a
                primary key value

        Returns:
            True when at least one row was deleted

        Raises:
            StorageError: After reporting it
        """
        gateway = self.require_gateway()
        table = self._table()

        if conditions is None:
            key = self.key
            conditions = self._key_conditions(key) if key is not None else dict(self.store.snapshot())
        elif not isinstance(conditions, Mapping):
            conditions = self._key_conditions(conditions)
        if not conditions:
            self._refuse("delete", table)
            return False

        try:
            rows = gateway.delete(table, dict(conditions))
        except StorageError as e:
            self._report("delete", e)
            raise

        logger.debug(f"Deleted {rows} row(s) from {table} for {conditions}")
        return rows > 0

    def sync(self, data: Optional[Mapping[str, Any]] = None) -> bool:
        """
        save() followed by reload().

        False when either step fails; after a failed reload storage
        may already hold the saved row while the store is stale.
        """
        return bool(self.save(data)) and self.reload()

    def _refuse(self, operation: str, table: str) -> None:
        message = f"Refusing {operation} on {table} without conditions"
        if self.reporter is not None:
            self.reporter(message, "warning")
        else:
            logger.warning(message)


__all__ = ["SynchronizationEngine", "SaveResult", "INSERT", "UPDATE"]
