"""
Storage - Record.

============================================================
RESPONSIBILITY
============================================================
Active-record façade kept compatible with the legacy API:

    class User(Record):
        my_table = "users"
        name_column = "login"

    user = User("ann", gateway=gateway, autoload=True)
    user.set_data_value("email", "ann@example.com")
    user.save_to_sql()

- Configuration (table, key/name columns, timestamp columns)
- Identifier handling (use_identifier / load_identifier)
- Field access on top of a RecordStore
- Persistence through a SynchronizationEngine
- Status messages kept on the record and logged

============================================================
LIFECYCLE
============================================================
A record never clears its fields on its own: a failed load
leaves them unchanged and a successful delete keeps them. The
key written by a successful insert is authoritative until the
next reload.

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from core.clock import ClockProtocol, get_clock
from core.constants import DEFAULT_KEY_COLUMN, DEFAULT_NAME_COLUMN, STATUS_LOG_LEVELS
from database.fluent import FluentQuery

from .identifiers import IdentifierKind, classify, parse_identifier
from .record_store import RecordStore
from .schema import RecordConfig, RecordSchema
from .synchronization import SaveResult, SynchronizationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusMessage:
    """One message recorded by a record."""

    message: str
    type: str
    caller: str
    timestamp: datetime


class Record:
    """
    One logical database row plus its access configuration.

    Subclasses declare their table mapping as class attributes;
    constructor options (legacy camelCase or snake_case names)
    override them per instance.
    """

    my_table: str = ""
    key_column: str = DEFAULT_KEY_COLUMN
    name_column: str = DEFAULT_NAME_COLUMN
    create_column: Optional[str] = None
    last_modified_column: Optional[str] = None
    schema: Optional[RecordSchema] = None
    autoload: bool = False

    def __init__(
        self,
        identifier: Any = None,
        gateway: Any = None,
        options: Optional[Mapping[str, Any]] = None,
        *,
        autoload: Optional[bool] = None,
        schema: Optional[RecordSchema] = None,
        clock: Optional[ClockProtocol] = None,
        **config: Any,
    ) -> None:
        """
        Initialize the record.

        Args:
            identifier: Key, name, UUID, field mapping or another record
            gateway: DatabaseGateway used for all I/O
            options: Legacy option mapping (myTable, keyColumn, ..., autoload)
            autoload: Load the identifier from storage instead of only
                adopting it locally
            schema: Declared columns, overrides the class attribute
            clock: Timestamp source for create/modify columns
            **config: Configuration in snake_case (table=..., key_column=...)

        Raises:
            SchemaError: If the configuration refers to undeclared columns
        """
        options = dict(options or {})
        options.update(config)
        if autoload is None:
            autoload = bool(options.pop("autoload", type(self).autoload))
        else:
            options.pop("autoload", None)

        if schema is not None:
            self.schema = schema
        self.status_messages: List[StatusMessage] = []
        self._store = RecordStore(schema=self.schema)
        self._sync = SynchronizationEngine(
            self._store,
            lambda: self.config,
            gateway=gateway,
            clock=clock,
            reporter=self.add_status_message,
        )

        self.set_up(options)

        if autoload:
            self.load_identifier(identifier)
        else:
            self.use_identifier(identifier)

    # =========================================================
    # CONFIGURATION
    # =========================================================

    @property
    def config(self) -> RecordConfig:
        return RecordConfig(
            table=self.my_table,
            key_column=self.key_column,
            name_column=self.name_column or DEFAULT_NAME_COLUMN,
            create_column=self.create_column,
            last_modified_column=self.last_modified_column,
        )

    def _apply_config(self, config: RecordConfig) -> None:
        if self.schema is not None:
            self.schema.validate_config(config)
        self.my_table = config.table
        self.key_column = config.key_column
        self.name_column = config.name_column
        self.create_column = config.create_column
        self.last_modified_column = config.last_modified_column

    def set_up(self, options: Optional[Mapping[str, Any]] = None) -> None:
        """
        Apply configuration options.

        Accepts myTable/keyColumn/nameColumn/createColumn/
        lastModifiedColumn and their snake_case names; other keys
        are ignored.
        """
        self._apply_config(self.config.with_options(options))

    def set_properties(self, properties: Optional[Mapping[str, Any]] = None) -> None:
        """Legacy alias of set_up()."""
        self.set_up(properties)

    def get_my_table(self) -> str:
        return self.my_table

    def set_my_table(self, table: str) -> None:
        self.set_up({"table": table})

    def get_key_column(self) -> str:
        return self.key_column

    def set_key_column(self, key_column: str) -> None:
        self.set_up({"key_column": key_column})

    @property
    def gateway(self) -> Any:
        return self._sync.gateway

    def set_gateway(self, gateway: Any) -> None:
        """Attach the DatabaseGateway used for all I/O."""
        self._sync.gateway = gateway

    @property
    def clock(self) -> ClockProtocol:
        return self._sync.clock

    # =========================================================
    # IDENTIFIERS
    # =========================================================

    def classify_identifier(self, identifier: Any) -> IdentifierKind:
        """Decide how an identifier is processed (legacy howToProcess)."""
        return classify(
            parse_identifier(identifier, reference_type=Record),
            self.key_column,
            self.name_column,
        )

    def use_identifier(self, identifier: Any) -> None:
        """Adopt an identifier locally, without I/O."""
        kind = self.classify_identifier(identifier)

        if kind == IdentifierKind.VALUES:
            self.take_data(identifier)
        elif kind == IdentifierKind.REUSE:
            self.take_data(identifier.get_data())
        elif kind == IdentifierKind.NAME:
            self.set_data_value(self.name_column, identifier)
        elif kind == IdentifierKind.ID:
            self.set_my_key(identifier)

    def load_identifier(self, identifier: Any) -> None:
        """Load the row an identifier points to."""
        kind = self.classify_identifier(identifier)

        if kind == IdentifierKind.VALUES:
            self.load_from_sql(dict(identifier))
        elif kind == IdentifierKind.REUSE:
            self.take_data(identifier.get_data())
        elif kind == IdentifierKind.NAME:
            self.load_from_sql({self.name_column: identifier})
        elif kind in (IdentifierKind.ID, IdentifierKind.UUID):
            self.load_from_sql(identifier)

    # =========================================================
    # FIELDS
    # =========================================================

    def get_data(self) -> Dict[str, Any]:
        """Copy of all current fields."""
        return dict(self._store.snapshot())

    def take_data(self, data: Mapping[str, Any]) -> int:
        """Merge fields; returns the number of keys taken."""
        return self._store.merge(data)

    def get_data_value(self, column: str) -> Any:
        return self._store.get(column)

    def set_data_value(self, column: str, value: Any) -> bool:
        self._store.set(column, value)
        return True

    def get_my_key(self, data: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Key value of the given data, or of the record when data is empty.
        """
        if data:
            return data.get(self.key_column)
        return self._store.get(self.key_column)

    def set_my_key(self, value: Any) -> bool:
        return self.set_data_value(self.key_column, value)

    def get_record_name(self) -> str:
        """Value of the name column as string, "" without a name column."""
        if not self.name_column:
            return ""
        value = self._store.get(self.name_column)
        return "" if value is None else str(value)

    def set_record_name(self, name: str) -> bool:
        if not self.name_column:
            return False
        return self.set_data_value(self.name_column, name)

    # =========================================================
    # PERSISTENCE
    # =========================================================

    def load_from_sql(self, identifier: Any = None) -> int:
        """
        Load one row into the record.

        Returns:
            1 when a row was merged, 0 otherwise
        """
        return self._sync.load(identifier)

    def save_to_sql(self, data: Optional[Mapping[str, Any]] = None) -> SaveResult:
        """
        Insert or update, depending on whether the current key exists.

        The existence check and the write are separate round-trips;
        wrap them in a transaction when isolation matters.
        """
        result = self._sync.save(data)
        logger.debug(f"{self.get_object_name()}: save -> {result.action} success={result.success}")
        return result

    def insert_to_sql(self, data: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Insert a row; the assigned key is written back to the record.

        Raises:
            StorageError: When storage rejects the row
        """
        return self._sync.insert(data)

    def update_to_sql(
        self,
        data: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Mapping[str, Any]] = None,
    ) -> Optional[int]:
        """Update rows; returns rows affected or None on failure."""
        return self._sync.update(data, conditions)

    def delete_from_sql(self, conditions: Any = None) -> bool:
        """
        Delete the row(s); local fields are kept.

        Raises:
            StorageError: When storage rejects the delete
        """
        return self._sync.delete(conditions)

    def record_exist(self, conditions: Any = None) -> bool:
        return self._sync.record_exist(conditions)

    def is_persisted(self) -> bool:
        """True when a key is known and storage confirms the row."""
        return self.get_my_key() is not None and self.record_exist()

    def dbreload(self) -> bool:
        """Re-read the record from storage."""
        return self._sync.reload()

    def dbsync(self, data: Optional[Mapping[str, Any]] = None) -> bool:
        """Save then reload; False when either step fails."""
        return self._sync.sync(data)

    # =========================================================
    # LISTINGS
    # =========================================================

    def get_fluent(self) -> FluentQuery:
        """Legacy fluent query builder bound to this record's gateway."""
        return FluentQuery(
            self._sync.require_gateway(),
            key_column=self.key_column,
            reporter=self.add_status_message,
        )

    def listing_query(self) -> FluentQuery:
        """Fluent SELECT on the record's table."""
        return self.get_fluent().from_(self.my_table)

    def get_all(self) -> List[Dict[str, Any]]:
        return self._sync.get_all()

    def get_all_from_sql(self, columns: Union[str, Sequence[str], None] = None) -> List[Dict[str, Any]]:
        """All rows, optionally restricted to some columns."""
        return self._sync.get_all(_column_list(columns))

    def get_columns_from_sql(
        self,
        columns: Union[str, Sequence[str]],
        conditions: Any = None,
        order_by: Any = None,
        index_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Union[List[Dict[str, Any]], Dict[Any, Dict[str, Any]]]:
        """
        Selected columns of matching rows.

        Args:
            columns: Column names, or "*"
            conditions: Mapping of conditions or a primary key value
            order_by: Column name, list of "column DESC" or mapping
            index_by: Return a dict keyed by this column
            limit: Maximum number of rows
        """
        return self._sync.get_columns(
            _column_list(columns),
            conditions=conditions,
            order_by=order_by,
            index_by=index_by,
            limit=limit,
        )

    # =========================================================
    # TRANSACTIONS
    # =========================================================

    def begin_transaction(self) -> None:
        self._sync.require_gateway().begin_transaction()

    def commit(self) -> None:
        self._sync.require_gateway().commit()

    def rollback(self) -> None:
        self._sync.require_gateway().rollback()

    # =========================================================
    # STATUS MESSAGES
    # =========================================================

    def add_status_message(self, message: str, type: str = "info", caller: Optional[str] = None) -> bool:
        """
        Record a status message and log it at the matching level.

        Args:
            message: Message text
            type: debug, info, success, notice, warning or error
            caller: Origin shown in the log, defaults to the object name
        """
        caller = caller or self.get_object_name()
        self.status_messages.append(
            StatusMessage(message=message, type=type, caller=caller, timestamp=self.clock.now())
        )
        logger.log(STATUS_LOG_LEVELS.get(type, logging.INFO), f"{caller}: {message}")
        return True

    def get_status_messages(self, clean: bool = False) -> List[StatusMessage]:
        """Recorded messages, optionally clearing them."""
        messages = list(self.status_messages)
        if clean:
            self.status_messages.clear()
        return messages

    def get_object_name(self) -> str:
        """ClassName, or ClassName@key once a key is known."""
        key = self.get_my_key()
        name = type(self).__name__
        return name if key is None else f"{name}@{key}"

    # =========================================================
    # SERIALIZATION
    # =========================================================

    def __getstate__(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "fields": self.get_data(),
            "schema": self.schema,
        }

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.schema = state.get("schema")
        self.status_messages = []
        self._store = RecordStore(schema=self.schema)
        self._sync = SynchronizationEngine(
            self._store,
            lambda: self.config,
            clock=get_clock(),
            reporter=self.add_status_message,
        )
        self._apply_config(RecordConfig(**state["config"]))
        self._store.merge(state["fields"])

    def __repr__(self) -> str:
        return f"<{self.get_object_name()} table={self.my_table!r} fields={len(self._store)}>"


def _column_list(columns: Union[str, Sequence[str], None]) -> Optional[List[str]]:
    if columns is None:
        return None
    if isinstance(columns, str):
        columns = [c.strip() for c in columns.split(",") if c.strip()]
    return list(columns)


__all__ = ["Record", "StatusMessage"]
