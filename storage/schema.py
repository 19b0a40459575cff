"""
Storage - Record Configuration and Schema.

============================================================
PURPOSE
============================================================
Describes how one record kind maps onto a table:

- RecordConfig: table, key column, name column and the
  optional timestamp columns
- RecordSchema: explicit declaration of the columns a record
  kind may hold; unknown columns fail fast instead of being
  silently dropped

============================================================
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from core.constants import (
    CONFIG_ATTRIBUTES,
    DEFAULT_KEY_COLUMN,
    DEFAULT_NAME_COLUMN,
    LEGACY_OPTION_NAMES,
)
from core.exceptions import SchemaError, UnknownColumnError


@dataclass(frozen=True)
class RecordConfig:
    """
    Table mapping for one record kind.

    Attributes:
        table: Backing table name
        key_column: Primary identity column
        name_column: Human readable secondary identity ("" when unset)
        create_column: Filled with the current time on insert
        last_modified_column: Filled with the current time on update
    """

    table: str = ""
    key_column: str = DEFAULT_KEY_COLUMN
    name_column: str = DEFAULT_NAME_COLUMN
    create_column: Optional[str] = None
    last_modified_column: Optional[str] = None

    def with_options(self, options: Optional[Mapping[str, Any]]) -> "RecordConfig":
        """
        Return a copy updated from legacy or snake_case option names.

        Unrelated keys (autoload, ...) are ignored.
        """
        changes = {}
        for name, value in (options or {}).items():
            attribute = LEGACY_OPTION_NAMES.get(name, name)
            if attribute in CONFIG_ATTRIBUTES:
                changes[attribute] = value
        if "name_column" in changes and changes["name_column"] is None:
            changes["name_column"] = DEFAULT_NAME_COLUMN
        return replace(self, **changes) if changes else self

    def configured_columns(self) -> FrozenSet[str]:
        """Every column the configuration refers to."""
        names = (self.key_column, self.name_column, self.create_column, self.last_modified_column)
        return frozenset(name for name in names if name)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class RecordSchema:
    """
    Declared column set of a record kind.

    Usage:
        class User(Record):
            my_table = "users"
            schema = RecordSchema.of("id", "name", "email")
    """

    columns: FrozenSet[str] = field(default_factory=frozenset)
    table: str = ""

    @classmethod
    def of(cls, *columns: str, table: str = "") -> "RecordSchema":
        return cls(columns=frozenset(columns), table=table)

    @classmethod
    def from_gateway(cls, gateway: Any, table: str) -> "RecordSchema":
        """Build a schema from the columns the gateway reflects for a table."""
        return cls(columns=frozenset(gateway.columns(table)), table=table)

    def __contains__(self, column: str) -> bool:
        return column in self.columns

    def check(self, columns: Iterable[str]) -> None:
        """
        Raises:
            UnknownColumnError: For the first column not declared
        """
        for column in columns:
            if column not in self.columns:
                raise UnknownColumnError(self.table or "<record>", column)

    def validate_config(self, config: RecordConfig) -> None:
        """
        Check that every configured column is declared.

        Raises:
            SchemaError: If the configuration names an undeclared column
        """
        missing = sorted(config.configured_columns() - self.columns)
        if missing:
            raise SchemaError(
                f"Record configuration refers to undeclared columns: {', '.join(missing)}",
                context={"table": config.table, "columns": missing},
            )


__all__ = ["RecordConfig", "RecordSchema"]
