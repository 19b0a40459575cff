"""
Storage - Record Store.

In-memory column -> value mapping for one logical row. A missing
column and a column holding None are different states: partial
updates only touch the columns actually present.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from .schema import RecordSchema


class RecordStore:
    """Field buffer of a Record."""

    def __init__(
        self,
        fields: Optional[Mapping[str, Any]] = None,
        schema: Optional[RecordSchema] = None,
    ) -> None:
        self._fields: Dict[str, Any] = {}
        self.schema = schema
        if fields:
            self.merge(fields)

    def get(self, column: str, default: Any = None) -> Any:
        return self._fields.get(column, default)

    def set(self, column: str, value: Any) -> None:
        """Insert or overwrite one column; other columns are untouched."""
        if self.schema is not None:
            self.schema.check([column])
        self._fields[column] = value

    def merge(self, values: Mapping[str, Any]) -> int:
        """
        Merge values into the store, incoming values win.

        Returns:
            Number of keys in the incoming mapping, not the number
            of values that actually changed
        """
        if self.schema is not None:
            self.schema.check(values.keys())
        self._fields.update(values)
        return len(values)

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only copy of all fields."""
        return MappingProxyType(dict(self._fields))

    def clear(self) -> None:
        self._fields.clear()

    def __contains__(self, column: object) -> bool:
        return column in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __repr__(self) -> str:
        return f"RecordStore({self._fields!r})"
