"""
Core Module Package.

This package contains the infrastructure components that the
database and storage layers depend on.

Components:
- clock: Testable time source for record timestamps
- exceptions: Custom exception hierarchy
- constants: Shared defaults and patterns
"""

from .clock import ClockProtocol, MockClock, SystemClock, get_clock
from .exceptions import (
    ConfigurationError,
    DuplicateRecordError,
    IntegrityConstraintError,
    InvalidColumnError,
    MissingConfigError,
    QueryError,
    RecordsException,
    SchemaError,
    StorageConnectionError,
    StorageError,
    TransactionError,
    UnknownColumnError,
    UnknownTableError,
)

__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "get_clock",
    "ConfigurationError",
    "DuplicateRecordError",
    "IntegrityConstraintError",
    "MissingConfigError",
    "QueryError",
    "InvalidColumnError",
    "RecordsException",
    "SchemaError",
    "StorageConnectionError",
    "StorageError",
    "TransactionError",
    "UnknownColumnError",
    "UnknownTableError",
]
