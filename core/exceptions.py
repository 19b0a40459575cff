"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions raised by the record layer.

- Separates configuration problems from storage failures
- Lets the synchronization engine decide what to degrade
  and what to re-raise
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
RecordsException (base)
├── ConfigurationError
│   ├── MissingConfigError
│   └── SchemaError
│       ├── UnknownTableError
│       └── UnknownColumnError
└── StorageError
    ├── StorageConnectionError
    ├── QueryError
    │   └── InvalidColumnError
    ├── TransactionError
    └── IntegrityConstraintError
        └── DuplicateRecordError

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# BASE EXCEPTION
# ============================================================

class RecordsException(Exception):
    """
    Base exception for all record layer errors.

    All exceptions carry:
    - context: for debugging
    - cause: the underlying driver/ORM exception, if any
    - timestamp: when the error occurred
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        line = f"{type(self).__name__}: {self.message}"
        return f"{line} | {ctx_str}" if ctx_str else line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(RecordsException):
    """Record or database is not configured for the requested operation."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key

        super().__init__(message, context=context, **kwargs)


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, source: str = "config"):
        super().__init__(
            message=f"Missing required configuration: {key}",
            config_key=key,
            context={"source": source},
        )


class SchemaError(ConfigurationError):
    """Table or column does not match the declared schema."""


class UnknownTableError(SchemaError):
    """Table does not exist in the database."""

    def __init__(self, table: str, **kwargs):
        super().__init__(
            message=f"Unknown table: {table}",
            config_key="table",
            context={"table": table},
            **kwargs,
        )
        self.table = table


class UnknownColumnError(SchemaError):
    """Column is not declared in the record schema."""

    def __init__(self, table: str, column: str):
        super().__init__(
            message=f"Unknown column {column!r} for table {table!r}",
            context={"table": table, "column": column},
        )
        self.table = table
        self.column = column


# ============================================================
# STORAGE ERRORS
# ============================================================

class StorageError(RecordsException):
    """Database operation failed."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if operation:
            context["operation"] = operation
        if table:
            context["table"] = table

        super().__init__(message, context=context, **kwargs)
        self.operation = operation
        self.table = table


class StorageConnectionError(StorageError):
    """Database connection could not be established or was lost."""


class QueryError(StorageError):
    """Statement was rejected by the database."""


class InvalidColumnError(QueryError):
    """Statement names a column the table does not have."""

    def __init__(self, table: str, column: str, operation: Optional[str] = None):
        super().__init__(
            message=f"Unknown column {column!r} for table {table!r}",
            operation=operation,
            table=table,
            context={"column": column},
        )
        self.column = column


class TransactionError(StorageError):
    """Begin, commit or rollback failed."""


class IntegrityConstraintError(StorageError):
    """Write violated a database constraint."""


class DuplicateRecordError(IntegrityConstraintError):
    """Write violated a unique or primary key constraint."""


# ============================================================
# EXCEPTION UTILITIES
# ============================================================

def wrap_exception(
    exc: Exception,
    wrapper_class: type = StorageError,
    message: Optional[str] = None,
    **kwargs,
) -> RecordsException:
    """Wrap a standard exception in a RecordsException."""
    msg = message or f"{type(exc).__name__}: {exc}"
    return wrapper_class(message=msg, cause=exc, **kwargs)


__all__ = [
    "RecordsException",
    "ConfigurationError",
    "MissingConfigError",
    "SchemaError",
    "UnknownTableError",
    "UnknownColumnError",
    "StorageError",
    "StorageConnectionError",
    "QueryError",
    "InvalidColumnError",
    "TransactionError",
    "IntegrityConstraintError",
    "DuplicateRecordError",
    "wrap_exception",
]
