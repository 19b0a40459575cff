"""
Database Package Initialization.

============================================================
DATABASE GATEWAY LAYER
============================================================

Everything records need from storage:

- engine: configuration and engine construction
- gateway: DatabaseGateway contract and its SQLAlchemy implementation
- fluent: legacy fluent query builder on top of a gateway

============================================================
"""

from .engine import (
    DatabaseConfig,
    create_database_engine,
    get_table_row_counts,
    list_tables,
    verify_database_connection,
)
from .fluent import FluentQuery
from .gateway import DatabaseGateway, SqlAlchemyGateway, transaction_scope

__all__ = [
    "transaction_scope",
    "DatabaseConfig",
    "create_database_engine",
    "get_table_row_counts",
    "list_tables",
    "verify_database_connection",
    "FluentQuery",
    "DatabaseGateway",
    "SqlAlchemyGateway",
]
