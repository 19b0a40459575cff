"""
Shared test fixtures.

============================================================
PURPOSE
============================================================
- In-memory SQLite engine with the test tables
- SqlAlchemyGateway bound to it
- MockClock frozen at a known instant
- MagicMock gateway for call assertions

============================================================
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table

from core.clock import MockClock
from database import DatabaseConfig, SqlAlchemyGateway, create_database_engine


FIXED_TIME = datetime(2024, 5, 17, 12, 30, 0, tzinfo=timezone.utc)


def build_metadata() -> MetaData:
    metadata = MetaData()
    Table(
        "users",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(100)),
        Column("login", String(50), unique=True),
        Column("email", String(200)),
        Column("created_at", DateTime),
        Column("updated_at", DateTime),
    )
    Table(
        "tags",
        metadata,
        Column("uuid", String(36), primary_key=True),
        Column("label", String(50)),
    )
    return metadata


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine with the test tables created."""
    engine = create_database_engine(DatabaseConfig(url="sqlite:///:memory:"))
    build_metadata().create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def gateway(engine):
    """Gateway over the in-memory database."""
    return SqlAlchemyGateway(engine)


@pytest.fixture
def clock():
    """Clock fixed at FIXED_TIME."""
    return MockClock(FIXED_TIME)


@pytest.fixture
def mock_gateway():
    """Gateway double with empty-result defaults."""
    gateway = MagicMock()
    gateway.fetch_one.return_value = None
    gateway.fetch_all.return_value = []
    gateway.count.return_value = 0
    gateway.insert.return_value = None
    gateway.update.return_value = 0
    gateway.delete.return_value = 0
    return gateway
