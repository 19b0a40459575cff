"""
Database Layer - Engine.

============================================================
RESPONSIBILITY
============================================================
Builds the SQLAlchemy engine a DatabaseGateway runs on.

- Reads connection settings from the environment (.env aware)
- Accepts a full DATABASE_URL or the legacy split settings
  (DB_TYPE, DB_HOST, DB_PORT, DB_DATABASE, DB_USERNAME, DB_PASSWORD)
- Creates explicitly owned engines; there is no process-wide
  connection registry

============================================================
USAGE
============================================================
    config = DatabaseConfig.from_env()
    engine = create_database_engine(config)
    gateway = SqlAlchemyGateway(engine)
    ...
    engine.dispose()

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, func, inspect, select, table, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from core.exceptions import ConfigurationError, MissingConfigError, StorageConnectionError

logger = logging.getLogger(__name__)


# =============================================================
# CONFIGURATION
# =============================================================

# Legacy DB_TYPE values -> SQLAlchemy dialect names
DIALECT_ALIASES: Dict[str, str] = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql",
    "postgres": "postgresql",
    "sqlite": "sqlite",
    "sqlsrv": "mssql+pyodbc",
}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got {value!r}",
            config_key=name,
        ) from e


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Connection and pool settings for one database.

    Attributes:
        url: SQLAlchemy database URL
        echo: Log SQL statements
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
    """

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "DatabaseConfig":
        """
        Build configuration from environment variables.

        Args:
            env_file: Optional .env path, defaults to python-dotenv lookup

        Raises:
            MissingConfigError: When neither DATABASE_URL nor DB_TYPE is set
        """
        load_dotenv(env_file)

        url = os.getenv("DATABASE_URL") or _url_from_legacy_settings()

        return cls(
            url=url,
            echo=_env_bool("DB_ECHO"),
            pool_size=_env_int("DB_POOL_SIZE", cls.pool_size),
            max_overflow=_env_int("DB_MAX_OVERFLOW", cls.max_overflow),
            pool_timeout=_env_int("DB_POOL_TIMEOUT", cls.pool_timeout),
            pool_recycle=_env_int("DB_POOL_RECYCLE", cls.pool_recycle),
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        """True for in-memory SQLite databases."""
        if not self.is_sqlite:
            return False
        database = make_url(self.url).database
        return database in (None, "", ":memory:")

    def safe_url(self) -> str:
        """URL with the password masked, for logging."""
        return make_url(self.url).render_as_string(hide_password=True)


def _url_from_legacy_settings() -> str:
    """Assemble a URL from the DB_* settings used by the legacy API."""
    db_type = os.getenv("DB_TYPE")
    if not db_type:
        raise MissingConfigError("DATABASE_URL or DB_TYPE", source="environment")

    drivername = DIALECT_ALIASES.get(db_type.lower(), db_type)
    database = os.getenv("DB_DATABASE")

    if drivername.startswith("sqlite"):
        return str(URL.create(drivername, database=database))

    if not database:
        raise MissingConfigError("DB_DATABASE", source="environment")

    port = os.getenv("DB_PORT")
    url = URL.create(
        drivername,
        username=os.getenv("DB_USERNAME"),
        password=os.getenv("DB_PASSWORD"),
        host=os.getenv("DB_HOST", "localhost"),
        port=int(port) if port else None,
        database=database,
    )
    return url.render_as_string(hide_password=False)


# =============================================================
# ENGINE
# =============================================================

def create_database_engine(config: DatabaseConfig) -> Engine:
    """
    Create a SQLAlchemy engine for the given configuration.

    The caller owns the engine and is responsible for disposing it.

    Args:
        config: Database configuration

    Returns:
        SQLAlchemy Engine

    Raises:
        ConfigurationError: If the URL cannot be parsed
    """
    try:
        make_url(config.url)
    except ArgumentError as e:
        raise ConfigurationError(
            f"Invalid database URL: {e}", config_key="DATABASE_URL", cause=e
        ) from e

    logger.info(f"Creating database engine for: {config.safe_url()}")

    kwargs = {"echo": config.echo}
    if config.is_memory:
        # One shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif config.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
        )

    try:
        return create_engine(config.url, **kwargs)
    except (ArgumentError, ImportError) as e:
        raise ConfigurationError(
            f"Cannot create engine for {config.safe_url()}: {e}",
            config_key="DATABASE_URL",
            cause=e,
        ) from e


def verify_database_connection(engine: Engine) -> bool:
    """
    Verify database connection is working.

    Returns:
        True if connection successful

    Raises:
        StorageConnectionError if connection fails
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise StorageConnectionError(
            f"Cannot connect to database: {e}",
            operation="connect",
            cause=e,
        ) from e


def list_tables(engine: Engine) -> List[str]:
    """Return the table names visible through the engine."""
    return sorted(inspect(engine).get_table_names())


def get_table_row_counts(engine: Engine) -> Dict[str, int]:
    """
    Get row counts for all tables.

    Returns:
        Dict mapping table name to row count (-1 when counting failed)
    """
    counts = {}

    with engine.connect() as conn:
        for name in list_tables(engine):
            try:
                stmt = select(func.count()).select_from(table(name))
                counts[name] = conn.execute(stmt).scalar() or 0
            except SQLAlchemyError as e:
                logger.warning(f"Cannot count rows of {name}: {e}")
                counts[name] = -1

    return counts


__all__ = [
    "DatabaseConfig",
    "DIALECT_ALIASES",
    "create_database_engine",
    "verify_database_connection",
    "list_tables",
    "get_table_row_counts",
]
