"""Database connection management."""

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool


class DatabaseConfig:
    """Database configuration."""

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize database config from dict."""
        self.host = config.get("host", "localhost")
        self.port = config.get("port", 5432)
        self.database = config.get("database", "secdedup")
        self.user = config.get("user", "secdedup_user")

        # Handle password from environment variable if specified
        password_env = config.get("password_env")
        if config.get("password"):
            self.password = config["password"]
        elif password_env:
            self.password = os.environ.get(password_env, "")
        else:
            self.password = ""

    @property
    def connection_string(self) -> str:
        """Get psycopg connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


class Database:
    """
    Store handle shared by the indexer, the checker and the resolution store.

    Built once per process, opened at start and closed at shutdown. Every
    multi-row mutation goes through ``transaction()``.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        conninfo: Optional[str] = None,
        max_size: int = 4,
    ) -> None:
        """
        Initialize the store handle.

        Args:
            config: Postgres config dict (see PostgresConfig)
            conninfo: Explicit connection string, overrides config
            max_size: Pool size upper bound
        """
        if conninfo is None:
            conninfo = DatabaseConfig(config or {}).connection_string
        self.conninfo = conninfo
        self.max_size = max_size
        self._pool: Optional[ConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> "Database":
        """Create the connection pool."""
        if self._pool is None:
            self._pool = ConnectionPool(
                self.conninfo,
                min_size=1,
                max_size=self.max_size,
                kwargs={"row_factory": dict_row},
                open=True,
            )
        return self

    def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection, None, None]:
        """Get a connection from the pool (committed on clean exit)."""
        if self._pool is None:
            raise RuntimeError("Database is not open")
        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Generator[psycopg.Connection, None, None]:
        """Run a block inside one transaction, rolled back on any error."""
        with self.connection() as conn:
            with conn.transaction():
                yield conn
