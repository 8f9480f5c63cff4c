from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from docseal.config.settings import Settings


def build_conninfo(settings: Settings) -> str:
    """Build a libpq connection string, including the per-statement timeout."""
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password} "
        f"options='-c statement_timeout={settings.db_statement_timeout_ms}'"
    )


class Database:
    """Owns the connection pool. Created by the process bootstrap and passed
    explicitly to every repository consumer."""

    def __init__(self, pool: ConnectionPool, checkout_timeout: float = 10.0) -> None:
        self._pool = pool
        self._checkout_timeout = checkout_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        pool = ConnectionPool(
            build_conninfo(settings),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            open=True,
        )
        return cls(pool, checkout_timeout=settings.db_connect_timeout_seconds)

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection. Committed on clean exit, rolled back on error."""
        with self._pool.connection(timeout=self._checkout_timeout) as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a connection inside a single transaction block."""
        with self._pool.connection(timeout=self._checkout_timeout) as conn:
            with conn.transaction():
                yield conn

    def close(self) -> None:
        self._pool.close()
