from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from psycopg2.pool import ThreadedConnectionPool

from ..models.config_models import DatabaseConfig

"""PostgreSQL connection handling.

Connection parameters resolve in this order (.env is loaded by the CLI first,
overriding the process environment):
    1. DATABASE_URL / PGDSN
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the ``database`` section of config/import.yml

Every transaction checks a connection out of the pool and returns it on every
exit path; commit on success, rollback on any exception. ThreadedConnectionPool
raises PoolError instead of waiting when it is exhausted, so checkouts are
gated by a semaphore sized to max_connections and extra workers block.
"""

__all__ = [
    "resolve_dsn",
    "ConnectionProvider",
]

logger = logging.getLogger(__name__)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


class ConnectionProvider:
    """Thin wrapper around psycopg2's ThreadedConnectionPool."""

    def __init__(self, pool: Any, max_connections: int | None = None) -> None:
        self._pool = pool
        self._slots = threading.BoundedSemaphore(max_connections) if max_connections else None

    @classmethod
    def from_config(cls, db_cfg: DatabaseConfig) -> ConnectionProvider:
        pool = ThreadedConnectionPool(db_cfg.min_connections, db_cfg.max_connections, resolve_dsn(db_cfg))
        return cls(pool, db_cfg.max_connections)

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Yield a cursor inside one transaction."""
        if self._slots is not None:
            self._slots.acquire()
        try:
            with self._checked_out() as cur:
                yield cur
        finally:
            if self._slots is not None:
                self._slots.release()

    @contextmanager
    def _checked_out(self) -> Iterator[Any]:
        conn = self._pool.getconn()
        broken = False
        try:
            conn.autocommit = False
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except BaseException:
            try:
                conn.rollback()
            except Exception:
                # rollback すら失敗した接続はプールに戻さず破棄
                logger.warning("rollback failed; discarding connection", exc_info=True)
                broken = True
            raise
        finally:
            self._pool.putconn(conn, close=broken)

    def close(self) -> None:
        self._pool.closeall()

    def __enter__(self) -> ConnectionProvider:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
