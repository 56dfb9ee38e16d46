"""
Connections for PgQueryExecutor.

Executors hold no connection of their own. Each executor call opens one
through connection(), runs its statement and leaves, so every write
commits on its own and a failing statement rolls back only itself.

bound_connection() pins a caller-owned connection for the duration of a
block. Executor calls inside it reuse that connection and never commit,
roll back or close it; the test suite uses this to roll back each test.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg.rows import dict_row

from entityrepo.config import config

logger = logging.getLogger(__name__)

_bound: psycopg.Connection | None = None


@contextmanager
def bound_connection(conn: psycopg.Connection) -> Iterator[psycopg.Connection]:
    """Route executor calls through `conn` until the block exits."""
    global _bound
    previous, _bound = _bound, conn
    try:
        yield conn
    finally:
        _bound = previous


@contextmanager
def connection() -> Iterator[psycopg.Connection]:
    """
    Connection for a single executor call.

    A fresh connection commits when the block exits cleanly and rolls back
    on error (psycopg's connection context), then closes. A bound
    connection is handed through untouched.
    """
    if _bound is not None:
        yield _bound
        return

    try:
        with psycopg.connect(config.database_url) as conn:
            yield conn
    except Exception:
        logger.debug("Executor call rolled back")
        raise


@contextmanager
def dict_cursor() -> Iterator[psycopg.Cursor]:
    """Cursor returning rows as dicts, on the call's connection."""
    with connection() as conn, conn.cursor(row_factory=dict_row) as cur:
        yield cur
