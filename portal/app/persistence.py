"""Connection and cursor helpers shared by the Postgres repositories."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..app_context import get_conn


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None) -> Iterator[Tuple[PgConnection, bool]]:
    """Context manager that manages transaction boundaries for optional connections.

    A caller supplied connection is yielded untouched so several repository
    calls can share one transaction; otherwise a fresh connection is opened,
    committed on success, rolled back on any error and closed.
    """

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def dict_cursor(conn: PgConnection) -> PgCursor:
    return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
