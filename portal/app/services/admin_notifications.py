"""Storage and logging of notifications shown in the admin portal."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from ..schemas.notifications import AdminNotification

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _row_to_notification(row: Mapping[str, Any]) -> AdminNotification:
    return AdminNotification(
        id=row["id"],
        kind=row["kind"],
        title=row["title"],
        message=row["message"],
        metadata=row.get("metadata") or {},
        created_at=row["created_at"],
        read_at=row.get("read_at"),
    )


def create_notification(
    kind: str,
    title: str,
    message: str,
    metadata: Optional[Mapping[str, Any]] = None,
    *,
    conn: Optional[PgConnection] = None,
) -> AdminNotification:
    with managed_connection(conn) as (connection, _):
        with dict_cursor(connection) as cur:
            cur.execute(
                """
                INSERT INTO admin_notifications (kind, title, message, metadata)
                VALUES (%(kind)s, %(title)s, %(message)s, %(metadata)s)
                RETURNING *
                """,
                {
                    "kind": kind,
                    "title": title,
                    "message": message,
                    "metadata": psycopg2.extras.Json(dict(metadata or {})),
                },
            )
            row = cur.fetchone()
    notification = _row_to_notification(row)
    logger.info("Admin notification %s kind=%s", notification.id, kind)
    return notification


def list_notifications(
    *,
    limit: int = DEFAULT_PAGE_SIZE,
    unread_only: bool = False,
    conn: Optional[PgConnection] = None,
) -> List[AdminNotification]:
    """Return notifications with unread entries first, newest first within each group."""

    limit = max(1, min(limit, MAX_PAGE_SIZE))
    where = " WHERE read_at IS NULL" if unread_only else ""
    with managed_connection(conn) as (connection, _):
        with dict_cursor(connection) as cur:
            cur.execute(
                f"""
                SELECT * FROM admin_notifications{where}
                ORDER BY (read_at IS NULL) DESC, created_at DESC, id DESC
                LIMIT %(limit)s
                """,
                {"limit": limit},
            )
            rows = cur.fetchall()
    return [_row_to_notification(row) for row in rows]


def unread_count(*, conn: Optional[PgConnection] = None) -> int:
    with managed_connection(conn) as (connection, _):
        with connection.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM admin_notifications WHERE read_at IS NULL")
            (count,) = cur.fetchone()
    return int(count)


def mark_read(notification_id: int, *, conn: Optional[PgConnection] = None) -> Optional[AdminNotification]:
    with managed_connection(conn) as (connection, _):
        with dict_cursor(connection) as cur:
            cur.execute(
                """
                UPDATE admin_notifications
                SET read_at = COALESCE(read_at, NOW())
                WHERE id = %(id)s
                RETURNING *
                """,
                {"id": notification_id},
            )
            row = cur.fetchone()
    return _row_to_notification(row) if row else None


class StoredAdminNotifier:
    """``AdminNotifier`` that persists notifications for the admin portal."""

    def notify(self, kind: str, title: str, message: str, metadata: Mapping[str, object]) -> None:
        create_notification(kind, title, message, metadata)
