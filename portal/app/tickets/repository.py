"""Persistence layer for support tickets."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import Ticket, TicketInput, TicketQuery

# Columns a partial update may write.
_WRITABLE_COLUMNS = (
    "title",
    "description",
    "status",
    "priority",
    "due_date",
    "completed_at",
    "assignee_id",
    "support_assignees",
    "related_user_id",
    "read_at",
    "read_by",
)


def _row_to_ticket(row: dict) -> Ticket:
    return Ticket(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description"),
        status=row["status"],
        priority=row["priority"],
        due_date=row["due_date"],
        completed_at=row.get("completed_at"),
        assignee_id=str(row["assignee_id"]),
        support_assignees=[str(value) for value in row.get("support_assignees") or []],
        related_user_id=str(row["related_user_id"]) if row.get("related_user_id") else None,
        created_by=str(row["created_by"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        read_at=row.get("read_at"),
        read_by=str(row["read_by"]) if row.get("read_by") else None,
    )


def _db_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


class PostgresTicketRepository:
    def list_tickets(self, query: TicketQuery, *, conn: Optional[PgConnection] = None) -> Sequence[Ticket]:
        clauses = []
        params: Dict[str, Any] = {}
        if query.status is not None:
            clauses.append("status = %(status)s")
            params["status"] = query.status.value
        if query.priority is not None:
            clauses.append("priority = %(priority)s")
            params["priority"] = query.priority.value
        if query.involving is not None:
            clauses.append("(assignee_id = %(user_id)s OR %(user_id)s = ANY(support_assignees))")
            params["user_id"] = query.involving
        if query.unread_only:
            clauses.append("read_at IS NULL")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(f"SELECT * FROM tickets{where} ORDER BY created_at DESC, id DESC", params)
                rows = cur.fetchall()
        return [_row_to_ticket(row) for row in rows]

    def get_ticket(self, ticket_id: str, *, conn: Optional[PgConnection] = None) -> Optional[Ticket]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM tickets WHERE id = %(id)s", {"id": ticket_id})
                row = cur.fetchone()
        return _row_to_ticket(row) if row else None

    def create_ticket(
        self,
        payload: TicketInput,
        *,
        created_by: str,
        completed_at: Optional[datetime],
        conn: Optional[PgConnection] = None,
    ) -> Ticket:
        params = {key: _db_value(value) for key, value in payload.model_dump().items()}
        params.update(created_by=created_by, completed_at=completed_at)
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    """
                    INSERT INTO tickets (
                        title, description, status, priority, due_date, completed_at,
                        assignee_id, support_assignees, related_user_id, created_by
                    )
                    VALUES (
                        %(title)s, %(description)s, %(status)s, %(priority)s, %(due_date)s, %(completed_at)s,
                        %(assignee_id)s, %(support_assignees)s::uuid[], %(related_user_id)s, %(created_by)s
                    )
                    RETURNING *
                    """,
                    params,
                )
                row = cur.fetchone()
        return _row_to_ticket(row)

    def update_ticket(
        self, ticket_id: str, changes: Dict[str, Any], *, conn: Optional[PgConnection] = None
    ) -> Optional[Ticket]:
        unknown = set(changes) - set(_WRITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update ticket columns: {', '.join(sorted(unknown))}")
        assignments = []
        for column in _WRITABLE_COLUMNS:
            if column in changes:
                cast = "::uuid[]" if column == "support_assignees" else ""
                assignments.append(f"{column} = %({column})s{cast}")
        params = {key: _db_value(value) for key, value in changes.items()}
        params["id"] = ticket_id
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    f"UPDATE tickets SET {', '.join(assignments)}, updated_at = NOW() WHERE id = %(id)s RETURNING *",
                    params,
                )
                row = cur.fetchone()
        return _row_to_ticket(row) if row else None

    def delete_ticket(self, ticket_id: str, *, conn: Optional[PgConnection] = None) -> bool:
        with managed_connection(conn) as (connection, _):
            with connection.cursor() as cur:
                cur.execute("DELETE FROM tickets WHERE id = %(id)s", {"id": ticket_id})
                return cur.rowcount == 1
