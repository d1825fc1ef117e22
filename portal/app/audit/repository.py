"""Persistence layer for audit log entries."""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import AuditAction, AuditEntry, AuditLogQuery

logger = logging.getLogger("audit")


def _row_to_entry(row: dict) -> AuditEntry:
    return AuditEntry(
        id=str(row["id"]),
        action=AuditAction(row["action"]),
        actor_id=str(row["actor_id"]) if row.get("actor_id") else None,
        actor_email=row.get("actor_email"),
        actor_role=row.get("actor_role"),
        target_id=row.get("target_id"),
        target_description=row.get("target_description"),
        details=row.get("details") or {},
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        timestamp=row["timestamp"],
        success=bool(row.get("success", True)),
        error_message=row.get("error_message"),
    )


class PostgresAuditRepository:
    """Append-only store for ``audit_logs`` rows."""

    def record(self, entry: AuditEntry, *, conn: Optional[PgConnection] = None) -> AuditEntry:
        params = entry.model_dump(exclude={"id"})
        params["action"] = entry.action.value
        params["details"] = psycopg2.extras.Json(entry.details)
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    """
                    INSERT INTO audit_logs (
                        action, actor_id, actor_email, actor_role, target_id,
                        target_description, details, ip_address, user_agent,
                        timestamp, success, error_message
                    )
                    VALUES (
                        %(action)s, %(actor_id)s, %(actor_email)s, %(actor_role)s, %(target_id)s,
                        %(target_description)s, %(details)s, %(ip_address)s, %(user_agent)s,
                        %(timestamp)s, %(success)s, %(error_message)s
                    )
                    RETURNING *
                    """,
                    params,
                )
                row = cur.fetchone()
        logger.info(
            "Audit %s actor=%s target=%s success=%s",
            entry.action.value,
            entry.actor_id,
            entry.target_id,
            entry.success,
        )
        return _row_to_entry(row)

    def list_entries(
        self, query: AuditLogQuery, *, conn: Optional[PgConnection] = None
    ) -> Tuple[Sequence[AuditEntry], int]:
        clauses = []
        params = {"limit": query.limit, "offset": query.offset}
        if query.action is not None:
            clauses.append("action = %(action)s")
            params["action"] = query.action.value
        if query.actor_id:
            clauses.append("actor_id = %(actor_id)s")
            params["actor_id"] = query.actor_id
        if query.start_date is not None:
            clauses.append("timestamp >= %(start_date)s")
            params["start_date"] = query.start_date
        if query.end_date is not None:
            clauses.append("timestamp <= %(end_date)s")
            params["end_date"] = query.end_date
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(f"SELECT COUNT(*) AS total FROM audit_logs{where}", params)
                total = int(cur.fetchone()["total"])
                cur.execute(
                    f"SELECT * FROM audit_logs{where} ORDER BY timestamp DESC LIMIT %(limit)s OFFSET %(offset)s",
                    params,
                )
                rows = cur.fetchall()
        return [_row_to_entry(row) for row in rows], total
