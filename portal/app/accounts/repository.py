"""Persistence layer for user accounts and password reset tokens."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple

from psycopg2 import errors as pg_errors
from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import StoredCredentials, UserAccount, UserRole

_ACCOUNT_COLUMNS = "id, email, role, first_name, last_name, phone, birthdate, created_at"


def _row_to_account(row: dict) -> UserAccount:
    role = row.get("role")
    return UserAccount(
        id=str(row["id"]),
        email=row["email"],
        role=UserRole(role) if role else None,
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        phone=row.get("phone"),
        birthdate=row.get("birthdate"),
        created_at=row["created_at"],
    )


class PostgresAccountRepository:
    """Reads and writes the ``users`` and ``password_reset_tokens`` tables."""

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        birthdate,
        first_name: Optional[str],
        last_name: Optional[str],
        conn: Optional[PgConnection] = None,
    ) -> UserAccount:
        try:
            with managed_connection(conn) as (connection, _):
                with dict_cursor(connection) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO users (email, password_hash, role, birthdate, first_name, last_name)
                        VALUES (LOWER(%(email)s), %(password_hash)s, %(role)s, %(birthdate)s,
                                %(first_name)s, %(last_name)s)
                        RETURNING {_ACCOUNT_COLUMNS}
                        """,
                        {
                            "email": email,
                            "password_hash": password_hash,
                            "role": UserRole.USER.value,
                            "birthdate": birthdate,
                            "first_name": first_name,
                            "last_name": last_name,
                        },
                    )
                    row = cur.fetchone()
        except pg_errors.UniqueViolation as exc:
            raise ValueError("An account with this email already exists") from exc
        return _row_to_account(row)

    def get_user_by_id(self, user_id: str, *, conn: Optional[PgConnection] = None) -> Optional[UserAccount]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(f"SELECT {_ACCOUNT_COLUMNS} FROM users WHERE id = %(id)s", {"id": user_id})
                row = cur.fetchone()
        return _row_to_account(row) if row else None

    def get_user_by_email(self, email: str, *, conn: Optional[PgConnection] = None) -> Optional[UserAccount]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    f"SELECT {_ACCOUNT_COLUMNS} FROM users WHERE LOWER(email) = LOWER(%(email)s)",
                    {"email": email},
                )
                row = cur.fetchone()
        return _row_to_account(row) if row else None

    def get_credentials(self, email: str, *, conn: Optional[PgConnection] = None) -> Optional[StoredCredentials]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    f"SELECT {_ACCOUNT_COLUMNS}, password_hash FROM users WHERE LOWER(email) = LOWER(%(email)s)",
                    {"email": email},
                )
                row = cur.fetchone()
        if not row:
            return None
        return StoredCredentials(account=_row_to_account(row), password_hash=row["password_hash"])

    def update_profile(
        self,
        user_id: str,
        *,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
        conn: Optional[PgConnection] = None,
    ) -> Optional[UserAccount]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    f"""
                    UPDATE users
                    SET first_name = %(first_name)s, last_name = %(last_name)s, phone = %(phone)s
                    WHERE id = %(id)s
                    RETURNING {_ACCOUNT_COLUMNS}
                    """,
                    {"id": user_id, "first_name": first_name, "last_name": last_name, "phone": phone},
                )
                row = cur.fetchone()
        return _row_to_account(row) if row else None

    def set_password_hash(self, user_id: str, password_hash: str, *, conn: Optional[PgConnection] = None) -> None:
        with managed_connection(conn) as (connection, _):
            with connection.cursor() as cur:
                cur.execute(
                    "UPDATE users SET password_hash = %(password_hash)s WHERE id = %(id)s",
                    {"id": user_id, "password_hash": password_hash},
                )

    def set_email(
        self, user_id: str, email: str, *, conn: Optional[PgConnection] = None
    ) -> Optional[UserAccount]:
        try:
            with managed_connection(conn) as (connection, _):
                with dict_cursor(connection) as cur:
                    cur.execute(
                        f"UPDATE users SET email = LOWER(%(email)s) WHERE id = %(id)s RETURNING {_ACCOUNT_COLUMNS}",
                        {"id": user_id, "email": email},
                    )
                    row = cur.fetchone()
        except pg_errors.UniqueViolation as exc:
            raise ValueError("An account with this email already exists") from exc
        return _row_to_account(row) if row else None

    def set_role(
        self, user_id: str, role: Optional[UserRole], *, conn: Optional[PgConnection] = None
    ) -> Optional[UserAccount]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    f"UPDATE users SET role = %(role)s WHERE id = %(id)s RETURNING {_ACCOUNT_COLUMNS}",
                    {"id": user_id, "role": role.value if role else None},
                )
                row = cur.fetchone()
        return _row_to_account(row) if row else None

    def list_users(
        self,
        *,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        limit: int = 25,
        offset: int = 0,
        conn: Optional[PgConnection] = None,
    ) -> Tuple[Sequence[UserAccount], int]:
        clauses = []
        params = {"limit": limit, "offset": offset}
        if search:
            clauses.append(
                "(email ILIKE %(pattern)s OR first_name ILIKE %(pattern)s OR last_name ILIKE %(pattern)s)"
            )
            params["pattern"] = f"%{search.strip()}%"
        if role is not None:
            clauses.append("role = %(role)s")
            params["role"] = role.value
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(f"SELECT COUNT(*) AS total FROM users{where}", params)
                total = int(cur.fetchone()["total"])
                cur.execute(
                    f"SELECT {_ACCOUNT_COLUMNS} FROM users{where}"
                    " ORDER BY created_at DESC, id DESC LIMIT %(limit)s OFFSET %(offset)s",
                    params,
                )
                rows = cur.fetchall()
        return [_row_to_account(row) for row in rows], total

    def store_reset_token(
        self,
        user_id: str,
        token_hash: str,
        expires_at: datetime,
        *,
        now: datetime,
        conn: Optional[PgConnection] = None,
    ) -> None:
        with managed_connection(conn) as (connection, _):
            with connection.cursor() as cur:
                cur.execute("DELETE FROM password_reset_tokens WHERE expires_at <= %(now)s", {"now": now})
                cur.execute("DELETE FROM password_reset_tokens WHERE user_id = %(user_id)s", {"user_id": user_id})
                cur.execute(
                    """
                    INSERT INTO password_reset_tokens (user_id, token_hash, expires_at)
                    VALUES (%(user_id)s, %(token_hash)s, %(expires_at)s)
                    """,
                    {"user_id": user_id, "token_hash": token_hash, "expires_at": expires_at},
                )

    def consume_reset_token(
        self, token_hash: str, *, now: datetime, conn: Optional[PgConnection] = None
    ) -> Optional[str]:
        """Delete a live token and return its user id, or ``None`` when unknown or expired."""

        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    """
                    DELETE FROM password_reset_tokens
                    WHERE token_hash = %(token_hash)s
                    RETURNING user_id, expires_at
                    """,
                    {"token_hash": token_hash},
                )
                row = cur.fetchone()
        if not row or row["expires_at"] <= now:
            return None
        return str(row["user_id"])
