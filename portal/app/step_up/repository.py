"""Persistence layer for one-time verification codes."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import DeliveryMethod, StepUpPurpose, VerificationChallenge


def _row_to_challenge(row: dict) -> VerificationChallenge:
    return VerificationChallenge(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        purpose=StepUpPurpose(row["purpose"]),
        resource_id=row["resource_id"],
        method=DeliveryMethod(row["method"]),
        destination=row["destination"],
        code_hash=row["code_hash"],
        expires_at=row["expires_at"],
        used_at=row.get("used_at"),
        created_at=row["created_at"],
    )


class PostgresChallengeRepository:
    """Stores hashed codes in ``verification_codes``."""

    def create_challenge(
        self,
        *,
        user_id: str,
        purpose: StepUpPurpose,
        resource_id: str,
        method: DeliveryMethod,
        destination: str,
        code_hash: str,
        expires_at: datetime,
        now: datetime,
        conn: Optional[PgConnection] = None,
    ) -> VerificationChallenge:
        params = {
            "user_id": user_id,
            "purpose": purpose.value,
            "resource_id": resource_id,
            "method": method.value,
            "destination": destination,
            "code_hash": code_hash,
            "expires_at": expires_at,
            "now": now,
        }
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("DELETE FROM verification_codes WHERE expires_at <= %(now)s", params)
                cur.execute(
                    """
                    UPDATE verification_codes
                    SET used_at = %(now)s
                    WHERE user_id = %(user_id)s
                      AND purpose = %(purpose)s
                      AND resource_id = %(resource_id)s
                      AND used_at IS NULL
                    """,
                    params,
                )
                cur.execute(
                    """
                    INSERT INTO verification_codes (
                        user_id, purpose, resource_id, method, destination,
                        code_hash, expires_at, created_at
                    )
                    VALUES (
                        %(user_id)s, %(purpose)s, %(resource_id)s, %(method)s, %(destination)s,
                        %(code_hash)s, %(expires_at)s, %(now)s
                    )
                    RETURNING *
                    """,
                    params,
                )
                row = cur.fetchone()
        return _row_to_challenge(row)

    def get_challenge(
        self, challenge_id: str, *, user_id: str, conn: Optional[PgConnection] = None
    ) -> Optional[VerificationChallenge]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    "SELECT * FROM verification_codes WHERE id = %(id)s AND user_id = %(user_id)s",
                    {"id": challenge_id, "user_id": user_id},
                )
                row = cur.fetchone()
        return _row_to_challenge(row) if row else None

    def mark_used(self, challenge_id: str, *, now: datetime, conn: Optional[PgConnection] = None) -> bool:
        with managed_connection(conn) as (connection, _):
            with connection.cursor() as cur:
                cur.execute(
                    """
                    UPDATE verification_codes
                    SET used_at = %(now)s
                    WHERE id = %(id)s AND used_at IS NULL AND expires_at > %(now)s
                    """,
                    {"id": challenge_id, "now": now},
                )
                return cur.rowcount == 1
