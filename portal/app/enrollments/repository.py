"""Persistence layer for service agreements and broker accounts.

Linked agreement and broker rows are always written inside one transaction.
"""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import (
    HELD_STATUSES,
    LIVE_STATUSES,
    AgreementDraft,
    AgreementStatus,
    BrokerAccount,
    BrokerAccountDraft,
    Enrollment,
    ServiceAgreement,
    StatusChange,
    SuspensionReason,
)

_ENROLLMENT_SELECT = """
    SELECT a.*,
           b.id AS broker_id,
           b.user_id AS broker_user_id,
           b.broker_name AS broker_name,
           b.account_number AS broker_account_number,
           b.account_password AS broker_account_password,
           b.api_key AS broker_api_key,
           b.is_active AS broker_is_active,
           b.created_at AS broker_created_at
    FROM service_agreements a
    LEFT JOIN broker_accounts b ON b.service_agreement_id = a.id
"""

_HELD_STATUS_VALUES = tuple(status.value for status in HELD_STATUSES)


def _row_to_agreement(row: dict) -> ServiceAgreement:
    return ServiceAgreement(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        service_name=row["service_name"],
        service_version=row["service_version"],
        confirmed_fields=row.get("confirmed_fields") or {},
        agreed_to_terms=bool(row.get("agreed_to_terms")),
        agreed_at=row["agreed_at"],
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        terms_sha256=row.get("terms_sha256"),
        status=AgreementStatus(row["status"]),
        cancelled_at=row.get("cancelled_at"),
        cancellation_reason=row.get("cancellation_reason"),
        suspended_at=row.get("suspended_at"),
        suspended_by=row.get("suspended_by"),
        suspension_reason=row.get("suspension_reason"),
        suspension_notes=row.get("suspension_notes"),
        version=int(row["version"]),
        updated_at=row["updated_at"],
    )


def _row_to_broker(row: dict) -> BrokerAccount:
    linked = row.get("service_agreement_id")
    return BrokerAccount(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        broker_name=row["broker_name"],
        account_number=row["account_number"],
        account_password=row["account_password"],
        api_key=row.get("api_key"),
        is_active=bool(row["is_active"]),
        service_agreement_id=str(linked) if linked else None,
        created_at=row["created_at"],
    )


def _joined_broker(row: dict) -> BrokerAccount:
    return BrokerAccount(
        id=str(row["broker_id"]),
        user_id=str(row["broker_user_id"]),
        broker_name=row["broker_name"],
        account_number=row["broker_account_number"],
        account_password=row["broker_account_password"],
        api_key=row.get("broker_api_key"),
        is_active=bool(row["broker_is_active"]),
        service_agreement_id=str(row["id"]),
        created_at=row["broker_created_at"],
    )


def _row_to_enrollment(row: dict) -> Enrollment:
    broker = _joined_broker(row) if row.get("broker_id") else None
    return Enrollment(agreement=_row_to_agreement(row), broker_account=broker)


class PostgresEnrollmentRepository:
    """Reads and writes ``service_agreements`` and ``broker_accounts``."""

    def list_live_agreements(
        self,
        user_id: str,
        *,
        service_name: Optional[str] = None,
        statuses: Sequence[AgreementStatus] = LIVE_STATUSES,
        conn: Optional[PgConnection] = None,
    ) -> Sequence[ServiceAgreement]:
        """Return agreements in ``statuses``, oldest first, ties broken by id."""

        params = {
            "user_id": user_id,
            "statuses": tuple(status.value for status in statuses),
            "service_name": service_name,
        }
        query = "SELECT * FROM service_agreements WHERE user_id = %(user_id)s AND status IN %(statuses)s"
        if service_name is not None:
            query += " AND service_name = %(service_name)s"
        query += " ORDER BY agreed_at ASC, id ASC"
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [_row_to_agreement(row) for row in rows]

    def list_enrollments_for_user(
        self,
        user_id: str,
        *,
        statuses: Sequence[AgreementStatus] = LIVE_STATUSES,
        conn: Optional[PgConnection] = None,
    ) -> Sequence[Enrollment]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    _ENROLLMENT_SELECT
                    + """
                    WHERE a.user_id = %(user_id)s AND a.status IN %(statuses)s
                    ORDER BY a.agreed_at DESC, a.id DESC
                    """,
                    {"user_id": user_id, "statuses": tuple(status.value for status in statuses)},
                )
                rows = cur.fetchall()
        return [_row_to_enrollment(row) for row in rows]

    def get_enrollment(
        self,
        agreement_id: str,
        *,
        user_id: Optional[str] = None,
        conn: Optional[PgConnection] = None,
    ) -> Optional[Enrollment]:
        query = _ENROLLMENT_SELECT + " WHERE a.id = %(agreement_id)s"
        if user_id is not None:
            query += " AND a.user_id = %(user_id)s"
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(query, {"agreement_id": agreement_id, "user_id": user_id})
                row = cur.fetchone()
        return _row_to_enrollment(row) if row else None

    def create_enrollment(
        self,
        agreement: AgreementDraft,
        broker: BrokerAccountDraft,
        *,
        max_instances: int,
        conn: Optional[PgConnection] = None,
    ) -> Optional[Enrollment]:
        """Insert the agreement and its broker account atomically.

        Returns ``None`` without writing when the user already holds
        ``max_instances`` active, paused or suspended agreements for the service.
        """

        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    "SELECT pg_advisory_xact_lock(hashtext(%(key)s))",
                    {"key": f"enroll:{agreement.user_id}:{agreement.service_name}"},
                )
                cur.execute(
                    """
                    SELECT COUNT(*) AS total
                    FROM service_agreements
                    WHERE user_id = %(user_id)s
                      AND service_name = %(service_name)s
                      AND status IN %(statuses)s
                    """,
                    {
                        "user_id": agreement.user_id,
                        "service_name": agreement.service_name,
                        "statuses": _HELD_STATUS_VALUES,
                    },
                )
                if int(cur.fetchone()["total"]) >= max_instances:
                    return None

                cur.execute(
                    """
                    INSERT INTO service_agreements (
                        user_id, service_name, service_version, confirmed_fields,
                        agreed_to_terms, agreed_at, ip_address, user_agent,
                        terms_sha256, status, version, updated_at
                    )
                    VALUES (
                        %(user_id)s, %(service_name)s, %(service_version)s, %(confirmed_fields)s,
                        %(agreed_to_terms)s, %(agreed_at)s, %(ip_address)s, %(user_agent)s,
                        %(terms_sha256)s, %(status)s, 1, %(agreed_at)s
                    )
                    RETURNING *
                    """,
                    {
                        **agreement.model_dump(),
                        "confirmed_fields": psycopg2.extras.Json(agreement.confirmed_fields),
                        "status": AgreementStatus.ACTIVE.value,
                    },
                )
                agreement_row = cur.fetchone()

                cur.execute(
                    """
                    INSERT INTO broker_accounts (
                        user_id, broker_name, account_number, account_password,
                        api_key, is_active, service_agreement_id
                    )
                    VALUES (
                        %(user_id)s, %(broker_name)s, %(account_number)s, %(account_password)s,
                        %(api_key)s, TRUE, %(service_agreement_id)s
                    )
                    RETURNING *
                    """,
                    {**broker.model_dump(), "service_agreement_id": agreement_row["id"]},
                )
                broker_row = cur.fetchone()

        return Enrollment(
            agreement=_row_to_agreement(agreement_row),
            broker_account=_row_to_broker(broker_row),
        )

    def apply_status_change(
        self,
        agreement_id: str,
        change: StatusChange,
        *,
        expected_version: int,
        user_id: Optional[str] = None,
        conn: Optional[PgConnection] = None,
    ) -> Optional[Enrollment]:
        """Conditionally update an agreement and its broker flag in one transaction.

        Returns ``None`` when no row matched the id, owner and version.
        """

        params = {
            **change.model_dump(exclude={"broker_active"}),
            "status": change.status.value,
            "agreement_id": agreement_id,
            "expected_version": expected_version,
            "user_id": user_id,
        }
        owner_clause = " AND user_id = %(user_id)s" if user_id is not None else ""
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    """
                    UPDATE service_agreements
                    SET status = %(status)s,
                        cancelled_at = %(cancelled_at)s,
                        cancellation_reason = %(cancellation_reason)s,
                        suspended_at = %(suspended_at)s,
                        suspended_by = %(suspended_by)s,
                        suspension_reason = %(suspension_reason)s,
                        suspension_notes = %(suspension_notes)s,
                        version = version + 1,
                        updated_at = NOW()
                    WHERE id = %(agreement_id)s AND version = %(expected_version)s
                    """
                    + owner_clause
                    + " RETURNING *",
                    params,
                )
                agreement_row = cur.fetchone()
                if agreement_row is None:
                    return None
                cur.execute(
                    """
                    UPDATE broker_accounts
                    SET is_active = %(is_active)s
                    WHERE service_agreement_id = %(agreement_id)s
                    RETURNING *
                    """,
                    {"is_active": change.broker_active, "agreement_id": agreement_id},
                )
                broker_row = cur.fetchone()

        return Enrollment(
            agreement=_row_to_agreement(agreement_row),
            broker_account=_row_to_broker(broker_row) if broker_row else None,
        )

    def delete_enrollment(
        self,
        agreement_id: str,
        *,
        user_id: str,
        expected_version: Optional[int] = None,
        conn: Optional[PgConnection] = None,
    ) -> bool:
        """Delete the broker account and then the agreement in one transaction."""

        params = {"agreement_id": agreement_id, "user_id": user_id, "expected_version": expected_version}
        version_clause = " AND version = %(expected_version)s" if expected_version is not None else ""
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    "SELECT id FROM service_agreements WHERE id = %(agreement_id)s AND user_id = %(user_id)s"
                    + version_clause
                    + " FOR UPDATE",
                    params,
                )
                if cur.fetchone() is None:
                    return False
                cur.execute(
                    "DELETE FROM broker_accounts WHERE service_agreement_id = %(agreement_id)s AND user_id = %(user_id)s",
                    params,
                )
                cur.execute(
                    "DELETE FROM service_agreements WHERE id = %(agreement_id)s AND user_id = %(user_id)s",
                    params,
                )
        return True

    def list_agreements(
        self,
        *,
        status: Optional[AgreementStatus] = None,
        service_name: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 25,
        offset: int = 0,
        conn: Optional[PgConnection] = None,
    ) -> Tuple[Sequence[Enrollment], int]:
        clauses = []
        params = {"limit": limit, "offset": offset}
        if status is not None:
            clauses.append("a.status = %(status)s")
            params["status"] = status.value
        if service_name:
            clauses.append("a.service_name = %(service_name)s")
            params["service_name"] = service_name
        if user_id:
            clauses.append("a.user_id = %(user_id)s")
            params["user_id"] = user_id
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(f"SELECT COUNT(*) AS total FROM service_agreements a{where}", params)
                total = int(cur.fetchone()["total"])
                cur.execute(
                    _ENROLLMENT_SELECT
                    + where
                    + " ORDER BY a.agreed_at DESC, a.id DESC LIMIT %(limit)s OFFSET %(offset)s",
                    params,
                )
                rows = cur.fetchall()
        return [_row_to_enrollment(row) for row in rows], total

    def get_broker_account(
        self, broker_account_id: str, *, conn: Optional[PgConnection] = None
    ) -> Optional[BrokerAccount]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM broker_accounts WHERE id = %(id)s", {"id": broker_account_id})
                row = cur.fetchone()
        return _row_to_broker(row) if row else None

    def list_suspension_reasons(
        self, *, active_only: bool = True, conn: Optional[PgConnection] = None
    ) -> Sequence[SuspensionReason]:
        query = "SELECT code, label, description, is_active FROM suspension_reasons"
        if active_only:
            query += " WHERE is_active = TRUE"
        query += " ORDER BY sort_order ASC, code ASC"
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(query)
                rows = cur.fetchall()
        return [SuspensionReason(**row) for row in rows]
