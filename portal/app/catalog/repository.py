"""Persistence layer for service catalog definitions."""
from __future__ import annotations

from typing import Optional, Sequence

from psycopg2 import errors as pg_errors
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import Acknowledgment, PricingPeriod, PricingType, ServiceDefinition, ServiceDefinitionInput

_COLUMNS = (
    "display_name",
    "description",
    "display_description",
    "version",
    "enabled",
    "requires_agreement",
    "terms_content",
    "features",
    "pricing_type",
    "pricing_amount",
    "pricing_percentage",
    "pricing_period",
    "max_instances_per_user",
    "acknowledgments",
    "settings",
)


def _row_to_service(row: dict) -> ServiceDefinition:
    return ServiceDefinition(
        id=str(row["id"]),
        name=row["name"],
        display_name=row["display_name"],
        description=row.get("description"),
        display_description=row.get("display_description"),
        version=row.get("version") or "1.0",
        enabled=bool(row.get("enabled")),
        requires_agreement=bool(row.get("requires_agreement", True)),
        terms_content=row.get("terms_content") or "",
        terms_updated_at=row.get("terms_updated_at"),
        features=tuple(row.get("features") or ()),
        pricing_type=PricingType(row.get("pricing_type") or PricingType.FIXED.value),
        pricing_amount=row.get("pricing_amount"),
        pricing_percentage=row.get("pricing_percentage"),
        pricing_period=PricingPeriod(row.get("pricing_period") or PricingPeriod.MONTHLY.value),
        max_instances_per_user=row.get("max_instances_per_user"),
        acknowledgments=tuple(Acknowledgment(**item) for item in row.get("acknowledgments") or ()),
        settings=row.get("settings") or {},
        created_at=row["created_at"],
    )


def _input_params(payload: ServiceDefinitionInput) -> dict:
    params = payload.model_dump(include=set(_COLUMNS))
    params["pricing_type"] = payload.pricing_type.value
    params["pricing_period"] = payload.pricing_period.value
    params["features"] = psycopg2.extras.Json(list(payload.features))
    params["acknowledgments"] = psycopg2.extras.Json(
        [ack.model_dump() for ack in payload.acknowledgments]
    )
    params["settings"] = psycopg2.extras.Json(payload.settings)
    return params


class PostgresCatalogRepository:
    """Reads and writes rows of the ``services`` table."""

    def list_enabled_services(self, *, conn: Optional[PgConnection] = None) -> Sequence[ServiceDefinition]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM services WHERE enabled = TRUE ORDER BY created_at ASC, name ASC")
                rows = cur.fetchall()
        return [_row_to_service(row) for row in rows]

    def list_all_services(self, *, conn: Optional[PgConnection] = None) -> Sequence[ServiceDefinition]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM services ORDER BY created_at ASC, name ASC")
                rows = cur.fetchall()
        return [_row_to_service(row) for row in rows]

    def get_service_by_name(
        self, name: str, *, conn: Optional[PgConnection] = None
    ) -> Optional[ServiceDefinition]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM services WHERE name = %(name)s", {"name": name})
                row = cur.fetchone()
        return _row_to_service(row) if row else None

    def get_services_by_names(
        self, names: Sequence[str], *, conn: Optional[PgConnection] = None
    ) -> Sequence[ServiceDefinition]:
        if not names:
            return []
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    "SELECT * FROM services WHERE name IN %(names)s ORDER BY created_at ASC, name ASC",
                    {"names": tuple(names)},
                )
                rows = cur.fetchall()
        return [_row_to_service(row) for row in rows]

    def create_service(
        self, payload: ServiceDefinitionInput, *, conn: Optional[PgConnection] = None
    ) -> ServiceDefinition:
        params = _input_params(payload)
        params["name"] = payload.name
        columns = ("name",) + _COLUMNS
        placeholders = ", ".join(f"%({column})s" for column in columns)
        try:
            with managed_connection(conn) as (connection, _):
                with dict_cursor(connection) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO services ({", ".join(columns)}, terms_updated_at)
                        VALUES ({placeholders}, NOW())
                        RETURNING *
                        """,
                        params,
                    )
                    row = cur.fetchone()
        except pg_errors.UniqueViolation as exc:
            raise ValueError(f"A service named {payload.name!r} already exists") from exc
        return _row_to_service(row)

    def update_service(
        self,
        name: str,
        payload: ServiceDefinitionInput,
        *,
        conn: Optional[PgConnection] = None,
    ) -> Optional[ServiceDefinition]:
        params = _input_params(payload)
        params["name"] = name
        assignments = ", ".join(f"{column} = %({column})s" for column in _COLUMNS)
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    f"""
                    UPDATE services
                    SET {assignments},
                        terms_updated_at = CASE
                            WHEN terms_content IS DISTINCT FROM %(terms_content)s THEN NOW()
                            ELSE terms_updated_at
                        END
                    WHERE name = %(name)s
                    RETURNING *
                    """,
                    params,
                )
                row = cur.fetchone()
        return _row_to_service(row) if row else None

    def set_enabled(
        self, name: str, enabled: bool, *, conn: Optional[PgConnection] = None
    ) -> Optional[ServiceDefinition]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    "UPDATE services SET enabled = %(enabled)s WHERE name = %(name)s RETURNING *",
                    {"name": name, "enabled": enabled},
                )
                row = cur.fetchone()
        return _row_to_service(row) if row else None
