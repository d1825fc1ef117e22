"""Persistence layer for billing customers."""
from __future__ import annotations

from typing import Optional

from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import BillingAddress, BillingCustomer


def _row_to_customer(row: dict) -> BillingCustomer:
    return BillingCustomer(
        user_id=str(row["user_id"]),
        provider_customer_id=row["stripe_customer_id"],
        address=BillingAddress(
            line1=row.get("address_line1") or "",
            line2=row.get("address_line2"),
            city=row.get("city") or "",
            state=row.get("state") or "",
            zip=row.get("zip") or "",
            country=row.get("country") or "US",
        ),
        billing_validated_at=row.get("billing_validated_at"),
    )


class PostgresBillingRepository:
    """Reads and writes ``billing_customers``."""

    def get_customer(self, user_id: str, *, conn: Optional[PgConnection] = None) -> Optional[BillingCustomer]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM billing_customers WHERE user_id = %(user_id)s", {"user_id": user_id})
                row = cur.fetchone()
        return _row_to_customer(row) if row else None

    def upsert_customer(self, customer: BillingCustomer, *, conn: Optional[PgConnection] = None) -> BillingCustomer:
        address = customer.address
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(
                    """
                    INSERT INTO billing_customers (
                        user_id, stripe_customer_id, address_line1, address_line2,
                        city, state, zip, country, billing_validated_at
                    )
                    VALUES (
                        %(user_id)s, %(customer_id)s, %(line1)s, %(line2)s,
                        %(city)s, %(state)s, %(zip)s, %(country)s, %(validated_at)s
                    )
                    ON CONFLICT (user_id) DO UPDATE
                    SET stripe_customer_id = EXCLUDED.stripe_customer_id,
                        address_line1 = EXCLUDED.address_line1,
                        address_line2 = EXCLUDED.address_line2,
                        city = EXCLUDED.city,
                        state = EXCLUDED.state,
                        zip = EXCLUDED.zip,
                        country = EXCLUDED.country,
                        billing_validated_at = EXCLUDED.billing_validated_at
                    RETURNING *
                    """,
                    {
                        "user_id": customer.user_id,
                        "customer_id": customer.provider_customer_id,
                        "line1": address.line1,
                        "line2": address.line2,
                        "city": address.city,
                        "state": address.state,
                        "zip": address.zip,
                        "country": address.country,
                        "validated_at": customer.billing_validated_at,
                    },
                )
                row = cur.fetchone()
        return _row_to_customer(row)
