"""Persistence layer for products."""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

from psycopg2 import errors as pg_errors
from psycopg2.extensions import connection as PgConnection

from ..persistence import dict_cursor, managed_connection
from .models import Product, ProductInput, ProductQuery, ProductSort

_SORT_COLUMNS = {
    ProductSort.NAME: "name",
    ProductSort.PRICE: "price",
    ProductSort.CREATED_AT: "created_at",
}


def _row_to_product(row: dict) -> Product:
    return Product(
        id=str(row["id"]),
        sku=row["sku"],
        name=row["name"],
        description=row.get("description"),
        price=row["price"],
        active=bool(row.get("active", True)),
        created_at=row["created_at"],
    )


def _duplicate_sku(sku: str) -> ValueError:
    return ValueError(f"A product with SKU {sku!r} already exists")


class PostgresProductRepository:
    def list_products(
        self, query: ProductQuery, *, conn: Optional[PgConnection] = None
    ) -> Tuple[Sequence[Product], int]:
        params = {"limit": query.page_size, "offset": query.offset}
        where = ""
        if query.search and query.search.strip():
            where = " WHERE name ILIKE %(pattern)s OR sku ILIKE %(pattern)s"
            params["pattern"] = f"%{query.search.strip()}%"
        direction = "DESC" if query.descending else "ASC"
        order = f" ORDER BY {_SORT_COLUMNS[query.sort]} {direction}, id {direction}"
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute(f"SELECT COUNT(*) AS total FROM products{where}", params)
                total = int(cur.fetchone()["total"])
                cur.execute(f"SELECT * FROM products{where}{order} LIMIT %(limit)s OFFSET %(offset)s", params)
                rows = cur.fetchall()
        return [_row_to_product(row) for row in rows], total

    def get_product(self, product_id: str, *, conn: Optional[PgConnection] = None) -> Optional[Product]:
        with managed_connection(conn) as (connection, _):
            with dict_cursor(connection) as cur:
                cur.execute("SELECT * FROM products WHERE id = %(id)s", {"id": product_id})
                row = cur.fetchone()
        return _row_to_product(row) if row else None

    def create_product(self, payload: ProductInput, *, conn: Optional[PgConnection] = None) -> Product:
        try:
            with managed_connection(conn) as (connection, _):
                with dict_cursor(connection) as cur:
                    cur.execute(
                        """
                        INSERT INTO products (sku, name, description, price, active)
                        VALUES (%(sku)s, %(name)s, %(description)s, %(price)s, %(active)s)
                        RETURNING *
                        """,
                        payload.model_dump(),
                    )
                    row = cur.fetchone()
        except pg_errors.UniqueViolation as exc:
            raise _duplicate_sku(payload.sku) from exc
        return _row_to_product(row)

    def update_product(
        self, product_id: str, payload: ProductInput, *, conn: Optional[PgConnection] = None
    ) -> Optional[Product]:
        try:
            with managed_connection(conn) as (connection, _):
                with dict_cursor(connection) as cur:
                    cur.execute(
                        """
                        UPDATE products
                        SET sku = %(sku)s, name = %(name)s, description = %(description)s,
                            price = %(price)s, active = %(active)s
                        WHERE id = %(id)s
                        RETURNING *
                        """,
                        {**payload.model_dump(), "id": product_id},
                    )
                    row = cur.fetchone()
        except pg_errors.UniqueViolation as exc:
            raise _duplicate_sku(payload.sku) from exc
        return _row_to_product(row) if row else None

    def delete_product(self, product_id: str, *, conn: Optional[PgConnection] = None) -> bool:
        with managed_connection(conn) as (connection, _):
            with connection.cursor() as cur:
                cur.execute("DELETE FROM products WHERE id = %(id)s", {"id": product_id})
                return cur.rowcount == 1
