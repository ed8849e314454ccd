"""
Product persistence (raw SQL).
"""

from __future__ import annotations

from decimal import Decimal

from core import db


async def create_product(
    *,
    product_name: str,
    product_detail: str,
    price: Decimal,
    cost: Decimal,
    quantity: int,
) -> int:
    row = await db.fetch_one(
        """
        INSERT INTO product (product_name, product_detail, price, cost, quantity)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING product_id
        """,
        product_name,
        product_detail,
        price,
        cost,
        quantity,
    )
    if row is None:
        raise RuntimeError("Failed to insert product.")
    return int(row["product_id"])


async def get_products_by_id(product_id: int) -> list[dict]:
    """
    Primary-key lookup. Returns the result set as-is: zero or one row.
    """
    return await db.fetch_all(
        """
        SELECT product_id, product_name, product_detail, price, cost, quantity
        FROM product
        WHERE product_id = $1
        """,
        product_id,
    )
