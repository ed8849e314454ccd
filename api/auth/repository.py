"""
Account persistence helpers (`customer` table).
"""

from __future__ import annotations

from core import db


async def create_user(*, username: str, password_hash: str) -> None:
    # No existence check: a duplicate is rejected by the UNIQUE constraint.
    await db.execute(
        """
        INSERT INTO customer (username, password_hash)
        VALUES ($1, $2)
        """,
        username,
        password_hash,
    )


async def get_active_user_by_username(username: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT customer_id, username, password_hash, is_active, created_at
        FROM customer
        WHERE username = $1
          AND is_active = true
        """,
        username,
    )
