"""
Product business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from . import repository, schemas

logger = logging.getLogger(__name__)

SAVE_OK_MESSAGE = "Product saved successfully"
SAVE_ERROR_MESSAGE = "Error saving product"
FETCH_ERROR_MESSAGE = "Error fetching product"

# product_id is a SERIAL (int4) column.
PRODUCT_ID_MIN = -(2**31)
PRODUCT_ID_MAX = 2**31 - 1


def _to_number(value):
    if value is None:
        return None
    return float(value)


def _to_product_response(row: dict) -> dict:
    return {
        "productID": int(row["product_id"]),
        "productName": row["product_name"],
        "productDetail": row["product_detail"],
        "price": _to_number(row["price"]),
        "cost": _to_number(row["cost"]),
        "quantity": row["quantity"],
    }


async def create_product(payload: schemas.ProductCreateRequest) -> dict:
    try:
        product_id = await repository.create_product(
            product_name=payload.product_name,
            product_detail=payload.product_detail,
            price=payload.price,
            cost=payload.cost,
            quantity=payload.quantity,
        )
    except Exception as exc:
        logger.exception("product_create_failed product_name=%s", payload.product_name)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SAVE_ERROR_MESSAGE,
        ) from exc

    return {"message": SAVE_OK_MESSAGE, "status": True, "productID": product_id}


async def get_product(product_id: int) -> list[dict]:
    # "Not found" is an empty list, not an error.
    if not PRODUCT_ID_MIN <= product_id <= PRODUCT_ID_MAX:
        return []
    try:
        rows = await repository.get_products_by_id(product_id)
    except Exception as exc:
        logger.exception(
            "product_fetch_failed product_id=%s",
            product_id,
            extra={"product_id": product_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=FETCH_ERROR_MESSAGE,
        ) from exc
    return [_to_product_response(row) for row in rows]
