"""
Product API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from core import body

from . import schemas, service

router = APIRouter()


@router.post("/product")
async def create_product(
    request: schemas.ProductCreateRequest = Depends(body.json_or_form(schemas.ProductCreateRequest)),
) -> dict:
    return await service.create_product(request)


@router.get("/product/{product_id}")
async def get_product(product_id: int) -> list[dict]:
    return await service.get_product(product_id)
