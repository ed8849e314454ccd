"""
Pydantic schemas for product endpoints.

Field names on the wire are camelCase (`productName`, ...); Python code uses
snake_case.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProductCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(..., alias="productName")
    product_detail: str = Field(default="", alias="productDetail")
    price: Decimal
    cost: Decimal
    quantity: int
