"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from core import body, rate_limit
from core.config import Settings, get_settings

from . import schemas, service

router = APIRouter()


@router.post("/register")
async def register(
    request: schemas.RegisterRequest = Depends(body.json_or_form(schemas.RegisterRequest)),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await service.register(request, settings=settings)


@router.post("/login", dependencies=[Depends(rate_limit.login_rate_limit)])
async def login(
    request: schemas.LoginRequest = Depends(body.json_or_form(schemas.LoginRequest)),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await service.login(request, settings=settings)
