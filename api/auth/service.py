"""
Auth business logic.

Login failures are deliberately uniform: an unknown username, an inactive
account and a wrong password all produce the same response body.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool

from core.config import Settings

from . import repository, schemas, security

logger = logging.getLogger(__name__)

REGISTER_OK_MESSAGE = "User created successfully"
REGISTER_ERROR_MESSAGE = "Error creating user"
LOGIN_OK_MESSAGE = "Login successful"
LOGIN_INVALID_MESSAGE = "Invalid username or password."
LOGIN_ERROR_MESSAGE = "Error during login"


def _to_account_response(user_row: dict) -> dict:
    # password_hash is never serialized.
    return {
        "customerID": int(user_row["customer_id"]),
        "username": str(user_row["username"]),
        "isActive": bool(user_row["is_active"]),
        "createdAt": user_row.get("created_at"),
    }


async def register(payload: schemas.RegisterRequest, *, settings: Settings) -> dict:
    try:
        password_hash = await run_in_threadpool(
            security.hash_password,
            payload.password,
            rounds=settings.bcrypt_rounds,
        )
        await repository.create_user(username=payload.username, password_hash=password_hash)
    except Exception as exc:
        logger.exception("register_failed username=%s", payload.username, extra={"username": payload.username})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=REGISTER_ERROR_MESSAGE,
        ) from exc

    logger.info("register_ok username=%s", payload.username, extra={"username": payload.username})
    return {"message": REGISTER_OK_MESSAGE, "status": True}


async def login(payload: schemas.LoginRequest, *, settings: Settings) -> dict:
    try:
        user_row = await repository.get_active_user_by_username(payload.username)
        if user_row is not None:
            stored_hash = str(user_row.get("password_hash") or "")
        else:
            stored_hash = await run_in_threadpool(security.dummy_hash, rounds=settings.bcrypt_rounds)
        is_valid = await run_in_threadpool(security.verify_password, payload.password, stored_hash)
    except Exception as exc:
        logger.exception("login_failed username=%s", payload.username, extra={"username": payload.username})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=LOGIN_ERROR_MESSAGE,
        ) from exc

    if user_row is None or not is_valid:
        logger.info("login_rejected username=%s", payload.username, extra={"username": payload.username})
        return {"message": LOGIN_INVALID_MESSAGE, "status": False}

    account = _to_account_response(user_row)
    account["message"] = LOGIN_OK_MESSAGE
    account["status"] = True
    return account
