"""
Request-body dependency accepting JSON or urlencoded form data.

Form values arrive as strings; pydantic's lax mode coerces them to the
schema's field types exactly as it does for JSON input.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


async def _read_payload(request: Request) -> Any:
    if _media_type(request) == FORM_CONTENT_TYPE:
        form = await request.form()
        return dict(form)
    try:
        return await request.json()
    except ValueError as exc:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "Body is not valid JSON.", "input": None}]
        ) from exc


def json_or_form(model: type[ModelT]) -> Callable[[Request], Any]:
    async def dependency(request: Request) -> ModelT:
        payload = await _read_payload(request)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors()) from exc

    return dependency
