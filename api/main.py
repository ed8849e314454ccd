from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from auth import router as auth_router
from core import db, headers, rate_limit
from core.config import Settings
from core.observability import setup_logging
from products import router as products_router

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request."


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    # An unreachable store is fatal: fail startup instead of serving errors.
    try:
        await db.init_pool(settings)
        if settings.db_apply_schema:
            await db.apply_schema()
    except Exception:
        logger.critical("db_unavailable host=%s name=%s", settings.db_host, settings.db_name, exc_info=True)
        await db.close_pool()
        raise
    try:
        yield
    finally:
        await db.close_pool()


async def _http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "status": False},
        headers=exc.headers,
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_invalid path=%s errors=%s", request.url.path, len(exc.errors()))
    return JSONResponse(
        status_code=422,
        content={"message": INVALID_REQUEST_MESSAGE, "status": False},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.general_limiter = None
    app.state.login_limiter = None

    if settings.rate_limit_enabled:
        app.state.general_limiter = rate_limit.SlidingWindowLimiter(
            max_requests=settings.rate_limit_max,
            window_s=settings.rate_limit_window_s,
        )
        app.state.login_limiter = rate_limit.SlidingWindowLimiter(
            max_requests=settings.login_rate_limit_max,
            window_s=settings.login_rate_limit_window_s,
        )

    # Middleware added last runs first: headers wrap the limiter's 429s too.
    app.middleware("http")(rate_limit.general_rate_limit)
    if settings.security_headers_enabled:
        app.middleware("http")(headers.security_headers)

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(products_router.router, tags=["products"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    settings: Settings = app.state.settings
    options = {}
    if settings.tls_enabled:
        options = {"ssl_keyfile": settings.tls_keyfile, "ssl_certfile": settings.tls_certfile}
    logger.info(
        "server_starting host=%s port=%s https=%s",
        settings.host,
        settings.port,
        settings.tls_enabled,
    )
    uvicorn.run(app, host=settings.host, port=settings.port, server_header=False, **options)


if __name__ == "__main__":
    run()
