"""
Application settings.

All environment variables are read once by `Settings.from_env()` at startup.
The resulting object lives on `app.state.settings`; handlers receive it
through the `get_settings` dependency instead of reading `os.environ`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from fastapi import Request

_TRUTHY = {"1", "true", "yes", "on"}


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq's sslmode query parameter.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""
    db_pool_min: int = 1
    db_pool_max: int = 10
    db_command_timeout: float = 30.0
    db_acquire_timeout: float = 10.0
    db_apply_schema: bool = False

    host: str = "0.0.0.0"
    port: int = 3000
    tls_keyfile: str = ""
    tls_certfile: str = ""

    bcrypt_rounds: int = 10

    rate_limit_enabled: bool = True
    rate_limit_window_s: float = 15 * 60
    rate_limit_max: int = 100
    login_rate_limit_window_s: float = 15 * 60
    login_rate_limit_max: int = 10
    trust_forwarded_for: bool = False

    security_headers_enabled: bool = True
    cors_allow_origins: tuple[str, ...] = field(default_factory=tuple)

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_env_str("DATABASE_URL"),
            db_host=_env_str("DB_HOST", "localhost"),
            db_port=_env_int("DB_PORT", 5432),
            db_user=_env_str("DB_USER"),
            db_password=os.environ.get("DB_PASSWORD", ""),
            db_name=_env_str("DB_NAME"),
            db_pool_min=_env_int("DB_POOL_MIN", 1),
            db_pool_max=_env_int("DB_POOL_MAX", 10),
            db_command_timeout=_env_float("DB_COMMAND_TIMEOUT", 30.0),
            db_acquire_timeout=_env_float("DB_ACQUIRE_TIMEOUT", 10.0),
            db_apply_schema=_env_bool("DB_APPLY_SCHEMA", False),
            host=_env_str("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3000),
            tls_keyfile=_env_str("TLS_KEYFILE"),
            tls_certfile=_env_str("TLS_CERTFILE"),
            bcrypt_rounds=_env_int("BCRYPT_ROUNDS", 10),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
            rate_limit_window_s=_env_float("RATE_LIMIT_WINDOW_S", 15 * 60),
            rate_limit_max=_env_int("RATE_LIMIT_MAX", 100),
            login_rate_limit_window_s=_env_float("LOGIN_RATE_LIMIT_WINDOW_S", 15 * 60),
            login_rate_limit_max=_env_int("LOGIN_RATE_LIMIT_MAX", 10),
            trust_forwarded_for=_env_bool("TRUST_FORWARDED_FOR", False),
            security_headers_enabled=_env_bool("SECURITY_HEADERS_ENABLED", True),
            cors_allow_origins=_env_list("CORS_ALLOW_ORIGINS"),
            log_level=_env_str("LOG_LEVEL", "INFO"),
            log_format=_env_str("LOG_FORMAT", "text").lower(),
        )

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_keyfile and self.tls_certfile)

    def dsn(self) -> str:
        """
        Connection string for asyncpg.

        DATABASE_URL wins; otherwise the DSN is assembled from the DB_* parts.
        """
        if self.database_url:
            return _sanitize_database_url(self.database_url)
        if not self.db_name:
            raise RuntimeError("DATABASE_URL or DB_NAME must be set.")

        credentials = ""
        if self.db_user:
            credentials = quote(self.db_user, safe="")
            if self.db_password:
                credentials += ":" + quote(self.db_password, safe="")
            credentials += "@"
        return f"postgresql://{credentials}{self.db_host}:{self.db_port}/{quote(self.db_name, safe='')}"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
