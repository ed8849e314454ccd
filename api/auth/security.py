"""
Password hashing helpers (bcrypt).

These are blocking, CPU-bound calls; the service runs them in the threadpool.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10

# bcrypt only reads the first 72 bytes; longer input is cut, as other bcrypt
# implementations do, instead of being rejected.
MAX_PASSWORD_BYTES = 72


class AuthSecurityError(RuntimeError):
    pass


def _password_bytes(plain_password: str) -> bytes:
    return (plain_password or "").encode("utf-8")[:MAX_PASSWORD_BYTES]


def hash_password(plain_password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    password = _password_bytes(plain_password)
    if not password:
        raise AuthSecurityError("Password is empty.")
    return bcrypt.hashpw(password, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = _password_bytes(plain_password)
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


_dummy_hashes: dict[int, str] = {}


def dummy_hash(*, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    A fixed hash at the configured cost, used to verify against when no
    account matched so both login failure paths do the same bcrypt work.
    """
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = hash_password("not-a-real-password", rounds=rounds)
    return _dummy_hashes[rounds]
