"""bcrypt password hashing through passlib."""
from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext

from folio_auth.settings import get_settings


@lru_cache(maxsize=1)
def _context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=int(get_settings().bcrypt_rounds),
    )


def hash_password(plain: str, *, rounds: int | None = None) -> str:
    """bcrypt hash; ``rounds`` overrides the configured cost (tests use the minimum)."""
    if rounds is None:
        return _context().hash(plain)
    return _context().hash(plain, rounds=rounds)


def verify_password(plain: str, password_hash: str | None) -> bool:
    """
    Constant-time check of ``plain`` against a stored hash. A missing or
    unrecognised hash never matches; callers only ever see True/False.
    """
    if not password_hash:
        return False
    try:
        return _context().verify(plain, password_hash)
    except (TypeError, ValueError):
        return False
