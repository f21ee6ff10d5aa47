# folio_auth/domain/services.py
from __future__ import annotations

import hashlib
import secrets


def generate_one_time_token() -> str:
    """Random 32-byte hex token mailed to the user (email verification, reset)."""
    return secrets.token_hex(32)


def hash_one_time_token(token: str) -> str:
    """
    SHA-256 hex digest of a one-time token. Only the digest is stored in the
    credential record.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
