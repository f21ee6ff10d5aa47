"""Time-based one-time passwords (RFC 6238) built on pyotp."""
from __future__ import annotations

import logging
from datetime import datetime

import pyotp

logger = logging.getLogger(__name__)


def new_secret() -> str:
    """Fresh base32 shared secret (160 bits)."""
    return pyotp.random_base32()


def provisioning_uri(secret: str, *, email: str, issuer: str) -> str:
    """otpauth:// URI for authenticator apps (usually rendered as a QR code client-side)."""
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)


def verify_code(
    secret: str,
    code: str,
    *,
    valid_window: int = 1,
    now: datetime | int | None = None,
) -> bool:
    """
    Check ``code`` against ``secret`` at ``now``, accepting ``valid_window``
    time steps on either side for clock drift.
    """
    code = (code or "").strip()
    if not code.isdigit():
        return False
    try:
        return bool(
            pyotp.TOTP(secret).verify(code, for_time=now, valid_window=valid_window)
        )
    except ValueError:
        # corrupt secret (bad base32)
        logger.error("totp secret could not be decoded")
        return False
