"""
Bearer token issuing and verification (PyJWT, HS256 by default).

Issuer and verifier live in the same trust domain, so a shared HMAC secret
is enough. Two ways to read a token exist and must not be confused:

* :meth:`TokenCodec.verify` checks signature and expiry and is the only
  thing allowed to authorize a request.
* :meth:`TokenCodec.peek_unverified_expiry` reads ``exp`` without checking
  anything. It exists for TTL arithmetic (revocation, refresh) only.
"""
from __future__ import annotations

import logging
import time

import jwt

from folio_auth.domain.entities import Credential, TokenClaims
from folio_auth.domain.errors import InvalidToken

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["sub", "exp", "iat"]


class TokenCodec:
    def __init__(self, secret: str, *, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm

    def issue(
        self,
        *,
        subject: str,
        email: str,
        role: str,
        ttl_seconds: int,
        now: float | None = None,
    ) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = {
            "sub": str(subject),
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + int(ttl_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_for(
        self, credential: Credential, ttl_seconds: int, now: float | None = None
    ) -> str:
        return self.issue(
            subject=str(credential.id),
            email=str(credential.email),
            role=credential.role,
            ttl_seconds=ttl_seconds,
            now=now,
        )

    def verify(self, token: str, *, now: float | None = None) -> TokenClaims:
        """
        Signature-checked decode. Malformed, forged and expired tokens all
        raise the same InvalidToken; the reason is only logged.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False},
            )
        except jwt.InvalidTokenError as e:
            logger.info("token rejected", extra={"reason": type(e).__name__})
            raise InvalidToken() from e

        current = now if now is not None else time.time()
        try:
            expires_at = int(payload["exp"])
        except (TypeError, ValueError) as e:
            raise InvalidToken() from e
        if current >= expires_at:
            logger.info("token rejected", extra={"reason": "expired"})
            raise InvalidToken()

        return TokenClaims(
            subject=str(payload["sub"]),
            email=str(payload.get("email", "")),
            role=str(payload.get("role", "")),
            issued_at=int(payload["iat"]),
            expires_at=expires_at,
        )

    @staticmethod
    def peek_unverified_expiry(token: str) -> int | None:
        """UNSAFE: ``exp`` of a token without any verification. Never authorize with this."""
        try:
            payload = jwt.decode(
                token, options={"verify_signature": False, "verify_exp": False}
            )
        except jwt.InvalidTokenError:
            return None
        exp = payload.get("exp")
        if isinstance(exp, (int, float)):
            return int(exp)
        return None
