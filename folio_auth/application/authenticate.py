"""
Request-time authentication gate.

Pipeline, short-circuiting on the first failure:

1. bearer token extraction
2. revocation check
3. signature / expiry verification
4. user resolution (read-through user cache, then the credential store)
5. active-account check

Every failure is an ``Unauthenticated``; token problems of any origin share
one message, and a deleted user looks the same as a deactivated one.
"""
from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.two_factor import second_factor_verified
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.entities import AuthContext, Credential
from folio_auth.domain.errors import (
    EmailNotVerified,
    IdentityUnavailable,
    MissingToken,
    RevokedToken,
    RoleNotAllowed,
    SecondFactorRequired,
    Unauthenticated,
)
from folio_auth.domain.ports.state_cache import StateCachePort
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.security.tokens import TokenCodec

logger = logging.getLogger(__name__)

_SCHEME = "Bearer "


def extract_bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(_SCHEME):
        raise MissingToken()
    token = authorization[len(_SCHEME):].strip()
    if not token or " " in token:
        raise MissingToken("Invalid token format.")
    return token


class RequestAuthenticator:
    def __init__(
        self,
        uow: UnitOfWorkPort,
        tokens: TokenCodec,
        ledger: RevocationLedger,
        user_cache: UserCache,
        cache: StateCachePort,
        *,
        token_ttl_seconds: int = 7 * 24 * 3600,
        refresh_threshold_seconds: int = 24 * 3600,
    ) -> None:
        self._uow = uow
        self._tokens = tokens
        self._ledger = ledger
        self._user_cache = user_cache
        self._cache = cache
        self._token_ttl = token_ttl_seconds
        self._refresh_threshold = refresh_threshold_seconds

    async def authenticate(
        self, authorization: Optional[str], *, now: float | None = None
    ) -> AuthContext:
        token = extract_bearer(authorization)

        if await self._ledger.is_revoked(token):
            raise RevokedToken()

        claims = self._tokens.verify(token, now=now)

        user = await self._resolve_user(claims.subject)
        if user is None or not user.active:
            logger.info(
                "token subject unavailable",
                extra={"user_id": claims.subject, "found": user is not None},
            )
            raise IdentityUnavailable()

        return AuthContext(user=user, token=token, claims=claims)

    async def authenticate_optional(
        self, authorization: Optional[str], *, now: float | None = None
    ) -> Optional[AuthContext]:
        """Same pipeline, but any authentication failure means "anonymous"."""
        try:
            return await self.authenticate(authorization, now=now)
        except Unauthenticated:
            return None

    async def _resolve_user(self, user_id: str) -> Optional[Credential]:
        user = await self._user_cache.get(user_id)
        if user is not None:
            return user
        async with self._uow as transaction:
            user = await transaction.credentials.find_by_id(user_id)
        if user is None:
            return None
        await self._user_cache.put(user)
        return user

    def refreshed_token(
        self, context: AuthContext, *, now: float | None = None
    ) -> Optional[str]:
        """
        A fresh token with the same claims when the current one has less than
        the refresh threshold left. The old token is not revoked.
        """
        exp = self._tokens.peek_unverified_expiry(context.token)
        if exp is None:
            return None
        current = now if now is not None else time.time()
        if exp - current >= self._refresh_threshold:
            return None
        return self._tokens.issue(
            subject=context.claims.subject,
            email=context.claims.email,
            role=context.claims.role,
            ttl_seconds=self._token_ttl,
            now=current,
        )

    async def require_second_factor(self, context: AuthContext) -> None:
        """
        Users with TOTP enabled must have passed verify_login recently. An
        unreachable cache reads as "not verified".
        """
        if not context.user.totp_enabled:
            return
        if not await second_factor_verified(self._cache, str(context.user.id)):
            raise SecondFactorRequired()


def require_roles(context: AuthContext, roles: Iterable[str]) -> None:
    allowed = tuple(roles)
    if allowed and context.user.role not in allowed:
        raise RoleNotAllowed(f"Access denied. Required role: {' or '.join(allowed)}.")


def require_verified_email(context: AuthContext) -> None:
    if not context.user.verified:
        raise EmailNotVerified()
