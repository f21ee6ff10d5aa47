from __future__ import annotations

import logging
import time

from folio_auth.application import cache_keys
from folio_auth.domain.errors import RevocationCheckUnavailable
from folio_auth.domain.ports.state_cache import StateCachePort
from folio_auth.infrastructure.security.tokens import TokenCodec

logger = logging.getLogger(__name__)


class RevocationLedger:
    """
    Marks individual bearer tokens as invalid until their natural expiry.

    ``fail_open`` decides what an unreachable cache means for
    :meth:`is_revoked`: True treats the token as not revoked (availability
    first), False rejects it (security first). Either way the outage is logged.
    """

    def __init__(
        self,
        cache: StateCachePort,
        *,
        fallback_ttl_seconds: int = 3600,
        fail_open: bool = True,
    ) -> None:
        self._cache = cache
        self._fallback_ttl = fallback_ttl_seconds
        self.fail_open = fail_open

    def ttl_for(self, token: str, now: float | None = None) -> int:
        exp = TokenCodec.peek_unverified_expiry(token)
        if exp is None:
            return self._fallback_ttl
        current = int(now if now is not None else time.time())
        ttl = exp - current
        return ttl if ttl > 0 else self._fallback_ttl

    async def revoke(self, token: str, *, now: float | None = None) -> bool:
        ttl = self.ttl_for(token, now)
        stored = await self._cache.set(cache_keys.revoked_token(token), True, ttl)
        if not stored:
            logger.error(
                "security: token revocation not recorded, token stays valid until expiry",
                extra={"ttl_s": ttl},
            )
        return stored

    async def is_revoked(self, token: str) -> bool:
        marker = await self._cache.get(cache_keys.revoked_token(token))
        if marker is not None:
            return bool(marker)
        if self._cache.connected:
            return False

        if self.fail_open:
            logger.warning("security: revocation check skipped, cache unreachable (fail-open)")
            return False
        logger.warning("security: revocation check failed, cache unreachable (fail-closed)")
        raise RevocationCheckUnavailable()
