from __future__ import annotations

import logging
from typing import Optional

from folio_auth.application import cache_keys
from folio_auth.domain.entities import Credential
from folio_auth.domain.ports.state_cache import StateCachePort

logger = logging.getLogger(__name__)


class UserCache:
    """
    Read-through cache of public credential snapshots, keyed by user id.

    Purely a speed-up: every miss or outage falls back to the store.
    """

    def __init__(self, cache: StateCachePort, *, ttl_seconds: int = 600) -> None:
        self._cache = cache
        self._ttl = ttl_seconds

    async def get(self, user_id: str) -> Optional[Credential]:
        data = await self._cache.get(cache_keys.user(user_id))
        if not isinstance(data, dict):
            return None
        try:
            return Credential.from_snapshot(data)
        except (KeyError, ValueError):
            logger.warning("dropping malformed user cache entry", extra={"user_id": user_id})
            await self._cache.delete(cache_keys.user(user_id))
            return None

    async def put(self, credential: Credential) -> None:
        await self._cache.set(
            cache_keys.user(str(credential.id)), credential.public_snapshot(), self._ttl
        )

    async def invalidate(self, user_id: str) -> None:
        if not await self._cache.delete(cache_keys.user(user_id)):
            # stale entry lives until its TTL runs out
            logger.warning("user cache invalidation failed", extra={"user_id": user_id})
