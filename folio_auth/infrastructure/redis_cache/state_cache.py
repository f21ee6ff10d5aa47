from __future__ import annotations

import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from folio_auth.domain.ports.state_cache import StateCachePort

logger = logging.getLogger(__name__)


class RedisStateCache(StateCachePort):
    """
    JSON-valued Redis cache with explicit lifecycle.

    Outages degrade instead of failing the request: reads return None,
    writes return False, and ``connected`` drops to False until a later
    call succeeds (redis-py reconnects on the next command by itself).
    """

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        client: Redis | None = None,
        socket_timeout: float = 2.0,
        key_prefix: str = "",
    ) -> None:
        if redis_url is None and client is None:
            raise ValueError("either redis_url or client is required")
        self._url = redis_url
        self._client: Optional[Redis] = client
        self._owns_client = client is None
        self._socket_timeout = socket_timeout
        self._prefix = key_prefix
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def connect(self) -> None:
        if self._client is None:
            # decode_responses=True -> we get/put str, not bytes.
            self._client = Redis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
        try:
            await self._client.ping()
        except RedisError as e:
            self._mark_down("connect", e)
        else:
            self._connected = True
            logger.info("redis state cache connected")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        self._connected = False

    def _mark_down(self, op: str, error: Exception) -> None:
        if self._connected:
            logger.error("redis unreachable", extra={"op": op, "error": str(error)})
        self._connected = False

    async def get(self, key: str) -> Optional[Any]:
        if self._client is None:
            return None
        try:
            raw = await self._client.get(self._key(key))
        except RedisError as e:
            self._mark_down("get", e)
            logger.warning("cache read failed", extra={"key": key})
            return None
        self._connected = True
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache value is not json", extra={"key": key})
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.set(
                self._key(key), json.dumps(value), ex=max(1, int(ttl_seconds))
            )
        except RedisError as e:
            self._mark_down("set", e)
            logger.warning("cache write failed", extra={"key": key})
            return False
        self._connected = True
        return True

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.delete(self._key(key))
        except RedisError as e:
            self._mark_down("delete", e)
            logger.warning("cache delete failed", extra={"key": key})
            return False
        self._connected = True
        return True
