import asyncio

import pytest

from folio_auth.infrastructure.redis_cache.state_cache import RedisStateCache


async def _flush_prefix(redis, prefix: str) -> None:
    keys = await redis.keys(f"{prefix}*")
    if keys:
        await redis.delete(*keys)


@pytest.mark.asyncio
async def test_set_get_delete_json_values(redis_client):
    prefix = "folio:test:sgd:"
    await _flush_prefix(redis_client, prefix)
    cache = RedisStateCache(client=redis_client, key_prefix=prefix)
    await cache.connect()
    assert cache.connected

    assert await cache.set("token_blacklist:abc", True, 30)
    assert await cache.set("user:u1", {"id": "u1", "role": "user"}, 30)

    assert await cache.get("token_blacklist:abc") is True
    assert await cache.get("user:u1") == {"id": "u1", "role": "user"}
    assert await redis_client.ttl(f"{prefix}user:u1") in (29, 30)

    assert await cache.delete("user:u1")
    assert await cache.get("user:u1") is None


@pytest.mark.asyncio
async def test_entries_expire_by_ttl(redis_client):
    prefix = "folio:test:exp:"
    await _flush_prefix(redis_client, prefix)
    cache = RedisStateCache(client=redis_client, key_prefix=prefix)
    await cache.connect()

    await cache.set("totp_setup:u1", "SECRET", 1)
    await asyncio.sleep(1.5)

    assert await cache.get("totp_setup:u1") is None
    assert await redis_client.ttl(f"{prefix}totp_setup:u1") == -2  # key missing


@pytest.mark.asyncio
async def test_unreachable_redis_degrades_instead_of_raising():
    cache = RedisStateCache("redis://127.0.0.1:1/0", socket_timeout=0.2)
    await cache.connect()
    try:
        assert cache.connected is False
        assert await cache.get("anything") is None
        assert await cache.set("anything", 1, 10) is False
        assert await cache.delete("anything") is False
        assert cache.connected is False
    finally:
        await cache.close()
