from __future__ import annotations

from psycopg.conninfo import conninfo_to_dict, make_conninfo
from psycopg_pool import AsyncConnectionPool

CONNECT_TIMEOUT_SECONDS = 3


def pool_conninfo(database_url: str) -> str:
    """DSN or URL with a connect timeout unless the caller already set one."""
    if "connect_timeout" in conninfo_to_dict(database_url):
        return database_url
    return make_conninfo(database_url, connect_timeout=CONNECT_TIMEOUT_SECONDS)


def create_pool(database_url: str, *, max_size: int = 10) -> AsyncConnectionPool:
    """
    Build a pool WITHOUT opening it. The owner (app lifespan, worker) opens
    and closes it; nothing keeps a module-level reference.
    """
    return AsyncConnectionPool(
        pool_conninfo(database_url),
        min_size=1,
        max_size=max_size,
        timeout=5,
        open=False,
    )
