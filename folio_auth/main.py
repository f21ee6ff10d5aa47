import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from folio_auth.infrastructure.db.pool import create_pool
from folio_auth.infrastructure.redis_cache.state_cache import RedisStateCache
from folio_auth.logging import setup_logging
from folio_auth.presentation.api import api
from folio_auth.presentation.errors import register_exception_handlers
from folio_auth.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    pool = create_pool(settings.database_url)
    await pool.open()
    app.state.db_pool = pool

    # an unreachable redis does not block startup; the cache reports itself down
    cache = RedisStateCache(
        settings.redis_url, socket_timeout=settings.redis_socket_timeout
    )
    await cache.connect()
    if not cache.connected:
        logger.warning("starting without state cache", extra={"redis_url": settings.redis_url})
    app.state.cache = cache

    try:
        yield
    finally:
        # shutdown
        await cache.close()
        await pool.close()


def create_app() -> FastAPI:
    setup_logging(settings.log_level, service=settings.app_name)
    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    register_exception_handlers(app)
    app.include_router(api)
    return app


app = create_app()
