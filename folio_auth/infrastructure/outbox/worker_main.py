"""
Outbox worker process: ``python -m folio_auth.infrastructure.outbox.worker_main``.

Delivers the emails queued by the auth flows (verification, password reset,
password changed). Runs until SIGINT/SIGTERM.
"""
from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress

from psycopg_pool import AsyncConnectionPool

from folio_auth.domain.ports.email_port import EmailPort
from folio_auth.infrastructure.db.pool import create_pool
from folio_auth.infrastructure.email.http_smtp_adapter import HttpSmtpEmailAdapter
from folio_auth.infrastructure.outbox.dispatcher import OutboxDispatcher, RetryPolicy
from folio_auth.logging import setup_logging
from folio_auth.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_dispatcher(
    settings: Settings, pool: AsyncConnectionPool, email: EmailPort
) -> OutboxDispatcher:
    return OutboxDispatcher(
        pool=pool,
        email_adapter=email,
        batch_size=settings.outbox_batch_size,
        poll_interval=settings.outbox_poll_interval_ms / 1000,
        retry_policy=RetryPolicy(
            base=settings.outbox_retry_base_seconds,
            max_delay=settings.outbox_retry_max_delay_seconds,
            max_attempts=settings.outbox_max_attempts,
        ),
    )


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _on_signal() -> None:
        logger.info("worker: stop signal received")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        # not available on every platform's event loop
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)


async def run(settings: Settings) -> None:
    pool = create_pool(settings.database_url, max_size=2)
    email = HttpSmtpEmailAdapter(base_url=settings.smtp_base_url)
    await pool.open()
    try:
        stop = asyncio.Event()
        _install_stop_handlers(stop)

        task = asyncio.create_task(build_dispatcher(settings, pool, email).run_forever())
        logger.info("worker: started", extra={"smtp_base_url": settings.smtp_base_url})
        await stop.wait()

        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    finally:
        await email.aclose()
        await pool.close()
        logger.info("worker: stopped")


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, service=settings.app_name)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
