from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any, Optional, Type

import psycopg
from psycopg_pool import AsyncConnectionPool

from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.db.credentials_repo import PgCredentialRepository
from folio_auth.infrastructure.db.outbox_repo import PgOutboxRepository

logger = logging.getLogger(__name__)


class PgUnitOfWork(UnitOfWorkPort):
    """
    One pooled connection per ``async with`` block.

    Repositories share that connection, so a credential change and the
    outbox rows it produces commit or roll back together. Leaving the block
    without ``commit()`` discards everything, which is what read-only callers
    (request authentication, profile lookups) rely on.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool
        self._stack: Optional[AsyncExitStack] = None
        self._conn: Optional[psycopg.AsyncConnection] = None
        self._dirty = False
        self.credentials: PgCredentialRepository
        self.outbox: PgOutboxRepository

    async def __aenter__(self) -> "PgUnitOfWork":
        if self._stack is not None:
            raise RuntimeError("unit of work is already active")
        stack = AsyncExitStack()
        self._conn = await stack.enter_async_context(self._pool.connection())
        self._stack = stack
        self._dirty = True
        self.credentials = PgCredentialRepository(self._conn)
        self.outbox = PgOutboxRepository(self._conn)
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: Any,
    ) -> None:
        stack, conn = self._stack, self._conn
        self._stack, self._conn = None, None
        try:
            if conn is not None and self._dirty:
                try:
                    await conn.rollback()
                except psycopg.Error as e:
                    # the pool discards broken connections on return
                    logger.warning("rollback failed", extra={"error": str(e)})
        finally:
            self._dirty = False
            if stack is not None:
                await stack.__aexit__(exc_type, exc_value, traceback)

    async def commit(self) -> None:
        if self._conn is None:
            raise RuntimeError("No connection available to commit")
        await self._conn.commit()
        self._dirty = False

    async def rollback(self) -> None:
        if self._conn is not None:
            await self._conn.rollback()
        self._dirty = False
