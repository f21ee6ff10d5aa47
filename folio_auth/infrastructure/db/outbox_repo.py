from __future__ import annotations

import psycopg
from psycopg.types.json import Json

from folio_auth.domain.ports.outbox_repository import OutboxRepositoryPort


class PgOutboxRepository(OutboxRepositoryPort):
    """
    Writes outbox rows on the UoW's connection and never commits, so a
    message becomes visible to the worker together with the change that
    produced it.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def enqueue(
        self, *, topic: str, payload: dict, idempotency_key: str | None = None
    ) -> str:
        if idempotency_key is None:
            sql = """
            INSERT INTO outbox (topic, payload, status)
            VALUES (%s, %s, 'pending')
            RETURNING id
            """
            params: tuple = (topic, Json(payload))
        else:
            # a repeated key returns the row that is already queued
            sql = """
            INSERT INTO outbox (topic, payload, status, idempotency_key)
            VALUES (%s, %s, 'pending', %s)
            ON CONFLICT (idempotency_key)
                DO UPDATE SET idempotency_key = EXCLUDED.idempotency_key
            RETURNING id
            """
            params = (topic, Json(payload), idempotency_key)

        async with self._conn.cursor() as cur:
            await cur.execute(sql, params)
            row = await cur.fetchone()
        if row is None:
            raise RuntimeError("outbox insert returned no row")
        return str(row[0])
