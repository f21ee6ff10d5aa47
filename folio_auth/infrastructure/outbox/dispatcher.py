from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from psycopg_pool import AsyncConnectionPool

from folio_auth.application.emails import EMAIL_TOPIC
from folio_auth.domain.ports.email_port import EmailPort, OutboundEmail

logger = logging.getLogger(__name__)


class UnknownTopic(Exception):
    pass


@dataclass(frozen=True)
class RetryPolicy:
    base: int = 2  # base delay (seconds)
    max_delay: int = 300  # cap (seconds)
    max_attempts: int = 8  # after this many failures a message is parked as 'failed'

    def compute_delay(self, attempts: int) -> int:
        # attempts = failures so far; delay = base * 2**attempts, capped
        return min(self.max_delay, self.base * (2**attempts))

    def exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts


class OutboxDispatcher:
    """
    Polls the outbox table, claims due rows, delivers them, and marks them
    dispatched, reschedules them, or parks them as failed.

    Request handlers only enqueue; nothing on the auth path waits for mail.
    """

    def __init__(
        self,
        *,
        pool: AsyncConnectionPool,
        email_adapter: EmailPort,
        batch_size: int = 10,
        poll_interval: float = 1.0,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.pool = pool
        self.email_adapter = email_adapter
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.retry_policy = retry_policy or RetryPolicy()

    async def run_forever(self) -> None:
        logger.info(
            "outbox dispatcher started",
            extra={"batch_size": self.batch_size, "poll_interval": self.poll_interval},
        )
        while True:
            processed = await self.process_once()
            if processed == 0:
                await asyncio.sleep(self.poll_interval)

    async def process_once(self) -> int:
        """Claim one batch and handle it. Returns the number of rows claimed."""
        batch = await self._claim_due_batch(self.batch_size)
        if not batch:
            return 0

        logger.info("claimed messages", extra={"count": len(batch)})
        for msg in batch:
            await self._handle(msg)
        return len(batch)

    async def _handle(self, msg: dict[str, Any]) -> None:
        msg_id, topic, attempts = msg["id"], msg["topic"], msg["attempts"]
        try:
            await self._dispatch(topic, msg["payload"], idempotency_key=f"outbox-{msg_id}")
        except Exception as e:  # noqa: BLE001 - any delivery failure is retried
            new_attempts = attempts + 1
            if self.retry_policy.exhausted(new_attempts) or isinstance(e, UnknownTopic):
                logger.error(
                    "dispatch failed permanently",
                    extra={"id": msg_id, "topic": topic, "attempts": new_attempts, "error": str(e)},
                )
                await self._mark_failed(msg_id, new_attempts, str(e), retry_in=None)
                return
            delay = self.retry_policy.compute_delay(attempts)
            logger.warning(
                "dispatch failed; scheduling retry",
                extra={"id": msg_id, "topic": topic, "attempts": new_attempts, "retry_in_s": delay},
            )
            await self._mark_failed(msg_id, new_attempts, str(e), retry_in=delay)
        else:
            await self._mark_dispatched(msg_id)

    async def _dispatch(
        self, topic: str, payload: dict[str, Any], *, idempotency_key: str
    ) -> None:
        if topic == EMAIL_TOPIC:
            message = OutboundEmail(
                to=payload["to"], subject=payload["subject"], body=payload["body"]
            )
            await self.email_adapter.send(message, idempotency_key=idempotency_key)
            return
        raise UnknownTopic(f"unknown topic: {topic}")

    async def _claim_due_batch(self, limit: int) -> list[dict[str, Any]]:
        """
        Atomically move up to `limit` due 'pending' rows into 'processing'
        and return them. SKIP LOCKED lets several workers run side by side.
        """
        sql = """
        WITH claimed AS (
            SELECT id
            FROM outbox
            WHERE status = 'pending'
              AND COALESCE(next_attempt_at, NOW()) <= NOW()
            ORDER BY created_at
            FOR UPDATE SKIP LOCKED
            LIMIT %s
        ),
        updated AS (
            UPDATE outbox o
            SET status = 'processing', updated_at = NOW()
            FROM claimed c
            WHERE o.id = c.id
            RETURNING o.id, o.topic, o.payload, o.attempts
        )
        SELECT id, topic, payload, attempts
        FROM updated
        ORDER BY id;
        """
        async with self.pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(sql, (limit,))
                    rows = await cur.fetchall()

        return [
            {"id": r[0], "topic": r[1], "payload": r[2], "attempts": r[3]}
            for r in rows or ()
        ]

    async def _mark_dispatched(self, msg_id: int) -> None:
        sql = """
        UPDATE outbox
        SET status = 'dispatched', last_error = NULL, updated_at = NOW()
        WHERE id = %s;
        """
        async with self.pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(sql, (msg_id,))

    async def _mark_failed(
        self, msg_id: int, attempts: int, error: str, *, retry_in: int | None
    ) -> None:
        """Back to 'pending' with a next_attempt_at, or 'failed' when retry_in is None."""
        sql = """
        UPDATE outbox
        SET status = CASE WHEN %(retry)s::int IS NULL THEN 'failed' ELSE 'pending' END,
            attempts = %(attempts)s,
            last_error = %(error)s,
            next_attempt_at = CASE
                WHEN %(retry)s::int IS NULL THEN NULL
                ELSE NOW() + make_interval(secs => %(retry)s::int)
            END,
            updated_at = NOW()
        WHERE id = %(id)s;
        """
        params = {"retry": retry_in, "attempts": attempts, "error": error[:1000], "id": msg_id}
        async with self.pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(sql, params)
