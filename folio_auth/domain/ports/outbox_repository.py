from __future__ import annotations

from typing import Any, Protocol


class OutboxRepositoryPort(Protocol):
    """Messages to deliver after the surrounding transaction commits."""

    async def enqueue(
        self,
        *,
        topic: str,
        payload: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> str:
        """
        Queue one message as 'pending' in the caller's transaction and return
        its id. Enqueueing an existing idempotency key returns the queued row.
        """
