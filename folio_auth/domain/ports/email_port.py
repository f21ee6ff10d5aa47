from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Protocol


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    body: str

    def as_payload(self) -> dict:
        return asdict(self)


class EmailPort(Protocol):
    async def send(
        self, message: OutboundEmail, *, idempotency_key: str | None = None
    ) -> None:
        """Deliver one message. Raises on any delivery failure so the caller can retry."""
