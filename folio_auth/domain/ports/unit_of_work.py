from __future__ import annotations

from types import TracebackType
from typing import Protocol, Type

from folio_auth.domain.ports.credential_repository import CredentialRepositoryPort
from folio_auth.domain.ports.outbox_repository import OutboxRepositoryPort


class UnitOfWorkPort(Protocol):
    """
    Transaction boundary shared by the credential store and the outbox.

        async with uow as tx:
            user = await tx.credentials.find_by_email(email, with_secrets=True)
            await tx.credentials.save(user, ("last_login",))
            await tx.outbox.enqueue(topic="email.send", payload={...})
            await tx.commit()

    Anything not committed when the block exits is rolled back.
    """

    credentials: CredentialRepositoryPort
    outbox: OutboxRepositoryPort

    async def __aenter__(self) -> "UnitOfWorkPort": ...

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
