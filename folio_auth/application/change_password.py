import logging
from typing import Callable

from folio_auth.application.emails import enqueue_email, password_changed_email
from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.errors import IncorrectPassword, UserNotFound
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def change_password(
    uow: UnitOfWorkPort,
    ledger: RevocationLedger,
    user_cache: UserCache,
    user_id: str,
    current_password: str,
    new_password: str,
    token: str,
    hash_password: Callable[..., str],
    verify_password: Callable[[str, str | None], bool],
) -> None:
    """Replace the password and revoke the token the request came in with."""
    async with uow as transaction:
        user = await transaction.credentials.find_by_id(user_id, with_secrets=True)
        if user is None:
            raise UserNotFound()
        if not verify_password(current_password, user.password_hash):
            raise IncorrectPassword("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        await transaction.credentials.save(user, ("password_hash",))
        await enqueue_email(transaction.outbox, password_changed_email(user))
        await transaction.commit()

    await ledger.revoke(token)
    await user_cache.invalidate(user_id)
    logger.info("password changed", extra={"user_id": user_id})
