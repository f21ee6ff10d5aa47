import logging
from typing import Callable

from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.errors import IncorrectPassword, UserNotFound
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def deactivate_account(
    uow: UnitOfWorkPort,
    ledger: RevocationLedger,
    user_cache: UserCache,
    user_id: str,
    password: str,
    token: str,
    verify_password: Callable[[str, str | None], bool],
) -> None:
    async with uow as transaction:
        user = await transaction.credentials.find_by_id(user_id, with_secrets=True)
        if user is None:
            raise UserNotFound()
        if not verify_password(password, user.password_hash):
            raise IncorrectPassword("Invalid password")

        user.active = False
        await transaction.credentials.save(user, ("active",))
        await transaction.commit()

    await user_cache.invalidate(user_id)
    await ledger.revoke(token)
    logger.info("account deactivated", extra={"user_id": user_id})
