import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import folio_auth.domain.services as domain_services
from folio_auth.application.emails import (
    enqueue_email,
    password_changed_email,
    password_reset_email,
)
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.errors import InvalidOneTimeToken
from folio_auth.domain.lockout import LockoutPolicy
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def forgot_password(
    uow: UnitOfWorkPort,
    email: str,
    frontend_url: str,
    reset_ttl_seconds: int = 3600,
) -> None:
    """
    Mail a reset link if the address belongs to an active user. Returns
    normally in every case so callers cannot probe which emails exist.
    """
    normalized_email = email.strip().lower()
    reset_token = domain_services.generate_one_time_token()

    async with uow as transaction:
        user = await transaction.credentials.find_by_email(normalized_email)
        if user is None or not user.active:
            logger.info("password reset requested for unknown or inactive account")
            return

        user.reset_token_hash = domain_services.hash_one_time_token(reset_token)
        user.reset_expires = datetime.now(timezone.utc) + timedelta(
            seconds=reset_ttl_seconds
        )
        await transaction.credentials.save(user, ("reset_token_hash", "reset_expires"))
        await enqueue_email(
            transaction.outbox,
            password_reset_email(
                user, reset_token, frontend_url, max(1, reset_ttl_seconds // 3600)
            ),
        )
        await transaction.commit()


async def reset_password(
    uow: UnitOfWorkPort,
    lockout: LockoutPolicy,
    user_cache: UserCache,
    token: str,
    new_password: str,
    hash_password: Callable[..., str],
    now: datetime | None = None,
) -> None:
    """Set a new password from a mailed reset token; also lifts any lockout."""
    now = now or datetime.now(timezone.utc)
    token_hash = domain_services.hash_one_time_token(token)

    async with uow as transaction:
        user = await transaction.credentials.find_by_reset_token(token_hash)
        if user is None or user.reset_expires is None or user.reset_expires <= now:
            raise InvalidOneTimeToken("Invalid or expired password reset token")

        user.password_hash = hash_password(new_password)
        user.reset_token_hash = None
        user.reset_expires = None
        lockout.record_success(user)
        await transaction.credentials.save(
            user, ("password_hash", "reset_token_hash", "reset_expires", *lockout.FIELDS)
        )
        await enqueue_email(transaction.outbox, password_changed_email(user))
        await transaction.commit()

    await user_cache.invalidate(str(user.id))
