import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from folio_auth.domain.entities import Credential
from folio_auth.domain.errors import (
    AccountDeactivated,
    AccountLocked,
    InvalidCredentials,
)
from folio_auth.domain.lockout import LockoutPolicy
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.security.tokens import TokenCodec

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    user: Credential
    token: str
    require_two_factor: bool


async def login_user(
    uow: UnitOfWorkPort,
    lockout: LockoutPolicy,
    tokens: TokenCodec,
    verify_password: Callable[[str, str | None], bool],
    email: str,
    password: str,
    remember: bool = False,
    token_ttl_seconds: int = 7 * 24 * 3600,
    remember_ttl_seconds: int = 30 * 24 * 3600,
    now: datetime | None = None,
) -> LoginResult:
    """
    Primary-credential login.

    Order matters: the lock is checked before the password is ever compared,
    and only a correct password reveals that an account is deactivated.
    """
    normalized_email = email.strip().lower()
    now = now or datetime.now(timezone.utc)

    async with uow as transaction:
        user = await transaction.credentials.find_by_email(
            normalized_email, with_secrets=True
        )
        if user is None:
            raise InvalidCredentials()

        if lockout.check_locked(user, now):
            logger.info("login refused, account locked", extra={"user_id": user.id})
            raise AccountLocked()

        if not verify_password(password, user.password_hash):
            lockout.record_failure(user, now)
            await transaction.credentials.save(user, lockout.FIELDS)
            await transaction.commit()
            if lockout.check_locked(user, now):
                logger.warning(
                    "account locked after repeated failures",
                    extra={"user_id": user.id, "attempts": user.failed_login_attempts},
                )
            raise InvalidCredentials()

        if not user.active:
            raise AccountDeactivated()

        lockout.record_success(user)
        user.last_login = now
        await transaction.credentials.save(user, (*lockout.FIELDS, "last_login"))
        await transaction.commit()

    ttl = remember_ttl_seconds if remember else token_ttl_seconds
    token = tokens.issue_for(user, ttl, now=now.timestamp())
    return LoginResult(
        user=user.without_secrets(),
        token=token,
        require_two_factor=user.totp_enabled,
    )
