"""
TOTP second factor.

Per-user state machine::

    DISABLED --begin_setup--> SETUP_PENDING --verify_and_enable--> ENABLED
    ENABLED --disable (password)--> DISABLED

SETUP_PENDING lives only in the cache (``totp_setup:<id>``, short TTL) and
simply expires if abandoned. Once ENABLED, each login needs
:meth:`TwoFactorController.verify_login`, which sets ``totp_verified:<id>``;
state-changing endpoints check that flag.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from folio_auth.application import cache_keys
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.entities import Credential
from folio_auth.domain.errors import (
    IncorrectPassword,
    InvalidCode,
    SetupExpired,
    TwoFactorNotEnabled,
    UserNotFound,
)
from folio_auth.domain.ports.state_cache import StateCachePort
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.security import totp

logger = logging.getLogger(__name__)


async def second_factor_verified(cache: StateCachePort, user_id: str) -> bool:
    """True only when verify_login left its flag; a missing or unreadable flag is False."""
    return await cache.get(cache_keys.totp_verified(user_id)) is True


@dataclass(frozen=True)
class TotpSetup:
    secret: str
    otpauth_uri: str


class TwoFactorController:
    def __init__(
        self,
        uow: UnitOfWorkPort,
        cache: StateCachePort,
        user_cache: UserCache,
        verify_password: Callable[[str, str | None], bool],
        *,
        issuer: str = "Folio",
        setup_ttl_seconds: int = 600,
        verified_ttl_seconds: int = 3600,
        valid_window: int = 1,
    ) -> None:
        self._uow = uow
        self._cache = cache
        self._user_cache = user_cache
        self._verify_password = verify_password
        self._issuer = issuer
        self._setup_ttl = setup_ttl_seconds
        self._verified_ttl = verified_ttl_seconds
        self._valid_window = valid_window

    async def begin_setup(self, user: Credential) -> TotpSetup:
        """New pending secret; replaces any earlier one. The credential is untouched."""
        secret = totp.new_secret()
        stored = await self._cache.set(
            cache_keys.totp_setup(str(user.id)), secret, self._setup_ttl
        )
        if not stored:
            # verify_and_enable will report SetupExpired; nothing else to undo
            logger.warning("totp setup secret not cached", extra={"user_id": user.id})
        return TotpSetup(
            secret=secret,
            otpauth_uri=totp.provisioning_uri(
                secret, email=str(user.email), issuer=self._issuer
            ),
        )

    async def verify_and_enable(
        self, user_id: str, code: str, *, now: datetime | int | None = None
    ) -> None:
        key = cache_keys.totp_setup(user_id)
        secret = await self._cache.get(key)
        if not secret or not isinstance(secret, str):
            raise SetupExpired()

        if not totp.verify_code(
            secret, code, valid_window=self._valid_window, now=now
        ):
            # keep the pending secret so the user can retry within its TTL
            raise InvalidCode()

        async with self._uow as transaction:
            user = await transaction.credentials.find_by_id(user_id, with_secrets=True)
            if user is None:
                raise UserNotFound()
            user.totp_secret = secret
            user.totp_enabled = True
            await transaction.credentials.save(user, ("totp_secret", "totp_enabled"))
            await transaction.commit()

        await self._cache.delete(key)
        await self._user_cache.invalidate(user_id)
        logger.info("two-factor enabled", extra={"user_id": user_id})

    async def verify_login(
        self, user_id: str, code: str, *, now: datetime | int | None = None
    ) -> Credential:
        """
        Second step of a login. Wrong codes are not counted by the lockout
        policy, which only tracks primary-password failures.
        """
        async with self._uow as transaction:
            user = await transaction.credentials.find_by_id(user_id, with_secrets=True)
        if user is None:
            raise UserNotFound()
        if not user.totp_enabled or not user.totp_secret:
            raise TwoFactorNotEnabled()

        if not totp.verify_code(
            user.totp_secret, code, valid_window=self._valid_window, now=now
        ):
            logger.info("totp login code rejected", extra={"user_id": user_id})
            raise InvalidCode("Invalid TOTP code")

        stored = await self._cache.set(
            cache_keys.totp_verified(user_id), True, self._verified_ttl
        )
        if not stored:
            logger.error(
                "second-factor verification not recorded", extra={"user_id": user_id}
            )
        return user.without_secrets()

    async def disable(self, user_id: str, password: str) -> None:
        async with self._uow as transaction:
            user = await transaction.credentials.find_by_id(user_id, with_secrets=True)
            if user is None:
                raise UserNotFound()
            if not self._verify_password(password, user.password_hash):
                raise IncorrectPassword()

            user.totp_enabled = False
            user.totp_secret = None
            await transaction.credentials.save(user, ("totp_enabled", "totp_secret"))
            await transaction.commit()

        await self._cache.delete(cache_keys.totp_verified(user_id))
        await self._user_cache.invalidate(user_id)
        logger.info("two-factor disabled", extra={"user_id": user_id})
