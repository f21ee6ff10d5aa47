from datetime import datetime, timedelta, timezone

import folio_auth.domain.services as domain_services
from folio_auth.application.emails import enqueue_email, verification_email
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.errors import (
    EmailAlreadyVerified,
    InvalidOneTimeToken,
    UserNotFound,
)
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort


async def verify_email(
    uow: UnitOfWorkPort,
    user_cache: UserCache,
    token: str,
    now: datetime | None = None,
) -> None:
    now = now or datetime.now(timezone.utc)
    token_hash = domain_services.hash_one_time_token(token)

    async with uow as transaction:
        user = await transaction.credentials.find_by_verification_token(token_hash)
        if (
            user is None
            or user.verification_expires is None
            or user.verification_expires <= now
        ):
            raise InvalidOneTimeToken("Invalid or expired verification token")

        user.verified = True
        user.verification_token_hash = None
        user.verification_expires = None
        await transaction.credentials.save(
            user, ("verified", "verification_token_hash", "verification_expires")
        )
        await transaction.commit()

    await user_cache.invalidate(str(user.id))


async def resend_verification(
    uow: UnitOfWorkPort,
    user_id: str,
    frontend_url: str,
    verification_ttl_seconds: int = 24 * 3600,
) -> None:
    verification_token = domain_services.generate_one_time_token()

    async with uow as transaction:
        user = await transaction.credentials.find_by_id(user_id)
        if user is None:
            raise UserNotFound()
        if user.verified:
            raise EmailAlreadyVerified()

        user.verification_token_hash = domain_services.hash_one_time_token(
            verification_token
        )
        user.verification_expires = datetime.now(timezone.utc) + timedelta(
            seconds=verification_ttl_seconds
        )
        await transaction.credentials.save(user, ("verification_token_hash", "verification_expires"))
        await enqueue_email(
            transaction.outbox,
            verification_email(user, verification_token, frontend_url),
        )
        await transaction.commit()
