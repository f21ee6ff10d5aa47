import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import folio_auth.domain.services as domain_services
from folio_auth.application.emails import enqueue_email, verification_email
from folio_auth.domain.entities import Credential
from folio_auth.domain.errors import EmailAlreadyRegistered
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.security.tokens import TokenCodec

logger = logging.getLogger(__name__)


async def register_user(
    uow: UnitOfWorkPort,
    tokens: TokenCodec,
    email: str,
    password: str,
    hash_password: Callable[..., str],
    first_name: str = "",
    last_name: str = "",
    frontend_url: str = "http://localhost:3000",
    verification_ttl_seconds: int = 24 * 3600,
    token_ttl_seconds: int = 7 * 24 * 3600,
) -> tuple[Credential, str]:
    """Create an unverified user, mail a verification link and sign them in."""
    normalized_email = email.strip().lower()
    now = datetime.now(timezone.utc)
    verification_token = domain_services.generate_one_time_token()

    async with uow as transaction:
        if await transaction.credentials.find_by_email(normalized_email):
            raise EmailAlreadyRegistered()

        user = await transaction.credentials.create(
            Credential(
                email=normalized_email,
                password_hash=hash_password(password),
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                verification_token_hash=domain_services.hash_one_time_token(
                    verification_token
                ),
                verification_expires=now + timedelta(seconds=verification_ttl_seconds),
            )
        )
        await enqueue_email(
            transaction.outbox,
            verification_email(user, verification_token, frontend_url),
        )
        await transaction.commit()

    logger.info("user registered", extra={"user_id": user.id})
    token = tokens.issue_for(user, token_ttl_seconds)
    return user.without_secrets(), token
