from datetime import datetime, timedelta, timezone

import pytest

from folio_auth.application import cache_keys
from folio_auth.application.admin_update_user import admin_update_user
from folio_auth.application.change_password import change_password
from folio_auth.application.deactivate_account import deactivate_account
from folio_auth.application.password_reset import forgot_password, reset_password
from folio_auth.application.verify_email import resend_verification, verify_email
from folio_auth.domain.errors import (
    BadRequest,
    EmailAlreadyVerified,
    IncorrectPassword,
    InvalidOneTimeToken,
    UserNotFound,
)
from folio_auth.domain.services import hash_one_time_token
from tests.fakes import plain_hash, plain_verify

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
TOKEN = "a" * 64


@pytest.mark.asyncio
async def test_verify_email_consumes_token(uow, user_cache, cache, user):
    stored = uow.credentials.stored(user.id)
    stored.verified = False
    stored.verification_token_hash = hash_one_time_token(TOKEN)
    stored.verification_expires = NOW + timedelta(hours=24)
    await user_cache.put(stored)

    await verify_email(uow, user_cache, TOKEN, now=NOW)

    stored = uow.credentials.stored(user.id)
    assert stored.verified is True
    assert stored.verification_token_hash is None
    assert cache_keys.user(user.id) not in cache.store

    with pytest.raises(InvalidOneTimeToken):
        await verify_email(uow, user_cache, TOKEN, now=NOW)


@pytest.mark.asyncio
async def test_verify_email_expired_token(uow, user_cache, user):
    stored = uow.credentials.stored(user.id)
    stored.verification_token_hash = hash_one_time_token(TOKEN)
    stored.verification_expires = NOW

    with pytest.raises(InvalidOneTimeToken):
        await verify_email(uow, user_cache, TOKEN, now=NOW)


@pytest.mark.asyncio
async def test_resend_verification(uow, user):
    with pytest.raises(EmailAlreadyVerified):
        await resend_verification(uow, user.id, "https://folio.example.com")

    uow.credentials.stored(user.id).verified = False
    await resend_verification(uow, user.id, "https://folio.example.com")

    assert uow.credentials.stored(user.id).verification_token_hash == hash_one_time_token(TOKEN)
    assert len(uow.outbox.enqueues) == 1

    with pytest.raises(UserNotFound):
        await resend_verification(uow, "missing", "https://folio.example.com")


@pytest.mark.asyncio
async def test_forgot_password_is_silent_for_unknown_email(uow):
    await forgot_password(uow, "nobody@example.com", "https://folio.example.com")

    assert uow.outbox.enqueues == []
    assert uow.committed is False


@pytest.mark.asyncio
async def test_forgot_then_reset_password_lifts_lockout(
    uow, lockout, user_cache, user
):
    await forgot_password(uow, user.email, "https://folio.example.com")
    stored = uow.credentials.stored(user.id)
    assert stored.reset_token_hash == hash_one_time_token(TOKEN)
    topic, payload, _ = uow.outbox.enqueues[0]
    assert "reset-password?token=" + TOKEN in payload["body"]

    stored.failed_login_attempts = 5
    stored.lock_until = datetime.now(timezone.utc) + timedelta(hours=1)

    await reset_password(uow, lockout, user_cache, TOKEN, "N3w!passwd", plain_hash)

    stored = uow.credentials.stored(user.id)
    assert stored.password_hash == "hashed-N3w!passwd"
    assert stored.reset_token_hash is None
    assert stored.failed_login_attempts == 0
    assert stored.lock_until is None
    assert uow.outbox.enqueues[-1][1]["subject"] == "Password Changed Successfully"

    with pytest.raises(InvalidOneTimeToken):
        await reset_password(uow, lockout, user_cache, TOKEN, "An0ther!pw", plain_hash)


@pytest.mark.asyncio
async def test_change_password_revokes_current_token(uow, ledger, user_cache, tokens, user):
    token = tokens.issue_for(user, 3600)

    with pytest.raises(IncorrectPassword, match="Current password is incorrect"):
        await change_password(
            uow, ledger, user_cache, user.id, "wrong", "N3w!passwd", token,
            plain_hash, plain_verify,
        )
    assert not await ledger.is_revoked(token)

    await change_password(
        uow, ledger, user_cache, user.id, "S3cret!pass", "N3w!passwd", token,
        plain_hash, plain_verify,
    )

    assert uow.credentials.stored(user.id).password_hash == "hashed-N3w!passwd"
    assert await ledger.is_revoked(token)


@pytest.mark.asyncio
async def test_deactivate_account(uow, ledger, user_cache, tokens, user):
    token = tokens.issue_for(user, 3600)

    with pytest.raises(IncorrectPassword):
        await deactivate_account(
            uow, ledger, user_cache, user.id, "wrong", token, plain_verify
        )

    await deactivate_account(
        uow, ledger, user_cache, user.id, "S3cret!pass", token, plain_verify
    )

    assert uow.credentials.stored(user.id).active is False
    assert await ledger.is_revoked(token)


@pytest.mark.asyncio
async def test_admin_update_user(uow, user_cache, user):
    updated = await admin_update_user(
        uow, user_cache, user.id, role="manager", active=False, actor_id="admin-1"
    )

    assert updated.role == "manager" and updated.active is False
    stored = uow.credentials.stored(user.id)
    assert stored.role == "manager"
    assert stored.verified is True
    assert uow.credentials.saves == [("role", "active")]
    # secrets are left alone by a partial load
    assert stored.password_hash == "hashed-S3cret!pass"

    with pytest.raises(BadRequest):
        await admin_update_user(uow, user_cache, user.id, role="root")
    with pytest.raises(UserNotFound):
        await admin_update_user(uow, user_cache, "missing", verified=True)
