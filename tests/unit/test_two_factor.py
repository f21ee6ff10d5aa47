import pyotp
import pytest

from folio_auth.application import cache_keys
from folio_auth.application.two_factor import TwoFactorController, second_factor_verified
from folio_auth.domain.errors import (
    IncorrectPassword,
    InvalidCode,
    SetupExpired,
    TwoFactorNotEnabled,
)
from tests.fakes import plain_verify

T0 = 1_700_000_000


@pytest.fixture()
def controller(uow, cache, user_cache):
    return TwoFactorController(uow, cache, user_cache, plain_verify, issuer="Folio")


@pytest.mark.asyncio
async def test_setup_then_enable_once(controller, uow, cache, user):
    setup = await controller.begin_setup(user)
    assert setup.otpauth_uri.startswith("otpauth://totp/")
    assert cache.store[cache_keys.totp_setup(user.id)] == setup.secret
    assert cache.ttls[cache_keys.totp_setup(user.id)] == 600
    # nothing persisted before the code is confirmed
    assert uow.credentials.stored(user.id).totp_enabled is False

    code = pyotp.TOTP(setup.secret).at(T0)
    await controller.verify_and_enable(user.id, code, now=T0)

    stored = uow.credentials.stored(user.id)
    assert stored.totp_enabled is True
    assert stored.totp_secret == setup.secret
    assert cache_keys.totp_setup(user.id) not in cache.store

    # the pending secret was consumed
    with pytest.raises(SetupExpired):
        await controller.verify_and_enable(user.id, code, now=T0)


@pytest.mark.asyncio
async def test_wrong_code_keeps_pending_secret(controller, uow, cache, user):
    setup = await controller.begin_setup(user)

    with pytest.raises(InvalidCode):
        await controller.verify_and_enable(user.id, "000000", now=T0 + 7)

    assert cache.store[cache_keys.totp_setup(user.id)] == setup.secret
    assert uow.credentials.stored(user.id).totp_enabled is False


@pytest.mark.asyncio
async def test_enable_without_setup_expires(controller, user):
    with pytest.raises(SetupExpired):
        await controller.verify_and_enable(user.id, "123456", now=T0)


@pytest.mark.asyncio
async def test_new_setup_replaces_pending_secret(controller, cache, user):
    first = await controller.begin_setup(user)
    second = await controller.begin_setup(user)

    assert first.secret != second.secret
    assert cache.store[cache_keys.totp_setup(user.id)] == second.secret


@pytest.mark.asyncio
async def test_verify_login_sets_flag(controller, uow, cache, user):
    secret = pyotp.random_base32()
    stored = uow.credentials.stored(user.id)
    stored.totp_secret, stored.totp_enabled = secret, True

    with pytest.raises(InvalidCode):
        await controller.verify_login(user.id, "abcdef", now=T0)
    assert not await second_factor_verified(cache, user.id)

    result = await controller.verify_login(user.id, pyotp.TOTP(secret).at(T0), now=T0)

    assert result.totp_secret is None
    assert await second_factor_verified(cache, user.id)
    assert cache.ttls[cache_keys.totp_verified(user.id)] == 3600
    # second-factor failures never touch the lockout counter
    assert uow.credentials.stored(user.id).failed_login_attempts == 0


@pytest.mark.asyncio
async def test_verify_login_requires_enabled_factor(controller, user):
    with pytest.raises(TwoFactorNotEnabled):
        await controller.verify_login(user.id, "123456", now=T0)


@pytest.mark.asyncio
async def test_disable_needs_password(controller, uow, cache, user):
    stored = uow.credentials.stored(user.id)
    stored.totp_secret, stored.totp_enabled = pyotp.random_base32(), True
    cache.store[cache_keys.totp_verified(user.id)] = True

    with pytest.raises(IncorrectPassword):
        await controller.disable(user.id, "wrong")
    assert uow.credentials.stored(user.id).totp_enabled is True

    await controller.disable(user.id, "S3cret!pass")

    stored = uow.credentials.stored(user.id)
    assert stored.totp_enabled is False
    assert stored.totp_secret is None
    assert cache_keys.totp_verified(user.id) not in cache.store
