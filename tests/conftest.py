import pytest

from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.lockout import LockoutPolicy
from folio_auth.infrastructure.security.tokens import TokenCodec
from tests.fakes import FakeStateCache, FakeUoW, make_user


@pytest.fixture()
def user():
    return make_user()


@pytest.fixture()
def uow(user):
    return FakeUoW(user)


@pytest.fixture()
def cache():
    return FakeStateCache()


@pytest.fixture()
def user_cache(cache):
    return UserCache(cache, ttl_seconds=600)


@pytest.fixture()
def ledger(cache):
    return RevocationLedger(cache, fallback_ttl_seconds=3600)


@pytest.fixture()
def tokens():
    return TokenCodec("test-secret")


@pytest.fixture()
def lockout():
    return LockoutPolicy(max_attempts=5, lockout_seconds=3600)


@pytest.fixture(autouse=True)
def patch_one_time_token(monkeypatch):
    """
    Make mailed one-time tokens deterministic in all tests.
    You can override in a specific test by re-monkeypatching.
    """
    from folio_auth.domain import services as domain_services

    monkeypatch.setattr(domain_services, "generate_one_time_token", lambda: "a" * 64)
    yield
