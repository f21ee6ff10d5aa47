from typing import Annotated, Callable

from fastapi import Depends, Request

from folio_auth.application.authenticate import RequestAuthenticator
from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.two_factor import TwoFactorController
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.lockout import LockoutPolicy
from folio_auth.domain.ports.state_cache import StateCachePort
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.db.uow import PgUnitOfWork
from folio_auth.infrastructure.security.password import hash_password, verify_password
from folio_auth.infrastructure.security.tokens import TokenCodec
from folio_auth.settings import Settings, get_settings


def get_app_settings() -> Settings:
    return get_settings()


def get_uow(request: Request) -> UnitOfWorkPort:
    # pool is created and opened in folio_auth.main lifespan()
    return PgUnitOfWork(request.app.state.db_pool)


def get_state_cache(request: Request) -> StateCachePort:
    return request.app.state.cache


def get_hash_password() -> Callable[..., str]:
    return hash_password


def get_verify_password() -> Callable[[str, str | None], bool]:
    return verify_password


def get_token_codec(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> TokenCodec:
    return TokenCodec(settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_lockout_policy(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> LockoutPolicy:
    return LockoutPolicy(
        max_attempts=settings.max_login_attempts,
        lockout_seconds=settings.lockout_seconds,
    )


def get_user_cache(
    cache: Annotated[StateCachePort, Depends(get_state_cache)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> UserCache:
    return UserCache(cache, ttl_seconds=settings.user_cache_ttl_seconds)


def get_revocation_ledger(
    cache: Annotated[StateCachePort, Depends(get_state_cache)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> RevocationLedger:
    return RevocationLedger(
        cache,
        fallback_ttl_seconds=settings.revocation_fallback_ttl_seconds,
        fail_open=settings.revocation_fail_open,
    )


def get_authenticator(
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    tokens: Annotated[TokenCodec, Depends(get_token_codec)],
    ledger: Annotated[RevocationLedger, Depends(get_revocation_ledger)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
    cache: Annotated[StateCachePort, Depends(get_state_cache)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> RequestAuthenticator:
    return RequestAuthenticator(
        uow,
        tokens,
        ledger,
        user_cache,
        cache,
        token_ttl_seconds=settings.token_ttl_seconds,
        refresh_threshold_seconds=settings.token_refresh_threshold_seconds,
    )


def get_two_factor(
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    cache: Annotated[StateCachePort, Depends(get_state_cache)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
    verify_password: Annotated[Callable[[str, str | None], bool], Depends(get_verify_password)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> TwoFactorController:
    return TwoFactorController(
        uow,
        cache,
        user_cache,
        verify_password,
        issuer=settings.totp_issuer,
        setup_ttl_seconds=settings.totp_setup_ttl_seconds,
        verified_ttl_seconds=settings.totp_verified_ttl_seconds,
        valid_window=settings.totp_valid_window,
    )
