from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    app_name: str = "Folio"
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:3000"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    redis_socket_timeout: float = 2.0
    smtp_base_url: str = "http://mail-relay:8025"

    # Passwords
    bcrypt_rounds: int = 12

    # Bearer tokens
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = 7 * 24 * 3600
    remember_token_ttl_seconds: int = 30 * 24 * 3600
    token_refresh_threshold_seconds: int = 24 * 3600

    # Lockout
    max_login_attempts: int = 5
    lockout_seconds: int = 3600

    # Revocation
    revocation_fallback_ttl_seconds: int = 3600
    # When Redis is unreachable, True lets requests through unchecked,
    # False rejects every authenticated request until it comes back.
    revocation_fail_open: bool = True

    # Cache
    user_cache_ttl_seconds: int = 600

    # TOTP
    totp_issuer: str = "Folio"
    totp_setup_ttl_seconds: int = 600
    totp_verified_ttl_seconds: int = 3600
    totp_valid_window: int = 1

    # One-time email tokens
    verification_token_ttl_seconds: int = 24 * 3600
    reset_token_ttl_seconds: int = 3600

    # Worker
    outbox_poll_interval_ms: int = 500
    outbox_batch_size: int = 10
    outbox_retry_base_seconds: int = 2
    outbox_retry_max_delay_seconds: int = 300
    outbox_max_attempts: int = 8

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
