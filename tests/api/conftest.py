import pytest
from fastapi.testclient import TestClient

from folio_auth.infrastructure.security.tokens import TokenCodec
from folio_auth.main import create_app
from folio_auth.presentation.dependencies import (
    get_hash_password,
    get_state_cache,
    get_uow,
    get_verify_password,
)
from folio_auth.settings import get_settings
from tests.fakes import FakeStateCache, FakeUoW, make_user, plain_hash, plain_verify

PASSWORD = "S3cret!pass"


@pytest.fixture()
def app_and_deps():
    """
    App wired to in-memory fakes:
      - a seeded UoW holding one verified user and one admin
      - dict-backed state cache
      - "hashed-" + plain passwords instead of bcrypt
    """
    app = create_app()
    user = make_user()
    admin = make_user(email="root@example.com", role="admin", first_name="Root")
    uow = FakeUoW(user, admin)
    cache = FakeStateCache()

    app.dependency_overrides[get_uow] = lambda: uow
    app.dependency_overrides[get_state_cache] = lambda: cache
    app.dependency_overrides[get_hash_password] = lambda: plain_hash
    app.dependency_overrides[get_verify_password] = lambda: plain_verify

    try:
        yield app, {"uow": uow, "cache": cache, "user": user, "admin": admin}
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def deps(app_and_deps):
    _, deps = app_and_deps
    return deps


@pytest.fixture()
def client(app_and_deps):
    app, _ = app_and_deps
    return TestClient(app, raise_server_exceptions=False)


def login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    r = client.post("/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["data"]


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def issue_token(user, ttl_seconds: int) -> str:
    """Sign a token the app will accept, with a chosen lifetime."""
    settings = get_settings()
    codec = TokenCodec(settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return codec.issue_for(user, ttl_seconds)
