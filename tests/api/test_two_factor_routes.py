import pyotp
from fastapi.testclient import TestClient

from tests.api.conftest import PASSWORD, auth, issue_token, login

CHANGE = {
    "current_password": PASSWORD,
    "new_password": "N3w!passwd",
    "confirm_password": "N3w!passwd",
}


def _enable_totp(client: TestClient, token: str) -> str:
    r = client.get("/v1/auth/totp/setup", headers=auth(token))
    assert r.status_code == 200, r.text
    secret = r.json()["data"]["secret"]
    assert r.json()["data"]["otpauth_uri"].startswith("otpauth://totp/")

    r2 = client.post(
        "/v1/auth/totp/verify", headers=auth(token), json={"code": pyotp.TOTP(secret).now()}
    )
    assert r2.status_code == 200, r2.text
    return secret


def test_second_factor_gates_writes_until_login_verify(client: TestClient, deps):
    email = deps["user"].email
    secret = _enable_totp(client, login(client, email)["token"])

    session = login(client, email)
    assert session["require_two_factor"] is True
    token = session["token"]

    # reads still work, writes do not
    assert client.get("/v1/auth/me", headers=auth(token)).status_code == 200
    r = client.put("/v1/auth/change-password", headers=auth(token), json=CHANGE)
    assert r.status_code == 403
    assert r.json()["message"] == "Two-factor authentication required."

    r2 = client.post(
        "/v1/auth/totp/login-verify", headers=auth(token), json={"code": "000000"}
    )
    assert r2.status_code == 400

    r3 = client.post(
        "/v1/auth/totp/login-verify",
        headers=auth(token),
        json={"code": pyotp.TOTP(secret).now()},
    )
    assert r3.status_code == 200, r3.text
    assert r3.json()["data"]["two_factor_enabled"] is True

    r4 = client.put("/v1/auth/change-password", headers=auth(token), json=CHANGE)
    assert r4.status_code == 200, r4.text


def test_verify_without_setup_is_expired(client: TestClient, deps):
    token = login(client, deps["user"].email)["token"]
    r = client.post("/v1/auth/totp/verify", headers=auth(token), json={"code": "123456"})
    assert r.status_code == 400
    assert r.json()["message"] == "TOTP setup has expired. Please try again."


def test_malformed_code_is_a_validation_error(client: TestClient, deps):
    token = login(client, deps["user"].email)["token"]
    r = client.post("/v1/auth/totp/verify", headers=auth(token), json={"code": "12ab"})
    assert r.status_code == 400
    assert "code" in r.json()["data"]["errors"]


def test_totp_routes_require_verified_email(client: TestClient, deps):
    deps["uow"].credentials.stored(deps["user"].id).verified = False
    token = login(client, deps["user"].email)["token"]

    r = client.get("/v1/auth/totp/setup", headers=auth(token))
    assert r.status_code == 403
    assert r.json()["message"].startswith("Email verification required")


def test_disable_with_password(client: TestClient, deps):
    email = deps["user"].email
    token = login(client, email)["token"]
    secret = _enable_totp(client, token)
    client.post(
        "/v1/auth/totp/login-verify",
        headers=auth(token),
        json={"code": pyotp.TOTP(secret).now()},
    )

    r = client.post("/v1/auth/totp/disable", headers=auth(token), json={"password": "nope"})
    assert r.status_code == 400

    r2 = client.post("/v1/auth/totp/disable", headers=auth(token), json={"password": PASSWORD})
    assert r2.status_code == 200, r2.text
    assert login(client, email)["require_two_factor"] is False


def test_login_verify_refreshes_near_expiry_token(client: TestClient, deps):
    secret = _enable_totp(client, login(client, deps["user"].email)["token"])
    short = issue_token(deps["user"], 600)

    r = client.post(
        "/v1/auth/totp/login-verify",
        headers=auth(short),
        json={"code": pyotp.TOTP(secret).now()},
    )
    assert r.status_code == 200, r.text
    fresh = r.headers["X-New-Token"]

    # the verified flag belongs to the user, so the new token can write
    r2 = client.put("/v1/auth/change-password", headers=auth(fresh), json=CHANGE)
    assert r2.status_code == 200, r2.text
