import jwt
import pytest

from folio_auth.domain.errors import InvalidToken
from folio_auth.infrastructure.security.tokens import TokenCodec

T0 = 1_700_000_000


def test_issue_and_verify_round_trip():
    codec = TokenCodec("k1")
    token = codec.issue(
        subject="u1", email="ada@example.com", role="admin", ttl_seconds=60, now=T0
    )

    claims = codec.verify(token, now=T0 + 1)

    assert claims.subject == "u1"
    assert claims.email == "ada@example.com"
    assert claims.role == "admin"
    assert claims.issued_at == T0
    assert claims.expires_at == T0 + 60


def test_expiry_boundary():
    codec = TokenCodec("k1")
    token = codec.issue(subject="u1", email="a@example.com", role="user", ttl_seconds=60, now=T0)

    codec.verify(token, now=T0 + 59)
    with pytest.raises(InvalidToken):
        codec.verify(token, now=T0 + 60)
    with pytest.raises(InvalidToken):
        codec.verify(token, now=T0 + 61)


def test_foreign_secret_and_tampering_are_rejected():
    token = TokenCodec("k1").issue(
        subject="u1", email="a@example.com", role="user", ttl_seconds=60, now=T0
    )
    with pytest.raises(InvalidToken):
        TokenCodec("k2").verify(token, now=T0)

    header, payload, signature = token.split(".")
    forged = jwt.encode(
        {"sub": "u1", "role": "admin", "iat": T0, "exp": T0 + 60}, "k2", algorithm="HS256"
    ).split(".")[1]
    with pytest.raises(InvalidToken):
        TokenCodec("k1").verify(f"{header}.{forged}.{signature}", now=T0)


def test_garbage_and_missing_claims_share_one_error():
    codec = TokenCodec("k1")
    no_exp = jwt.encode({"sub": "u1", "iat": T0}, "k1", algorithm="HS256")

    for bad in ("nope", "", "a.b.c", no_exp):
        with pytest.raises(InvalidToken) as ei:
            codec.verify(bad, now=T0)
        assert ei.value.message == "Invalid or expired token. Please log in again."


def test_peek_unverified_expiry():
    token = TokenCodec("k1").issue(
        subject="u1", email="a@example.com", role="user", ttl_seconds=90, now=T0
    )
    assert TokenCodec.peek_unverified_expiry(token) == T0 + 90
    assert TokenCodec.peek_unverified_expiry("garbage") is None


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenCodec("")
