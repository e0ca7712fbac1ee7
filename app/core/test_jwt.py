from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.jwt import (
    SigningClaims, TokenExpiredError, TokenMalformedError,
    build_signing_link, create_signing_token, verify_signing_token,
)


def test_token_round_trip():
    token = create_signing_token("env123", "a@x.com", 1)
    assert verify_signing_token(token) == SigningClaims(envelope_id="env123", email="a@x.com", index=1)


def test_tokens_are_distinct_per_signer():
    first = create_signing_token("env123", "a@x.com", 0)
    second = create_signing_token("env123", "b@x.com", 1)
    assert first != second
    assert verify_signing_token(first).index == 0
    assert verify_signing_token(second).index == 1


def test_expired_token_is_rejected():
    token = create_signing_token("env123", "a@x.com", 0, expires_delta=timedelta(seconds=-30))
    with pytest.raises(TokenExpiredError):
        verify_signing_token(token)


def test_tampered_token_is_malformed():
    token = create_signing_token("env123", "a@x.com", 0)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])
    with pytest.raises(TokenMalformedError):
        verify_signing_token(tampered)


def test_token_signed_with_other_secret_is_malformed():
    token = jwt.encode(
        {"sub": "env123", "email": "a@x.com", "idx": 0, "scope": "envelope_signing"},
        "not-the-server-secret",
        algorithm=settings.algorithm,
    )
    with pytest.raises(TokenMalformedError):
        verify_signing_token(token)


def test_token_with_other_scope_is_malformed():
    token = jwt.encode(
        {"sub": "a@x.com", "scope": "password_reset"},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    with pytest.raises(TokenMalformedError):
        verify_signing_token(token)


def test_token_missing_index_is_malformed():
    token = jwt.encode(
        {"sub": "env123", "email": "a@x.com", "scope": "envelope_signing"},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    with pytest.raises(TokenMalformedError):
        verify_signing_token(token)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_garbage_is_malformed(token):
    with pytest.raises(TokenMalformedError):
        verify_signing_token(token)


def test_signing_link_contains_token():
    token = create_signing_token("env123", "a@x.com", 0)
    assert build_signing_link(token) == f"{settings.app_base_url.rstrip('/')}/sign/{token}"
