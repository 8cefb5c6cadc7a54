"""Password hashing and token primitives."""

from datetime import timedelta

import jwt
import pytest

from core import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenDecodeError,
    TokenExpiredError,
    create_token,
    decode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

SECRET = "security-test-secret-0123456789abcdef0123456789"


def test_hash_and_verify_password() -> None:
    hashed = hash_password("p1")

    assert hashed != "p1"
    assert verify_password("p1", hashed)
    assert not verify_password("p2", hashed)
    assert not needs_rehash(hashed)


def test_verify_password_rejects_malformed_hash() -> None:
    assert not verify_password("p1", "not-a-hash")
    assert needs_rehash("not-a-hash")


def test_create_and_decode_token() -> None:
    token = create_token(
        "user-1",
        token_type=REFRESH_TOKEN_TYPE,
        secret=SECRET,
        expires_delta=timedelta(minutes=5),
    )

    payload = decode_token(token, secret=SECRET, expected_type=REFRESH_TOKEN_TYPE)

    assert payload["sub"] == "user-1"
    assert payload["type"] == REFRESH_TOKEN_TYPE
    assert payload["jti"]


def test_decode_token_rejects_wrong_type() -> None:
    token = create_token(
        "user-1",
        token_type=ACCESS_TOKEN_TYPE,
        secret=SECRET,
        expires_delta=timedelta(minutes=5),
    )

    with pytest.raises(TokenDecodeError, match="type"):
        decode_token(token, secret=SECRET, expected_type=REFRESH_TOKEN_TYPE)


def test_decode_token_reports_expiry() -> None:
    token = create_token(
        "user-1",
        token_type=ACCESS_TOKEN_TYPE,
        secret=SECRET,
        expires_delta=timedelta(seconds=-1),
    )

    with pytest.raises(TokenExpiredError):
        decode_token(token, secret=SECRET, expected_type=ACCESS_TOKEN_TYPE)


def test_decode_token_requires_subject() -> None:
    token = jwt.encode({"type": ACCESS_TOKEN_TYPE, "exp": 4102444800, "iat": 0}, SECRET)

    with pytest.raises(TokenDecodeError):
        decode_token(token, secret=SECRET, expected_type=ACCESS_TOKEN_TYPE)
