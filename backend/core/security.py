"""Password hashing and signed-token primitives."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_password_hasher = PasswordHasher()


class TokenDecodeError(ValueError):
    """Raised when a token is malformed, forged or of the wrong type."""


class TokenExpiredError(TokenDecodeError):
    """Raised when a token carries a valid signature but is past its expiry."""


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    try:
        return _password_hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


def create_token(
    subject: str,
    *,
    token_type: str,
    secret: str,
    expires_delta: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Sign a token for ``subject``.

    Every token carries a random ``jti`` so two tokens minted for the same
    subject within the same second are still distinct.
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str,
    *,
    secret: str,
    expected_type: str,
    algorithm: str = "HS256",
) -> dict[str, Any]:
    """Verify signature, expiry and token type, returning the claims."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError("Token expired") from exc
    except jwt.PyJWTError as exc:
        raise TokenDecodeError("Invalid token") from exc

    if payload.get("type") != expected_type:
        raise TokenDecodeError("Invalid token type")
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise TokenDecodeError("Invalid token subject")
    return payload
