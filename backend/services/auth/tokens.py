"""Access/refresh token issuance, verification and rotation."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import timedelta

from pydantic import BaseModel

from core import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    Settings,
    TokenDecodeError,
    TokenExpiredError,
    create_token,
    decode_token,
)

from ..errors import AuthServiceError, InternalError, TokenMismatch, Unauthorized
from .credential_store import CredentialStore

logger = logging.getLogger(__name__)


def hash_refresh_token(token: str) -> str:
    """Return the digest persisted in place of the raw refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class TokenConfig:
    """Signing material for the two token kinds."""

    access_secret: str
    access_ttl: timedelta
    refresh_secret: str
    refresh_ttl: timedelta
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            access_secret=settings.access_token_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_secret=settings.refresh_token_secret,
            refresh_ttl=timedelta(minutes=settings.refresh_token_expire_minutes),
            algorithm=settings.jwt_algorithm,
        )


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class InvalidToken(Unauthorized):
    default_message = "Invalid token"


class TokenExpired(Unauthorized):
    default_message = "Token expired"


class TokenService:
    """Issues token pairs and keeps the user's single active refresh token.

    Session states per user: no session -> active -> active' (rotated) ->
    revoked. Storing a new refresh token always overwrites the previous one.
    """

    def __init__(self, config: TokenConfig, store: CredentialStore) -> None:
        self.config = config
        self.store = store

    def issue_pair(self, user_id: str) -> TokenPair:
        access_token = create_token(
            user_id,
            token_type=ACCESS_TOKEN_TYPE,
            secret=self.config.access_secret,
            expires_delta=self.config.access_ttl,
            algorithm=self.config.algorithm,
        )
        refresh_token = create_token(
            user_id,
            token_type=REFRESH_TOKEN_TYPE,
            secret=self.config.refresh_secret,
            expires_delta=self.config.refresh_ttl,
            algorithm=self.config.algorithm,
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _verify(self, token: str, *, secret: str, token_type: str) -> str:
        try:
            payload = decode_token(
                token,
                secret=secret,
                expected_type=token_type,
                algorithm=self.config.algorithm,
            )
        except TokenExpiredError as exc:
            raise TokenExpired() from exc
        except TokenDecodeError as exc:
            raise InvalidToken() from exc
        return payload["sub"]

    def verify_refresh(self, token: str) -> str:
        """Return the user id a refresh token was issued for.

        Cryptographic check only; the stored token is not consulted.
        """
        return self._verify(
            token,
            secret=self.config.refresh_secret,
            token_type=REFRESH_TOKEN_TYPE,
        )

    def verify_access(self, token: str) -> str:
        return self._verify(
            token,
            secret=self.config.access_secret,
            token_type=ACCESS_TOKEN_TYPE,
        )

    async def rotate(self, user_id: str, *, expected: str | None = None) -> TokenPair:
        """Issue a pair and persist its refresh token digest as the active one.

        ``expected`` is the raw refresh token being exchanged. With it set, the
        stored digest is only replaced while it still matches ``expected``;
        losing that race raises ``TokenMismatch``. No tokens are returned
        unless persistence succeeded.
        """
        try:
            pair = self.issue_pair(user_id)
        except Exception as exc:
            logger.error("Failed to sign tokens", extra={"user_id": user_id}, exc_info=exc)
            raise InternalError("Failed to generate tokens") from exc

        try:
            if expected is None:
                user = await self.store.update_fields(
                    user_id,
                    refresh_token=hash_refresh_token(pair.refresh_token),
                )
                stored = user is not None
            else:
                stored = await self.store.compare_and_set_refresh_token(
                    user_id,
                    expected=hash_refresh_token(expected),
                    new=hash_refresh_token(pair.refresh_token),
                )
        except AuthServiceError as exc:
            raise InternalError("Failed to generate tokens") from exc

        if not stored:
            if expected is not None:
                raise TokenMismatch()
            raise InternalError("Failed to generate tokens")
        return pair

    async def revoke(self, user_id: str) -> None:
        """Clear the active refresh token. Safe to call with no active session."""
        await self.store.update_fields(user_id, refresh_token=None)


__all__ = [
    "TokenConfig",
    "TokenPair",
    "TokenService",
    "InvalidToken",
    "hash_refresh_token",
    "TokenExpired",
]
