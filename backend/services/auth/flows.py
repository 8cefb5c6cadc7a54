"""Registration, login, logout, session refresh and password change."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from core import hash_password, needs_rehash, verify_password
from models import (
    EMAIL_MAX_LENGTH,
    FULLNAME_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    MediaAsset,
    MediaField,
    UserProfile,
    asset_columns,
)

from ..errors import (
    DuplicateUser,
    InvalidCredentials,
    NotFound,
    TokenMismatch,
    Unauthorized,
    UploadFailed,
    ValidationError,
)
from ..storage import SupportsMediaStore, discard_asset
from ..uploads import discard
from .credential_store import CredentialStore, normalize_identifier
from .tokens import TokenPair, TokenService, hash_refresh_token

logger = logging.getLogger(__name__)
_email_adapter = TypeAdapter(EmailStr)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_length(value: str, limit: int, label: str) -> None:
    if len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters")


def _validated_email(value: str) -> str:
    normalized = normalize_identifier(value)
    _check_length(normalized, EMAIL_MAX_LENGTH, "Email")
    try:
        _email_adapter.validate_python(normalized)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid email address") from exc
    return normalized


@dataclass(frozen=True)
class LoginResult:
    profile: UserProfile
    tokens: TokenPair


class AuthFlows:
    """Sequences account operations over the credential store and token service.

    Every failure surfaces as an ``AuthServiceError`` subclass; collaborator
    exceptions are remapped before they reach the caller.
    """

    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        media_store: SupportsMediaStore,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.media_store = media_store

    async def register(
        self,
        *,
        username: str | None,
        email: str | None,
        fullname: str | None,
        password: str | None,
        avatar_path: str | Path | None,
        cover_image_path: str | Path | None = None,
    ) -> UserProfile:
        try:
            return await self._register(
                username=username,
                email=email,
                fullname=fullname,
                password=password,
                avatar_path=avatar_path,
                cover_image_path=cover_image_path,
            )
        finally:
            # Uploaded files are already gone; this covers early exits.
            for path in (avatar_path, cover_image_path):
                discard(Path(path) if path else None)

    async def _register(
        self,
        *,
        username: str | None,
        email: str | None,
        fullname: str | None,
        password: str | None,
        avatar_path: str | Path | None,
        cover_image_path: str | Path | None,
    ) -> UserProfile:
        if any(_is_blank(value) for value in (fullname, email, username, password)):
            raise ValidationError("All fields are required")

        normalized_username = normalize_identifier(username)
        normalized_fullname = fullname.strip()
        _check_length(normalized_username, USERNAME_MAX_LENGTH, "Username")
        _check_length(normalized_fullname, FULLNAME_MAX_LENGTH, "Fullname")
        normalized_email = _validated_email(email)
        if await self.store.find_one(username=normalized_username, email=normalized_email):
            raise DuplicateUser()

        if not avatar_path:
            raise ValidationError("Avatar file is required")

        avatar = await self.media_store.upload(avatar_path)
        if avatar is None:
            raise UploadFailed("Failed to upload avatar")

        cover_image: MediaAsset | None = None
        if cover_image_path:
            cover_image = await self.media_store.upload(cover_image_path)
            if cover_image is None:
                logger.warning("Cover image upload failed during registration; continuing without it")

        try:
            user = await self.store.create(
                username=normalized_username,
                email=normalized_email,
                fullname=normalized_fullname,
                password_hash=hash_password(password),
                **asset_columns(MediaField.AVATAR, avatar),
                **asset_columns(MediaField.COVER_IMAGE, cover_image),
            )
        except Exception:
            await discard_asset(self.media_store, avatar)
            await discard_asset(self.media_store, cover_image)
            raise

        logger.info("Registered user", extra={"user_id": user.id})
        return UserProfile.from_user(user)

    async def login(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> LoginResult:
        if _is_blank(username) and _is_blank(email):
            raise ValidationError("Username or email is required")
        if not password:
            raise ValidationError("Password is required")

        user = await self.store.find_one(username=username, email=email)
        if user is None:
            raise NotFound()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        if needs_rehash(user.password_hash):
            await self.store.update_fields(user.id, password_hash=hash_password(password))

        tokens = await self.tokens.rotate(user.id)
        profile = await self.store.get_profile(user.id)
        if profile is None:
            raise NotFound()
        logger.info("User logged in", extra={"user_id": user.id})
        return LoginResult(profile=profile, tokens=tokens)

    async def logout(self, user_id: str) -> None:
        await self.tokens.revoke(user_id)
        logger.info("User logged out", extra={"user_id": user_id})

    async def refresh_session(self, presented: str | None) -> TokenPair:
        """Exchange the active refresh token for a new pair.

        A refresh token is single-use: once rotated, presenting it again
        fails with ``TokenMismatch``.
        """
        if not presented:
            raise Unauthorized("Refresh token is required")

        user_id = self.tokens.verify_refresh(presented)

        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFound("Invalid refresh token")

        stored = user.refresh_token
        if stored is None or not hmac.compare_digest(stored, hash_refresh_token(presented)):
            logger.warning("Superseded refresh token presented", extra={"user_id": user_id})
            raise TokenMismatch()

        return await self.tokens.rotate(user_id, expected=presented)

    async def change_password(
        self,
        user_id: str,
        *,
        current_password: str | None,
        new_password: str | None,
    ) -> None:
        """Replace the password hash and end the active session."""
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")

        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFound()
        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        await self.store.update_fields(
            user_id,
            password_hash=hash_password(new_password),
            refresh_token=None,
        )
        logger.info("Password changed; refresh token revoked", extra={"user_id": user_id})

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self.store.get_profile(user_id)
        if profile is None:
            raise NotFound()
        return profile

    async def update_account_details(
        self,
        user_id: str,
        *,
        email: str | None,
        fullname: str | None,
    ) -> UserProfile:
        if _is_blank(email) or _is_blank(fullname):
            raise ValidationError("Email and fullname are required")

        normalized_fullname = fullname.strip()
        _check_length(normalized_fullname, FULLNAME_MAX_LENGTH, "Fullname")
        normalized_email = _validated_email(email)
        owner = await self.store.find_one(email=normalized_email)
        if owner is not None and owner.id != user_id:
            raise DuplicateUser("Email is already in use")

        user = await self.store.update_fields(
            user_id,
            email=normalized_email,
            fullname=normalized_fullname,
        )
        if user is None:
            raise NotFound()
        return UserProfile.from_user(user)


__all__ = ["AuthFlows", "LoginResult"]
