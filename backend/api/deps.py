"""FastAPI dependency wiring."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core import settings
from db.session import get_session
from services import MediaLifecycleManager, SupportsMediaStore, Unauthorized, default_media_store
from services.auth import (
    ACCESS_COOKIE,
    AuthFlows,
    CredentialStore,
    TokenConfig,
    TokenService,
)

BEARER_PREFIX = "bearer "


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_token_config() -> TokenConfig:
    return TokenConfig.from_settings(settings)


def get_media_store() -> SupportsMediaStore:
    return default_media_store()


def get_credential_store(session: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(session)


def get_token_service(
    store: CredentialStore = Depends(get_credential_store),
    config: TokenConfig = Depends(get_token_config),
) -> TokenService:
    return TokenService(config, store)


def get_auth_flows(
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
    media_store: SupportsMediaStore = Depends(get_media_store),
) -> AuthFlows:
    return AuthFlows(store, tokens, media_store)


def get_media_lifecycle(
    store: CredentialStore = Depends(get_credential_store),
    media_store: SupportsMediaStore = Depends(get_media_store),
) -> MediaLifecycleManager:
    return MediaLifecycleManager(store, media_store)


def _access_token_from_request(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    return None


async def get_current_user_id(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    store: CredentialStore = Depends(get_credential_store),
) -> str:
    """Resolve the authenticated user from the access cookie or bearer header."""
    token = _access_token_from_request(request)
    if not token:
        raise Unauthorized("Unauthorized request")

    user_id = tokens.verify_access(token)
    user = await store.find_by_id(user_id)
    if user is None:
        raise Unauthorized("Invalid access token")
    return user.id
