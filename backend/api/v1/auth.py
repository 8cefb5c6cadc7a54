"""Authentication endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import BaseModel

from api.deps import get_auth_flows, get_current_user_id
from core import settings
from models import UserProfile
from services.auth import (
    REFRESH_COOKIE,
    AuthFlows,
    clear_token_cookies,
    set_token_cookies,
)
from services.uploads import discard, spool_upload

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    # Either identifier is enough; both may be sent.
    username: str | None = None
    email: str | None = None
    password: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenResponse):
    user: UserProfile


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str | None = None
    new_password: str | None = None


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserProfile)
async def register(
    username: str | None = Form(default=None),
    email: str | None = Form(default=None),
    fullname: str | None = Form(default=None),
    password: str | None = Form(default=None),
    avatar: UploadFile | None = File(default=None),
    cover_image: UploadFile | None = File(default=None),
    flows: AuthFlows = Depends(get_auth_flows),
) -> UserProfile:
    avatar_path = None
    cover_image_path = None
    try:
        avatar_path = await spool_upload(avatar, settings.upload_max_bytes)
        cover_image_path = await spool_upload(cover_image, settings.upload_max_bytes)
        return await flows.register(
            username=username,
            email=email,
            fullname=fullname,
            password=password,
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
    finally:
        discard(avatar_path)
        discard(cover_image_path)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    flows: AuthFlows = Depends(get_auth_flows),
) -> LoginResponse:
    result = await flows.login(
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    set_token_cookies(response, result.tokens)
    return LoginResponse(
        user=result.profile,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(
    request: Request,
    response: Response,
    payload: RefreshRequest | None = Body(default=None),
    flows: AuthFlows = Depends(get_auth_flows),
) -> TokenResponse:
    presented = request.cookies.get(REFRESH_COOKIE)
    if not presented and payload is not None:
        presented = payload.refresh_token

    tokens = await flows.refresh_session(presented)
    set_token_cookies(response, tokens)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(
    response: Response,
    user_id: str = Depends(get_current_user_id),
    flows: AuthFlows = Depends(get_auth_flows),
) -> dict[str, Any]:
    await flows.logout(user_id)
    clear_token_cookies(response)
    return {"detail": "Logged out"}


@router.post("/change-password", status_code=status.HTTP_200_OK)
async def change_password(
    payload: ChangePasswordRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    flows: AuthFlows = Depends(get_auth_flows),
) -> dict[str, Any]:
    await flows.change_password(
        user_id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    # The refresh token was revoked with the old password.
    clear_token_cookies(response)
    return {}
