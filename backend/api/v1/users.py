"""Profile endpoints for the authenticated user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from api.deps import get_auth_flows, get_current_user_id, get_media_lifecycle
from core import settings
from models import MediaField, UserProfile
from services import MediaLifecycleManager
from services.auth import AuthFlows
from services.uploads import discard, spool_upload

router = APIRouter(tags=["users"])


class AccountDetailsUpdate(BaseModel):
    email: str | None = None
    fullname: str | None = None


@router.get("/me", response_model=UserProfile)
async def get_me(
    user_id: str = Depends(get_current_user_id),
    flows: AuthFlows = Depends(get_auth_flows),
) -> UserProfile:
    """Return the authenticated user's profile."""
    return await flows.get_profile(user_id)


@router.patch("/me", response_model=UserProfile)
async def update_me(
    payload: AccountDetailsUpdate,
    user_id: str = Depends(get_current_user_id),
    flows: AuthFlows = Depends(get_auth_flows),
) -> UserProfile:
    """Update the authenticated user's email and full name."""
    return await flows.update_account_details(
        user_id,
        email=payload.email,
        fullname=payload.fullname,
    )


async def _replace_media(
    lifecycle: MediaLifecycleManager,
    user_id: str,
    field: MediaField,
    upload: UploadFile | None,
) -> UserProfile:
    upload_path = None
    try:
        upload_path = await spool_upload(upload, settings.upload_max_bytes)
        return await lifecycle.replace_asset(user_id, field, upload_path)
    finally:
        discard(upload_path)


@router.patch("/me/avatar", response_model=UserProfile)
async def update_avatar(
    avatar: UploadFile | None = File(default=None),
    user_id: str = Depends(get_current_user_id),
    lifecycle: MediaLifecycleManager = Depends(get_media_lifecycle),
) -> UserProfile:
    return await _replace_media(lifecycle, user_id, MediaField.AVATAR, avatar)


@router.patch("/me/cover-image", response_model=UserProfile)
async def update_cover_image(
    cover_image: UploadFile | None = File(default=None),
    user_id: str = Depends(get_current_user_id),
    lifecycle: MediaLifecycleManager = Depends(get_media_lifecycle),
) -> UserProfile:
    return await _replace_media(lifecycle, user_id, MediaField.COVER_IMAGE, cover_image)
