"""Media asset value types."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MediaField(str, Enum):
    """User profile fields that reference an object in the media store."""

    AVATAR = "avatar"
    COVER_IMAGE = "cover_image"


class MediaAsset(BaseModel):
    """Reference to an object held by the external media store."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    url: str
