"""User domain model."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr
from sqlalchemy import Column, DateTime, String, func
from sqlmodel import Field, SQLModel

from .media import MediaAsset, MediaField

USERNAME_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 255
FULLNAME_MAX_LENGTH = 120
REFRESH_TOKEN_DIGEST_LENGTH = 64


class User(SQLModel, table=True):
    """Registered account with credentials, profile media and session state."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    username: str = Field(
        sa_column=Column(String(USERNAME_MAX_LENGTH), unique=True, nullable=False, index=True)
    )
    email: str = Field(
        sa_column=Column(String(EMAIL_MAX_LENGTH), unique=True, nullable=False, index=True)
    )
    fullname: str = Field(
        sa_column=Column(String(FULLNAME_MAX_LENGTH), nullable=False)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    avatar_id: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
    avatar_url: str | None = Field(
        default=None, sa_column=Column(String(1024), nullable=True)
    )
    cover_image_id: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
    cover_image_url: str | None = Field(
        default=None, sa_column=Column(String(1024), nullable=True)
    )
    # SHA-256 digest of the single active refresh token. Overwritten on
    # rotation, cleared on logout.
    refresh_token: str | None = Field(
        default=None, sa_column=Column(String(REFRESH_TOKEN_DIGEST_LENGTH), nullable=True)
    )
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
    )

    def get_asset(self, field: MediaField) -> MediaAsset | None:
        external_id = getattr(self, f"{field.value}_id")
        url = getattr(self, f"{field.value}_url")
        if not external_id or not url:
            return None
        return MediaAsset(external_id=external_id, url=url)


def asset_columns(field: MediaField, asset: MediaAsset | None) -> dict[str, str | None]:
    """Return the column values that store ``asset`` in ``field``."""
    return {
        f"{field.value}_id": asset.external_id if asset else None,
        f"{field.value}_url": asset.url if asset else None,
    }


class UserProfile(BaseModel):
    """Read-side view of a user; never carries the password hash or refresh token."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: EmailStr
    fullname: str
    avatar: MediaAsset | None = None
    cover_image: MediaAsset | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            fullname=user.fullname,
            avatar=user.get_asset(MediaField.AVATAR),
            cover_image=user.get_asset(MediaField.COVER_IMAGE),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
