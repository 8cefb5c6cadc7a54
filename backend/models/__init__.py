"""SQLModel models package."""

from .media import MediaAsset, MediaField
from .user import (
    EMAIL_MAX_LENGTH,
    FULLNAME_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    User,
    UserProfile,
    asset_columns,
)

__all__ = [
    "User",
    "UserProfile",
    "MediaAsset",
    "MediaField",
    "asset_columns",
    "EMAIL_MAX_LENGTH",
    "FULLNAME_MAX_LENGTH",
    "USERNAME_MAX_LENGTH",
]
