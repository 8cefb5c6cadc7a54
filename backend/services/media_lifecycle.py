"""Replacement of profile media without leaving dangling references."""

from __future__ import annotations

import logging
from pathlib import Path

from models import MediaField, UserProfile, asset_columns

from .auth.credential_store import CredentialStore
from .errors import NotFound, UploadFailed, ValidationError
from .storage import SupportsMediaStore, discard_asset

logger = logging.getLogger(__name__)

_FIELD_LABELS = {
    MediaField.AVATAR: "Avatar",
    MediaField.COVER_IMAGE: "Cover image",
}


class MediaLifecycleManager:
    """Swaps a user's avatar or cover image.

    The new object is uploaded and committed to the user record before the old
    object is deleted. A failure after the commit can only leak the old object;
    it can never leave the record pointing at a deleted one.
    """

    def __init__(self, store: CredentialStore, media_store: SupportsMediaStore) -> None:
        self.store = store
        self.media_store = media_store

    async def replace_asset(
        self,
        user_id: str,
        field: MediaField,
        upload_path: str | Path | None,
    ) -> UserProfile:
        label = _FIELD_LABELS[field]
        if not upload_path:
            raise ValidationError(f"{label} file is required")

        new_asset = await self.media_store.upload(upload_path)
        if new_asset is None or not new_asset.url:
            raise UploadFailed(f"Failed to upload {label.lower()}")

        try:
            user = await self.store.find_by_id(user_id)
        except Exception:
            await discard_asset(self.media_store, new_asset)
            raise
        if user is None:
            await discard_asset(self.media_store, new_asset)
            raise NotFound()
        old_asset = user.get_asset(field)

        try:
            updated = await self.store.update_fields(user_id, **asset_columns(field, new_asset))
        except Exception:
            await discard_asset(self.media_store, new_asset)
            raise
        if updated is None:
            await discard_asset(self.media_store, new_asset)
            raise NotFound()

        if old_asset is not None and old_asset.external_id != new_asset.external_id:
            await discard_asset(self.media_store, old_asset)

        logger.info(
            "Replaced profile media",
            extra={"user_id": user_id, "field": field.value, "external_id": new_asset.external_id},
        )
        return UserProfile.from_user(updated)


__all__ = ["MediaLifecycleManager"]
