"""MinIO-backed media asset store."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol
from urllib.parse import quote
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import Settings, settings
from models import MediaAsset

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StorageConfig:
    """Connection and naming settings for the object store."""

    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    secure: bool = False
    public_base_url: str = ""
    timeout_seconds: float = 30.0
    key_prefix: str = "media"

    @classmethod
    def from_settings(cls, source: Settings) -> "StorageConfig":
        return cls(
            endpoint=source.minio_endpoint,
            access_key=source.minio_access_key,
            secret_key=source.minio_secret_key,
            bucket=source.minio_bucket,
            secure=source.minio_secure,
            public_base_url=source.media_public_base_url,
            timeout_seconds=source.media_operation_timeout_seconds,
        )


def build_minio_client(config: StorageConfig) -> Minio:
    """Return a MinIO client for the endpoint and credentials in ``config``."""
    # Local development runs without TLS; production can override via endpoint/port.
    return Minio(
        config.endpoint,
        access_key=config.access_key,
        secret_key=config.secret_key,
        secure=config.secure,
    )


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    return build_minio_client(StorageConfig.from_settings(settings))


def ensure_bucket(client: Minio | None = None, bucket: str | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = bucket or settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def delete_object(
    object_key: str,
    client: Minio | None = None,
    bucket: str | None = None,
) -> None:
    """Delete an object from the configured bucket when it exists."""
    client = client or get_minio_client()
    try:
        client.remove_object(bucket or settings.minio_bucket, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        if exc.code not in MISSING_OBJECT_CODES:
            raise


class SupportsMediaStore(Protocol):
    async def upload(self, local_path: str | Path | None) -> MediaAsset | None: ...

    async def delete(self, external_id: str) -> bool: ...


def _discard_local_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning(
            "Failed to remove temporary upload file",
            extra={"path": str(path)},
            exc_info=exc,
        )


class MediaAssetStore:
    """Uploads local files to the object store and deletes them by key.

    Both operations are bounded by ``config.timeout_seconds`` and report
    failure through their return value instead of raising.
    """

    def __init__(self, config: StorageConfig, client: Minio | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = build_minio_client(self.config)
        return self._client

    def public_url(self, object_key: str) -> str:
        base = self.config.public_base_url.rstrip("/")
        return f"{base}/{self.config.bucket}/{quote(object_key)}"

    def _put_file(self, object_key: str, path: Path, content_type: str) -> None:
        ensure_bucket(self.client, self.config.bucket)
        self.client.fput_object(
            self.config.bucket,
            object_key,
            str(path),
            content_type=content_type,
        )

    async def upload(self, local_path: str | Path | None) -> MediaAsset | None:
        """Upload ``local_path`` and return its reference, or None on failure.

        The local file is removed on every exit path.
        """
        if not local_path:
            return None

        path = Path(local_path)
        object_key = f"{self.config.key_prefix}/{uuid4().hex}{path.suffix.lower()}"
        content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._put_file, object_key, path, content_type),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out uploading media object",
                extra={"object_key": object_key},
            )
            return None
        except Exception as exc:
            logger.warning(
                "Failed to upload media object",
                extra={"object_key": object_key},
                exc_info=exc,
            )
            return None
        finally:
            _discard_local_file(path)

        return MediaAsset(external_id=object_key, url=self.public_url(object_key))

    async def delete(self, external_id: str) -> bool:
        """Delete an object by key; a missing object counts as deleted."""
        try:
            await asyncio.wait_for(
                asyncio.to_thread(delete_object, external_id, self.client, self.config.bucket),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out deleting media object",
                extra={"object_key": external_id},
            )
            return False
        except Exception as exc:
            logger.warning(
                "Failed to delete media object",
                extra={"object_key": external_id},
                exc_info=exc,
            )
            return False
        return True


async def discard_asset(media_store: SupportsMediaStore, asset: MediaAsset | None) -> None:
    """Best-effort removal of an object; failures are logged, never raised."""
    if asset is None:
        return
    if not await media_store.delete(asset.external_id):
        logger.warning(
            "Failed to delete media object; it is now orphaned",
            extra={"external_id": asset.external_id},
        )


@lru_cache
def default_media_store() -> MediaAssetStore:
    """Return the process-wide media store built from settings."""
    return MediaAssetStore(StorageConfig.from_settings(settings), client=get_minio_client())
