"""Business logic services."""

from .errors import (
    AuthServiceError,
    DuplicateUser,
    InternalError,
    InvalidCredentials,
    NotFound,
    TokenMismatch,
    Unauthorized,
    UploadFailed,
    ValidationError,
)
from .storage import (
    MediaAssetStore,
    StorageConfig,
    SupportsMediaStore,
    delete_object,
    discard_asset,
    ensure_bucket,
    default_media_store,
    get_minio_client,
)
from .uploads import UploadTooLargeError, spool_upload
from .media_lifecycle import MediaLifecycleManager

__all__ = [
    "AuthServiceError",
    "DuplicateUser",
    "InternalError",
    "InvalidCredentials",
    "NotFound",
    "TokenMismatch",
    "Unauthorized",
    "UploadFailed",
    "ValidationError",
    "MediaAssetStore",
    "StorageConfig",
    "SupportsMediaStore",
    "delete_object",
    "discard_asset",
    "ensure_bucket",
    "default_media_store",
    "get_minio_client",
    "UploadTooLargeError",
    "spool_upload",
    "MediaLifecycleManager",
]
