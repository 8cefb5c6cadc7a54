"""Spooling of incoming multipart files to local temporary paths."""

from __future__ import annotations

import tempfile
from pathlib import Path

from fastapi import UploadFile

from .errors import ValidationError

UPLOAD_CHUNK_SIZE = 64 * 1024


class UploadTooLargeError(ValidationError):
    status_code = 413
    default_message = "Uploaded file is too large"


async def spool_upload(upload: UploadFile | None, max_bytes: int) -> Path | None:
    """Copy an upload to a temporary file and return its path.

    Returns None when no file (or an empty filename) was sent. The caller owns
    the returned file; the media store removes it once consumed.
    """
    if upload is None or not upload.filename:
        return None

    suffix = Path(upload.filename).suffix.lower()
    handle = tempfile.NamedTemporaryFile(prefix="upload-", suffix=suffix, delete=False)
    path = Path(handle.name)
    written = 0
    try:
        with handle:
            while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLargeError(
                        f"Uploaded file exceeds {max_bytes} bytes"
                    )
                handle.write(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    if written == 0:
        path.unlink(missing_ok=True)
        raise ValidationError("Uploaded file is empty")
    return path


def discard(path: Path | None) -> None:
    if path is not None:
        path.unlink(missing_ok=True)


__all__ = ["UploadTooLargeError", "spool_upload", "discard", "UPLOAD_CHUNK_SIZE"]
