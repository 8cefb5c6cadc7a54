"""Service-layer error variants mapped to HTTP status codes at the API boundary."""

from __future__ import annotations


class AuthServiceError(Exception):
    """Base class for every failure an account operation can report."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, int | str]:
        return {"status": self.status_code, "message": self.message}


class ValidationError(AuthServiceError):
    """Malformed or missing input (400)."""

    status_code = 400
    default_message = "Invalid request"


class UploadFailed(AuthServiceError):
    """The object store did not accept an upload (400)."""

    status_code = 400
    default_message = "Failed to upload file"


class Unauthorized(AuthServiceError):
    """Missing, invalid or superseded credentials (401)."""

    status_code = 401
    default_message = "Unauthorized request"


class InvalidCredentials(Unauthorized):
    default_message = "Invalid credentials"


class TokenMismatch(Unauthorized):
    """Presented refresh token is not the user's active one."""

    default_message = "Refresh token is expired or used"


class NotFound(AuthServiceError):
    status_code = 404
    default_message = "User not found"


class DuplicateUser(AuthServiceError):
    status_code = 409
    default_message = "User with that username or email already exists"


class InternalError(AuthServiceError):
    """Token signing or persistence failure (500)."""

    status_code = 500
    default_message = "Internal server error"


__all__ = [
    "AuthServiceError",
    "ValidationError",
    "UploadFailed",
    "Unauthorized",
    "InvalidCredentials",
    "TokenMismatch",
    "NotFound",
    "DuplicateUser",
    "InternalError",
]
