"""Core configuration and security primitives."""

from .config import Settings, settings
from .security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenDecodeError,
    TokenExpiredError,
    create_token,
    decode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "Settings",
    "settings",
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "TokenDecodeError",
    "TokenExpiredError",
    "create_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
