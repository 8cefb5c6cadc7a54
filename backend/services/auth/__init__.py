"""Authentication domain services."""

from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    set_token_cookies,
)
from .credential_store import CredentialStore, normalize_identifier
from .flows import AuthFlows, LoginResult
from .tokens import (
    InvalidToken,
    TokenConfig,
    TokenExpired,
    TokenPair,
    TokenService,
    hash_refresh_token,
)

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "clear_token_cookies",
    "set_token_cookies",
    "CredentialStore",
    "normalize_identifier",
    "AuthFlows",
    "LoginResult",
    "InvalidToken",
    "TokenConfig",
    "TokenExpired",
    "TokenPair",
    "TokenService",
    "hash_refresh_token",
]
