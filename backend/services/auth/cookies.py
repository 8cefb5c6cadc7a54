"""HTTP cookie transport for the session token pair."""

from __future__ import annotations

from typing import Literal

from fastapi import Response

from core import settings

from .tokens import TokenPair

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"


def cookies_secure() -> bool:
    return (
        settings.app_env.strip().lower() not in {"local", "test"}
        and not settings.allow_insecure_http_cookies
    )


def set_token_cookies(response: Response, tokens: TokenPair) -> None:
    secure = cookies_secure()
    for key, value, max_age_minutes in (
        (ACCESS_COOKIE, tokens.access_token, settings.access_token_expire_minutes),
        (REFRESH_COOKIE, tokens.refresh_token, settings.refresh_token_expire_minutes),
    ):
        response.set_cookie(
            key=key,
            value=value,
            httponly=True,
            secure=secure,
            samesite=COOKIE_SAMESITE,
            max_age=max_age_minutes * 60,
            path=COOKIE_PATH,
        )


def clear_token_cookies(response: Response) -> None:
    secure = cookies_secure()
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=key,
            path=COOKIE_PATH,
            secure=secure,
            httponly=True,
            samesite=COOKIE_SAMESITE,
        )
