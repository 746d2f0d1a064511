"""Session cookies.

access_token and refresh_token are httpOnly, SameSite=Lax, path=/, and
Secure unless DIANJI_COOKIE_SECURE=false (plain-http local development).
Their max-age matches the token lifetimes.
"""

from typing import Optional

from fastapi import Response

from dianji.auth.dependencies import ACCESS_COOKIE, REFRESH_COOKIE
from dianji.config import Settings


def _set(response: Response, name: str, value: str, max_age: int, settings: Settings) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def set_session_cookies(
    response: Response,
    settings: Settings,
    access_token: str,
    refresh_token: Optional[str] = None,
) -> None:
    _set(response, ACCESS_COOKIE, access_token, settings.access_token_ttl_seconds, settings)
    if refresh_token is not None:
        _set(response, REFRESH_COOKIE, refresh_token, settings.refresh_token_ttl_seconds, settings)


def clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name, path="/", httponly=True, secure=settings.cookie_secure, samesite="lax"
        )
