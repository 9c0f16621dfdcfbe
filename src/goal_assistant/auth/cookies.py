"""Session cookie helpers."""

from __future__ import annotations

from fastapi import Response

from goal_assistant.auth.jwt import access_token_lifetime, refresh_token_lifetime
from goal_assistant.config import get_settings


def set_session_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    *,
    remember_me: bool = False,
) -> None:
    """Set httpOnly, SameSite=strict access and refresh cookies."""
    settings = get_settings()
    response.set_cookie(
        settings.access_cookie_name,
        access_token,
        max_age=int(access_token_lifetime(remember_me).total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        refresh_token,
        max_age=int(refresh_token_lifetime(remember_me).total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def clear_session_cookies(response: Response) -> None:
    """Expire both session cookies with the same attributes they were set with."""
    settings = get_settings()
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(
            name,
            path="/",
            httponly=True,
            secure=settings.cookie_secure,
            samesite="strict",
        )
