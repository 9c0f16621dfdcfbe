"""
JWT token management.

HS256 with a shared secret by default. When ``jwt_algorithm`` is an RS*
algorithm the RSA key pair is read from ``jwt_private_key_path`` /
``jwt_public_key_path``.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

import jwt

from goal_assistant.config import get_settings
from goal_assistant.timeutils import utcnow

_private_key: str | None = None
_public_key: str | None = None


def _load_keys() -> tuple[str, str]:
    """Return (signing key, verification key), cached after first call."""
    global _private_key, _public_key  # noqa: PLW0603
    if _private_key is None or _public_key is None:
        settings = get_settings()
        if settings.jwt_algorithm.startswith(("RS", "ES", "PS")):
            _private_key = Path(settings.jwt_private_key_path).read_text()
            _public_key = Path(settings.jwt_public_key_path).read_text()
        else:
            _private_key = _public_key = settings.jwt_secret
    return _private_key, _public_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _private_key, _public_key  # noqa: PLW0603
    _private_key = None
    _public_key = None


def access_token_lifetime(remember_me: bool = False) -> timedelta:
    settings = get_settings()
    if remember_me:
        return timedelta(days=settings.jwt_remember_me_access_days)
    return timedelta(minutes=settings.jwt_access_token_expire_minutes)


def refresh_token_lifetime(remember_me: bool = False) -> timedelta:
    settings = get_settings()
    if remember_me:
        return timedelta(days=settings.jwt_remember_me_refresh_days)
    return timedelta(days=settings.jwt_refresh_token_expire_days)


def create_access_token(user_id: int, email: str, *, remember_me: bool = False) -> str:
    """
    Create an access token.

    Args:
        user_id: The user's database ID.
        email: The user's email address.
        remember_me: Use the longer remember-me lifetime.

    Returns:
        Encoded JWT string.
    """
    private_key, _ = _load_keys()
    settings = get_settings()
    now = utcnow()
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + access_token_lifetime(remember_me),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "type": "access",
    }
    return jwt.encode(payload, private_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(
    user_id: int,
    email: str,
    *,
    token_id: str,
    remember_me: bool = False,
) -> str:
    """
    Create a refresh token.

    Args:
        user_id: The user's database ID.
        email: The user's email address.
        token_id: Unique token identifier (JTI) for revocation tracking.
        remember_me: Use the longer remember-me lifetime.

    Returns:
        Encoded JWT string.
    """
    private_key, _ = _load_keys()
    settings = get_settings()
    now = utcnow()
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "jti": token_id,
        "rmb": remember_me,
        "iat": now,
        "exp": now + refresh_token_lifetime(remember_me),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "type": "refresh",
    }
    return jwt.encode(payload, private_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or wrong type.
    """
    _, public_key = _load_keys()
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
