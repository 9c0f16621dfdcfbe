"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

import uuid

import jwt as pyjwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.cookies import clear_session_cookies, set_session_cookies
from goal_assistant.auth.dependencies import get_current_user
from goal_assistant.auth.jwt import (
    access_token_lifetime,
    create_access_token,
    create_refresh_token,
    refresh_token_lifetime,
    verify_token,
)
from goal_assistant.auth.password import PasswordStrengthError
from goal_assistant.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from goal_assistant.auth.service import (
    authenticate_user,
    change_password,
    get_refresh_token,
    get_user_by_id,
    hash_token,
    register_user,
    revoke_all_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
    store_refresh_token,
)
from goal_assistant.config import get_settings
from goal_assistant.database import get_session
from goal_assistant.db.models import User
from goal_assistant.timeutils import utcnow

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


def _client_meta(request: Request) -> tuple[str | None, str | None]:
    return (
        request.client.host if request.client else None,
        request.headers.get("user-agent"),
    )


async def _issue_tokens(
    db: AsyncSession,
    user: User,
    request: Request,
    response: Response,
    *,
    remember_me: bool = False,
) -> TokenResponse:
    """Create access + refresh tokens, store the refresh hash and set cookies."""
    token_id = str(uuid.uuid4())
    access_token = create_access_token(user.id, user.email, remember_me=remember_me)
    refresh_token = create_refresh_token(user.id, user.email, token_id=token_id, remember_me=remember_me)
    ip_address, user_agent = _client_meta(request)

    await store_refresh_token(
        db,
        user_id=user.id,
        token_id=token_id,
        token_hash=hash_token(refresh_token),
        expires_at=utcnow() + refresh_token_lifetime(remember_me),
        remember_me=remember_me,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await db.commit()

    set_session_cookies(response, access_token, refresh_token, remember_me=remember_me)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=int(access_token_lifetime(remember_me).total_seconds()),
        user=UserResponse.model_validate(user),
    )


def _unauthorized(detail: str) -> JSONResponse:
    """401 that also clears any stale session cookies."""
    response = JSONResponse(status_code=401, content={"detail": detail})
    clear_session_cookies(response)
    return response


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Register with email + password. Signs the new user in."""
    try:
        user = await register_user(db, email=body.email, password=body.password, name=body.name)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return await _issue_tokens(db, user, request, response)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Login with email + password. ``remember_me`` lengthens both token lifetimes."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except ValueError as e:
        # Persist the failed-attempt counter
        await db.commit()
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=429, detail=str(e)) from e

    return await _issue_tokens(db, user, request, response, remember_me=body.remember_me)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse | JSONResponse:
    """Rotate the refresh token (cookie, or JSON body for non-browser clients)."""
    settings = get_settings()
    raw = (body.refresh_token if body else None) or request.cookies.get(settings.refresh_cookie_name)
    if not raw:
        return _unauthorized("Refresh token missing")

    try:
        payload = verify_token(raw, expected_type="refresh")
    except pyjwt.InvalidTokenError as e:
        logger.warning("token_refresh_failed", reason=str(e))
        return _unauthorized(str(e))

    jti = payload.get("jti")
    old_token = await get_refresh_token(db, jti) if jti else None
    if old_token is None or old_token.token_hash != hash_token(raw):
        logger.warning("token_refresh_failed", reason="unknown_token")
        return _unauthorized("Invalid refresh token")
    if old_token.is_revoked:
        # Possible token reuse: revoke every session of this user
        revoked = await revoke_all_tokens(db, old_token.user_id)
        await db.commit()
        logger.warning("refresh_token_reuse", user_id=old_token.user_id, sessions_revoked=revoked)
        return _unauthorized("Refresh token has been revoked")

    user = await get_user_by_id(db, old_token.user_id)
    if user is None:
        return _unauthorized("User not found")

    remember_me = old_token.remember_me
    new_token_id = str(uuid.uuid4())
    new_access = create_access_token(user.id, user.email, remember_me=remember_me)
    new_refresh = create_refresh_token(user.id, user.email, token_id=new_token_id, remember_me=remember_me)
    ip_address, user_agent = _client_meta(request)

    await rotate_refresh_token(
        db,
        old_token=old_token,
        new_token_id=new_token_id,
        new_token_hash=hash_token(new_refresh),
        new_expires_at=utcnow() + refresh_token_lifetime(remember_me),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await db.commit()

    set_session_cookies(response, new_access, new_refresh, remember_me=remember_me)
    return TokenResponse(
        access_token=new_access,
        refresh_token=new_refresh,
        expires_in=int(access_token_lifetime(remember_me).total_seconds()),
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    """Revoke the refresh token if one is present and clear both cookies.

    Always succeeds: a missing, expired or invalid token still logs out, and
    cookies are cleared even if revocation fails.
    """
    settings = get_settings()
    response = JSONResponse(content={"success": True, "message": "Logged out successfully"})
    try:
        raw = request.cookies.get(settings.refresh_cookie_name)
        if raw:
            try:
                payload = verify_token(raw, expected_type="refresh")
            except pyjwt.InvalidTokenError:
                payload = None
            if payload and payload.get("jti"):
                await revoke_refresh_token(db, payload["jti"])
                await db.commit()
                logger.info("logout", user_id=payload.get("sub"))
    except Exception:
        logger.exception("logout_revoke_failed")
        await db.rollback()
    finally:
        clear_session_cookies(response)
    return response


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Public profile of the authenticated user."""
    return UserResponse.model_validate(user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password_endpoint(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    """Change password. Revokes every session; the caller must sign in again."""
    try:
        await change_password(db, user, body.current_password, body.new_password)
    except PermissionError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    await db.commit()
    response = JSONResponse(content={"success": True, "message": "Password changed"})
    clear_session_cookies(response)
    return response
