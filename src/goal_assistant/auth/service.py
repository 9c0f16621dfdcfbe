"""
Authentication business logic.

Handles user creation, credential checks, account lockout and refresh token
storage/rotation.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from goal_assistant.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from goal_assistant.config import get_settings
from goal_assistant.db.models import RefreshToken, User
from goal_assistant.timeutils import ensure_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
) -> User:
    """
    Register a new user with email + password.

    Raises:
        PasswordStrengthError: If the password is weak.
        ValueError: If the email is already registered.
    """
    validate_password_strength(password)

    existing = await get_user_by_email(db, email)
    if existing is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    now = utcnow()
    user = User(
        email=email.lower().strip(),
        name=name.strip(),
        password_hash=hash_password(password),
        email_verified=False,
        preferences={},
        last_login_at=now,
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, email=user.email)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Failed attempts are flushed on the session before raising, so callers
    should commit on the error path too.

    Raises:
        ValueError: If credentials are invalid.
        PermissionError: If the account is locked.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        logger.warning("login_failed", reason="unknown_email")
        msg = "Invalid email or password"
        raise ValueError(msg)

    if is_locked(user):
        logger.warning("login_blocked", user_id=user.id, reason="locked")
        msg = "Account temporarily locked. Try again later."
        raise PermissionError(msg)

    if not verify_password(password, user.password_hash):
        await record_failed_login(db, user)
        msg = "Invalid email or password"
        raise ValueError(msg)

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login_at = utcnow()

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)

    await db.flush()
    logger.info("login_success", user_id=user.id)
    return user


# ---------------------------------------------------------------------------
# Account lockout
# ---------------------------------------------------------------------------


def is_locked(user: User, now: datetime | None = None) -> bool:
    """True while the user's lockout window is open."""
    locked_until = ensure_utc(user.locked_until)
    if locked_until is None:
        return False
    return locked_until > (now or utcnow())


async def record_failed_login(db: AsyncSession, user: User) -> int:
    """Count a failed attempt, locking the account at the threshold. Returns the new count."""
    settings = get_settings()
    user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
    count = user.failed_login_attempts
    if count >= settings.account_lockout_threshold:
        user.locked_until = utcnow() + timedelta(
            minutes=settings.account_lockout_duration_minutes
        )
        user.failed_login_attempts = 0
        logger.warning("account_locked", user_id=user.id, minutes=settings.account_lockout_duration_minutes)
    else:
        logger.warning("login_failed", user_id=user.id, attempts=count)
    await db.flush()
    return count


# ---------------------------------------------------------------------------
# Password change
# ---------------------------------------------------------------------------


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    """
    Raises:
        PermissionError: If the current password is wrong.
        PasswordStrengthError: If the new password is weak.
    """
    if not verify_password(current_password, user.password_hash):
        msg = "Current password is incorrect"
        raise PermissionError(msg)
    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    revoked = await revoke_all_tokens(db, user.id)
    logger.info("password_changed", user_id=user.id, sessions_revoked=revoked)


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def store_refresh_token(
    db: AsyncSession,
    user_id: int,
    token_id: str,
    token_hash: str,
    expires_at: datetime,
    *,
    remember_me: bool = False,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """Store a refresh token hash in the database."""
    token = RefreshToken(
        id=token_id,
        user_id=user_id,
        token_hash=token_hash,
        issued_at=utcnow(),
        expires_at=expires_at,
        remember_me=remember_me,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
    )
    db.add(token)
    await db.flush()
    return token


async def get_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    """Look up a refresh token by its JTI."""
    result = await db.execute(select(RefreshToken).where(RefreshToken.id == token_id))
    return result.scalar_one_or_none()


async def rotate_refresh_token(
    db: AsyncSession,
    old_token: RefreshToken,
    new_token_id: str,
    new_token_hash: str,
    new_expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """Revoke old token and create a new one (rotation)."""
    old_token.is_revoked = True
    old_token.revoked_at = utcnow()
    old_token.replaced_by = new_token_id

    return await store_refresh_token(
        db,
        user_id=old_token.user_id,
        token_id=new_token_id,
        token_hash=new_token_hash,
        expires_at=new_expires_at,
        remember_me=old_token.remember_me,
        ip_address=ip_address,
        user_agent=user_agent,
    )


async def revoke_refresh_token(db: AsyncSession, token_id: str) -> bool:
    """Revoke a specific refresh token. Returns True if found."""
    token = await get_refresh_token(db, token_id)
    if token is None:
        return False
    token.is_revoked = True
    token.revoked_at = utcnow()
    await db.flush()
    return True


async def revoke_all_tokens(
    db: AsyncSession,
    user_id: int,
    exclude_token_id: str | None = None,
) -> int:
    """Revoke all refresh tokens for a user. Returns count revoked."""
    stmt = (
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .where(RefreshToken.is_revoked == False)  # noqa: E712
    )
    if exclude_token_id:
        stmt = stmt.where(RefreshToken.id != exclude_token_id)
    stmt = stmt.values(is_revoked=True, revoked_at=utcnow())
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount  # type: ignore[return-value]
