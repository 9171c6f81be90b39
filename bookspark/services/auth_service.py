"""JWT session management and get_current_user dependency."""

from datetime import datetime, timedelta, UTC

import jwt
from fastapi import Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import get_settings
from bookspark.constants import COOKIE_NAME
from bookspark.db.session import get_db
from bookspark.errors import AuthError
from bookspark.models.user import User


def create_jwt(user_id: int) -> str:
    """Create a signed JWT for the given user."""
    settings = get_settings()
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(UTC) + timedelta(days=settings.jwt_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def set_session_cookie(response: Response, token: str) -> None:
    """Set the JWT as an HTTP-only cookie on the response."""
    settings = get_settings()
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.jwt_expire_days * 86400,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=COOKIE_NAME, path="/")


def _user_id_from_token(token: str) -> int | None:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
        return int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        return None


async def _load_active_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency: decode JWT cookie and return the User, or raise AuthError."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise AuthError("Not authenticated")
    user_id = _user_id_from_token(token)
    if user_id is None:
        raise AuthError("Invalid or expired session")

    user = await _load_active_user(db, user_id)
    if not user:
        raise AuthError("User not found or deactivated")
    return user


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like get_current_user but returns None instead of raising."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    user_id = _user_id_from_token(token)
    if user_id is None:
        return None
    return await _load_active_user(db, user_id)
