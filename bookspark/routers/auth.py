"""Auth routes: X OAuth 2.0 PKCE login, callback, logout."""

import json
import logging
import time

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.admin_seed import ADMIN_X_USER_ID
from bookspark.config import get_settings
from bookspark.constants import OAUTH_STATE_TTL
from bookspark.db.session import get_db
from bookspark.errors import BookSparkError, NotFoundError, ValidationError
from bookspark.services.auth_service import (
    clear_session_cookie,
    create_jwt,
    set_session_cookie,
)
from bookspark.services.twitter_oauth import (
    build_authorize_url,
    exchange_code,
    generate_pkce_pair,
    generate_state,
    get_user_profile,
)
from bookspark.services.user_service import get_user_by_x_id, upsert_x_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

# In-memory fallback for OAuth state (used when Redis is not available)
_oauth_states: dict[str, dict] = {}


async def _get_redis() -> AsyncRedis | None:
    """Get async Redis client if REDIS_URL is configured."""
    settings = get_settings()
    if not settings.redis_url:
        return None
    try:
        return AsyncRedis.from_url(settings.redis_url)
    except (RedisError, ValueError) as e:
        logger.warning("Redis unavailable for OAuth state, using memory: %s", e)
        return None


async def _store_oauth_state(state: str, data: dict) -> None:
    """Store OAuth state in Redis (or fallback to in-memory)."""
    redis = await _get_redis()
    if redis:
        try:
            await redis.setex(f"oauth:{state}", OAUTH_STATE_TTL, json.dumps(data))
        finally:
            await redis.aclose()
    else:
        _oauth_states[state] = {**data, "created_at": time.monotonic()}


async def _pop_oauth_state(state: str) -> dict | None:
    """Retrieve and delete OAuth state."""
    redis = await _get_redis()
    if redis:
        try:
            raw = await redis.getdel(f"oauth:{state}")
            return json.loads(raw) if raw else None
        finally:
            await redis.aclose()
    else:
        return _oauth_states.pop(state, None)


def _cleanup_expired_states() -> None:
    """Remove expired in-memory OAuth state entries."""
    now = time.monotonic()
    expired = [k for k, v in _oauth_states.items() if now - v.get("created_at", 0) > OAUTH_STATE_TTL]
    for k in expired:
        del _oauth_states[k]


def _session_redirect(user_id: int) -> RedirectResponse:
    response = RedirectResponse(url="/app/dashboard", status_code=303)
    set_session_cookie(response, create_jwt(user_id))
    return response


@router.get("/login")
async def login(request: Request):
    """Redirect user to the X authorization page."""
    _cleanup_expired_states()

    state = generate_state()
    verifier, challenge = generate_pkce_pair()
    await _store_oauth_state(state, {"code_verifier": verifier})

    url = build_authorize_url(state, challenge)
    logger.debug("OAuth authorize URL: %s", url)
    return RedirectResponse(url)


@router.get("/callback")
async def callback(
    request: Request,
    code: str = Query(...),
    state: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Handle the X OAuth callback: exchange code, create/update user."""
    stored = await _pop_oauth_state(state)
    if not stored:
        raise ValidationError("Invalid or expired OAuth state")

    # Only relevant for the in-memory fallback; Redis expires keys itself
    if stored.get("created_at") and time.monotonic() - stored["created_at"] > OAUTH_STATE_TTL:
        raise ValidationError("OAuth state expired. Please try logging in again.")

    try:
        token_data = await exchange_code(code, stored["code_verifier"])
        profile = await get_user_profile(token_data["access_token"])
    except (BookSparkError, KeyError) as e:
        logger.error("OAuth callback error: %s", e, exc_info=True)
        raise ValidationError("Authentication failed. Please try logging in again.") from e

    user = await upsert_x_user(db, profile, token_data)
    logger.info("User %s signed in as @%s", user.id, user.x_username)
    return _session_redirect(user.id)


@router.get("/admin-login")
async def admin_login(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Debug-only: log in as the seeded admin user (no OAuth required).

    Only works when DEBUG=true AND request comes from localhost.
    """
    settings = get_settings()
    if not settings.debug:
        raise NotFoundError("Not found")

    client_host = request.client.host if request.client else None
    if client_host not in ("127.0.0.1", "::1", "localhost"):
        raise NotFoundError("Not found")

    user = await get_user_by_x_id(db, ADMIN_X_USER_ID)
    if not user:
        raise NotFoundError("Admin user not found. Run: python -m bookspark.admin_seed")

    return _session_redirect(user.id)


@router.post("/logout")
async def logout():
    """Clear session cookie and redirect to landing."""
    response = RedirectResponse(url="/", status_code=303)
    clear_session_cookie(response)
    return response
