"""X OAuth 2.0 PKCE flow helpers and token storage."""

import base64
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, UTC
from urllib.parse import urlencode

import httpx

from bookspark.config import get_settings
from bookspark.constants import (
    DEFAULT_TOKEN_EXPIRY,
    TWITTER_AUTHORIZE_URL,
    TWITTER_SCOPES,
    TWITTER_TOKEN_URL,
    TWITTER_USER_ME_URL,
    USER_FIELDS,
)
from bookspark.db.encryption import encrypt, encrypt_optional
from bookspark.errors import UpstreamError
from bookspark.http_client import get_http_client
from bookspark.models.user import User

logger = logging.getLogger(__name__)


def generate_pkce_pair() -> tuple[str, str]:
    """Return (code_verifier, code_challenge) for PKCE."""
    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode()).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
    return verifier, challenge


def generate_state() -> str:
    return secrets.token_urlsafe(32)


def build_authorize_url(state: str, code_challenge: str) -> str:
    """Build the X authorization URL, requesting bookmark.read."""
    settings = get_settings()
    params = {
        "response_type": "code",
        "client_id": settings.twitter_client_id,
        "redirect_uri": settings.twitter_redirect_uri,
        "scope": TWITTER_SCOPES,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    return f"{TWITTER_AUTHORIZE_URL}?{urlencode(params)}"


async def _token_request(data: dict, client: httpx.AsyncClient | None = None) -> dict:
    settings = get_settings()
    client = client or get_http_client()
    try:
        resp = await client.post(
            TWITTER_TOKEN_URL,
            data={**data, "client_id": settings.twitter_client_id},
            auth=(settings.twitter_client_id, settings.twitter_client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("X token endpoint error: %s - %s", e.response.status_code, e.response.text[:500])
        raise UpstreamError(f"X token request failed: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise UpstreamError(f"X token request failed: {e}") from e
    return resp.json()


async def exchange_code(code: str, code_verifier: str, client: httpx.AsyncClient | None = None) -> dict:
    """Exchange authorization code for access + refresh tokens."""
    settings = get_settings()
    return await _token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": settings.twitter_redirect_uri,
            "code_verifier": code_verifier,
        },
        client,
    )


async def refresh_access_token(refresh_token: str, client: httpx.AsyncClient | None = None) -> dict:
    """Use refresh token to get a new access token."""
    return await _token_request({"grant_type": "refresh_token", "refresh_token": refresh_token}, client)


async def get_user_profile(access_token: str, client: httpx.AsyncClient | None = None) -> dict:
    """Fetch the authenticated user's profile from X API v2."""
    client = client or get_http_client()
    try:
        resp = await client.get(
            TWITTER_USER_ME_URL,
            params={"user.fields": USER_FIELDS},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise UpstreamError(f"X profile request failed: {e}") from e
    return resp.json()["data"]


def store_tokens(user: User, token_data: dict) -> None:
    """Encrypt and attach a token response to the user row (caller commits)."""
    user.x_access_token = encrypt(token_data["access_token"])
    # X rotates refresh tokens; keep the old one if none came back
    if token_data.get("refresh_token"):
        user.x_refresh_token = encrypt_optional(token_data["refresh_token"])
    expires_in = token_data.get("expires_in", DEFAULT_TOKEN_EXPIRY)
    user.x_token_expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)
