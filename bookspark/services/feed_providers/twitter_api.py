"""X API v2 bookmark provider: fetches the user's saved posts."""

import logging
from datetime import datetime, timedelta, UTC
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.constants import (
    EXPANSIONS,
    MEDIA_FIELDS,
    TOKEN_REFRESH_THRESHOLD_MINUTES,
    TWEET_FIELDS,
    TWITTER_API_MAX_RESULTS,
    TWITTER_API_MIN_RESULTS,
    TWITTER_API_TIMEOUT,
    TWITTER_BOOKMARKS_URL,
    USER_FIELDS,
)
from bookspark.db.encryption import decrypt
from bookspark.errors import AuthError, UpstreamError
from bookspark.http_client import get_http_client
from bookspark.models.user import User
from bookspark.services.feed_providers.base import BookmarkBatch
from bookspark.services.twitter_oauth import refresh_access_token, store_tokens
from bookspark.utils import as_utc

logger = logging.getLogger(__name__)


class TwitterBookmarksProvider:
    """Fetches saved posts via X API v2, refreshing the OAuth token when needed."""

    def __init__(self, db: AsyncSession, client: httpx.AsyncClient | None = None):
        self.db = db
        self.client = client

    async def _get_access_token(self, user_id: int) -> tuple[str, str]:
        """Get a valid access token for the user, refreshing if needed.

        Returns (access_token, x_user_id).
        """
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user or not user.x_access_token:
            raise AuthError("No X access token found for user")

        access_token = decrypt(user.x_access_token)

        expires_at = as_utc(user.x_token_expires_at)
        if expires_at and expires_at < datetime.now(UTC) + timedelta(minutes=TOKEN_REFRESH_THRESHOLD_MINUTES):
            if not user.x_refresh_token:
                raise AuthError("X token expired and no refresh token available")
            token_data = await refresh_access_token(decrypt(user.x_refresh_token), self.client)
            store_tokens(user, token_data)
            await self.db.commit()
            access_token = token_data["access_token"]
            logger.info("Refreshed X access token for user %s", user_id)

        return access_token, user.x_user_id

    async def _get_page(self, url: str, access_token: str, params: dict[str, Any]) -> dict[str, Any]:
        client = self.client or get_http_client()
        try:
            resp = await client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=TWITTER_API_TIMEOUT,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("X API error: %s - %s", e.response.status_code, e.response.text[:500])
            if e.response.status_code == 401:
                raise AuthError("X rejected the stored access token") from e
            raise UpstreamError(f"X API error: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"X API request failed: {e}") from e
        return resp.json()

    async def fetch_bookmarks(self, user_id: int, max_results: int = 100) -> BookmarkBatch:
        """Fetch up to ``max_results`` saved posts, following pagination tokens."""
        access_token, x_user_id = await self._get_access_token(user_id)
        url = TWITTER_BOOKMARKS_URL.format(user_id=x_user_id)

        batch = BookmarkBatch()
        next_token: str | None = None
        while len(batch.posts) < max_results:
            params: dict[str, Any] = {
                "max_results": max(
                    min(max_results - len(batch.posts), TWITTER_API_MAX_RESULTS), TWITTER_API_MIN_RESULTS
                ),
                "tweet.fields": TWEET_FIELDS,
                "user.fields": USER_FIELDS,
                "media.fields": MEDIA_FIELDS,
                "expansions": EXPANSIONS,
            }
            if next_token:
                params["pagination_token"] = next_token

            data = await self._get_page(url, access_token, params)
            if "data" not in data:
                logger.info("No bookmark data in API response for user %s", user_id)
                break
            batch.extend(data)

            next_token = (data.get("meta") or {}).get("next_token")
            if not next_token:
                break

        batch.posts = batch.posts[:max_results]
        logger.info("Fetched %d bookmarks via API for user %s", len(batch.posts), user_id)
        return batch
