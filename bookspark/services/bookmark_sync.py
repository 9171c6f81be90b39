"""Bookmark sync for one user: fetch saved posts, normalize, upsert."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.constants import AVATAR_HIGH_RES_MARKER, AVATAR_LOW_RES_MARKER
from bookspark.errors import NotFoundError
from bookspark.models.bookmark import Bookmark
from bookspark.models.user import User
from bookspark.services.feed_providers.base import BookmarkBatch, BookmarkProvider
from bookspark.utils import now_utc, parse_timestamp

logger = logging.getLogger(__name__)

VIDEO_MEDIA_TYPES = {"video", "animated_gif"}
PHOTO_MEDIA_TYPES = {"photo"}


@dataclass
class SyncResult:
    new: int = 0
    updated: int = 0

    @property
    def processed(self) -> int:
        return self.new + self.updated


def derive_content_type(media_types: Iterable[str | None], has_urls: bool) -> str:
    """Classify a post: video > image > link > tweet."""
    types = {t for t in media_types if t}
    if types & VIDEO_MEDIA_TYPES:
        return "video"
    if types & PHOTO_MEDIA_TYPES:
        return "image"
    if has_urls:
        return "link"
    return "tweet"


def clean_text(text: str, spans: Iterable[tuple[int | None, int | None]]) -> str:
    """Remove every [start, end) span from ``text`` and trim whitespace.

    Spans are removed from the highest start offset down so earlier offsets
    stay valid. Offsets are clamped to the current text, so overlapping or
    out-of-range spans never raise.
    """
    valid = [(s, e) for s, e in spans if s is not None and e is not None]
    for start, end in sorted(valid, key=lambda span: span[0], reverse=True):
        start = max(0, min(start, len(text)))
        end = max(start, min(end, len(text)))
        text = text[:start] + text[end:]
    return text.strip()


def high_res_avatar(url: str | None) -> str | None:
    """Ask X for the 400x400 variant of a profile image."""
    if not url:
        return url
    return url.replace(AVATAR_LOW_RES_MARKER, AVATAR_HIGH_RES_MARKER)


def transform_post(
    post: dict[str, Any],
    users: dict[str, dict[str, Any]],
    media: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """Transform an X API v2 post into Bookmark column values (content fields only)."""
    author = users.get(post.get("author_id"), {})
    text = post.get("text") or ""
    url_entities = (post.get("entities") or {}).get("urls") or []

    media_keys = (post.get("attachments") or {}).get("media_keys") or []
    attached = [media[key] for key in media_keys if key in media]

    expanded_urls = [u.get("expanded_url") or u.get("url") for u in url_entities]
    expanded_urls = [u for u in expanded_urls if u]

    return {
        "tweet_id": post["id"],
        "content": text,
        "cleaned_content": clean_text(text, [(u.get("start"), u.get("end")) for u in url_entities]),
        "author_name": author.get("name"),
        "author_username": author.get("username"),
        "author_avatar_url": high_res_avatar(author.get("profile_image_url")),
        "author_verified": bool(author.get("verified", False)),
        "url": expanded_urls[0] if expanded_urls else None,
        "expanded_urls": expanded_urls,
        "media": [
            {
                "media_key": m.get("media_key"),
                "type": m.get("type"),
                "url": m.get("url") or m.get("preview_image_url"),
            }
            for m in attached
        ],
        "metrics": post.get("public_metrics") or {},
        "content_type": derive_content_type((m.get("type") for m in attached), bool(url_entities)),
        "posted_at": parse_timestamp(post.get("created_at")),
    }


class BookmarkSyncService:
    """Imports a user's saved posts into the bookmarks table."""

    def __init__(self, db: AsyncSession, provider: BookmarkProvider, max_results: int = 100):
        self.db = db
        self.provider = provider
        self.max_results = max_results

    async def sync_user_bookmarks(self, user_id: int) -> SyncResult:
        """Fetch and upsert the user's bookmarks.

        A failure fetching from the provider propagates; a failure on one post
        is logged and that post skipped.
        """
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        batch = await self.provider.fetch_bookmarks(user_id, max_results=self.max_results)
        result = await self._upsert_batch(user_id, batch)

        user.last_sync_at = now_utc()
        await self.db.commit()

        logger.info(
            "Synced %d bookmarks for user %s (%d new, %d updated)",
            result.processed, user_id, result.new, result.updated,
        )
        return result

    async def _upsert_batch(self, user_id: int, batch: BookmarkBatch) -> SyncResult:
        result = SyncResult()

        tweet_ids = [p.get("id") for p in batch.posts if p.get("id")]
        existing: dict[str, Bookmark] = {}
        if tweet_ids:
            rows = await self.db.execute(
                select(Bookmark).where(Bookmark.user_id == user_id, Bookmark.tweet_id.in_(tweet_ids))
            )
            existing = {b.tweet_id: b for b in rows.scalars().all()}

        for post in batch.posts:
            try:
                fields = transform_post(post, batch.users, batch.media)
                bookmark = existing.get(fields["tweet_id"])
                async with self.db.begin_nested():
                    if bookmark:
                        # Content refresh only: AI fields and status are kept
                        for key, value in fields.items():
                            setattr(bookmark, key, value)
                    else:
                        bookmark = Bookmark(user_id=user_id, **fields)
                        self.db.add(bookmark)
                is_new = fields["tweet_id"] not in existing
                existing[fields["tweet_id"]] = bookmark
                if is_new:
                    result.new += 1
                else:
                    result.updated += 1
            except Exception as e:
                logger.error("Failed to store bookmark %s for user %s: %s", post.get("id"), user_id, e)

        return result
