"""Daily digest: eligibility, diverse bookmark selection and delivery.

Eligibility is evaluated in the user's own timezone: the digest goes out when
the local hour is within one hour of the preferred digest hour (wrapping
around midnight) and no digest has gone out on the same local date.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import Settings, get_settings
from bookspark.constants import (
    DIGEST_CANDIDATE_DAYS,
    DIGEST_CANDIDATE_MULTIPLIER,
    DIGEST_HOUR_WINDOW,
    DIGEST_MIN_DIVERSE_PICKS,
)
from bookspark.errors import NotFoundError
from bookspark.models.bookmark import DIGEST_CANDIDATE_STATUSES, Bookmark, BookmarkStatus
from bookspark.models.user import User
from bookspark.services.action_links import build_unsubscribe_url
from bookspark.services.email_service import DigestEmail, DigestItem, DigestRecipient, EmailService
from bookspark.utils import as_utc, now_utc, resolve_timezone

logger = logging.getLogger(__name__)


@dataclass
class DigestResult:
    success: bool
    status: str  # sent | skipped | failed
    message: str
    bookmark_count: int = 0


@dataclass
class DigestBatchResult:
    sent: int = 0
    failed: int = 0
    skipped: int = 0


def should_send_digest(user: User, now: datetime) -> bool:
    """Whether a digest is due for ``user`` at ``now`` (aware UTC datetime)."""
    if not user.digest_enabled:
        return False

    tz = resolve_timezone(user.timezone)
    local_now = now.astimezone(tz)

    last_sent = as_utc(user.last_digest_sent_at)
    if last_sent and last_sent.astimezone(tz).date() == local_now.date():
        return False

    distance = abs(local_now.hour - user.digest_hour)
    distance = min(distance, 24 - distance)
    return distance <= DIGEST_HOUR_WINDOW


def select_digest_bookmarks(candidates: Sequence[Any], limit: int = 5) -> list[Any]:
    """Pick up to ``limit`` bookmarks favouring topic and content-type diversity.

    Pass 1 walks the candidates in order and takes those that add an unseen
    topic or content type (the first two are taken regardless) and that have
    at least one suggested action. Pass 2 fills remaining slots in order.
    """
    selected: list[Any] = []
    used_topics: set[str] = set()
    content_types: set[str] = set()

    for bookmark in candidates:
        if len(selected) >= limit:
            break
        topics = bookmark.topics or []
        has_new_topic = any(t not in used_topics for t in topics)
        has_new_type = bookmark.content_type not in content_types
        has_actions = bool(bookmark.suggested_actions)
        if (has_new_topic or has_new_type or len(selected) < DIGEST_MIN_DIVERSE_PICKS) and has_actions:
            selected.append(bookmark)
            used_topics.update(topics)
            content_types.add(bookmark.content_type)

    chosen = {id(b) for b in selected}
    for bookmark in candidates:
        if len(selected) >= limit:
            break
        if id(bookmark) not in chosen:
            selected.append(bookmark)
            chosen.add(id(bookmark))

    return selected[:limit]


class DigestGenerator:
    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.db = db
        self.email_service = email_service
        self.settings = settings or get_settings()
        self.clock = clock

    async def fetch_candidates(self, user_id: int, limit: int, now: datetime) -> list[Bookmark]:
        since = now - timedelta(days=DIGEST_CANDIDATE_DAYS)
        result = await self.db.execute(
            select(Bookmark)
            .where(
                Bookmark.user_id == user_id,
                Bookmark.status.in_([s.value for s in DIGEST_CANDIDATE_STATUSES]),
                Bookmark.summary.is_not(None),
                Bookmark.processed_at.is_not(None),
                Bookmark.created_at >= since,
            )
            .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
            .limit(limit * DIGEST_CANDIDATE_MULTIPLIER)
        )
        return list(result.scalars().all())

    async def generate_and_send_digest(self, user_id: int) -> DigestResult:
        """Send today's digest to one user if it is due."""
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        now = self.clock()
        if not should_send_digest(user, now):
            return DigestResult(True, "skipped", "Digest not due or disabled")

        limit = self.settings.digest_limit
        bookmarks = select_digest_bookmarks(await self.fetch_candidates(user_id, limit, now), limit)

        if not bookmarks:
            # Stamp anyway so the user is not re-checked until tomorrow
            user.last_digest_sent_at = now
            await self.db.commit()
            return DigestResult(True, "skipped", "No bookmarks to send")

        to_email = user.digest_email
        if not to_email:
            logger.warning("User %s has no email address, skipping digest", user_id)
            return DigestResult(True, "skipped", "No email address on file")

        email = DigestEmail(
            recipient=DigestRecipient(id=user.id, name=user.name or user.x_username, email=to_email),
            items=[DigestItem.from_bookmark(b) for b in bookmarks],
            unsubscribe_url=build_unsubscribe_url(user.id, self.settings),
        )
        if not await self.email_service.send_daily_digest(email):
            return DigestResult(False, "failed", "Failed to send digest email")

        user.last_digest_sent_at = now
        for bookmark in bookmarks:
            bookmark.set_status(BookmarkStatus.PENDING, via_digest=True)
        await self.db.commit()

        logger.info("Digest sent to user %s with %d bookmarks", user_id, len(bookmarks))
        return DigestResult(
            True,
            "sent",
            f"Digest sent successfully with {len(bookmarks)} bookmarks",
            bookmark_count=len(bookmarks),
        )

    async def generate_digest_for_all_users(self) -> DigestBatchResult:
        """Run the digest for every active user with digests enabled, one at a time."""
        result = await self.db.execute(
            select(User.id).where(User.is_active.is_(True), User.digest_enabled.is_(True)).order_by(User.id)
        )
        user_ids = list(result.scalars().all())
        logger.info("Processing digests for %d users", len(user_ids))

        batch = DigestBatchResult()
        for i, user_id in enumerate(user_ids):
            if i > 0 and self.settings.digest_user_delay_seconds:
                await asyncio.sleep(self.settings.digest_user_delay_seconds)
            try:
                outcome = await self.generate_and_send_digest(user_id)
            except Exception as e:
                await self.db.rollback()
                logger.error("Error processing digest for user %s: %s", user_id, e, exc_info=True)
                batch.failed += 1
                continue

            if outcome.status == "sent":
                batch.sent += 1
            elif outcome.status == "skipped":
                batch.skipped += 1
                logger.info("Skipped user %s: %s", user_id, outcome.message)
            else:
                batch.failed += 1
                logger.error("Digest failed for user %s: %s", user_id, outcome.message)

        logger.info(
            "Digest batch complete: %d sent, %d failed, %d skipped",
            batch.sent, batch.failed, batch.skipped,
        )
        return batch
