"""Tests for digest eligibility, selection and delivery."""
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import Settings
from bookspark.errors import NotFoundError
from bookspark.models.user import User
from bookspark.services.digest_generator import DigestGenerator, select_digest_bookmarks, should_send_digest
from tests.conftest import FakeEmailService, make_bookmark

SETTINGS = Settings(debug=True, digest_limit=5, digest_user_delay_seconds=0)


@dataclass
class Candidate:
    id: int
    topics: list[str]
    content_type: str = "tweet"
    suggested_actions: list[str] = field(default_factory=lambda: ["Act"])


def _user(**fields) -> User:
    values = {"digest_enabled": True, "digest_time": "08:00:00", "timezone": "UTC", "last_digest_sent_at": None}
    values.update(fields)
    return User(x_user_id="x", x_username="u", **values)


AT_8 = datetime(2025, 3, 10, 8, 15, tzinfo=UTC)


def test_disabled_user_is_never_due() -> None:
    assert should_send_digest(_user(digest_enabled=False), AT_8) is False


def test_already_sent_today_is_not_due() -> None:
    user = _user(last_digest_sent_at=AT_8.replace(hour=0, minute=5))
    assert should_send_digest(user, AT_8) is False


def test_sent_yesterday_within_window_is_due() -> None:
    user = _user(last_digest_sent_at=AT_8 - timedelta(days=1))
    assert should_send_digest(user, AT_8) is True
    assert should_send_digest(user, AT_8.replace(hour=9)) is True
    assert should_send_digest(user, AT_8.replace(hour=7)) is True
    assert should_send_digest(user, AT_8.replace(hour=10)) is False


def test_hour_window_wraps_midnight() -> None:
    user = _user(digest_time="23:00:00")
    assert should_send_digest(user, datetime(2025, 3, 10, 0, 10, tzinfo=UTC)) is True
    assert should_send_digest(user, datetime(2025, 3, 10, 2, 0, tzinfo=UTC)) is False


def test_eligibility_uses_user_timezone() -> None:
    """08:00 in Berlin (UTC+1 in March before DST) is 07:00 UTC."""
    user = _user(timezone="Europe/Berlin")
    assert should_send_digest(user, datetime(2025, 3, 10, 7, 0, tzinfo=UTC)) is True
    assert should_send_digest(user, datetime(2025, 3, 10, 10, 0, tzinfo=UTC)) is False
    # 23:30 UTC on the 9th is already the 10th in Berlin
    sent = datetime(2025, 3, 9, 23, 30, tzinfo=UTC)
    assert should_send_digest(_user(timezone="Europe/Berlin", last_digest_sent_at=sent), datetime(2025, 3, 10, 7, 0, tzinfo=UTC)) is False


def test_invalid_timezone_falls_back_to_utc() -> None:
    assert should_send_digest(_user(timezone="Mars/Olympus"), AT_8) is True


def test_selection_prefers_diversity() -> None:
    candidates = [
        Candidate(1, ["ai"]),
        Candidate(2, ["ai"]),
        Candidate(3, ["ai"]),
        Candidate(4, ["design"]),
        Candidate(5, ["ai"], content_type="video"),
        Candidate(6, ["ai"]),
    ]
    picked = [c.id for c in select_digest_bookmarks(candidates, limit=4)]
    # Pass 1: 1 and 2 (first two), 4 (new topic), 5 (new type); pass 2 not needed
    assert picked == [1, 2, 4, 5]


def test_selection_fills_with_second_pass() -> None:
    candidates = [
        Candidate(1, ["ai"]),
        Candidate(2, ["ai"], suggested_actions=[]),
        Candidate(3, ["ai"]),
        Candidate(4, ["ai"]),
    ]
    picked = [c.id for c in select_digest_bookmarks(candidates, limit=3)]
    # Pass 1 takes 1 and 3; pass 2 fills with 2 in original order
    assert picked == [1, 3, 2]


def test_selection_bounds() -> None:
    candidates = [Candidate(i, [f"t{i}"]) for i in range(10)]
    assert len(select_digest_bookmarks(candidates, limit=5)) == 5
    assert select_digest_bookmarks([], limit=5) == []
    assert len(select_digest_bookmarks(candidates[:2], limit=5)) == 2


async def test_end_to_end_digest_at_eight(db_session: AsyncSession, user: User) -> None:
    """Due user with three distinct-topic bookmarks gets all three; they become pending."""
    now = datetime.now(UTC).replace(hour=8, minute=0, second=0, microsecond=0)
    user.last_digest_sent_at = now - timedelta(days=1)
    bookmarks = [make_bookmark(user, str(i), created_at=now - timedelta(hours=i)) for i in (1, 2, 3)]
    db_session.add_all(bookmarks)
    await db_session.commit()

    email_service = FakeEmailService()
    generator = DigestGenerator(db_session, email_service, SETTINGS, clock=lambda: now)
    result = await generator.generate_and_send_digest(user.id)

    assert result.success is True
    assert result.status == "sent"
    assert result.bookmark_count == 3
    [email] = email_service.sent
    assert email.recipient.email == "reader@example.com"
    assert [item.id for item in email.items] == [b.id for b in bookmarks]
    assert "/api/digest/unsubscribe?" in email.unsubscribe_url

    await db_session.refresh(user)
    assert user.last_digest_sent_at.replace(tzinfo=UTC) == now
    for bookmark in bookmarks:
        await db_session.refresh(bookmark)
        assert bookmark.status == "pending"


async def test_candidates_exclude_old_done_and_unprocessed(db_session: AsyncSession, user: User) -> None:
    now = datetime.now(UTC).replace(hour=8, minute=0, second=0, microsecond=0)
    db_session.add_all([
        make_bookmark(user, "1", created_at=now - timedelta(hours=1)),
        make_bookmark(user, "old", created_at=now - timedelta(days=8)),
        make_bookmark(user, "done", status="done", created_at=now - timedelta(hours=1)),
        make_bookmark(user, "raw", summary=None, processed_at=None, created_at=now - timedelta(hours=1)),
        make_bookmark(user, "pend", status="pending", created_at=now - timedelta(hours=2)),
    ])
    await db_session.commit()

    generator = DigestGenerator(db_session, FakeEmailService(), SETTINGS, clock=lambda: now)
    candidates = await generator.fetch_candidates(user.id, 5, now)

    assert [b.tweet_id for b in candidates] == ["1", "pend"]


async def test_no_bookmarks_stamps_without_sending(db_session: AsyncSession, user: User) -> None:
    now = datetime.now(UTC).replace(hour=8, minute=0, second=0, microsecond=0)
    email_service = FakeEmailService()

    result = await DigestGenerator(db_session, email_service, SETTINGS, clock=lambda: now).generate_and_send_digest(user.id)

    assert result.success is True
    assert result.message == "No bookmarks to send"
    assert email_service.sent == []
    await db_session.refresh(user)
    assert user.last_digest_sent_at is not None


async def test_failed_send_changes_nothing(db_session: AsyncSession, user: User) -> None:
    now = datetime.now(UTC).replace(hour=8, minute=0, second=0, microsecond=0)
    bookmark = make_bookmark(user, "1", created_at=now - timedelta(hours=1))
    db_session.add(bookmark)
    await db_session.commit()

    generator = DigestGenerator(db_session, FakeEmailService(succeed=False), SETTINGS, clock=lambda: now)
    result = await generator.generate_and_send_digest(user.id)

    assert (result.success, result.status) == (False, "failed")
    await db_session.refresh(bookmark)
    await db_session.refresh(user)
    assert bookmark.status == "new"
    assert user.last_digest_sent_at is None


async def test_not_due_is_skipped(db_session: AsyncSession, user: User) -> None:
    at_noon = datetime.now(UTC).replace(hour=12, minute=0, second=0, microsecond=0)
    result = await DigestGenerator(db_session, FakeEmailService(), SETTINGS, clock=lambda: at_noon).generate_and_send_digest(user.id)
    assert (result.success, result.status, result.message) == (True, "skipped", "Digest not due or disabled")


async def test_unknown_user(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await DigestGenerator(db_session, FakeEmailService(), SETTINGS).generate_and_send_digest(404)


async def test_broadcast_counts(db_session: AsyncSession, user: User, other_user: User) -> None:
    now = datetime.now(UTC).replace(hour=8, minute=0, second=0, microsecond=0)
    db_session.add(make_bookmark(user, "1", created_at=now - timedelta(hours=1)))
    other_user.digest_time = "15:00:00"
    db_session.add(User(x_user_id="3003", x_username="off", digest_enabled=False))
    await db_session.commit()

    email_service = FakeEmailService()
    stats = await DigestGenerator(db_session, email_service, SETTINGS, clock=lambda: now).generate_digest_for_all_users()

    assert (stats.sent, stats.failed, stats.skipped) == (1, 0, 1)
    assert len(email_service.sent) == 1
