"""Tests for the batch content processor."""
import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import Settings
from bookspark.errors import FormatError, UpstreamError
from bookspark.models.bookmark import Bookmark
from bookspark.models.user import User
from bookspark.services.content_analyzer import AnalysisResult, ContentAnalyzer
from bookspark.services.content_processor import ContentProcessor
from tests.conftest import FakeAnalyzer


async def _add_unprocessed(db_session: AsyncSession, user: User, count: int) -> list[Bookmark]:
    bookmarks = [
        Bookmark(user_id=user.id, tweet_id=f"p{i}", content=f"Unprocessed post number {i}")
        for i in range(count)
    ]
    db_session.add_all(bookmarks)
    await db_session.commit()
    return bookmarks


async def test_processes_batch_in_insertion_order(db_session: AsyncSession, user: User) -> None:
    bookmarks = await _add_unprocessed(db_session, user, 3)
    analyzer = FakeAnalyzer()

    count = await ContentProcessor(db_session, analyzer, delay_seconds=0).process_unanalyzed_bookmarks(batch_size=2)

    assert count == 2
    assert [c[0] for c in analyzer.calls] == ["Unprocessed post number 0", "Unprocessed post number 1"]
    assert bookmarks[0].summary == "A short summary"
    assert bookmarks[0].category == "tutorial"
    assert bookmarks[0].content_type == "tweet"
    assert bookmarks[0].processed_at is not None
    assert bookmarks[2].processed_at is None


async def test_failure_stores_fallback(db_session: AsyncSession, user: User) -> None:
    """A failed analysis marks the row processed with the fallback and is not counted."""
    [bookmark] = await _add_unprocessed(db_session, user, 1)
    analyzer = FakeAnalyzer(error=UpstreamError("LLM down"))
    processor = ContentProcessor(db_session, analyzer, delay_seconds=0)

    assert await processor.process_unanalyzed_bookmarks() == 0
    assert bookmark.summary == "Unprocessed post number 0"
    assert bookmark.category == "unknown"
    assert bookmark.topics == []
    assert bookmark.suggested_actions == ["Mark as done", "Save for later"]
    assert bookmark.processed_at is not None

    # Not retried automatically
    assert await processor.process_unanalyzed_bookmarks() == 0
    assert len(analyzer.calls) == 1


async def test_scoped_to_user(db_session: AsyncSession, user: User, other_user: User) -> None:
    await _add_unprocessed(db_session, user, 1)
    db_session.add(Bookmark(user_id=other_user.id, tweet_id="o1", content="theirs"))
    await db_session.commit()
    analyzer = FakeAnalyzer()

    count = await ContentProcessor(db_session, analyzer, delay_seconds=0).process_unanalyzed_bookmarks(
        user_id=other_user.id
    )

    assert count == 1
    assert analyzer.calls == [("theirs", None)]


async def test_asks_for_actions_when_analysis_has_none(db_session: AsyncSession, user: User) -> None:
    [bookmark] = await _add_unprocessed(db_session, user, 1)
    analyzer = FakeAnalyzer(AnalysisResult(summary="s", content_type="tutorial", topics=["t"], suggested_actions=[]))

    assert await ContentProcessor(db_session, analyzer, delay_seconds=0).process_bookmark(bookmark.id) is True
    assert analyzer.action_calls == [("Unprocessed post number 0", "tutorial")]
    assert bookmark.suggested_actions == ["Set reminder to practice"]


async def test_reprocess_clears_and_reanalyzes(db_session: AsyncSession, user: User) -> None:
    [bookmark] = await _add_unprocessed(db_session, user, 1)
    processor = ContentProcessor(db_session, FakeAnalyzer(error=FormatError("bad json")), delay_seconds=0)
    await processor.process_bookmark(bookmark.id)
    assert bookmark.category == "unknown"

    processor.analyzer = FakeAnalyzer()
    assert await processor.reprocess_bookmark(bookmark.id) is True
    assert bookmark.category == "tutorial"
    assert bookmark.topics == ["python", "testing"]


@pytest.mark.parametrize(
    "body",
    [
        [{"unexpected": "list"}],
        {"choices": [{"message": None, "finish_reason": "content_filter"}]},
        {"choices": [{"message": {"content": None}}]},
        {"choices": []},
    ],
)
async def test_malformed_llm_reply_falls_back(db_session: AsyncSession, user: User, body) -> None:
    """A reply in the wrong shape stores the fallback and the batch keeps going."""
    bookmarks = await _add_unprocessed(db_session, user, 2)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    analyzer = ContentAnalyzer(
        settings=Settings(debug=True, openai_api_key="sk-test"),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    count = await ContentProcessor(db_session, analyzer, delay_seconds=0).process_unanalyzed_bookmarks()

    assert count == 0
    for bookmark in bookmarks:
        assert bookmark.category == "unknown"
        assert bookmark.suggested_actions == ["Mark as done", "Save for later"]
        assert bookmark.processed_at is not None


async def test_unexpected_analyzer_error_is_contained(db_session: AsyncSession, user: User) -> None:
    bookmarks = await _add_unprocessed(db_session, user, 2)
    analyzer = FakeAnalyzer(error=RuntimeError("boom"))

    assert await ContentProcessor(db_session, analyzer, delay_seconds=0).process_unanalyzed_bookmarks() == 0
    assert len(analyzer.calls) == 2
    assert all(b.category == "unknown" for b in bookmarks)


async def test_failing_action_suggestion_is_contained(db_session: AsyncSession, user: User) -> None:
    class NoActionsAnalyzer(FakeAnalyzer):
        async def suggest_actions(self, content: str, content_type: str) -> list[str]:
            raise AttributeError("'NoneType' object has no attribute 'get'")

    [bookmark] = await _add_unprocessed(db_session, user, 1)
    analyzer = NoActionsAnalyzer(AnalysisResult(summary="s", content_type="tutorial", topics=["t"], suggested_actions=[]))

    assert await ContentProcessor(db_session, analyzer, delay_seconds=0).process_bookmark(bookmark.id) is False
    assert bookmark.summary == "Unprocessed post number 0"
    assert bookmark.processed_at is not None
