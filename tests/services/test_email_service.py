"""Tests for digest rendering and the Resend hand-off."""
import resend

from bookspark.config import Settings
from bookspark.services.email_service import (
    SAMPLE_ITEMS,
    DigestEmail,
    DigestItem,
    DigestRecipient,
    EmailService,
    digest_subject,
)


def _settings(**overrides) -> Settings:
    values = {"debug": True, "app_url": "https://bookspark.test", "resend_api_key": "re_test"}
    values.update(overrides)
    return Settings(**values)


def _email() -> DigestEmail:
    item = DigestItem(
        id=42,
        content="<b>Bold</b> claim " + "x" * 200,
        summary="A post about <script> tags",
        author_username="ada",
        topics=["security"],
        suggested_actions=["Read later"],
    )
    return DigestEmail(
        recipient=DigestRecipient(id=7, name="Ada", email="ada@example.com"),
        items=[item],
        unsubscribe_url="https://bookspark.test/api/digest/unsubscribe?token=abc",
    )


def test_subject_pluralizes() -> None:
    assert digest_subject(1) == "📚 Your Daily BookSpark Digest - 1 bookmark ready"
    assert digest_subject(3) == "📚 Your Daily BookSpark Digest - 3 bookmarks ready"


def test_render_digest_includes_signed_links() -> None:
    html, text = EmailService(_settings()).render_digest(_email())

    assert "https://bookspark.test/api/digest/action?token=" in text
    assert text.count("/api/digest/action?") == 3
    assert "https://bookspark.test/api/digest/unsubscribe?token=abc" in text
    assert "https://bookspark.test/app/dashboard" in html
    assert "&amp;exp=" in html
    # Bodies are escaped in HTML, previews are cut
    assert "&lt;script&gt;" in html
    assert "<script>" not in html
    assert "x" * 151 not in html


async def test_send_without_api_key_fails_quietly() -> None:
    assert await EmailService(_settings(resend_api_key="")).send_daily_digest(_email()) is False


async def test_send_with_no_items_is_a_success() -> None:
    email = _email()
    email.items = []
    assert await EmailService(_settings()).send_daily_digest(email) is True


async def test_send_calls_resend(monkeypatch) -> None:
    calls = []

    def fake_send(params):
        calls.append(params)
        return {"id": "email_123"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)

    assert await EmailService(_settings()).send_daily_digest(_email()) is True

    [params] = calls
    assert params["to"] == ["ada@example.com"]
    assert params["subject"] == digest_subject(1)
    assert params["headers"]["List-Unsubscribe"] == "<https://bookspark.test/api/digest/unsubscribe?token=abc>"
    assert "Hello Ada" in params["text"]


async def test_send_reports_resend_errors(monkeypatch) -> None:
    def fake_send(params):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(resend.Emails, "send", fake_send)

    assert await EmailService(_settings()).send_daily_digest(_email()) is False


async def test_send_test_digest_uses_samples(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(resend.Emails, "send", lambda params: calls.append(params) or {"id": "x"})

    assert await EmailService(_settings()).send_test_digest("me@example.com", "Me") is True

    assert calls[0]["subject"] == digest_subject(len(SAMPLE_ITEMS))
    assert "Sarah Chen" in calls[0]["html"] or "sarahcodes" in calls[0]["html"]
