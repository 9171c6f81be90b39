"""Digest email rendering and delivery via Resend API."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape

from bookspark.config import Settings, get_settings
from bookspark.constants import CONTENT_PREVIEW_CHARS
from bookspark.services.action_links import build_action_url, build_unsubscribe_url
from bookspark.utils import now_utc, truncate

logger = logging.getLogger(__name__)

_template_dir = Path(__file__).parent.parent / "templates" / "email"
_jinja_env = Environment(
    loader=FileSystemLoader(str(_template_dir)),
    autoescape=select_autoescape(["html"]),
)

DIGEST_ACTIONS = ("done", "snooze", "view")


@dataclass
class DigestRecipient:
    id: int
    name: str
    email: str


@dataclass
class DigestItem:
    id: int
    content: str
    summary: str
    author_name: str | None = None
    author_username: str | None = None
    topics: list[str] = field(default_factory=list)
    suggested_actions: list[str] = field(default_factory=list)
    content_type: str = "tweet"

    @classmethod
    def from_bookmark(cls, bookmark: Any) -> "DigestItem":
        return cls(
            id=bookmark.id,
            content=bookmark.content,
            summary=bookmark.summary or "",
            author_name=bookmark.author_name,
            author_username=bookmark.author_username,
            topics=list(bookmark.topics or []),
            suggested_actions=list(bookmark.suggested_actions or []),
            content_type=bookmark.content_type,
        )


@dataclass
class DigestEmail:
    recipient: DigestRecipient
    items: list[DigestItem]
    unsubscribe_url: str


SAMPLE_ITEMS = [
    DigestItem(
        id=0,
        content=(
            "Just shipped a new feature using Next.js 15! The app directory is incredibly "
            "powerful for building modern web applications."
        ),
        summary="Developer shares excitement about Next.js 15 app directory features",
        author_name="Sarah Chen",
        author_username="sarahcodes",
        topics=["development", "nextjs", "web"],
        suggested_actions=["Add to learning list", "Try Next.js 15", "Follow up on app directory"],
    ),
    DigestItem(
        id=0,
        content=(
            "The key to productivity is not working harder, but working on the right things. "
            "Focus beats speed every time."
        ),
        summary="Productivity insight about focusing on the right priorities",
        author_name="Alex Morgan",
        author_username="alexproductivity",
        topics=["productivity", "focus", "mindset"],
        suggested_actions=["Reflect on current priorities", "Create focus framework", "Share with team"],
    ),
]


def digest_subject(count: int) -> str:
    return f"📚 Your Daily BookSpark Digest - {count} bookmark{'' if count == 1 else 's'} ready"


class EmailService:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def render_digest(self, email: DigestEmail) -> tuple[str, str]:
        """Render the (html, text) bodies of a digest."""
        settings = self.settings
        app_url = settings.app_url.rstrip("/")
        items = [
            {
                "item": item,
                "author": item.author_username or item.author_name or "unknown",
                "preview": truncate(item.content, CONTENT_PREVIEW_CHARS),
                "links": {
                    action: build_action_url(email.recipient.id, item.id, action, settings)
                    for action in DIGEST_ACTIONS
                },
            }
            for item in email.items
        ]
        context = {
            "recipient": email.recipient,
            "items": items,
            "unsubscribe_url": email.unsubscribe_url,
            "dashboard_url": f"{app_url}/app/dashboard",
            "settings_url": f"{app_url}/app/settings",
            "date": now_utc().strftime("%B %d, %Y"),
        }
        html = _jinja_env.get_template("digest.html").render(**context)
        text = _jinja_env.get_template("digest.txt").render(**context)
        return html, text

    async def send_daily_digest(self, email: DigestEmail) -> bool:
        """Send a digest email. Returns True on success, False on failure."""
        recipient = email.recipient
        if not email.items:
            logger.info("No bookmarks to send for user %s", recipient.id)
            return True

        if not self.settings.resend_api_key:
            logger.warning("Resend API key not configured, skipping email")
            return False

        html, text = self.render_digest(email)
        try:
            result = await asyncio.to_thread(
                resend.Emails.send,
                {
                    "from": self.settings.email_from,
                    "to": [recipient.email],
                    "subject": digest_subject(len(email.items)),
                    "html": html,
                    "text": text,
                    "headers": {"List-Unsubscribe": f"<{email.unsubscribe_url}>"},
                },
            )
            logger.info("Digest sent to %s: %s", recipient.email, (result or {}).get("id"))
            return True
        except Exception as e:
            logger.error("Failed to send digest to %s: %s", recipient.email, e)
            return False

    async def send_test_digest(self, to_email: str, name: str, user_id: int = 0) -> bool:
        """Send a digest of two fixed sample bookmarks."""
        email = DigestEmail(
            recipient=DigestRecipient(id=user_id, name=name, email=to_email),
            items=list(SAMPLE_ITEMS),
            unsubscribe_url=build_unsubscribe_url(user_id, self.settings),
        )
        return await self.send_daily_digest(email)
