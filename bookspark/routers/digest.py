"""Digest routes: one-click email actions, sending, sample digests, unsubscribe."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.config import get_settings
from bookspark.constants import SNOOZE_DAYS
from bookspark.db.session import get_db
from bookspark.dependencies import get_email_service
from bookspark.errors import NotFoundError, ValidationError
from bookspark.models.bookmark import BookmarkStatus
from bookspark.models.user import User
from bookspark.schemas.digest import DigestSendRequest, SampleDigestRequest
from bookspark.services.action_links import decode_action_token, decode_unsubscribe_token, verify
from bookspark.services.auth_service import get_current_user
from bookspark.services.bookmark_service import get_user_bookmark
from bookspark.services.digest_generator import DigestGenerator
from bookspark.services.email_service import EmailService
from bookspark.utils import now_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/digest", tags=["digest"])

ACTION_MESSAGES = {
    "done": (BookmarkStatus.DONE, "Great! Bookmark marked as done. 🎉"),
    "snooze": (BookmarkStatus.SNOOZED, f"Bookmark snoozed for {SNOOZE_DAYS} days. We'll remind you then! ⏰"),
}

DEFAULT_SAMPLE_NAME = "BookSpark User"


@router.get("/action", response_class=HTMLResponse)
async def digest_action(
    request: Request,
    token: str = Query(...),
    exp: int | None = Query(None),
    sig: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Apply a done/snooze/view click from a digest email."""
    decoded = decode_action_token(token)
    verify(token, exp, sig)

    bookmark = await get_user_bookmark(db, decoded.user_id, decoded.bookmark_id)
    settings = get_settings()

    if decoded.action == "view":
        return RedirectResponse(
            f"{settings.app_url.rstrip('/')}/app/dashboard?highlight={bookmark.id}", status_code=302
        )
    if decoded.action not in ACTION_MESSAGES:
        raise ValidationError("Invalid action")

    status, message = ACTION_MESSAGES[decoded.action]
    snooze_until = now_utc() + timedelta(days=SNOOZE_DAYS) if status == BookmarkStatus.SNOOZED else None
    bookmark.set_status(status, snooze_until=snooze_until)
    await db.commit()
    logger.info("Digest action %s applied to bookmark %s", decoded.action, bookmark.id)

    return request.app.state.templates.TemplateResponse(
        request, "digest/action_result.html",
        {"message": message, "bookmark": bookmark, "status": status.value},
    )


@router.post("/send")
async def send_digest(
    body: DigestSendRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Send the digest to one user (default: the caller) or broadcast to everyone."""
    body = body or DigestSendRequest()
    generator = DigestGenerator(db, email_service)
    if body.send_to_all:
        stats = await generator.generate_digest_for_all_users()
        return {
            "success": True,
            "message": f"Digest batch complete: {stats.sent} sent, {stats.failed} failed, {stats.skipped} skipped",
            "stats": {"sent": stats.sent, "failed": stats.failed, "skipped": stats.skipped},
        }

    result = await generator.generate_and_send_digest(body.user_id or user.id)
    return {
        "success": result.success,
        "status": result.status,
        "message": result.message,
        "bookmarkCount": result.bookmark_count,
    }


@router.get("/send")
async def send_my_digest(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    result = await DigestGenerator(db, email_service).generate_and_send_digest(user.id)
    return {
        "success": result.success,
        "status": result.status,
        "message": result.message,
        "bookmarkCount": result.bookmark_count,
    }


async def _send_sample(user: User, email: str | None, name: str | None, email_service: EmailService) -> dict:
    to_email = email or user.digest_email
    if not to_email:
        raise ValidationError("Email address required")

    logger.info("Sending sample digest to %s", to_email)
    sent = await email_service.send_test_digest(
        to_email, name or user.name or DEFAULT_SAMPLE_NAME, user_id=user.id
    )
    return {
        "success": sent,
        "message": f"Test digest sent to {to_email}" if sent else "Failed to send test digest",
    }


@router.get("/test")
async def test_digest(
    email: str | None = Query(None),
    user: User = Depends(get_current_user),
    email_service: EmailService = Depends(get_email_service),
):
    return await _send_sample(user, email, None, email_service)


@router.post("/test")
async def test_digest_custom(
    body: SampleDigestRequest | None = None,
    user: User = Depends(get_current_user),
    email_service: EmailService = Depends(get_email_service),
):
    body = body or SampleDigestRequest()
    return await _send_sample(user, body.email, body.name, email_service)


@router.get("/unsubscribe", response_class=HTMLResponse)
async def unsubscribe(
    request: Request,
    token: str = Query(...),
    exp: int | None = Query(None),
    sig: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Turn off digest emails from the link in the email footer."""
    user_id = decode_unsubscribe_token(token)
    verify(token, exp, sig)

    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    user.digest_enabled = False
    await db.commit()
    logger.info("User %s unsubscribed from digests", user_id)

    return request.app.state.templates.TemplateResponse(
        request, "digest/action_result.html",
        {
            "message": "You have been unsubscribed from BookSpark digest emails.",
            "bookmark": None,
            "status": None,
        },
    )
