"""Dashboard HTML page routes: requires a session, otherwise redirects to /login."""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.constants import BOOKMARKS_MAX_LIMIT
from bookspark.db.session import get_db
from bookspark.models.bookmark import BookmarkStatus
from bookspark.models.user import User
from bookspark.services.auth_service import get_optional_user
from bookspark.services.bookmark_service import STATUS_ALL, count_by_status, list_bookmarks
from bookspark.services.user_service import settings_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/app", tags=["dashboard"])

STATUS_FILTERS = [s.value for s in BookmarkStatus] + [STATUS_ALL]


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    status: str = Query(STATUS_ALL),
    highlight: int | None = Query(None),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    if not user:
        return RedirectResponse("/login", status_code=303)
    if status not in STATUS_FILTERS:
        status = STATUS_ALL

    bookmarks = await list_bookmarks(db, user.id, status=status, limit=BOOKMARKS_MAX_LIMIT)
    counts = await count_by_status(db, user.id)

    return request.app.state.templates.TemplateResponse(
        request, "dashboard/index.html",
        {
            "user": user,
            "bookmarks": bookmarks,
            "counts": counts,
            "total": sum(counts.values()),
            "status": status,
            "status_filters": STATUS_FILTERS,
            "highlight": highlight,
        },
    )


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(
    request: Request,
    user: User | None = Depends(get_optional_user),
):
    if not user:
        return RedirectResponse("/login", status_code=303)
    return request.app.state.templates.TemplateResponse(
        request, "dashboard/settings.html",
        {"user": user, "settings": settings_out(user)},
    )
