"""Public page routes: landing and login."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from bookspark.models.user import User
from bookspark.services.auth_service import get_optional_user

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def landing(request: Request, user: User | None = Depends(get_optional_user)):
    return request.app.state.templates.TemplateResponse(request, "landing.html", {"user": user})


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, user: User | None = Depends(get_optional_user)):
    if user:
        return RedirectResponse("/app/dashboard", status_code=303)
    return request.app.state.templates.TemplateResponse(
        request, "login.html", {"debug": request.app.state.settings.debug}
    )
