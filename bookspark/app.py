"""FastAPI application factory: entry point for the web app."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookspark.config import get_settings
from bookspark.errors import BookSparkError
from bookspark.routers import auth, bookmarks, dashboard, digest, pages, user
from bookspark.utils import setup_logging

APP_DIR = Path(__file__).parent

logger = logging.getLogger(__name__)

# Digest email links live under /api but are opened in a browser
HTML_API_PATHS = ("/api/digest/action", "/api/digest/unsubscribe")


def wants_json(request: Request) -> bool:
    path = request.url.path
    return path.startswith("/api/") and not path.startswith(HTML_API_PATHS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # Auto-create tables for SQLite (dev mode); PostgreSQL uses Alembic
    from bookspark.db.session import engine
    from bookspark.models import Base

    settings = get_settings()
    setup_logging(settings.log_level)
    if settings.database_url.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # Initialize third-party API keys once at startup
    if settings.resend_api_key:
        import resend
        resend.api_key = settings.resend_api_key

    # Initialize shared httpx client for connection pooling
    from bookspark.http_client import init_http_client, close_http_client
    await init_http_client()

    yield

    await close_http_client()
    await engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )

    # --- Templates ---
    templates = Jinja2Templates(directory=str(APP_DIR / "templates"))
    app.state.templates = templates
    app.state.settings = settings

    # --- Static files ---
    app.mount("/static", StaticFiles(directory=str(APP_DIR / "static")), name="static")

    # --- Error handlers ---
    def error_response(request: Request, status_code: int, title: str, message: str):
        if wants_json(request):
            return JSONResponse({"success": False, "error": message}, status_code=status_code)
        return templates.TemplateResponse(
            request, "error.html",
            {"status_code": status_code, "title": title, "message": message},
            status_code=status_code,
        )

    @app.exception_handler(BookSparkError)
    async def bookspark_error_handler(request: Request, exc: BookSparkError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(request, exc.status_code, "Something went wrong", exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "; ".join(str(e.get("msg", "Invalid request")) for e in errors) or "Invalid request"
        return error_response(request, 400, "Invalid request", message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(
                request, 404, "Page not found",
                "The page you're looking for doesn't exist or has been moved.",
            )
        return error_response(request, exc.status_code, "Something went wrong", str(exc.detail))

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(
            request, 500, "Something went wrong",
            "An unexpected error occurred. Please try again later.",
        )

    # --- Routers ---
    app.include_router(pages.router)
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(bookmarks.router)
    app.include_router(digest.router)
    app.include_router(user.router)

    return app


app = create_app()
