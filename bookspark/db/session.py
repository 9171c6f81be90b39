"""Engine and sessions for the users, bookmarks and digest tables.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) for local runs, where
the app creates the tables itself at startup.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from bookspark.config import async_database_url, get_settings


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    url = async_database_url(url)
    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, pool_pre_ping=True)

    # a file-backed bookmark store needs its data directory
    db_path = url.split("///", 1)[-1] if "///" in url else ""
    if db_path and db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=echo, connect_args={"check_same_thread": False})


settings = get_settings()
engine = make_engine(settings.database_url, echo=settings.debug)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, closed when the request ends."""
    async with async_session_factory() as session:
        yield session
