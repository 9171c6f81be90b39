"""Tests for sign-in, sign-out and the session-gated pages."""
from urllib.parse import parse_qs, urlparse

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.admin_seed import seed_admin
from bookspark.constants import COOKIE_NAME
from bookspark.models.user import User
from bookspark.routers import auth as auth_router
from tests.conftest import make_bookmark


async def test_login_redirects_to_x(client: AsyncClient) -> None:
    response = await client.get("/auth/login")

    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == "twitter.com"
    assert "bookmark.read" in query["scope"][0]
    assert query["code_challenge_method"] == ["S256"]
    assert query["state"][0] in auth_router._oauth_states


async def test_callback_rejects_unknown_state(client: AsyncClient) -> None:
    response = await client.get("/auth/callback", params={"code": "abc", "state": "nope"})

    assert response.status_code == 400
    assert "Invalid or expired OAuth state" in response.text


async def test_admin_login(client: AsyncClient, db_session: AsyncSession) -> None:
    await seed_admin(db_session)

    response = await client.get("/auth/admin-login")

    assert response.status_code == 303
    assert response.headers["location"] == "/app/dashboard"
    assert COOKIE_NAME in response.headers["set-cookie"]


async def test_admin_login_without_seed(client: AsyncClient) -> None:
    response = await client.get("/auth/admin-login")
    assert response.status_code == 404


async def test_logout_clears_cookie(auth_client: AsyncClient) -> None:
    response = await auth_client.post("/auth/logout")

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert f'{COOKIE_NAME}=""' in response.headers["set-cookie"]


async def test_dashboard_redirects_anonymous(client: AsyncClient) -> None:
    response = await client.get("/app/dashboard")

    assert response.status_code == 303
    assert response.headers["location"] == "/login"


async def test_dashboard_lists_bookmarks(auth_client: AsyncClient, db_session: AsyncSession, user: User) -> None:
    db_session.add(make_bookmark(user, "1", summary="Learn about async generators"))
    await db_session.commit()

    response = await auth_client.get("/app/dashboard")

    assert response.status_code == 200
    assert "Learn about async generators" in response.text


async def test_settings_page(auth_client: AsyncClient) -> None:
    response = await auth_client.get("/app/settings")

    assert response.status_code == 200
    assert "reader@example.com" in response.text


async def test_login_page_redirects_signed_in_user(auth_client: AsyncClient) -> None:
    response = await auth_client.get("/login")

    assert response.status_code == 303
    assert response.headers["location"] == "/app/dashboard"


async def test_landing_and_unknown_page(client: AsyncClient) -> None:
    assert (await client.get("/")).status_code == 200

    response = await client.get("/no-such-page")
    assert response.status_code == 404
    assert "text/html" in response.headers["content-type"]
